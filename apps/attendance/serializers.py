from rest_framework import serializers

from .models import Attendance
from . import scoring


class AttendanceSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.get_full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    late_by_minutes = serializers.SerializerMethodField()
    expected_checkout = serializers.SerializerMethodField()

    class Meta:
        model = Attendance
        fields = [
            'id', 'user', 'user_name', 'date',
            'check_in', 'check_out', 'lunch_start', 'lunch_end',
            'total_hours', 'break_hours',
            'status', 'status_display', 'work_mode', 'office_name', 'distance_m',
            'notes', 'admin_note',
            'late_by_minutes', 'expected_checkout',
        ]
        read_only_fields = fields

    def get_late_by_minutes(self, obj):
        return scoring.late_by_minutes(obj.check_in)

    def get_expected_checkout(self, obj):
        expected = scoring.expected_checkout(obj.check_in)
        return serializers.DateTimeField().to_representation(expected) if expected else None


class LocationSerializer(serializers.Serializer):
    """
    Body of check-in / check-out

    location may be "lat,lng" or an object; it is classified, never rejected.
    """
    location = serializers.JSONField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)

"""
JSON endpoints behind the attendance widget

All endpoints act on the logged-in user's own row for today.
Errors: {"success": false, "error": "..."} with status 400.
"""

from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.views import get_client_ip
from . import services
from .models import Attendance
from .serializers import AttendanceSerializer, LocationSerializer


def _state_payload(user):
    state = services.widget_state(user)
    record = state.pop('record')
    expected = state['expected_checkout']
    state['expected_checkout'] = expected.isoformat() if expected else None
    state['attendance'] = AttendanceSerializer(record).data if record else None
    return state


class TodayView(APIView):

    def get(self, request):
        return Response({'success': True, **_state_payload(request.user)})


class AttendanceActionView(APIView):
    """Base for the POST-only state changes"""

    def perform(self, request, data):
        raise NotImplementedError

    def post(self, request):
        serializer = LocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform(request, serializer.validated_data)
        except services.AttendanceError as e:
            return Response({'success': False, 'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({'success': True, **_state_payload(request.user)})


class CheckInView(AttendanceActionView):

    def perform(self, request, data):
        record = services.check_in(request.user, location=data.get('location'), ip=get_client_ip(request))
        if data.get('notes'):
            record.notes = data['notes']
            record.save(update_fields=['notes', 'updated_at'])


class CheckOutView(AttendanceActionView):

    def perform(self, request, data):
        services.check_out(request.user, location=data.get('location'), ip=get_client_ip(request))


class LunchStartView(AttendanceActionView):

    def perform(self, request, data):
        services.start_lunch(request.user)


class LunchEndView(AttendanceActionView):

    def perform(self, request, data):
        services.end_lunch(request.user)


class HistoryView(ListAPIView):
    serializer_class = AttendanceSerializer

    def get_queryset(self):
        return Attendance.objects.filter(user=self.request.user).select_related('user').order_by('-date')

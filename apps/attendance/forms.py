from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone
from .models import Attendance, Leave


class AttendanceNoteForm(forms.ModelForm):
    """Admins only ever correct the note, never the timestamps"""

    class Meta:
        model = Attendance
        fields = ['admin_note']
        widgets = {'admin_note': forms.Textarea(attrs={'class': 'form-control', 'rows': 3, 'placeholder': 'e.g. Network outage, checked in from phone at 09:20'})}
        labels = {'admin_note': 'Admin Note'}


class AttendanceFilterForm(forms.Form):
    date = forms.DateField(required=False, label='Date', widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    status = forms.ChoiceField(choices=[('', 'All Statuses')] + Attendance.STATUS_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-select'}))
    work_mode = forms.ChoiceField(choices=[('', 'All Modes')] + Attendance.WORK_MODE_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-select'}))


class LeaveRequestForm(forms.ModelForm):
    class Meta:
        model = Leave
        fields = ['leave_type', 'start_date', 'end_date', 'reason']
        widgets = {
            'leave_type': forms.Select(attrs={'class': 'form-select'}),
            'start_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'end_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'reason': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }
        error_messages = {'reason': {'required': 'Please give a reason'}}

    def clean_start_date(self):
        start_date = self.cleaned_data.get('start_date')
        if start_date and start_date < timezone.localdate():
            raise ValidationError('Leave cannot start in the past')
        return start_date

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and end_date < start_date:
            raise ValidationError({'end_date': 'End date must be on or after the start date'})

        return cleaned_data


class LeaveDecisionForm(forms.Form):
    DECISION_CHOICES = [
        ('approve', 'Approve'),
        ('reject', 'Reject'),
    ]

    decision = forms.ChoiceField(choices=DECISION_CHOICES)
    rejection_reason = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('decision') == 'reject' and not cleaned_data.get('rejection_reason', '').strip():
            raise ValidationError({'rejection_reason': 'Please give a reason for rejecting'})
        return cleaned_data

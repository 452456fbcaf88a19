from datetime import timedelta

from django.db import models
from django.utils import timezone
from apps.accounts.models import User


class Attendance(models.Model):
    """
    One row per user per day

    Created on check-in, updated by lunch break / check-out. admin_note is the
    only field admins correct by hand; everything else comes from the widget.
    """

    STATUS_PRESENT = 'present'
    STATUS_LATE = 'late'
    STATUS_ABSENT = 'absent'
    STATUS_HALF_DAY = 'half_day'
    STATUS_ON_LEAVE = 'on_leave'

    STATUS_CHOICES = [
        (STATUS_PRESENT, 'Present'),
        (STATUS_LATE, 'Late'),
        (STATUS_ABSENT, 'Absent'),
        (STATUS_HALF_DAY, 'Half Day'),
        (STATUS_ON_LEAVE, 'On Leave'),
    ]

    WORK_MODE_CHOICES = [
        ('on_site', 'On Site'),
        ('remote', 'Remote'),
        ('unknown', 'Unknown'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='attendance_records')
    date = models.DateField(db_index=True)

    check_in = models.DateTimeField(null=True, blank=True)
    check_out = models.DateTimeField(null=True, blank=True)
    lunch_start = models.DateTimeField(null=True, blank=True)
    lunch_end = models.DateTimeField(null=True, blank=True)

    # "H:MM" strings, as shown on the widget
    total_hours = models.CharField(max_length=10, blank=True)
    break_hours = models.CharField(max_length=10, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ABSENT, db_index=True)
    work_mode = models.CharField(max_length=20, choices=WORK_MODE_CHOICES, default='unknown')
    office_name = models.CharField(max_length=100, blank=True)
    distance_m = models.FloatField(null=True, blank=True, help_text='Distance from the nearest office at check-in')

    location_check_in = models.JSONField(null=True, blank=True)
    location_check_out = models.JSONField(null=True, blank=True)
    ip_check_in = models.GenericIPAddressField(null=True, blank=True)
    ip_check_out = models.GenericIPAddressField(null=True, blank=True)

    notes = models.TextField(blank=True)
    admin_note = models.TextField(blank=True, help_text='Correction or remark added by an admin')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Attendance'
        verbose_name_plural = 'Attendance'
        ordering = ['-date', 'user__full_name']
        constraints = [
            models.UniqueConstraint(fields=['user', 'date'], name='unique_attendance_per_day'),
        ]
        indexes = [
            models.Index(fields=['date', 'status']),
        ]

    def __str__(self):
        return f"{self.user.get_full_name()} - {self.date} ({self.get_status_display()})"

    def is_checked_in(self):
        return self.check_in is not None and self.check_out is None

    def is_on_break(self):
        return self.lunch_start is not None and self.lunch_end is None

    def is_late(self):
        return self.status == self.STATUS_LATE


class Leave(models.Model):

    LEAVE_TYPE_CHOICES = [
        ('casual', 'Casual Leave'),
        ('sick', 'Sick Leave'),
        ('paid', 'Paid Leave'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='leaves')
    leave_type = models.CharField(max_length=20, choices=LEAVE_TYPE_CHOICES, default='casual')
    start_date = models.DateField()
    end_date = models.DateField()
    reason = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='leaves_reviewed')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user.get_full_name()}: {self.get_leave_type_display()} {self.start_date} → {self.end_date}"

    @property
    def days(self):
        return (self.end_date - self.start_date).days + 1

    def covers(self, day):
        return self.start_date <= day <= self.end_date

    def mark_attendance(self):
        """Days of an approved leave show as on_leave unless the user checked in anyway"""
        day = self.start_date
        while day <= self.end_date:
            record, created = Attendance.objects.get_or_create(
                user=self.user, date=day,
                defaults={'status': Attendance.STATUS_ON_LEAVE},
            )
            if not created and record.check_in is None and record.status != Attendance.STATUS_ON_LEAVE:
                record.status = Attendance.STATUS_ON_LEAVE
                record.save(update_fields=['status', 'updated_at'])
            day += timedelta(days=1)

    def approve(self, approver):
        """Approve and notify the requester; only pending requests can be decided"""
        if self.status != 'pending':
            return False

        self.status = 'approved'
        self.approved_by = approver
        self.approved_at = timezone.now()
        self.save(update_fields=['status', 'approved_by', 'approved_at'])
        self.mark_attendance()

        from apps.core.models import Notification
        Notification.notify(self.user, 'Leave approved', f'Your {self.get_leave_type_display().lower()} from {self.start_date} to {self.end_date} was approved.')
        return True

    def reject(self, approver, reason=''):
        if self.status != 'pending':
            return False

        self.status = 'rejected'
        self.approved_by = approver
        self.approved_at = timezone.now()
        self.rejection_reason = reason
        self.save(update_fields=['status', 'approved_by', 'approved_at', 'rejection_reason'])

        from apps.core.models import Notification
        Notification.notify(self.user, 'Leave rejected', reason or 'Your leave request was rejected.')
        return True

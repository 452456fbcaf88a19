from decimal import Decimal
import re
from urllib.parse import quote

from django.db import models
from django.utils import timezone
from django.utils.text import slugify
from django.urls import reverse
from apps.accounts.models import User
from taggit.managers import TaggableManager


def normalize_status(value):
    """
    Canonical lowercase status

    "DISBURSED" → "disbursed", "Login Done" → "login_done",
    "Not_Interested" → "not_interested". Unknown values are slugified and kept.
    """
    if value is None:
        return ''
    return slugify(str(value).strip()).replace('-', '_')


def phone_digits(phone):
    """Digits only, with a leading 91 / 0 dropped when that leaves a 10-digit mobile number"""
    digits = re.sub(r'\D', '', phone or '')
    if len(digits) == 12 and digits.startswith('91'):
        return digits[2:]
    if len(digits) == 11 and digits.startswith('0'):
        return digits[1:]
    return digits


class Lead(models.Model):

    STATUS_NEW = 'new'
    STATUS_CONTACTED = 'contacted'
    STATUS_FOLLOW_UP = 'follow_up'
    STATUS_INTERESTED = 'interested'
    STATUS_NOT_INTERESTED = 'not_interested'
    STATUS_NOT_ELIGIBLE = 'not_eligible'
    STATUS_LOGIN_DONE = 'login_done'
    STATUS_AWAITING_KYC = 'awaiting_kyc'
    STATUS_UNDERWRITING = 'underwriting'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_DISBURSED = 'disbursed'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = [
        (STATUS_NEW, 'New'),
        (STATUS_CONTACTED, 'Contacted'),
        (STATUS_FOLLOW_UP, 'Follow Up'),
        (STATUS_INTERESTED, 'Interested'),
        (STATUS_NOT_INTERESTED, 'Not Interested'),
        (STATUS_NOT_ELIGIBLE, 'Not Eligible'),
        (STATUS_LOGIN_DONE, 'Login Done'),
        (STATUS_AWAITING_KYC, 'Awaiting KYC'),
        (STATUS_UNDERWRITING, 'Underwriting'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_DISBURSED, 'Disbursed'),
        (STATUS_CLOSED, 'Closed'),
    ]

    # Statuses the KYC team works on once a file is handed over
    KYC_STATUSES = [STATUS_AWAITING_KYC, STATUS_UNDERWRITING, STATUS_APPROVED, STATUS_REJECTED, STATUS_DISBURSED]

    # Set only by transfer_to_kyc / record_disbursement, or by the KYC team once
    # the file is with them
    KYC_STAGE_STATUSES = [STATUS_AWAITING_KYC, STATUS_UNDERWRITING, STATUS_APPROVED]
    GATED_STATUSES = KYC_STAGE_STATUSES + [STATUS_DISBURSED]

    # Leads in these statuses are never overwritten by a bulk import
    RESTRICTED_IMPORT_STATUSES = {
        STATUS_INTERESTED, STATUS_LOGIN_DONE, STATUS_AWAITING_KYC,
        STATUS_UNDERWRITING, STATUS_APPROVED, STATUS_DISBURSED,
    }

    # Still worth a follow-up reminder
    OPEN_STATUSES = [STATUS_NEW, STATUS_CONTACTED, STATUS_FOLLOW_UP, STATUS_INTERESTED]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    LOAN_TYPE_CHOICES = [
        ('personal', 'Personal Loan'),
        ('business', 'Business Loan'),
        ('home', 'Home Loan'),
        ('lap', 'Loan Against Property'),
        ('car', 'Car Loan'),
        ('credit_card', 'Credit Card'),
        ('other', 'Other'),
    ]

    # Basic Information
    name = models.CharField(max_length=200, help_text="Customer's full name")
    phone = models.CharField(max_length=20, db_index=True, help_text='Primary mobile number')
    alternate_phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True, null=True, help_text='Email address (optional)')
    company_name = models.CharField(max_length=200, blank=True, help_text='Employer or business name')
    designation = models.CharField(max_length=100, blank=True)

    # Pipeline
    source = models.CharField(max_length=100, blank=True, help_text='Where did this lead come from? (campaign, referral, upload...)')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_NEW, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')

    # Assignment
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_leads', db_index=True, help_text='Telecaller responsible for this lead')
    assigned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='leads_assigned_by_me')
    assigned_at = models.DateTimeField(null=True, blank=True)
    kyc_member = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='kyc_leads', help_text='KYC team member handling the file after login')

    # Loan
    loan_type = models.CharField(max_length=30, choices=LOAN_TYPE_CHOICES, blank=True)
    loan_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True, help_text='Requested amount (INR)')
    monthly_income = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    bank_name = models.CharField(max_length=100, blank=True, help_text='Bank the file was logged in with')
    application_number = models.CharField(max_length=100, blank=True)
    disbursed_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    disbursed_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Address
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True, default='India')
    zip_code = models.CharField(max_length=20, blank=True)

    notes = models.TextField(blank=True, help_text='General notes about this lead')
    tags = TaggableManager(blank=True)

    next_follow_up = models.DateTimeField(null=True, blank=True, db_index=True)
    last_contacted = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Lead'
        verbose_name_plural = 'Leads'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'assigned_to']),
            models.Index(fields=['kyc_member', 'status']),
            models.Index(fields=['next_follow_up']),
        ]

    def __str__(self):
        """String representation: Name (Phone) - Status"""
        return f"{self.name} ({self.phone}) - {self.get_status_display()}"

    def save(self, *args, **kwargs):
        self.status = normalize_status(self.status) or self.STATUS_NEW
        super().save(*args, **kwargs)

    def get_absolute_url(self):
        return reverse('leads:lead_detail', kwargs={'pk': self.pk})

    def get_initials(self):
        """Returns first letters for avatar: 'Rahul Verma' → 'RV'"""
        parts = self.name.split()
        if len(parts) >= 2:
            return f"{parts[0][0]}{parts[1][0]}".upper()
        elif len(parts) == 1:
            return parts[0][0].upper()
        return "?"

    def is_restricted_for_import(self):
        return normalize_status(self.status) in self.RESTRICTED_IMPORT_STATUSES

    def can_be_assigned(self):
        """Disbursed and closed files are not reassigned"""
        return self.status not in [self.STATUS_DISBURSED, self.STATUS_CLOSED]

    def can_transfer_to_kyc(self):
        return normalize_status(self.status) == self.STATUS_LOGIN_DONE

    # BUSINESS ACTIONS
    def assign_to(self, user, assigned_by=None):
        """
        Assign lead to a telecaller (None unassigns)

        Returns False when the lead is closed for assignment.
        """
        if not self.can_be_assigned():
            return False

        self.assigned_to = user
        self.assigned_by = assigned_by
        self.assigned_at = timezone.now()
        self.save()

        if user:
            description = f'Assigned to {user.get_full_name()}'
        else:
            description = 'Assignment removed'

        Activity.objects.create(
            lead=self,
            user=assigned_by,
            activity_type='assigned',
            description=description,
        )

        if user and user != assigned_by:
            from apps.core.models import Notification
            Notification.notify(
                user,
                'New lead assigned',
                f'{self.name} ({self.phone}) has been assigned to you.',
                link=self.get_absolute_url(),
            )

        return True

    def can_move_to(self, new_status):
        """
        Whether a plain status change may set `new_status`

        Disbursed needs an amount (record_disbursement). KYC statuses need the
        file to be in the KYC stage already (transfer_to_kyc).
        """
        new_status = normalize_status(new_status)
        if new_status == self.STATUS_DISBURSED:
            return False
        if new_status in self.KYC_STAGE_STATUSES:
            return self.status in self.KYC_STAGE_STATUSES
        return True

    def change_status(self, new_status, user=None):
        new_status = normalize_status(new_status)
        old_status = self.status
        if new_status == old_status:
            return False
        if not self.can_move_to(new_status):
            return False

        self.status = new_status
        if new_status == self.STATUS_CONTACTED and not self.last_contacted:
            self.last_contacted = timezone.now()
        self.save()

        choices = dict(self.STATUS_CHOICES)
        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='status_changed',
            description=f'Status changed from "{choices.get(old_status, old_status)}" to "{choices.get(new_status, new_status)}"',
        )
        return True

    def transfer_to_kyc(self, kyc_member, user=None):
        """
        Hand a logged-in file over to the KYC team

        Only allowed from Login Done; returns False otherwise.
        """
        if not self.can_transfer_to_kyc():
            return False

        self.kyc_member = kyc_member
        self.status = self.STATUS_AWAITING_KYC
        self.save()

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='kyc_transfer',
            description=f'Transferred to KYC ({kyc_member.get_full_name() if kyc_member else "unassigned"})',
        )

        if kyc_member:
            from apps.core.models import Notification
            Notification.notify(
                kyc_member,
                'New KYC file',
                f'{self.name} ({self.phone}) is awaiting KYC.',
                link=self.get_absolute_url(),
            )
        return True

    def record_disbursement(self, amount, user=None, disbursed_at=None):
        """Mark as disbursed; non-positive amounts are refused (returns False)"""
        try:
            amount = Decimal(str(amount))
        except (ArithmeticError, ValueError, TypeError):
            return False
        if not amount.is_finite() or amount <= 0:
            return False

        self.disbursed_amount = amount
        self.disbursed_at = disbursed_at or timezone.now()
        self.status = self.STATUS_DISBURSED
        self.save()

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='disbursed',
            description=f'Disbursed ₹{amount:,.2f}',
        )
        return True

    def add_note(self, content, user):

        note = Note.objects.create(
            lead=self,
            user=user,
            content=content
        )

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='note_added',
            description='Added a note'
        )

        return note

    def log_call(self, user, call_status='connected', duration_seconds=0, notes='', call_type='outbound'):
        call = CallLog.objects.create(
            lead=self,
            user=user,
            call_type=call_type,
            call_status=call_status,
            duration_seconds=duration_seconds or 0,
            notes=notes,
        )

        self.last_contacted = call.created_at
        if self.status == self.STATUS_NEW:
            self.status = self.STATUS_CONTACTED
        self.save(update_fields=['last_contacted', 'status', 'updated_at'])

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='call_logged',
            description=f'{call.get_call_status_display()} call ({call.duration_display()})',
        )
        return call

    def schedule_follow_up(self, scheduled_at, user, notes=''):
        follow_up = FollowUp.objects.create(
            lead=self,
            user=user,
            scheduled_at=scheduled_at,
            notes=notes,
        )

        self.next_follow_up = scheduled_at
        self.save(update_fields=['next_follow_up', 'updated_at'])

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type='follow_up_scheduled',
            description=f'Follow-up scheduled for {timezone.localtime(scheduled_at):%d %b %Y %H:%M}',
        )
        return follow_up

    # CONTACT LINKS
    def tel_link(self):
        return f'tel:{self.phone}'

    def mailto_link(self):
        if not self.email:
            return ''
        return f'mailto:{self.email}'

    def whatsapp_link(self, message=''):
        """
        wa.me deep link; 10-digit Indian numbers get the 91 prefix
        """
        digits = re.sub(r'\D', '', self.phone or '')
        if len(digits) == 10:
            digits = f'91{digits}'
        url = f'https://wa.me/{digits}'
        if message:
            url += f'?text={quote(message)}'
        return url

    # QUERY HELPERS
    def get_activities(self):
        return self.activities.all().select_related('user').order_by('-created_at')

    def get_notes(self):
        return self.notes_set.all().select_related('user').order_by('-created_at')

    def time_since_created(self):
        """Returns time elapsed since lead was created"""
        delta = timezone.now() - self.created_at

        if delta.days > 30:
            months = delta.days // 30
            return f"{months} month{'s' if months > 1 else ''} ago"
        elif delta.days > 0:
            return f"{delta.days} day{'s' if delta.days > 1 else ''} ago"
        elif delta.seconds >= 3600:
            hours = delta.seconds // 3600
            return f"{hours} hour{'s' if hours > 1 else ''} ago"
        elif delta.seconds >= 60:
            minutes = delta.seconds // 60
            return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
        return "Just now"

    def time_until_follow_up(self):
        if not self.next_follow_up:
            return None

        delta = self.next_follow_up - timezone.now()

        if delta.total_seconds() < 0:
            return "Overdue"
        if delta.days > 0:
            return f"In {delta.days} day{'s' if delta.days > 1 else ''}"
        elif delta.seconds >= 3600:
            hours = delta.seconds // 3600
            return f"In {hours} hour{'s' if hours > 1 else ''}"
        minutes = delta.seconds // 60
        return f"In {minutes} minute{'s' if minutes > 1 else ''}"


class Note(models.Model):

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='notes_set')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='notes', help_text='Who wrote this note')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
        ]

    def __str__(self):
        preview = self.content[:50] + '...' if len(self.content) > 50 else self.content
        return f"Note by {self.user.get_full_name() if self.user else 'Unknown'}: {preview}"


class CallLog(models.Model):

    CALL_TYPE_CHOICES = [
        ('outbound', 'Outbound'),
        ('inbound', 'Inbound'),
    ]

    CALL_STATUS_CHOICES = [
        ('connected', 'Connected'),
        ('nr', 'Not Reachable'),
        ('busy', 'Busy'),
        ('switched_off', 'Switched Off'),
        ('wrong_number', 'Wrong Number'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='calls')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='call_logs')
    call_type = models.CharField(max_length=20, choices=CALL_TYPE_CHOICES, default='outbound')
    call_status = models.CharField(max_length=20, choices=CALL_STATUS_CHOICES, default='connected', db_index=True)
    duration_seconds = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Call Log'
        verbose_name_plural = 'Call Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        return f"{self.get_call_status_display()} call to {self.lead.name}"

    def is_connected(self):
        """A call counts as connected when it lasted at all"""
        return self.duration_seconds > 0

    def duration_display(self):
        minutes, seconds = divmod(self.duration_seconds, 60)
        return f"{minutes}:{seconds:02d}"


class FollowUp(models.Model):

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='follow_ups')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='follow_ups')
    scheduled_at = models.DateTimeField(db_index=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    reminder_sent = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Follow-up'
        verbose_name_plural = 'Follow-ups'
        ordering = ['scheduled_at']

    def __str__(self):
        return f"Follow-up with {self.lead.name} at {self.scheduled_at:%Y-%m-%d %H:%M}"

    def is_overdue(self):
        return self.status == 'pending' and self.scheduled_at < timezone.now()

    def mark_completed(self):
        self.status = 'completed'
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'completed_at'])


class Activity(models.Model):

    ACTIVITY_TYPE_CHOICES = [
        ('created', 'Created'),
        ('imported', 'Imported'),
        ('assigned', 'Assigned'),
        ('status_changed', 'Status Changed'),
        ('note_added', 'Note Added'),
        ('call_logged', 'Call Logged'),
        ('follow_up_scheduled', 'Follow-up Scheduled'),
        ('follow_up_reminder', 'Follow-up Reminder'),
        ('kyc_transfer', 'KYC Transfer'),
        ('disbursed', 'Disbursed'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='activities')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activities', help_text='Who performed this action')
    activity_type = models.CharField(max_length=30, choices=ACTIVITY_TYPE_CHOICES)
    description = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Activity'
        verbose_name_plural = 'Activities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        user_name = self.user.get_full_name() if self.user else 'System'
        return f"{user_name}: {self.description}"


class LoanLogin(models.Model):
    """
    A customer file submitted to one or more banks

    bank_attempts is a list of {"bank", "status", "reason", "date"} dicts,
    oldest first.
    """

    STATUS_CHOICES = [
        ('login_done', 'Login Done'),
        ('in_progress', 'In Progress'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    ATTEMPT_STATUSES = ['pending', 'approved', 'rejected']

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, db_index=True)
    lead = models.ForeignKey(Lead, on_delete=models.SET_NULL, null=True, blank=True, related_name='loan_logins')
    bank_attempts = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='login_done', db_index=True)
    assigned_to = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='loan_logins')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Loan Login'
        verbose_name_plural = 'Loan Logins'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.phone}) - {self.get_status_display()}"

    def latest_attempt(self):
        return self.bank_attempts[-1] if self.bank_attempts else None

    def derive_status(self):
        """
        approved if any bank approved, rejected if every bank rejected,
        in_progress while a bank is pending, login_done with no attempts
        """
        statuses = [a.get('status') for a in self.bank_attempts or []]
        if not statuses:
            return 'login_done'
        if 'approved' in statuses:
            return 'approved'
        if all(s == 'rejected' for s in statuses):
            return 'rejected'
        return 'in_progress'

    def add_bank_attempt(self, bank, status='pending', reason='', date=None):
        status = normalize_status(status)
        if status not in self.ATTEMPT_STATUSES:
            status = 'pending'

        attempt = {
            'bank': bank.strip(),
            'status': status,
            'reason': reason.strip(),
            'date': (date or timezone.localdate()).isoformat(),
        }
        self.bank_attempts = list(self.bank_attempts or []) + [attempt]
        self.status = self.derive_status()
        self.save()
        return attempt

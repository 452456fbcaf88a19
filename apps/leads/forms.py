from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone
from django.conf import settings
from .models import Lead, Note, CallLog, LoanLogin, normalize_status, phone_digits
from .importer import ASSIGN_UNASSIGNED, ASSIGN_SINGLE, ASSIGN_AUTO
from apps.accounts.models import User


def _assignable_users():
    return User.objects.filter(
        role__in=[User.ROLE_TELECALLER, User.ROLE_TEAM_LEADER],
        is_active=True,
    ).order_by('full_name')


def _clean_mobile(value, required=True):
    """10-digit mobile number; +91 / 0 prefixes and spaces are accepted and dropped"""
    value = (value or '').strip()
    if not value:
        if required:
            raise ValidationError('Phone number is required')
        return ''

    digits = phone_digits(value)
    if len(digits) != 10:
        raise ValidationError('Enter a valid 10-digit mobile number')
    return digits


class LeadCreateForm(forms.ModelForm):
    class Meta:
        model = Lead
        fields = [
            'name', 'phone', 'alternate_phone', 'email', 'company_name', 'designation',
            'source', 'status', 'priority', 'assigned_to',
            'loan_type', 'loan_amount', 'monthly_income',
            'address', 'city', 'state', 'zip_code',
            'next_follow_up', 'notes', 'tags',
        ]

        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Rahul Verma', 'autofocus': True}),
            'phone': forms.TextInput(attrs={'class': 'form-control', 'placeholder': '9876543210', 'dir': 'ltr'}),
            'alternate_phone': forms.TextInput(attrs={'class': 'form-control', 'dir': 'ltr'}),
            'email': forms.EmailInput(attrs={'class': 'form-control', 'placeholder': 'example@email.com', 'dir': 'ltr'}),
            'company_name': forms.TextInput(attrs={'class': 'form-control'}),
            'designation': forms.TextInput(attrs={'class': 'form-control'}),
            'source': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'website, referral, campaign...'}),
            'status': forms.Select(attrs={'class': 'form-select'}),
            'priority': forms.Select(attrs={'class': 'form-select'}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'loan_type': forms.Select(attrs={'class': 'form-select'}),
            'loan_amount': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'monthly_income': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'address': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'city': forms.TextInput(attrs={'class': 'form-control'}),
            'state': forms.TextInput(attrs={'class': 'form-control'}),
            'zip_code': forms.TextInput(attrs={'class': 'form-control'}),
            'next_follow_up': forms.DateTimeInput(attrs={'class': 'form-control', 'type': 'datetime-local'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 4, 'placeholder': 'Add any notes here...'}),
        }

        help_texts = {
            'phone': '10-digit mobile number (+91 / 0 prefix is removed)',
            'assigned_to': 'Telecaller responsible for this lead',
        }

        error_messages = {
            'name': {'required': 'Name is required', 'max_length': 'Name is too long (max 200 characters)'},
            'phone': {'required': 'Phone number is required'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['assigned_to'].queryset = _assignable_users()
        self.fields['assigned_to'].empty_label = "Unassigned"

        # KYC and disbursed statuses go through their own actions; an edit keeps
        # the current one
        current = self.instance.status if self.instance.pk else None
        self.fields['status'].choices = [
            (value, label) for value, label in Lead.STATUS_CHOICES
            if value not in Lead.GATED_STATUSES or value == current
        ]

        if not self.instance.pk:
            self.fields['status'].initial = Lead.STATUS_NEW
            self.fields['priority'].initial = 'medium'

    def clean_phone(self):
        return _clean_mobile(self.cleaned_data.get('phone'))

    def clean_alternate_phone(self):
        return _clean_mobile(self.cleaned_data.get('alternate_phone'), required=False)

    def clean_email(self):
        email = self.cleaned_data.get('email')
        if email:
            return email.strip().lower()
        return None

    def clean_loan_amount(self):
        amount = self.cleaned_data.get('loan_amount')
        if amount is not None and amount <= 0:
            raise ValidationError('Loan amount must be greater than zero')
        return amount

    def clean_next_follow_up(self):
        next_follow_up = self.cleaned_data.get('next_follow_up')
        if next_follow_up and 'next_follow_up' in self.changed_data and next_follow_up < timezone.now():
            raise ValidationError('Follow-up date cannot be in the past')
        return next_follow_up


class LeadEditForm(LeadCreateForm):
    class Meta(LeadCreateForm.Meta):
        pass

    def __init__(self, *args, **kwargs):
        can_assign = kwargs.pop('can_assign', True)
        super().__init__(*args, **kwargs)

        # Telecallers edit their own leads but do not reassign them
        if not can_assign:
            del self.fields['assigned_to']


class LeadKycForm(forms.ModelForm):
    """What the KYC team updates while processing a file"""

    class Meta:
        model = Lead
        fields = ['status', 'bank_name', 'application_number', 'loan_type', 'loan_amount', 'monthly_income']
        widgets = {
            'status': forms.Select(attrs={'class': 'form-select'}),
            'bank_name': forms.TextInput(attrs={'class': 'form-control'}),
            'application_number': forms.TextInput(attrs={'class': 'form-control'}),
            'loan_type': forms.Select(attrs={'class': 'form-select'}),
            'loan_amount': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'monthly_income': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        choices = dict(Lead.STATUS_CHOICES)
        # Disbursed goes through the disbursement form (needs an amount)
        self.fields['status'].choices = [
            (s, choices[s]) for s in Lead.KYC_STATUSES if s != Lead.STATUS_DISBURSED
        ]


class LeadAssignForm(forms.Form):
    assigned_to = forms.ModelChoiceField(queryset=User.objects.none(), label='Assign To', required=True, empty_label='Select telecaller', widget=forms.Select(attrs={'class': 'form-select'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = _assignable_users()


class LeadStatusChangeForm(forms.Form):
    status = forms.CharField(label='New Status', widget=forms.Select(choices=Lead.STATUS_CHOICES, attrs={'class': 'form-select'}))

    def clean_status(self):
        status = normalize_status(self.cleaned_data.get('status'))
        if status not in dict(Lead.STATUS_CHOICES):
            raise ValidationError('Invalid status')
        return status


class KycTransferForm(forms.Form):
    kyc_member = forms.ModelChoiceField(queryset=User.objects.none(), label='KYC Team Member', required=False, empty_label='Unassigned (team queue)', widget=forms.Select(attrs={'class': 'form-select'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['kyc_member'].queryset = User.objects.kyc_team()


class DisbursementForm(forms.Form):
    amount = forms.DecimalField(label='Disbursed Amount (₹)', max_digits=14, decimal_places=2, widget=forms.NumberInput(attrs={'class': 'form-control', 'min': 1, 'step': '0.01'}))
    disbursed_on = forms.DateField(label='Disbursement Date', required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    bank_name = forms.CharField(label='Bank', required=False, max_length=100, widget=forms.TextInput(attrs={'class': 'form-control'}))
    application_number = forms.CharField(required=False, max_length=100, widget=forms.TextInput(attrs={'class': 'form-control'}))

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is not None and amount <= 0:
            raise ValidationError('Disbursed amount must be greater than zero')
        return amount

    def clean_disbursed_on(self):
        disbursed_on = self.cleaned_data.get('disbursed_on')
        if disbursed_on and disbursed_on > timezone.localdate():
            raise ValidationError('Disbursement date cannot be in the future')
        return disbursed_on


class NoteForm(forms.ModelForm):
    class Meta:
        model = Note
        fields = ['content']
        widgets = {'content': forms.Textarea(attrs={'class': 'form-control', 'rows': 4, 'placeholder': 'Write your note here...'})}
        labels = {'content': 'Note'}
        error_messages = {'content': {'required': 'Note content is required'}}


class CallLogForm(forms.ModelForm):
    class Meta:
        model = CallLog
        fields = ['call_status', 'duration_seconds', 'notes']
        widgets = {
            'call_status': forms.Select(attrs={'class': 'form-select'}),
            'duration_seconds': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 2, 'placeholder': 'Call remarks'}),
        }
        labels = {'duration_seconds': 'Duration (seconds)'}


class FollowUpForm(forms.Form):
    scheduled_at = forms.DateTimeField(label='Follow-up Date & Time', widget=forms.DateTimeInput(attrs={'class': 'form-control', 'type': 'datetime-local'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def clean_scheduled_at(self):
        scheduled_at = self.cleaned_data.get('scheduled_at')
        if scheduled_at and scheduled_at < timezone.now():
            raise ValidationError('Follow-up date cannot be in the past')
        return scheduled_at


class LeadFilterForm(forms.Form):
    search = forms.CharField(required=False, label='Search', widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Search by name, phone, or email...'}))
    status = forms.ChoiceField(choices=[('', 'All Statuses')] + Lead.STATUS_CHOICES, required=False, label='Status', widget=forms.Select(attrs={'class': 'form-select'}))
    priority = forms.ChoiceField(choices=[('', 'All Priorities')] + Lead.PRIORITY_CHOICES, required=False, label='Priority', widget=forms.Select(attrs={'class': 'form-select'}))
    loan_type = forms.ChoiceField(choices=[('', 'All Loan Types')] + Lead.LOAN_TYPE_CHOICES, required=False, widget=forms.Select(attrs={'class': 'form-select'}))
    assigned_to = forms.ModelChoiceField(queryset=User.objects.none(), required=False, label='Assigned To', empty_label='All', widget=forms.Select(attrs={'class': 'form-select'}))
    tag = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Tag'}))
    date_from = forms.DateField(required=False, label='From Date', widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    date_to = forms.DateField(required=False, label='To Date', widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = _assignable_users()

    def clean_status(self):
        return normalize_status(self.cleaned_data.get('status'))

    def filter_queryset(self, leads):
        """Apply the valid filters to a Lead queryset"""
        from django.db.models import Q

        data = self.cleaned_data
        if data.get('search'):
            term = data['search'].strip()
            leads = leads.filter(
                Q(name__icontains=term) |
                Q(phone__icontains=term) |
                Q(email__icontains=term) |
                Q(application_number__icontains=term)
            )
        if data.get('status'):
            leads = leads.filter(status=data['status'])
        if data.get('priority'):
            leads = leads.filter(priority=data['priority'])
        if data.get('loan_type'):
            leads = leads.filter(loan_type=data['loan_type'])
        if data.get('assigned_to'):
            leads = leads.filter(assigned_to=data['assigned_to'])
        if data.get('tag'):
            leads = leads.filter(tags__name__iexact=data['tag'].strip())
        if data.get('date_from'):
            leads = leads.filter(created_at__date__gte=data['date_from'])
        if data.get('date_to'):
            leads = leads.filter(created_at__date__lte=data['date_to'])
        return leads


class LeadImportForm(forms.Form):
    ASSIGN_MODE_CHOICES = [
        (ASSIGN_UNASSIGNED, 'Leave unassigned'),
        (ASSIGN_SINGLE, 'Assign all to one telecaller'),
        (ASSIGN_AUTO, 'Auto-distribute to telecallers checked in today'),
    ]

    file = forms.FileField(label='Data File', help_text='CSV (.csv) or Excel (.xlsx)', widget=forms.FileInput(attrs={'class': 'form-control', 'accept': '.csv,.xlsx'}))
    source = forms.CharField(required=False, max_length=100, label='Default Source', help_text='Used when a row has no source column', widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'other'}))
    assign_mode = forms.ChoiceField(choices=ASSIGN_MODE_CHOICES, initial=ASSIGN_UNASSIGNED, widget=forms.RadioSelect)
    assigned_to = forms.ModelChoiceField(queryset=User.objects.none(), required=False, label='Telecaller', empty_label='Select telecaller', widget=forms.Select(attrs={'class': 'form-select'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = _assignable_users()

    def clean_file(self):
        file = self.cleaned_data.get('file')
        if file:
            file_name = file.name.lower()
            if not (file_name.endswith('.csv') or file_name.endswith('.xlsx')):
                raise ValidationError('Unsupported file type. Please upload a CSV (.csv) or Excel (.xlsx) file')

            max_size = getattr(settings, 'LEAD_IMPORT_MAX_FILE_SIZE', 5 * 1024 * 1024)
            if file.size > max_size:
                max_mb = max_size / (1024 * 1024)
                raise ValidationError(f'File size is too large. Maximum {max_mb:.0f}MB allowed')
        return file

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('assign_mode') == ASSIGN_SINGLE and not cleaned_data.get('assigned_to'):
            raise ValidationError({'assigned_to': 'Please select a telecaller'})
        return cleaned_data


class LeadBulkActionForm(forms.Form):
    """Bulk operations on selected leads"""

    ACTION_CHOICES = [
        ('assign', 'Assign to telecaller'),
        ('change_status', 'Change status'),
        ('set_priority', 'Set priority'),
        ('delete', 'Delete'),
    ]

    action = forms.ChoiceField(choices=ACTION_CHOICES, label='Action', widget=forms.Select(attrs={'class': 'form-select', 'id': 'bulk-action-select'}))
    lead_ids = forms.CharField(widget=forms.HiddenInput(), required=True)

    # Conditional fields (shown based on action)
    assigned_to = forms.ModelChoiceField(queryset=User.objects.none(), required=False, label='Assign To', widget=forms.Select(attrs={'class': 'form-select'}))
    status = forms.ChoiceField(choices=Lead.STATUS_CHOICES, required=False, label='Status', widget=forms.Select(attrs={'class': 'form-select'}))
    priority = forms.ChoiceField(choices=Lead.PRIORITY_CHOICES, required=False, label='Priority', widget=forms.Select(attrs={'class': 'form-select'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_to'].queryset = _assignable_users()

    def clean_lead_ids(self):
        lead_ids = self.cleaned_data.get('lead_ids', '')
        try:
            id_list = [int(pk.strip()) for pk in lead_ids.split(',') if pk.strip()]
        except ValueError:
            raise ValidationError('Invalid lead IDs')
        if not id_list:
            raise ValidationError('No leads selected')
        return id_list

    def clean(self):
        cleaned_data = super().clean()
        action = cleaned_data.get('action')

        if action == 'assign' and not cleaned_data.get('assigned_to'):
            raise ValidationError({'assigned_to': 'Please select a telecaller'})
        elif action == 'change_status' and not cleaned_data.get('status'):
            raise ValidationError({'status': 'Please select a status'})
        elif action == 'change_status' and cleaned_data['status'] in Lead.GATED_STATUSES:
            raise ValidationError({'status': 'KYC and disbursed statuses cannot be set in bulk'})
        elif action == 'set_priority' and not cleaned_data.get('priority'):
            raise ValidationError({'priority': 'Please select a priority'})

        return cleaned_data


class LoanLoginForm(forms.ModelForm):
    bank_name = forms.CharField(label='Bank', max_length=100, widget=forms.TextInput(attrs={'class': 'form-control'}))

    class Meta:
        model = LoanLogin
        fields = ['name', 'phone', 'notes']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'phone': forms.TextInput(attrs={'class': 'form-control', 'dir': 'ltr'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
        }

    def clean_phone(self):
        return _clean_mobile(self.cleaned_data.get('phone'))


class BankAttemptForm(forms.Form):
    STATUS_CHOICES = [(s, s.title()) for s in LoanLogin.ATTEMPT_STATUSES]

    bank = forms.CharField(max_length=100, widget=forms.TextInput(attrs={'class': 'form-control'}))
    status = forms.ChoiceField(choices=STATUS_CHOICES, widget=forms.Select(attrs={'class': 'form-select'}))
    reason = forms.CharField(required=False, max_length=500, widget=forms.TextInput(attrs={'class': 'form-control'}))

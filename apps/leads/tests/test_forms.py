from datetime import timedelta

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.leads.forms import (
    LeadCreateForm, LeadEditForm, LeadStatusChangeForm, DisbursementForm,
    FollowUpForm, LeadImportForm, LeadBulkActionForm, LoanLoginForm,
)
from apps.leads.models import Lead

User = get_user_model()


class LeadCreateFormTest(TestCase):

    def setUp(self):
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Caller', role='telecaller')
        User.objects.create_user(email='kyc@test.com', password='x', full_name='Kyc', role='kyc_team')

    def _data(self, **overrides):
        data = {'name': 'Rahul Verma', 'phone': '+91 98765 43210', 'status': 'new', 'priority': 'medium'}
        data.update(overrides)
        return data

    def test_phone_normalized(self):
        form = LeadCreateForm(data=self._data())
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['phone'], '9876543210')

    def test_invalid_phone(self):
        form = LeadCreateForm(data=self._data(phone='12345'))
        self.assertFalse(form.is_valid())
        self.assertIn('Enter a valid 10-digit mobile number', form.errors['phone'])

    def test_email_lowercased(self):
        form = LeadCreateForm(data=self._data(email='Rahul@Example.COM'))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['email'], 'rahul@example.com')

    def test_negative_loan_amount(self):
        form = LeadCreateForm(data=self._data(loan_amount='-1'))
        self.assertFalse(form.is_valid())
        self.assertIn('loan_amount', form.errors)

    def test_past_follow_up_rejected(self):
        past = (timezone.localtime() - timedelta(days=1)).strftime('%Y-%m-%dT%H:%M')
        form = LeadCreateForm(data=self._data(next_follow_up=past))
        self.assertFalse(form.is_valid())
        self.assertIn('next_follow_up', form.errors)

    def test_only_telecallers_and_leaders_assignable(self):
        form = LeadCreateForm()
        self.assertEqual(list(form.fields['assigned_to'].queryset), [self.caller])

    def test_edit_form_hides_assignment(self):
        lead = Lead.objects.create(name='Rahul', phone='9876543210')
        form = LeadEditForm(instance=lead, can_assign=False)
        self.assertNotIn('assigned_to', form.fields)


class PipelineFormTest(TestCase):

    def test_status_change_normalizes(self):
        form = LeadStatusChangeForm(data={'status': 'Login Done'})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.cleaned_data['status'], 'login_done')

    def test_status_change_rejects_unknown(self):
        self.assertFalse(LeadStatusChangeForm(data={'status': 'teleported'}).is_valid())

    def test_disbursement_amount_positive(self):
        self.assertFalse(DisbursementForm(data={'amount': '0'}).is_valid())
        self.assertTrue(DisbursementForm(data={'amount': '150000'}).is_valid())

    def test_disbursement_date_not_in_future(self):
        tomorrow = timezone.localdate() + timedelta(days=1)
        form = DisbursementForm(data={'amount': '1000', 'disbursed_on': tomorrow.isoformat()})
        self.assertFalse(form.is_valid())

    def test_follow_up_in_past(self):
        past = (timezone.localtime() - timedelta(hours=1)).strftime('%Y-%m-%dT%H:%M')
        self.assertFalse(FollowUpForm(data={'scheduled_at': past}).is_valid())

    def test_loan_login_phone(self):
        form = LoanLoginForm(data={'name': 'Rahul', 'phone': '09876543210', 'bank_name': 'HDFC'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['phone'], '9876543210')


class LeadImportFormTest(TestCase):

    def test_rejects_other_extensions(self):
        form = LeadImportForm(
            data={'assign_mode': 'unassigned'},
            files={'file': SimpleUploadedFile('leads.pdf', b'x')},
        )
        self.assertFalse(form.is_valid())
        self.assertIn('file', form.errors)

    def test_single_mode_needs_telecaller(self):
        form = LeadImportForm(
            data={'assign_mode': 'single'},
            files={'file': SimpleUploadedFile('leads.csv', b'name,phone\n')},
        )
        self.assertFalse(form.is_valid())
        self.assertIn('assigned_to', form.errors)

    def test_file_size_limit(self):
        with self.settings(LEAD_IMPORT_MAX_FILE_SIZE=10):
            form = LeadImportForm(
                data={'assign_mode': 'unassigned'},
                files={'file': SimpleUploadedFile('leads.csv', b'name,phone\nRahul,9876543210\n')},
            )
            self.assertFalse(form.is_valid())


class LeadBulkActionFormTest(TestCase):

    def test_lead_ids_parsed(self):
        form = LeadBulkActionForm(data={'action': 'set_priority', 'lead_ids': '1, 2,3', 'priority': 'high'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['lead_ids'], [1, 2, 3])

    def test_invalid_ids(self):
        form = LeadBulkActionForm(data={'action': 'delete', 'lead_ids': '1,abc'})
        self.assertFalse(form.is_valid())

    def test_assign_requires_user(self):
        form = LeadBulkActionForm(data={'action': 'assign', 'lead_ids': '1'})
        self.assertFalse(form.is_valid())
        self.assertIn('assigned_to', form.errors)

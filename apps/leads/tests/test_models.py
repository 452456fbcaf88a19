"""
Lead Model Tests
================

Pipeline transitions, activity logging and contact helpers.

Run tests:
    python manage.py test apps.leads.tests.test_models --settings=config.test_settings
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.core.models import Notification
from apps.leads.models import Lead, Activity, CallLog, LoanLogin, normalize_status, phone_digits

User = get_user_model()


class NormalizationTest(TestCase):

    def test_normalize_status(self):
        self.assertEqual(normalize_status('DISBURSED'), 'disbursed')
        self.assertEqual(normalize_status('Login Done'), 'login_done')
        self.assertEqual(normalize_status('Not_Interested'), 'not_interested')
        self.assertEqual(normalize_status(None), '')

    def test_phone_digits(self):
        self.assertEqual(phone_digits('+91 98765 43210'), '9876543210')
        self.assertEqual(phone_digits('09876543210'), '9876543210')
        self.assertEqual(phone_digits('98765-43210'), '9876543210')
        self.assertEqual(phone_digits('12345'), '12345')

    def test_status_saved_lowercase(self):
        lead = Lead.objects.create(name='Rahul', phone='9876543210', status='Login Done')
        lead.refresh_from_db()
        self.assertEqual(lead.status, Lead.STATUS_LOGIN_DONE)


class LeadModelTest(TestCase):

    def setUp(self):
        self.leader = User.objects.create_user(email='tl@test.com', password='x', full_name='Team Lead', role='team_leader')
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma', role='telecaller')
        self.kyc = User.objects.create_user(email='kyc@test.com', password='x', full_name='Kiran Rao', role='kyc_team')
        self.lead = Lead.objects.create(name='Rahul Verma', phone='9876543210')

    def test_created_activity_logged(self):
        self.assertTrue(self.lead.activities.filter(activity_type='created').exists())

    def test_initials(self):
        self.assertEqual(self.lead.get_initials(), 'RV')

    def test_assign_to_notifies_assignee(self):
        self.assertTrue(self.lead.assign_to(self.caller, assigned_by=self.leader))

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.assigned_to, self.caller)
        self.assertIsNotNone(self.lead.assigned_at)
        self.assertTrue(Notification.objects.filter(user=self.caller, title='New lead assigned').exists())
        self.assertTrue(self.lead.activities.filter(activity_type='assigned').exists())

    def test_disbursed_lead_not_reassigned(self):
        self.lead.status = Lead.STATUS_DISBURSED
        self.lead.save()
        self.assertFalse(self.lead.assign_to(self.caller, assigned_by=self.leader))

    def test_change_status_logs_activity(self):
        self.assertTrue(self.lead.change_status('Contacted', user=self.caller))
        self.assertEqual(self.lead.status, Lead.STATUS_CONTACTED)
        self.assertIsNotNone(self.lead.last_contacted)

        activity = self.lead.activities.filter(activity_type='status_changed').first()
        self.assertEqual(activity.description, 'Status changed from "New" to "Contacted"')

    def test_change_to_same_status_is_noop(self):
        self.assertFalse(self.lead.change_status('new'))

    def test_change_status_refuses_disbursed(self):
        self.assertFalse(self.lead.change_status('disbursed'))
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)
        self.assertIsNone(self.lead.disbursed_at)

    def test_kyc_statuses_need_transfer_first(self):
        for status in ['awaiting_kyc', 'Underwriting', 'approved']:
            self.assertFalse(self.lead.change_status(status))
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

        self.lead.status = Lead.STATUS_AWAITING_KYC
        self.lead.save()
        self.assertTrue(self.lead.change_status('underwriting'))
        self.assertTrue(self.lead.change_status('approved'))
        self.assertFalse(self.lead.change_status('disbursed'))

    def test_transfer_to_kyc_requires_login_done(self):
        self.assertFalse(self.lead.transfer_to_kyc(self.kyc))

        self.lead.status = Lead.STATUS_LOGIN_DONE
        self.lead.save()
        self.assertTrue(self.lead.transfer_to_kyc(self.kyc, user=self.caller))
        self.assertEqual(self.lead.status, Lead.STATUS_AWAITING_KYC)
        self.assertEqual(self.lead.kyc_member, self.kyc)
        self.assertTrue(Notification.objects.filter(user=self.kyc).exists())

    def test_transfer_to_unclaimed_queue(self):
        self.lead.status = Lead.STATUS_LOGIN_DONE
        self.lead.save()
        self.assertTrue(self.lead.transfer_to_kyc(None))
        self.assertIsNone(self.lead.kyc_member)

    def test_record_disbursement(self):
        self.assertTrue(self.lead.record_disbursement('250000', user=self.kyc))
        self.lead.refresh_from_db()

        self.assertEqual(self.lead.status, Lead.STATUS_DISBURSED)
        self.assertEqual(self.lead.disbursed_amount, Decimal('250000'))
        self.assertIsNotNone(self.lead.disbursed_at)

    def test_record_disbursement_rejects_non_positive(self):
        self.assertFalse(self.lead.record_disbursement(0))
        self.assertFalse(self.lead.record_disbursement('-5'))
        self.assertFalse(self.lead.record_disbursement('abc'))
        self.assertFalse(self.lead.record_disbursement('NaN'))
        self.assertFalse(self.lead.record_disbursement('Infinity'))
        self.assertFalse(self.lead.record_disbursement('-Infinity'))
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

    def test_log_call_moves_new_to_contacted(self):
        call = self.lead.log_call(self.caller, call_status='connected', duration_seconds=95)

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_CONTACTED)
        self.assertTrue(call.is_connected())
        self.assertEqual(call.duration_display(), '1:35')

    def test_zero_duration_call_not_connected(self):
        call = self.lead.log_call(self.caller, call_status='nr')
        self.assertFalse(call.is_connected())

    def test_schedule_follow_up_sets_next_follow_up(self):
        when = timezone.now() + timedelta(hours=2)
        follow_up = self.lead.schedule_follow_up(when, self.caller, notes='Call back')

        self.assertEqual(self.lead.next_follow_up, when)
        self.assertFalse(follow_up.is_overdue())
        self.assertEqual(self.lead.time_until_follow_up(), 'In 1 hour')

    def test_add_note(self):
        note = self.lead.add_note('Asked for salary slips', self.caller)
        self.assertEqual(list(self.lead.get_notes()), [note])

    def test_contact_links(self):
        self.assertEqual(self.lead.tel_link(), 'tel:9876543210')
        self.assertEqual(self.lead.mailto_link(), '')
        self.assertEqual(self.lead.whatsapp_link(), 'https://wa.me/919876543210')
        self.assertEqual(self.lead.whatsapp_link('Hi there'), 'https://wa.me/919876543210?text=Hi%20there')

    def test_restricted_for_import(self):
        self.assertFalse(self.lead.is_restricted_for_import())
        self.lead.status = 'INTERESTED'
        self.assertTrue(self.lead.is_restricted_for_import())


class LoanLoginModelTest(TestCase):

    def setUp(self):
        self.login = LoanLogin.objects.create(name='Rahul', phone='9876543210')

    def test_no_attempts_is_login_done(self):
        self.assertEqual(self.login.derive_status(), 'login_done')
        self.assertIsNone(self.login.latest_attempt())

    def test_pending_attempt_is_in_progress(self):
        self.login.add_bank_attempt('HDFC')
        self.assertEqual(self.login.status, 'in_progress')
        self.assertEqual(self.login.latest_attempt()['bank'], 'HDFC')

    def test_all_rejected(self):
        self.login.add_bank_attempt('HDFC', status='rejected', reason='Low CIBIL')
        self.login.add_bank_attempt('ICICI', status='Rejected')
        self.assertEqual(self.login.status, 'rejected')

    def test_any_approved_wins(self):
        self.login.add_bank_attempt('HDFC', status='rejected')
        self.login.add_bank_attempt('Axis', status='approved')
        self.login.refresh_from_db()
        self.assertEqual(self.login.status, 'approved')
        self.assertEqual(len(self.login.bank_attempts), 2)

    def test_unknown_attempt_status_becomes_pending(self):
        attempt = self.login.add_bank_attempt('SBI', status='whatever')
        self.assertEqual(attempt['status'], 'pending')

"""
Lead Views Tests
================

Test Coverage:
1. Visibility per role (list / detail)
2. Create / edit / delete
3. Pipeline actions: status, KYC transfer and claim, disbursement
4. Calls, follow-ups, WhatsApp
5. Bulk actions, export, import
6. Loan logins

Run tests:
    python manage.py test apps.leads.tests.test_views --settings=config.test_settings
"""

import json
from datetime import timedelta
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.leads.models import Lead, Note, FollowUp, LoanLogin

User = get_user_model()


class LeadViewTestBase(TestCase):

    def setUp(self):
        self.client = Client()

        self.admin = User.objects.create_user(email='admin@test.com', password='x', full_name='Admin User', role='admin')
        self.leader = User.objects.create_user(email='tl@test.com', password='x', full_name='Team Lead', role='team_leader')
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma', role='telecaller')
        self.other_caller = User.objects.create_user(email='other@test.com', password='x', full_name='Other Caller', role='telecaller')
        self.kyc = User.objects.create_user(email='kyc@test.com', password='x', full_name='Kiran Rao', role='kyc_team')

        self.lead = Lead.objects.create(name='Rahul Verma', phone='9876543210', assigned_to=self.caller)
        self.other_lead = Lead.objects.create(name='Sneha Iyer', phone='9123456789', assigned_to=self.other_caller)


class LeadListViewTest(LeadViewTestBase):

    def test_telecaller_sees_only_own_leads(self):
        self.client.force_login(self.caller)
        response = self.client.get(reverse('leads:lead_list'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(list(response.context['leads']), [self.lead])
        self.assertIsNone(response.context['bulk_form'])

    def test_team_leader_sees_all(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('leads:lead_list'))

        self.assertEqual(response.context['total_count'], 2)
        self.assertIsNotNone(response.context['bulk_form'])

    def test_kyc_sees_own_files_and_unclaimed_queue(self):
        mine = Lead.objects.create(name='Mine', phone='9000000001', status='underwriting', kyc_member=self.kyc)
        queued = Lead.objects.create(name='Queued', phone='9000000002', status='awaiting_kyc')

        self.client.force_login(self.kyc)
        response = self.client.get(reverse('leads:lead_list'))

        self.assertEqual(set(response.context['leads']), {mine, queued})

    def test_search_filter(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('leads:lead_list'), {'search': 'Sneha'})
        self.assertEqual(list(response.context['leads']), [self.other_lead])


class LeadDetailViewTest(LeadViewTestBase):

    def test_owner_can_view(self):
        self.client.force_login(self.caller)
        response = self.client.get(reverse('leads:lead_detail', args=[self.lead.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['can_edit'])
        self.assertFalse(response.context['can_delete'])
        self.assertIn('Priya%20Sharma', response.context['whatsapp_document_link'])

    def test_other_telecaller_gets_404(self):
        self.client.force_login(self.other_caller)
        response = self.client.get(reverse('leads:lead_detail', args=[self.lead.pk]))
        self.assertEqual(response.status_code, 404)

    def test_post_adds_note(self):
        self.client.force_login(self.caller)
        self.client.post(reverse('leads:lead_detail', args=[self.lead.pk]), {'content': 'Needs 5 lakh'})
        self.assertTrue(Note.objects.filter(lead=self.lead, content='Needs 5 lakh').exists())

    def test_json_view_forbidden_for_other_telecaller(self):
        self.client.force_login(self.other_caller)
        response = self.client.get(reverse('leads:lead_json', args=[self.lead.pk]))
        self.assertEqual(response.status_code, 403)

    def test_json_view(self):
        self.client.force_login(self.caller)
        data = self.client.get(reverse('leads:lead_json', args=[self.lead.pk])).json()
        self.assertEqual(data['phone'], '9876543210')
        self.assertEqual(data['links']['whatsapp'], 'https://wa.me/919876543210')


class LeadCreateEditDeleteTest(LeadViewTestBase):

    def test_telecaller_create_auto_assigns(self):
        self.client.force_login(self.caller)
        response = self.client.post(reverse('leads:lead_create'), {
            'name': 'New Customer',
            'phone': '+91 90000 00009',
            'status': 'new',
            'priority': 'high',
        })

        lead = Lead.objects.get(phone='9000000009')
        self.assertRedirects(response, reverse('leads:lead_detail', args=[lead.pk]), fetch_redirect_response=False)
        self.assertEqual(lead.assigned_to, self.caller)

    def test_kyc_cannot_create(self):
        self.client.force_login(self.kyc)
        self.assertEqual(self.client.get(reverse('leads:lead_create')).status_code, 302)

    def test_owner_edit_keeps_assignment(self):
        self.client.force_login(self.caller)
        self.client.post(reverse('leads:lead_edit', args=[self.lead.pk]), {
            'name': 'Rahul K Verma',
            'phone': '9876543210',
            'status': 'contacted',
            'priority': 'medium',
            'assigned_to': self.other_caller.pk,
        })

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.name, 'Rahul K Verma')
        self.assertEqual(self.lead.assigned_to, self.caller)

    def _edit(self, status):
        return self.client.post(reverse('leads:lead_edit', args=[self.lead.pk]), {
            'name': 'Rahul Verma',
            'phone': '9876543210',
            'status': status,
            'priority': 'medium',
        })

    def test_edit_cannot_set_disbursed(self):
        self.client.force_login(self.caller)
        response = self._edit('disbursed')

        self.assertEqual(response.status_code, 200)
        self.assertIn('status', response.context['form'].errors)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)
        self.assertIsNone(self.lead.disbursed_amount)
        self.assertIsNone(self.lead.disbursed_at)

    def test_edit_cannot_skip_kyc_transfer(self):
        self.client.force_login(self.caller)
        self._edit('awaiting_kyc')

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

    def test_edit_keeps_current_kyc_status(self):
        self.lead.status = Lead.STATUS_UNDERWRITING
        self.lead.save()
        self.client.force_login(self.admin)
        response = self._edit('underwriting')

        self.assertEqual(response.status_code, 302)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_UNDERWRITING)

    def test_delete_admin_only(self):
        self.client.force_login(self.leader)
        self.client.post(reverse('leads:lead_delete', args=[self.lead.pk]))
        self.assertTrue(Lead.objects.filter(pk=self.lead.pk).exists())

        self.client.force_login(self.admin)
        self.client.post(reverse('leads:lead_delete', args=[self.lead.pk]))
        self.assertFalse(Lead.objects.filter(pk=self.lead.pk).exists())

    def test_disbursed_lead_not_deleted(self):
        self.lead.record_disbursement(100000)
        self.client.force_login(self.admin)
        self.client.post(reverse('leads:lead_delete', args=[self.lead.pk]))
        self.assertTrue(Lead.objects.filter(pk=self.lead.pk).exists())


class PipelineActionViewTest(LeadViewTestBase):

    def test_change_status_ajax(self):
        self.client.force_login(self.caller)
        response = self.client.post(
            reverse('leads:lead_change_status', args=[self.lead.pk]),
            {'status': 'interested'},
            HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        self.assertEqual(response.json()['status'], 'interested')

    def test_status_cannot_jump_to_disbursed(self):
        self.client.force_login(self.caller)
        response = self.client.post(
            reverse('leads:lead_change_status', args=[self.lead.pk]),
            {'status': 'disbursed'},
            HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        self.assertEqual(response.status_code, 400)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

    def test_status_cannot_jump_to_kyc(self):
        self.client.force_login(self.caller)
        response = self.client.post(
            reverse('leads:lead_change_status', args=[self.lead.pk]),
            {'status': 'awaiting_kyc'},
            HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        self.assertEqual(response.status_code, 400)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

    def test_assign(self):
        self.client.force_login(self.leader)
        self.client.post(reverse('leads:lead_assign', args=[self.lead.pk]), {'assigned_to': self.other_caller.pk})
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.assigned_to, self.other_caller)

    def test_transfer_to_kyc_requires_login_done(self):
        self.client.force_login(self.caller)
        url = reverse('leads:lead_transfer_kyc', args=[self.lead.pk])

        self.client.post(url, {'kyc_member': self.kyc.pk})
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

        self.lead.status = Lead.STATUS_LOGIN_DONE
        self.lead.save()
        self.client.post(url, {'kyc_member': self.kyc.pk})
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_AWAITING_KYC)
        self.assertEqual(self.lead.kyc_member, self.kyc)

    def test_kyc_claims_unclaimed_file(self):
        self.lead.status = Lead.STATUS_AWAITING_KYC
        self.lead.save()

        self.client.force_login(self.kyc)
        self.client.post(reverse('leads:lead_kyc_claim', args=[self.lead.pk]))

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.kyc_member, self.kyc)

    def test_kyc_update_changes_status(self):
        self.lead.status = Lead.STATUS_AWAITING_KYC
        self.lead.kyc_member = self.kyc
        self.lead.save()

        self.client.force_login(self.kyc)
        self.client.post(reverse('leads:lead_kyc_update', args=[self.lead.pk]), {
            'status': 'underwriting',
            'bank_name': 'HDFC',
            'application_number': 'APP-1',
        })

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_UNDERWRITING)
        self.assertEqual(self.lead.bank_name, 'HDFC')
        self.assertTrue(self.lead.activities.filter(activity_type='status_changed').exists())

    def test_disburse(self):
        self.lead.status = Lead.STATUS_APPROVED
        self.lead.kyc_member = self.kyc
        self.lead.save()

        self.client.force_login(self.kyc)
        self.client.post(reverse('leads:lead_disburse', args=[self.lead.pk]), {
            'amount': '350000',
            'disbursed_on': timezone.localdate().isoformat(),
        })

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_DISBURSED)
        self.assertEqual(self.lead.disbursed_amount, Decimal('350000'))

    def test_telecaller_cannot_disburse(self):
        self.client.force_login(self.caller)
        self.client.post(reverse('leads:lead_disburse', args=[self.lead.pk]), {'amount': '1000'})
        self.lead.refresh_from_db()
        self.assertNotEqual(self.lead.status, Lead.STATUS_DISBURSED)


class ActivityViewTest(LeadViewTestBase):

    def test_log_call(self):
        self.client.force_login(self.caller)
        response = self.client.post(
            reverse('leads:lead_log_call', args=[self.lead.pk]),
            {'call_status': 'connected', 'duration_seconds': 120, 'notes': ''},
            HTTP_X_REQUESTED_WITH='XMLHttpRequest',
        )

        self.assertTrue(response.json()['success'])
        self.assertEqual(response.json()['status'], 'contacted')

    def test_schedule_and_complete_follow_up(self):
        self.client.force_login(self.caller)
        when = timezone.localtime() + timedelta(days=1)
        self.client.post(reverse('leads:lead_schedule_follow_up', args=[self.lead.pk]), {
            'scheduled_at': when.strftime('%Y-%m-%dT%H:%M'),
        })

        follow_up = FollowUp.objects.get(lead=self.lead)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.next_follow_up, follow_up.scheduled_at)

        self.client.post(reverse('leads:follow_up_complete', args=[follow_up.pk]))
        follow_up.refresh_from_db()
        self.lead.refresh_from_db()
        self.assertEqual(follow_up.status, 'completed')
        self.assertIsNone(self.lead.next_follow_up)

    def test_follow_up_list_split(self):
        FollowUp.objects.create(lead=self.lead, user=self.caller, scheduled_at=timezone.now() - timedelta(hours=1))
        FollowUp.objects.create(lead=self.lead, user=self.caller, scheduled_at=timezone.now() + timedelta(hours=1))
        FollowUp.objects.create(lead=self.other_lead, user=self.other_caller, scheduled_at=timezone.now() + timedelta(hours=1))

        self.client.force_login(self.caller)
        response = self.client.get(reverse('leads:follow_up_list'))

        self.assertEqual(len(response.context['overdue']), 1)
        self.assertEqual(len(response.context['upcoming']), 1)

    def test_only_author_or_admin_deletes_note(self):
        note = self.lead.add_note('Keep me', self.caller)

        self.client.force_login(self.leader)
        self.client.post(reverse('leads:note_delete', args=[note.pk]))
        self.assertTrue(Note.objects.filter(pk=note.pk).exists())

        self.client.force_login(self.caller)
        self.client.post(reverse('leads:note_delete', args=[note.pk]))
        self.assertFalse(Note.objects.filter(pk=note.pk).exists())

    def test_whatsapp_redirect(self):
        self.client.force_login(self.caller)
        response = self.client.get(reverse('leads:lead_whatsapp', args=[self.lead.pk]))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith('https://wa.me/919876543210?text='))


class BulkImportExportViewTest(LeadViewTestBase):

    def test_bulk_assign_json(self):
        self.client.force_login(self.leader)
        response = self.client.post(
            reverse('leads:lead_bulk_actions'),
            data=json.dumps({'action': 'assign', 'lead_ids': [self.lead.pk, self.other_lead.pk], 'assigned_to': self.caller.pk}),
            content_type='application/json',
        )

        self.assertTrue(response.json()['success'])
        self.assertEqual(Lead.objects.filter(assigned_to=self.caller).count(), 2)

    def test_bulk_status_refuses_gated_statuses(self):
        self.client.force_login(self.leader)
        for status in ['disbursed', 'awaiting_kyc', 'approved']:
            response = self.client.post(
                reverse('leads:lead_bulk_actions'),
                data=json.dumps({'action': 'change_status', 'lead_ids': [self.lead.pk], 'status': status}),
                content_type='application/json',
            )
            self.assertEqual(response.status_code, 400)

        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)
        self.assertIsNone(self.lead.disbursed_amount)

    def test_bulk_status_form_post_refused(self):
        self.client.force_login(self.leader)
        response = self.client.post(reverse('leads:lead_bulk_actions'), {
            'action': 'change_status', 'lead_ids': str(self.lead.pk), 'status': 'disbursed',
        })

        self.assertRedirects(response, reverse('leads:lead_list'), fetch_redirect_response=False)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_NEW)

    def test_bulk_status_counts_only_changed(self):
        self.other_lead.status = Lead.STATUS_CONTACTED
        self.other_lead.save()
        self.client.force_login(self.leader)
        response = self.client.post(
            reverse('leads:lead_bulk_actions'),
            data=json.dumps({'action': 'change_status', 'lead_ids': [self.lead.pk, self.other_lead.pk], 'status': 'contacted'}),
            content_type='application/json',
        )

        self.assertEqual(response.json()['count'], 1)
        self.assertTrue(response.json()['message'].startswith('1 lead(s)'))

    def test_bulk_delete_keeps_disbursed(self):
        self.other_lead.record_disbursement('100000')
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse('leads:lead_bulk_actions'),
            data=json.dumps({'action': 'delete', 'lead_ids': [self.lead.pk, self.other_lead.pk]}),
            content_type='application/json',
        )

        self.assertEqual(response.json()['count'], 1)
        self.assertEqual(response.json()['message'], '1 lead(s) deleted, 1 disbursed lead(s) kept')
        self.assertTrue(Lead.objects.filter(pk=self.other_lead.pk).exists())

    def test_bulk_delete_admin_only(self):
        self.client.force_login(self.leader)
        response = self.client.post(
            reverse('leads:lead_bulk_actions'),
            data=json.dumps({'action': 'delete', 'lead_ids': [self.lead.pk]}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)

    def test_telecaller_cannot_bulk(self):
        self.client.force_login(self.caller)
        response = self.client.post(reverse('leads:lead_bulk_actions'), {'action': 'delete', 'lead_ids': str(self.lead.pk)})
        self.assertEqual(response.status_code, 302)
        self.assertTrue(Lead.objects.filter(pk=self.lead.pk).exists())

    def test_export_csv(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('leads:lead_export'), {'format': 'csv'})

        self.assertEqual(response.status_code, 200)
        content = response.content.decode('utf-8-sig')
        self.assertTrue(content.startswith('ID,Name,Phone'))
        self.assertIn('Rahul Verma', content)

    def test_export_excel(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('leads:lead_export'))
        self.assertEqual(response['Content-Type'], 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')

    def test_import_csv(self):
        self.client.force_login(self.admin)
        upload = SimpleUploadedFile('leads.csv', b'name,phone\nNew One,9000000011\nBad,\n', content_type='text/csv')
        response = self.client.post(reverse('leads:lead_import'), {'file': upload, 'assign_mode': 'unassigned'})

        self.assertRedirects(response, reverse('leads:lead_import'), fetch_redirect_response=False)
        self.assertTrue(Lead.objects.filter(phone='9000000011').exists())

        results = self.client.get(reverse('leads:lead_import')).context['results']
        self.assertEqual(results['created'], 1)
        self.assertEqual(results['failed'], 1)

    def test_import_template(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('leads:lead_import_template'))
        self.assertTrue(response.content.decode().startswith('name,email,phone'))


class LoanLoginViewTest(LeadViewTestBase):

    def test_create_login_links_lead(self):
        self.client.force_login(self.caller)
        self.client.post(reverse('leads:login_list'), {
            'name': 'Rahul Verma',
            'phone': '+919876543210',
            'bank_name': 'HDFC',
        })

        login_record = LoanLogin.objects.get()
        self.assertEqual(login_record.lead, self.lead)
        self.assertEqual(login_record.status, 'in_progress')
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, Lead.STATUS_LOGIN_DONE)
        self.assertEqual(self.lead.bank_name, 'HDFC')

    def test_add_attempt_owner_only(self):
        login_record = LoanLogin.objects.create(name='Rahul', phone='9876543210', assigned_to=self.caller)

        self.client.force_login(self.other_caller)
        response = self.client.post(reverse('leads:login_add_attempt', args=[login_record.pk]), {'bank': 'ICICI', 'status': 'approved'})
        self.assertEqual(response.status_code, 403)

        self.client.force_login(self.caller)
        self.client.post(reverse('leads:login_add_attempt', args=[login_record.pk]), {'bank': 'ICICI', 'status': 'approved'})
        login_record.refresh_from_db()
        self.assertEqual(login_record.status, 'approved')

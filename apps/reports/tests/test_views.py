from datetime import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from apps.leads.models import Lead
from apps.reports.tasks import send_daily_report, report_recipients

User = get_user_model()

XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class ReportViewsTest(TestCase):

    def setUp(self):
        self.leader = User.objects.create_user(email='tl@test.com', password='x', full_name='Team Lead', role='team_leader')
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma')
        Lead.objects.create(
            name='Amit Kumar', phone='9876543210', status='disbursed', assigned_to=self.caller,
            disbursed_amount=Decimal('250000'), disbursed_at=timezone.make_aware(datetime(2026, 10, 3, 11)),
            bank_name='HDFC', application_number='APP-1',
        )

    def test_telecaller_is_redirected(self):
        self.client.force_login(self.caller)
        for name in ['index', 'disbursements', 'performance', 'attendance']:
            response = self.client.get(reverse(f'reports:{name}'))
            self.assertRedirects(response, '/dashboard/', fetch_redirect_response=False)

    def test_pages_render_for_leader(self):
        self.client.force_login(self.leader)
        for name in ['index', 'disbursements', 'performance', 'attendance']:
            response = self.client.get(reverse(f'reports:{name}'))
            self.assertEqual(response.status_code, 200, name)

    def test_disbursement_month(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('reports:disbursements'), {'month': '2026-10'})

        self.assertEqual(response.context['report']['total'], Decimal('250000'))
        self.assertContains(response, 'Amit Kumar')

    def test_disbursement_excel(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('reports:disbursements'), {'month': '2026-10', 'format': 'excel'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], XLSX)
        self.assertIn('disbursements_2026_10.xlsx', response['Content-Disposition'])

    def test_performance_filter_by_telecaller(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse('reports:performance'), {'telecaller': self.caller.pk})

        self.assertEqual([row['user'] for row in response.context['rows']], [self.caller])


class DailyReportTaskTest(TestCase):

    def test_no_recipients(self):
        self.assertEqual(send_daily_report(), 'No recipients.')
        self.assertEqual(len(mail.outbox), 0)

    def test_defaults_to_admins_and_leaders(self):
        User.objects.create_user(email='admin@test.com', password='x', full_name='Admin', role='admin')
        User.objects.create_user(email='tl@test.com', password='x', full_name='Team Lead', role='team_leader')
        User.objects.create_user(email='caller@test.com', password='x', full_name='Caller')

        self.assertEqual(sorted(report_recipients()), ['admin@test.com', 'tl@test.com'])

    @override_settings(DAILY_REPORT_RECIPIENTS=['ops@loandesk.in'])
    def test_sends_mail(self):
        result = send_daily_report()

        self.assertEqual(result, 'Daily report sent to 1 recipient(s).')
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['ops@loandesk.in'])
        self.assertTrue(message.subject.startswith('Daily report: '))
        self.assertEqual(message.alternatives[0][1], 'text/html')

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.core.forms import OfficeForm
from apps.core.models import Office, Notification
from apps.leads.models import Lead

User = get_user_model()


class DashboardViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='x', full_name='Admin', role='admin')
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma', role='telecaller')
        self.kyc = User.objects.create_user(email='kyc@test.com', password='x', full_name='Kiran Rao', role='kyc_team')

        Lead.objects.create(name='Mine', phone='9876543210', assigned_to=self.caller)
        Lead.objects.create(name='Queue', phone='9876543211', status='awaiting_kyc')
        Lead.objects.create(name='Unassigned', phone='9876543212')

    def test_anonymous_redirected_to_login(self):
        response = self.client.get(reverse('core:dashboard'))
        self.assertEqual(response.status_code, 302)
        self.assertIn('/accounts/login/', response.url)

    def test_team_dashboard(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('core:dashboard'))

        self.assertTemplateUsed(response, 'core/dashboard_team.html')
        self.assertEqual(response.context['total_leads'], 3)
        self.assertEqual(response.context['unassigned'], 2)
        self.assertEqual(response.context['kyc_queue'], 1)
        self.assertEqual(len(response.context['last_7_days']), 7)

    def test_telecaller_dashboard_only_counts_own_leads(self):
        self.client.force_login(self.caller)
        response = self.client.get(reverse('core:dashboard'))

        self.assertTemplateUsed(response, 'core/dashboard_telecaller.html')
        self.assertEqual(response.context['my_total'], 1)
        self.assertEqual(response.context['progress']['target'], Decimal('2000000'))
        self.assertFalse(response.context['attendance']['checked_in'])

    def test_kyc_dashboard_shows_unclaimed_queue(self):
        self.client.force_login(self.kyc)
        response = self.client.get(reverse('core:dashboard'))

        self.assertTemplateUsed(response, 'core/dashboard_kyc.html')
        self.assertEqual([lead.name for lead in response.context['queue']], ['Queue'])


class OfficeViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='x', full_name='Admin', role='admin')
        self.caller = User.objects.create_user(email='caller@test.com', password='x', full_name='Caller', role='telecaller')

    def test_offices_admin_only(self):
        self.client.force_login(self.caller)
        self.assertEqual(self.client.get(reverse('core:office_list')).status_code, 302)

    def test_create_from_pasted_coordinates(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('core:office_create'), {
            'name': 'Andheri Branch',
            'coordinates': '19.1197,72.8468',
            'radius_m': 150,
            'is_active': 'on',
        })

        self.assertRedirects(response, reverse('core:office_list'), fetch_redirect_response=False)
        office = Office.objects.get(name='Andheri Branch')
        self.assertEqual(office.latitude, Decimal('19.119700'))
        self.assertEqual(office.radius_m, 150)

    def test_delete_office(self):
        office = Office.objects.create(name='BKC', latitude=19.06, longitude=72.86)
        self.client.force_login(self.admin)
        self.client.post(reverse('core:office_delete', args=[office.pk]))
        self.assertFalse(Office.objects.filter(pk=office.pk).exists())


class OfficeFormTest(TestCase):

    def test_requires_coordinates(self):
        form = OfficeForm(data={'name': 'Nowhere', 'radius_m': 200})
        self.assertFalse(form.is_valid())
        self.assertIn('Latitude and longitude are required', form.non_field_errors())

    def test_separate_fields_accepted(self):
        form = OfficeForm(data={'name': 'Pune', 'latitude': '18.5204', 'longitude': '73.8567', 'radius_m': 200})
        self.assertTrue(form.is_valid(), form.errors)

    def test_bad_pasted_coordinates(self):
        form = OfficeForm(data={'name': 'Pune', 'coordinates': 'somewhere', 'radius_m': 200})
        self.assertFalse(form.is_valid())
        self.assertIn('coordinates', form.errors)

    def test_radius_minimum(self):
        form = OfficeForm(data={'name': 'Pune', 'coordinates': '18.5,73.8', 'radius_m': 5})
        self.assertFalse(form.is_valid())
        self.assertIn('radius_m', form.errors)


class NotificationViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='caller@test.com', password='x', full_name='Caller')
        self.other = User.objects.create_user(email='other@test.com', password='x', full_name='Other')
        self.client.force_login(self.user)

    def test_notify_ignores_missing_user(self):
        self.assertIsNone(Notification.notify(None, 'Nobody'))

    def test_unread_count_in_context(self):
        Notification.notify(self.user, 'One')
        Notification.notify(self.user, 'Two')
        Notification.notify(self.other, 'Not mine')

        response = self.client.get(reverse('core:notification_list'))
        self.assertEqual(response.context['unread_notifications_count'], 2)

    def test_read_redirects_to_local_link(self):
        note = Notification.notify(self.user, 'Lead', link='/leads/1/')
        response = self.client.post(reverse('core:notification_read', args=[note.pk]))

        self.assertEqual(response.url, '/leads/1/')
        note.refresh_from_db()
        self.assertTrue(note.is_read)

    def test_read_ignores_external_link(self):
        note = Notification.notify(self.user, 'Phish', link='https://evil.example.com/')
        response = self.client.post(reverse('core:notification_read', args=[note.pk]))
        self.assertEqual(response.url, reverse('core:notification_list'))

    def test_cannot_read_someone_elses(self):
        note = Notification.notify(self.other, 'Private')
        response = self.client.post(reverse('core:notification_read', args=[note.pk]))
        self.assertEqual(response.status_code, 404)

    def test_read_all(self):
        Notification.notify(self.user, 'One')
        Notification.notify(self.user, 'Two')
        response = self.client.post(reverse('core:notification_read_all'), HTTP_X_REQUESTED_WITH='XMLHttpRequest')

        self.assertEqual(response.json()['count'], 2)
        self.assertFalse(self.user.notifications.filter(is_read=False).exists())

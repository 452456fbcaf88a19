from datetime import date, datetime

from django.test import TestCase, override_settings
from django.utils import timezone
from django.contrib.auth import get_user_model

from apps.attendance import services
from apps.attendance.models import Attendance, Leave
from apps.attendance.tasks import auto_checkout_open_sessions
from apps.core.models import Office, Notification

User = get_user_model()

DAY = date(2026, 10, 12)


def at(hour, minute=0, second=0, day=DAY):
    return timezone.make_aware(datetime(day.year, day.month, day.day, hour, minute, second))


@override_settings(ATTENDANCE_LATE_HOUR=9, ATTENDANCE_LATE_MINUTE=30, AUTO_CHECKOUT_HOUR=19)
class AttendanceServiceTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma', role='telecaller')
        Office.objects.create(name='Andheri', latitude='19.119700', longitude='72.846800', radius_m=200)

    def test_on_time_check_in_on_site(self):
        record = services.check_in(self.user, location='19.1198,72.8469', ip='10.0.0.5', now=at(9, 30, 40))

        self.assertEqual(record.date, DAY)
        self.assertEqual(record.status, Attendance.STATUS_PRESENT)
        self.assertEqual(record.work_mode, 'on_site')
        self.assertEqual(record.office_name, 'Andheri')
        self.assertEqual(record.location_check_in, {'coordinates': '19.1198,72.8469'})
        self.assertEqual(record.ip_check_in, '10.0.0.5')

    def test_late_remote_check_in(self):
        record = services.check_in(self.user, location={'lat': 18.52, 'lng': 73.85}, now=at(9, 31))

        self.assertEqual(record.status, Attendance.STATUS_LATE)
        self.assertEqual(record.work_mode, 'remote')

    def test_no_location_is_unknown(self):
        record = services.check_in(self.user, now=at(9, 0))
        self.assertEqual(record.work_mode, 'unknown')

    def test_double_check_in_refused(self):
        services.check_in(self.user, now=at(9, 0))
        with self.assertRaises(services.AttendanceError):
            services.check_in(self.user, now=at(9, 5))

    def test_full_day(self):
        services.check_in(self.user, now=at(9, 0))
        services.start_lunch(self.user, now=at(13, 0))
        services.end_lunch(self.user, now=at(13, 40))
        record = services.check_out(self.user, now=at(18, 0))

        self.assertEqual(record.break_hours, '0:40')
        self.assertEqual(record.total_hours, '8:20')
        self.assertFalse(record.is_checked_in())

    def test_check_out_closes_open_break(self):
        services.check_in(self.user, now=at(9, 0))
        services.start_lunch(self.user, now=at(17, 0))
        record = services.check_out(self.user, now=at(17, 30))

        self.assertEqual(record.lunch_end, at(17, 30))
        self.assertEqual(record.break_hours, '0:30')
        self.assertEqual(record.total_hours, '8:00')

    def test_out_of_order_actions(self):
        with self.assertRaises(services.AttendanceError):
            services.check_out(self.user, now=at(18, 0))

        services.check_in(self.user, now=at(9, 0))
        with self.assertRaises(services.AttendanceError):
            services.end_lunch(self.user, now=at(13, 0))

        services.start_lunch(self.user, now=at(13, 0))
        with self.assertRaises(services.AttendanceError):
            services.start_lunch(self.user, now=at(13, 5))

        services.end_lunch(self.user, now=at(13, 30))
        with self.assertRaises(services.AttendanceError):
            services.start_lunch(self.user, now=at(15, 0))

        services.check_out(self.user, now=at(18, 0))
        with self.assertRaises(services.AttendanceError):
            services.check_out(self.user, now=at(18, 5))

    def test_widget_state(self):
        empty = services.widget_state(self.user, now=at(8, 0))
        self.assertFalse(empty['checked_in'])
        self.assertIsNone(empty['record'])

        services.check_in(self.user, now=at(9, 45))
        state = services.widget_state(self.user, now=at(11, 45))

        self.assertTrue(state['checked_in'])
        self.assertEqual(state['worked'], '2:00')
        self.assertEqual(state['late_by_minutes'], 15)
        self.assertEqual(state['expected_checkout'], at(18, 15))

    def test_auto_checkout(self):
        services.check_in(self.user, now=at(10, 0))
        late_user = User.objects.create_user(email='late@test.com', password='x', full_name='Night Owl')
        services.check_in(late_user, now=at(20, 0))

        self.assertEqual(services.auto_checkout(DAY), 2)

        record = Attendance.objects.get(user=self.user, date=DAY)
        self.assertEqual(record.check_out, at(19, 0))
        self.assertEqual(record.total_hours, '9:00')
        self.assertIn('System: Auto-checked out at 7:00 PM', record.notes)

        late_record = Attendance.objects.get(user=late_user, date=DAY)
        self.assertEqual(late_record.total_hours, '0:00')

        self.assertEqual(services.auto_checkout(DAY), 0)

    def test_auto_checkout_task(self):
        self.assertEqual(auto_checkout_open_sessions(), '0 session(s) auto-checked out.')

    def test_checked_in_telecallers(self):
        services.check_in(self.user, now=at(9, 0))
        User.objects.create_user(email='idle@test.com', password='x', full_name='Idle', role='telecaller')
        self.assertEqual(list(services.checked_in_telecallers(DAY)), [self.user])


class LeaveModelTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='caller@test.com', password='x', full_name='Priya Sharma')
        self.leader = User.objects.create_user(email='tl@test.com', password='x', full_name='Team Lead', role='team_leader')
        self.leave = Leave.objects.create(user=self.user, start_date=date(2026, 10, 20), end_date=date(2026, 10, 22), reason='Wedding')

    def test_days_and_covers(self):
        self.assertEqual(self.leave.days, 3)
        self.assertTrue(self.leave.covers(date(2026, 10, 21)))
        self.assertFalse(self.leave.covers(date(2026, 10, 23)))

    def test_approve_marks_attendance(self):
        self.assertTrue(self.leave.approve(self.leader))

        self.assertEqual(
            Attendance.objects.filter(user=self.user, status=Attendance.STATUS_ON_LEAVE).count(), 3
        )
        self.assertTrue(Notification.objects.filter(user=self.user, title='Leave approved').exists())
        self.assertFalse(self.leave.reject(self.leader, 'Too late'))

    def test_approve_keeps_days_worked(self):
        Attendance.objects.create(user=self.user, date=date(2026, 10, 20), check_in=at(9, 0, day=date(2026, 10, 20)), status='present')
        self.leave.approve(self.leader)
        self.assertEqual(Attendance.objects.get(user=self.user, date=date(2026, 10, 20)).status, 'present')

    def test_reject(self):
        self.assertTrue(self.leave.reject(self.leader, 'Month-end targets'))
        self.assertEqual(self.leave.rejection_reason, 'Month-end targets')
        self.assertFalse(Attendance.objects.filter(user=self.user).exists())

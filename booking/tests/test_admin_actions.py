"""Test cases for admin-initiated mutations."""
from django.core.exceptions import ValidationError
from django.test import TestCase

from booking import admin_actions
from booking.exceptions import NotFound, Unauthorized
from booking.models import Booking, BookingHistory, Certification, UserProfile
from booking.status import BookingStatus, MachineStatus
from booking.tests.factories import (
    AdminProfileFactory, BookingFactory, LaserCutterFactory, SafetyCourseFactory,
    UserProfileFactory, certify,
)


class TestUpdateMachineStatus(TestCase):

    def setUp(self):
        self.admin = AdminProfileFactory().user
        self.member = UserProfileFactory().user
        self.machine = LaserCutterFactory()

    def test_admin_can_set_maintenance_with_note(self):
        machine = admin_actions.update_machine_status(
            'laser-cutter', 'maintenance', note='Lens replacement', actor=self.admin,
        )
        self.assertEqual(machine.status, MachineStatus.MAINTENANCE)
        self.machine.refresh_from_db()
        self.assertEqual(self.machine.status, MachineStatus.MAINTENANCE)
        self.assertEqual(self.machine.maintenance_note, 'Lens replacement')

    def test_legacy_spelling_is_accepted(self):
        machine = admin_actions.update_machine_status('laser-cutter', 'In Use', actor=self.admin)
        self.assertEqual(machine.status, MachineStatus.IN_USE)

    def test_non_admin_is_refused(self):
        with self.assertLogs('booking.admin_actions', level='WARNING'):
            with self.assertRaises(Unauthorized):
                admin_actions.update_machine_status('laser-cutter', 'maintenance', actor=self.member)
        self.machine.refresh_from_db()
        self.assertEqual(self.machine.status, MachineStatus.AVAILABLE)

    def test_unknown_machine(self):
        with self.assertRaises(NotFound):
            admin_actions.update_machine_status('nope', 'available', actor=self.admin)

    def test_deleted_machine_is_not_found(self):
        self.machine.soft_delete()
        with self.assertRaises(NotFound):
            admin_actions.update_machine_status('laser-cutter', 'available', actor=self.admin)

    def test_garbage_status_is_rejected(self):
        with self.assertRaises(ValidationError):
            admin_actions.update_machine_status('laser-cutter', 'on fire', actor=self.admin)

    def test_maintenance_without_note_is_logged(self):
        with self.assertLogs('booking.admin_actions', level='WARNING') as logs:
            admin_actions.update_machine_status('laser-cutter', 'maintenance', actor=self.admin)
        self.assertTrue(any('without a note' in line for line in logs.output))

    def test_leaving_maintenance_clears_note(self):
        admin_actions.update_machine_status('laser-cutter', 'maintenance', note='Broken belt', actor=self.admin)
        admin_actions.update_machine_status('laser-cutter', 'available', actor=self.admin)
        self.machine.refresh_from_db()
        self.assertEqual(self.machine.maintenance_note, '')

    def test_maintenance_keeps_bookings_and_reports_them(self):
        booking = BookingFactory(machine=self.machine, status=BookingStatus.APPROVED)
        with self.assertLogs('booking.admin_actions', level='WARNING') as logs:
            admin_actions.update_machine_status('laser-cutter', 'maintenance', note='Service', actor=self.admin)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.APPROVED)
        self.assertTrue(any(str(booking.pk) in line for line in logs.output))
        self.assertEqual(admin_actions.affected_bookings(self.machine), [booking])

    def test_trusted_caller_without_actor(self):
        machine = admin_actions.update_machine_status('laser-cutter', 'in-use')
        self.assertEqual(machine.status, MachineStatus.IN_USE)

    def test_superuser_counts_as_admin(self):
        self.member.is_superuser = True
        self.assertTrue(admin_actions.actor_is_admin(self.member))


class TestChangeBookingStatus(TestCase):

    def setUp(self):
        self.admin = AdminProfileFactory().user
        self.owner = UserProfileFactory().user
        self.other = UserProfileFactory().user
        self.booking = BookingFactory(user=self.owner, machine=LaserCutterFactory())

    def test_admin_approves(self):
        booking = admin_actions.change_booking_status(self.booking.pk, 'approved', self.admin)
        self.assertEqual(booking.status, BookingStatus.APPROVED)
        self.assertEqual(booking.decided_by, self.admin)
        self.assertIsNotNone(booking.decided_at)

        history = BookingHistory.objects.filter(booking=booking, action='status_approved').get()
        self.assertEqual(history.user, self.admin)
        self.assertEqual(history.old_status, BookingStatus.PENDING)

    def test_full_lifecycle(self):
        admin_actions.change_booking_status(self.booking.pk, BookingStatus.APPROVED, self.admin)
        booking = admin_actions.change_booking_status(self.booking.pk, BookingStatus.COMPLETED, self.admin)
        self.assertEqual(booking.status, BookingStatus.COMPLETED)
        self.assertFalse(booking.holds_slot)

    def test_owner_can_cancel(self):
        booking = admin_actions.cancel_booking(self.booking.pk, self.owner, notes='Plans changed')
        self.assertEqual(booking.status, BookingStatus.CANCELED)
        self.assertEqual(booking.notes, 'Plans changed')
        self.assertIsNone(booking.decided_by)

    def test_owner_cannot_approve(self):
        with self.assertRaises(Unauthorized):
            admin_actions.change_booking_status(self.booking.pk, BookingStatus.APPROVED, self.owner)

    def test_other_user_cannot_cancel(self):
        with self.assertRaises(Unauthorized):
            admin_actions.cancel_booking(self.booking.pk, self.other)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PENDING)

    def test_illegal_transition(self):
        admin_actions.change_booking_status(self.booking.pk, BookingStatus.REJECTED, self.admin)
        with self.assertRaises(ValidationError) as ctx:
            admin_actions.change_booking_status(self.booking.pk, BookingStatus.APPROVED, self.admin)
        self.assertEqual(ctx.exception.code, 'invalid_transition')

    def test_pending_cannot_complete(self):
        with self.assertRaises(ValidationError):
            admin_actions.change_booking_status(self.booking.pk, BookingStatus.COMPLETED, self.admin)

    def test_unknown_booking(self):
        with self.assertRaises(NotFound):
            admin_actions.change_booking_status(999999, BookingStatus.APPROVED, self.admin)

    def test_cancelled_slot_can_be_rebooked(self):
        admin_actions.cancel_booking(self.booking.pk, self.owner)
        BookingFactory(machine=self.booking.machine, date=self.booking.date, time=self.booking.time)
        self.assertEqual(
            Booking.objects.filter(machine=self.booking.machine, status=BookingStatus.PENDING).count(), 1,
        )


class TestUserAdministration(TestCase):

    def setUp(self):
        self.admin = AdminProfileFactory().user
        self.member = UserProfileFactory().user

    def test_revoke_certification(self):
        safety = SafetyCourseFactory()
        laser = LaserCutterFactory()
        certify(self.member, safety, laser)

        self.assertTrue(admin_actions.revoke_certification(self.member.pk, 'laser-cutter', self.admin))
        self.assertFalse(admin_actions.revoke_certification(self.member.pk, 'laser-cutter', self.admin))
        self.assertEqual(
            list(Certification.objects.filter(user=self.member).values_list('machine_id', flat=True)),
            ['safety-course'],
        )

    def test_revoke_requires_admin(self):
        with self.assertRaises(Unauthorized):
            admin_actions.revoke_certification(self.admin.pk, 'laser-cutter', self.member)

    def test_deactivate_and_reactivate(self):
        user = admin_actions.set_user_active(self.member.pk, False, self.admin)
        self.assertFalse(user.is_active)
        user = admin_actions.set_user_active(self.member.pk, True, self.admin)
        self.assertTrue(user.is_active)

    def test_cannot_deactivate_self(self):
        with self.assertRaises(ValidationError) as ctx:
            admin_actions.set_user_active(self.admin.pk, False, self.admin)
        self.assertEqual(ctx.exception.code, 'self_deactivation')

    def test_set_role(self):
        profile = admin_actions.set_user_role(self.member.pk, UserProfile.ROLE_ADMIN, self.admin)
        self.assertTrue(profile.is_admin)

    def test_set_unknown_role(self):
        with self.assertRaises(ValidationError) as ctx:
            admin_actions.set_user_role(self.member.pk, 'wizard', self.admin)
        self.assertEqual(ctx.exception.code, 'invalid_role')


"""Test cases for the REST API."""
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from booking.models import Booking, Certification, Machine
from booking.status import BookingStatus, MachineStatus
from booking.tests.factories import (
    AdminProfileFactory, BookingFactory, LaserCutterFactory, MachineFactory,
    QuizFactory, SafetyCourseFactory, UserProfileFactory, certify,
)


def next_week():
    return (timezone.localdate() + timedelta(days=7)).isoformat()


@pytest.mark.django_db
class TestAuthAPI:
    """Registration and token endpoints."""

    def setup_method(self):
        self.client = APIClient()

    def test_register_returns_token(self):
        url = reverse('api:register')
        response = self.client.post(url, {
            'username': 'maker',
            'email': 'Maker@Example.com',
            'password': 'strong-pass-123',
            'first_name': 'May',
            'last_name': 'Ker',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['profile']['role'] == 'standard'
        assert response.data['profile']['certifications'] == []
        assert response.data['profile']['user']['email'] == 'maker@example.com'

        self.client.credentials(HTTP_AUTHORIZATION=f"Token {response.data['token']}")
        assert self.client.get(reverse('api:machine-list')).status_code == status.HTTP_200_OK

    def test_register_duplicate_username(self):
        UserProfileFactory(user__username='taken')
        response = self.client.post(reverse('api:register'), {
            'username': 'taken', 'email': 'new@example.com', 'password': 'strong-pass-123',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'username' in response.data

    def test_obtain_token(self):
        profile = UserProfileFactory()
        response = self.client.post(reverse('api:token'), {
            'username': profile.user.username, 'password': 'testpass123',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['token']

    def test_anonymous_is_rejected(self):
        response = self.client.get(reverse('api:machine-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_change_password(self):
        profile = UserProfileFactory()
        self.client.force_authenticate(user=profile.user)
        url = reverse('api:password_change')

        response = self.client.post(url, {
            'current_password': 'wrong-pass', 'new_password': 'another-pass-456',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'current_password' in response.data

        response = self.client.post(url, {
            'current_password': 'testpass123', 'new_password': 'short',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = self.client.post(url, {
            'current_password': 'testpass123', 'new_password': 'another-pass-456',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        profile.user.refresh_from_db()
        assert profile.user.check_password('another-pass-456')

    def test_change_password_needs_login(self):
        response = self.client.post(reverse('api:password_change'), {}, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_health_is_public(self):
        response = self.client.get(reverse('api:health'))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'ok'
        assert response.data['timestamp']


@pytest.mark.django_db
class TestProfileAPI:

    def setup_method(self):
        self.client = APIClient()
        self.profile = UserProfileFactory()
        self.admin = AdminProfileFactory()
        self.safety = SafetyCourseFactory()
        self.laser = LaserCutterFactory()

    def test_me(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:userprofile-me'))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == self.profile.pk

        response = self.client.patch(reverse('api:userprofile-me'), {'first_name': 'Ada'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['first_name'] == 'Ada'

    def test_role_cannot_be_self_assigned(self):
        self.client.force_authenticate(user=self.profile.user)
        self.client.patch(reverse('api:userprofile-me'), {'role': 'admin'}, format='json')
        self.profile.refresh_from_db()
        assert self.profile.role == 'standard'

    def test_members_only_see_themselves(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:userprofile-list'))
        assert [p['id'] for p in response.data['results']] == [self.profile.pk]

    def test_admin_grants_in_order(self):
        self.client.force_authenticate(user=self.admin.user)
        url = reverse('api:userprofile-grant-certification', kwargs={'pk': self.profile.pk})

        response = self.client.post(url, {'machine': 'laser-cutter'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'safety-course-required'
        assert response.data['redirect_to'] == 'safety-course'

        response = self.client.post(url, {'machine': 'safety-course'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['certifications'] == ['safety-course']

        response = self.client.post(url, {'machine': 'laser-cutter'}, format='json')
        assert response.data['certifications'] == ['laser-cutter', 'safety-course']

    def test_member_cannot_grant(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:userprofile-grant-certification', kwargs={'pk': self.profile.pk})
        response = self.client.post(url, {'machine': 'safety-course'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not Certification.objects.exists()

    def test_admin_revokes(self):
        certify(self.profile.user, self.safety, self.laser)
        self.client.force_authenticate(user=self.admin.user)
        url = reverse('api:userprofile-revoke-certification', kwargs={'pk': self.profile.pk})
        response = self.client.post(url, {'machine': 'laser-cutter'}, format='json')
        assert response.data == {'revoked': True, 'certifications': ['safety-course']}

    def test_admin_deactivates(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:userprofile-deactivate', kwargs={'pk': self.profile.pk}))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['is_active'] is False

        response = self.client.post(reverse('api:userprofile-deactivate', kwargs={'pk': self.admin.pk}))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid'


@pytest.mark.django_db
class TestMachineAPI:

    def setup_method(self):
        self.client = APIClient()
        self.profile = UserProfileFactory()
        self.admin = AdminProfileFactory()
        self.safety = SafetyCourseFactory()
        self.laser = LaserCutterFactory()

    def test_list_machines(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-list'))
        assert response.status_code == status.HTTP_200_OK
        machines = {m['id']: m for m in response.data['results']}
        assert set(machines) == {'laser-cutter', 'safety-course'}
        assert machines['laser-cutter']['certified'] is False
        assert machines['safety-course']['is_bookable'] is False

    def test_certified_flag(self):
        certify(self.profile.user, self.safety, self.laser)
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-detail', kwargs={'pk': 'laser-cutter'}))
        assert response.data['certified'] is True

    def test_certified_flag_requires_safety_course(self):
        certify(self.profile.user, self.laser)
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-detail', kwargs={'pk': 'laser-cutter'}))
        assert response.data['certified'] is False

    def test_filter_by_category(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-list'), {'category': 'safety'})
        assert [m['id'] for m in response.data['results']] == ['safety-course']

    def test_member_cannot_create(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.post(reverse('api:machine-list'), {'name': 'Band Saw'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_creates_and_deletes(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:machine-list'), {
            'name': 'Band Saw', 'category': 'machine', 'requires_certification': True,
        }, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['id'] == 'band-saw'

        response = self.client.delete(reverse('api:machine-detail', kwargs={'pk': 'band-saw'}))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert Machine.objects.deleted().filter(pk='band-saw').exists()
        response = self.client.get(reverse('api:machine-detail', kwargs={'pk': 'band-saw'}))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_leaves_status_alone(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.patch(reverse('api:machine-detail', kwargs={'pk': 'laser-cutter'}), {
            'name': 'Laser Cutter Mk2', 'status': 'maintenance', 'maintenance_note': 'Lens',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK

        self.laser.refresh_from_db()
        assert self.laser.name == 'Laser Cutter Mk2'
        assert self.laser.status == MachineStatus.AVAILABLE
        assert self.laser.maintenance_note == ''

    def test_bookable_safety_item_is_rejected(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:machine-list'), {
            'name': 'Fire Blanket', 'category': 'safety', 'bookable': True,
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_sets_maintenance(self):
        BookingFactory(machine=self.laser, status=BookingStatus.APPROVED)
        self.client.force_authenticate(user=self.admin.user)
        url = reverse('api:machine-machine-status', kwargs={'pk': 'laser-cutter'})
        response = self.client.put(url, {'status': 'Under Maintenance', 'note': 'Lens'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == MachineStatus.MAINTENANCE
        assert response.data['maintenance_note'] == 'Lens'
        assert len(response.data['affected_bookings']) == 1
        assert Booking.objects.get().status == BookingStatus.APPROVED

    def test_member_cannot_set_status(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:machine-machine-status', kwargs={'pk': 'laser-cutter'})
        response = self.client.put(url, {'status': 'maintenance'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'unauthorized'

        response = self.client.get(url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == MachineStatus.AVAILABLE

    def test_unknown_status_is_rejected(self):
        self.client.force_authenticate(user=self.admin.user)
        url = reverse('api:machine-machine-status', kwargs={'pk': 'laser-cutter'})
        response = self.client.put(url, {'status': 'on fire'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid'

    def test_eligibility(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:machine-eligibility', kwargs={'pk': 'laser-cutter'})

        response = self.client.get(url, {'date': next_week(), 'time': '10:00'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['eligible'] is False
        assert response.data['reason'] == 'safety-course-required'

        certify(self.profile.user, self.safety, self.laser)
        response = self.client.get(url, {'date': next_week(), 'time': '10:00'})
        assert response.data['eligible'] is True

    def test_eligibility_needs_date_and_time(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-eligibility', kwargs={'pk': 'laser-cutter'}))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_machine_bookings_hide_other_users_cancellations(self):
        mine = BookingFactory(machine=self.laser, user=self.profile.user, status=BookingStatus.CANCELED)
        taken = BookingFactory(machine=self.laser, time='12:00', status=BookingStatus.APPROVED)
        BookingFactory(machine=self.laser, time='14:00', status=BookingStatus.CANCELED)

        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-bookings', kwargs={'pk': 'laser-cutter'}))
        assert sorted(b['id'] for b in response.data) == sorted([mine.pk, taken.pk])

    def test_machine_bookings_hide_who_booked(self):
        mine = BookingFactory(machine=self.laser, user=self.profile.user, status=BookingStatus.APPROVED)
        theirs = BookingFactory(machine=self.laser, time='12:00', status=BookingStatus.APPROVED)

        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:machine-bookings', kwargs={'pk': 'laser-cutter'}))
        bookings = {b['id']: b for b in response.data}
        assert bookings[mine.pk]['user']['email'] == self.profile.user.email
        assert set(bookings[theirs.pk]) == {'id', 'machine', 'date', 'time', 'status'}
        assert theirs.user.email not in str(response.data)

        self.client.force_authenticate(user=self.admin.user)
        response = self.client.get(reverse('api:machine-bookings', kwargs={'pk': 'laser-cutter'}))
        assert all('user' in b for b in response.data)


@pytest.mark.django_db
class TestBookingAPI:

    def setup_method(self):
        self.client = APIClient()
        self.profile = UserProfileFactory()
        self.user = self.profile.user
        self.admin = AdminProfileFactory()
        self.safety = SafetyCourseFactory()
        self.laser = LaserCutterFactory()
        self.client.force_authenticate(user=self.user)

    def book(self, time='10:00', machine='laser-cutter', date=None):
        return self.client.post(reverse('api:booking-list'), {
            'machine': machine, 'date': date or next_week(), 'time': time,
        }, format='json')

    def test_create_booking(self):
        certify(self.user, self.safety, self.laser)
        response = self.book()
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == BookingStatus.PENDING
        assert response.data['machine'] == 'laser-cutter'
        assert response.data['can_cancel'] is True

    def test_uncertified_user_is_refused(self):
        response = self.book()
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'safety-course-required'
        assert response.data['reason'] == 'safety-course-required'

    def test_slot_clash_is_conflict(self):
        certify(self.user, self.safety, self.laser)
        BookingFactory(machine=self.laser, time='10:00')
        response = self.book()
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'conflict'

    def test_past_date_is_rejected(self):
        certify(self.user, self.safety, self.laser)
        yesterday = (timezone.localdate() - timedelta(days=1)).isoformat()
        response = self.book(date=yesterday)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid'

    def test_unknown_machine(self):
        response = self.book(machine='plasma-cutter')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'not-found'

    def test_list_only_own_bookings(self):
        BookingFactory(user=self.user, machine=self.laser)
        BookingFactory(machine=self.laser, time='15:00')
        response = self.client.get(reverse('api:booking-list'))
        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 1

    def test_admin_approves(self):
        booking = BookingFactory(user=self.user, machine=self.laser)
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:booking-approve', kwargs={'pk': booking.pk}))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == BookingStatus.APPROVED
        assert response.data['decided_by'] == self.admin.user.pk

    def test_owner_cannot_approve(self):
        booking = BookingFactory(user=self.user, machine=self.laser)
        response = self.client.post(reverse('api:booking-approve', kwargs={'pk': booking.pk}))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_owner_cancels(self):
        booking = BookingFactory(user=self.user, machine=self.laser)
        response = self.client.post(
            reverse('api:booking-cancel', kwargs={'pk': booking.pk}), {'notes': 'Sick'}, format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == BookingStatus.CANCELED
        assert response.data['can_cancel'] is False

    def test_cannot_touch_other_users_booking(self):
        booking = BookingFactory(machine=self.laser)
        response = self.client.post(reverse('api:booking-cancel', kwargs={'pk': booking.pk}))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_illegal_transition(self):
        booking = BookingFactory(user=self.user, machine=self.laser, status=BookingStatus.REJECTED)
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:booking-complete', kwargs={'pk': booking.pk}))
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestQuizAPI:

    def setup_method(self):
        self.client = APIClient()
        self.profile = UserProfileFactory()
        self.admin = AdminProfileFactory()
        self.safety = SafetyCourseFactory()
        self.laser = LaserCutterFactory()
        QuizFactory(id='safety-quiz', machine=self.safety)
        QuizFactory(id='laser-quiz', machine=self.laser)

    def test_answers_hidden_from_members(self):
        self.client.force_authenticate(user=self.profile.user)
        response = self.client.get(reverse('api:quiz-detail', kwargs={'pk': 'safety-quiz'}))
        assert response.status_code == status.HTTP_200_OK
        assert 'correct_answer' not in response.data['questions'][0]
        assert response.data['question_count'] == 4

    def test_answers_visible_to_admins(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.get(reverse('api:quiz-detail', kwargs={'pk': 'safety-quiz'}))
        assert response.data['questions'][0]['correct_answer'] == 1

    def test_submit_and_certify(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:quiz-submit', kwargs={'pk': 'safety-quiz'})
        response = self.client.post(url, {'answers': [1, 0, 3, 0]}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['score'] == 100
        assert response.data['certification'] == 'granted'
        assert self.profile.certification_ids == frozenset({'safety-course'})

    def test_machine_quiz_before_safety_course(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:quiz-submit', kwargs={'pk': 'laser-quiz'})
        response = self.client.post(url, {'answers': [1, 0, 3, 0]}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['redirect_to'] == 'safety-course'

    def test_malformed_submission(self):
        self.client.force_authenticate(user=self.profile.user)
        url = reverse('api:quiz-submit', kwargs={'pk': 'safety-quiz'})
        response = self.client.post(url, {'answers': 'all of them'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_rejects_invalid_questions(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(reverse('api:quiz-list'), {
            'title': 'Broken',
            'questions': [{'question': 'Q?', 'options': ['a'], 'correct_answer': 0}],
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'questions' in response.data


@pytest.mark.django_db
class TestAdminDashboard:

    def setup_method(self):
        self.client = APIClient()

    def test_member_is_refused(self):
        self.client.force_authenticate(user=UserProfileFactory().user)
        response = self.client.get(reverse('api:admin_dashboard'))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_counts(self):
        admin = AdminProfileFactory()
        laser = LaserCutterFactory()
        MachineFactory(status=MachineStatus.MAINTENANCE)
        BookingFactory(machine=laser)
        BookingFactory(machine=laser, time='11:00', status=BookingStatus.APPROVED)

        self.client.force_authenticate(user=admin.user)
        response = self.client.get(reverse('api:admin_dashboard'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['machines']['by_status'][MachineStatus.MAINTENANCE] == 1
        assert response.data['bookings']['total'] == 2
        assert response.data['bookings']['by_status'][BookingStatus.APPROVED] == 1
        assert response.data['bookings']['upcoming'] == 2
        assert response.data['users']['admins'] == 1
        assert len(response.data['recent_bookings']) == 2

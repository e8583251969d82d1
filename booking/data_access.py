# booking/data_access.py
"""
Data access layer for the Learnit Booking.

Every read and write the booking rules depend on goes through DataAccess,
so views, management commands and tests share one set of guarantees.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import logging
from datetime import date as date_cls, datetime
from typing import List, Optional, Tuple

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils import timezone

from . import admin_actions
from .certification import check_grant_sequence
from .eligibility import TIME_SLOT_TAKEN, check_booking_eligibility, parse_time_slot
from .exceptions import BookingRefused, Conflict, NotFound, Unauthorized
from .models import Booking, Certification, Machine, UserProfile
from .status import BookingStatus

logger = logging.getLogger(__name__)

GRANTED = 'granted'
ALREADY_CERTIFIED = 'already-certified'


def parse_booking_date(value) -> date_cls:
    """Accept a date, a datetime or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    if isinstance(value, str):
        try:
            return date_cls.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD.", code='invalid_date')


class DataAccess:
    """ORM-backed implementation of the booking data contract."""

    USER_FIELDS = ('first_name', 'last_name', 'email', 'role')

    def get_user(self, user_id) -> UserProfile:
        try:
            return UserProfile.objects.select_related('user').get(user_id=user_id)
        except (UserProfile.DoesNotExist, ValueError):
            raise NotFound(f"User {user_id} not found.")

    def update_user(self, user_id, actor=None, **changes) -> UserProfile:
        """
        Apply a partial update to a user's name, email or role.

        Role changes need an admin `actor`; `actor=None` is a trusted
        internal call.
        """
        unknown = set(changes) - set(self.USER_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}.",
                code='invalid_field',
            )

        profile = self.get_user(user_id)
        user = profile.user

        if 'role' in changes and changes['role'] != profile.role:
            if actor is not None:
                profile = admin_actions.set_user_role(user_id, changes['role'], actor)
            else:
                if changes['role'] not in dict(UserProfile.ROLE_CHOICES):
                    raise ValidationError(f"Unknown role '{changes['role']}'.", code='invalid_role')
                profile.role = changes['role']
                profile.save(update_fields=['role', 'updated_at'])

        user_fields = []
        if 'email' in changes:
            email = (changes['email'] or '').strip()
            validate_email(email)
            user.email = email
            user_fields.append('email')
        for field in ('first_name', 'last_name'):
            if field in changes:
                setattr(user, field, (changes[field] or '').strip())
                user_fields.append(field)
        if user_fields:
            user.save(update_fields=user_fields)
            logger.info(f"Updated {', '.join(user_fields)} for user {user.username}")

        return profile

    def get_machine(self, machine_id) -> Machine:
        try:
            return Machine.objects.active().get(pk=machine_id)
        except Machine.DoesNotExist:
            raise NotFound(f"Machine '{machine_id}' not found.")

    def update_machine_status(self, machine_id, status, note=None, actor=None) -> Machine:
        return admin_actions.update_machine_status(machine_id, status, note=note, actor=actor)

    def list_bookings_for_machine(self, machine_id, date=None) -> List[Booking]:
        machine = self.get_machine(machine_id)
        bookings = Booking.objects.filter(machine=machine).select_related('user')
        if date is not None:
            bookings = bookings.filter(date=parse_booking_date(date))
        return list(bookings.order_by('date', 'time'))

    def create_booking(self, user_id, machine_id, date, time, notes: str = '') -> Booking:
        """
        Create a Pending booking after an authoritative eligibility check.

        The machine row is locked for the duration of the check so concurrent
        requests for the same machine are serialized; the conditional unique
        constraint on active slots catches anything that slips past.
        """
        booking_date = parse_booking_date(date)
        if booking_date < timezone.localdate():
            raise ValidationError("Bookings cannot be made for past dates.", code='date_in_past')
        time = (time or '').strip()
        if parse_time_slot(time) is None:
            raise ValidationError(f"Invalid time slot '{time}'. Use HH:MM or HH:MM-HH:MM.", code='invalid_time')

        profile = self.get_user(user_id)
        if not profile.user.is_active:
            raise Unauthorized("This account has been deactivated.")

        try:
            with transaction.atomic():
                try:
                    machine = Machine.objects.active().select_for_update().get(pk=machine_id)
                except Machine.DoesNotExist:
                    raise NotFound(f"Machine '{machine_id}' not found.")

                existing = list(Booking.objects.filter(machine=machine, date=booking_date))
                result = check_booking_eligibility(profile, machine, booking_date, time, existing)
                if not result:
                    logger.info(
                        f"Booking refused for {profile.user.username} on {machine.pk} "
                        f"{booking_date} {time}: {result.reason}"
                    )
                    if result.reason == TIME_SLOT_TAKEN:
                        raise Conflict(result.message)
                    raise BookingRefused(result.reason, result.message)

                booking = Booking(
                    user=profile.user,
                    machine=machine,
                    date=booking_date,
                    time=time,
                    status=BookingStatus.PENDING,
                    notes=notes or '',
                )
                booking._changed_by = profile.user
                booking.save()
        except IntegrityError:
            logger.warning(f"Slot {machine_id} {booking_date} {time} taken concurrently")
            raise Conflict("This time slot is already booked.")

        logger.info(f"Booking {booking.pk} created for {profile.user.username} on {machine.pk} {booking_date} {time}")
        return booking

    def grant_certification(self, user_id, machine_id, quiz=None, score: Optional[int] = None,
                            granted_by=None) -> Tuple[bool, str]:
        """
        Record that a user is certified on a machine.

        Returns (True, 'granted'), (True, 'already-certified') or
        (False, 'safety-course-required').
        """
        profile = self.get_user(user_id)
        machine = self.get_machine(machine_id)

        if Certification.objects.filter(user_id=profile.user_id, machine=machine).exists():
            return True, ALREADY_CERTIFIED

        allowed, reason = check_grant_sequence(profile, machine.pk, machine.category)
        if not allowed:
            logger.info(f"Certification {machine.pk} refused for {profile.user.username}: {reason}")
            return False, reason

        try:
            with transaction.atomic():
                Certification.objects.create(
                    user=profile.user,
                    machine=machine,
                    quiz=quiz,
                    score=score,
                    granted_by=granted_by,
                )
        except IntegrityError:
            return True, ALREADY_CERTIFIED

        logger.info(f"User {profile.user.username} certified on {machine.pk}")
        return True, GRANTED


data_access = DataAccess()

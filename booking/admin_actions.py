# booking/admin_actions.py
"""
Admin-initiated mutations for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import logging
from datetime import date as date_cls
from typing import List, Optional

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .certification import is_admin
from .exceptions import NotFound, Unauthorized
from .models import Booking, Certification, Machine, UserProfile
from .status import (
    BLOCKING_BOOKING_STATUSES, BookingStatus, MachineStatus,
    parse_machine_status, reconcile_booking_status,
)

logger = logging.getLogger(__name__)

# Status moves an admin may make; owners may only cancel
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELED},
    BookingStatus.APPROVED: {BookingStatus.COMPLETED, BookingStatus.CANCELED},
}


def actor_is_admin(actor) -> bool:
    """True for superusers and for users whose profile carries the admin role."""
    if actor is None:
        return False
    if getattr(actor, 'is_superuser', False):
        return True
    profile = getattr(actor, 'userprofile', actor)
    return is_admin(profile)


def _require_admin(actor, action):
    if not actor_is_admin(actor):
        username = getattr(actor, 'username', None) or 'anonymous'
        logger.warning(f"Refused {action} for non-admin {username}")
        raise Unauthorized(f"Only administrators can {action}.")


def _actor_name(actor):
    return getattr(actor, 'username', None) or 'system'


def affected_bookings(machine, from_date: Optional[date_cls] = None) -> List[Booking]:
    """Pending and approved bookings on `machine` from `from_date` (today by default) onwards."""
    if from_date is None:
        from_date = timezone.localdate()
    return list(
        Booking.objects.filter(
            machine=machine,
            date__gte=from_date,
            status__in=BLOCKING_BOOKING_STATUSES,
        ).select_related('user').order_by('date', 'time')
    )


def update_machine_status(machine_id, status, note=None, actor=None) -> Machine:
    """
    Apply an admin-issued machine status change.

    `actor` is None only for trusted internal callers (management commands).
    Moving a machine into maintenance leaves its bookings untouched; the
    bookings it now clashes with are logged for an admin to reconcile by hand.
    Concurrent writes are last-write-wins.
    """
    if actor is not None:
        _require_admin(actor, 'change machine status')

    new_status = parse_machine_status(status)

    try:
        machine = Machine.objects.active().get(pk=machine_id)
    except Machine.DoesNotExist:
        raise NotFound(f"Machine '{machine_id}' not found.")

    old_status = machine.status
    note = (note or '').strip()

    if new_status == MachineStatus.MAINTENANCE:
        if note:
            machine.maintenance_note = note
        elif not machine.maintenance_note:
            logger.warning(f"Machine {machine.pk} put into maintenance without a note by {_actor_name(actor)}")
    else:
        machine.maintenance_note = note

    machine.status = new_status
    machine.save(update_fields=['status', 'maintenance_note', 'updated_at'])

    logger.info(f"Machine {machine.pk} status {old_status} -> {new_status} by {_actor_name(actor)}")

    if new_status == MachineStatus.MAINTENANCE and old_status != MachineStatus.MAINTENANCE:
        pending = affected_bookings(machine)
        if pending:
            logger.warning(
                f"Machine {machine.pk} entered maintenance with {len(pending)} active booking(s): "
                f"{', '.join(str(b.pk) for b in pending)}"
            )

    return machine


def change_booking_status(booking_id, status, actor, notes: str = '') -> Booking:
    """Move a booking along its lifecycle; raises ValidationError for illegal moves."""
    new_status = reconcile_booking_status(status)

    try:
        booking = Booking.objects.select_related('user', 'machine').get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFound(f"Booking {booking_id} not found.")

    admin = actor_is_admin(actor)
    owner = actor is not None and booking.user_id == getattr(actor, 'pk', None)
    if not admin and not (owner and new_status == BookingStatus.CANCELED):
        logger.warning(f"Refused booking {booking.pk} -> {new_status} for {_actor_name(actor)}")
        raise Unauthorized("Only administrators can change this booking's status.")

    allowed = BOOKING_TRANSITIONS.get(booking.status, set())
    if new_status not in allowed:
        raise ValidationError(
            f"Cannot move a {booking.status} booking to {new_status}.",
            code='invalid_transition',
        )

    with transaction.atomic():
        booking.status = new_status
        if notes:
            booking.notes = notes
        if admin:
            booking.decided_by = actor
            booking.decided_at = timezone.now()
        booking._changed_by = actor
        booking.save()

    logger.info(f"Booking {booking.pk} moved to {new_status} by {_actor_name(actor)}")
    return booking


def cancel_booking(booking_id, actor, notes: str = '') -> Booking:
    return change_booking_status(booking_id, BookingStatus.CANCELED, actor, notes=notes)


def revoke_certification(user_id, machine_id, actor) -> bool:
    """Remove a certification. Returns False when the user did not hold it."""
    _require_admin(actor, 'revoke certifications')
    if not User.objects.filter(pk=user_id).exists():
        raise NotFound(f"User {user_id} not found.")
    deleted, _ = Certification.objects.filter(user_id=user_id, machine_id=machine_id).delete()
    if deleted:
        logger.info(f"Certification {machine_id} revoked from user {user_id} by {_actor_name(actor)}")
    return bool(deleted)


def set_user_active(user_id, active: bool, actor) -> User:
    """Deactivate or reactivate an account; users are never hard-deleted."""
    _require_admin(actor, 'change account status')
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise NotFound(f"User {user_id} not found.")
    if user.pk == getattr(actor, 'pk', None) and not active:
        raise ValidationError("You cannot deactivate your own account.", code='self_deactivation')
    user.is_active = active
    user.save(update_fields=['is_active'])
    logger.info(f"User {user.username} {'activated' if active else 'deactivated'} by {_actor_name(actor)}")
    return user


def set_user_role(user_id, role, actor) -> UserProfile:
    _require_admin(actor, 'change user roles')
    valid_roles = dict(UserProfile.ROLE_CHOICES)
    if role not in valid_roles:
        raise ValidationError(
            f"Unknown role '{role}'. Expected one of: {', '.join(valid_roles)}.",
            code='invalid_role',
        )
    try:
        profile = UserProfile.objects.select_related('user').get(user_id=user_id)
    except UserProfile.DoesNotExist:
        raise NotFound(f"User {user_id} not found.")
    profile.role = role
    profile.save(update_fields=['role', 'updated_at'])
    logger.info(f"User {profile.user.username} role set to {role} by {_actor_name(actor)}")
    return profile

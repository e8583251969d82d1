# booking/status.py
"""
Status reconciliation for the Learnit Booking.

Machine and booking statuses arrive from several sources (admin forms,
legacy imports, mobile clients) with inconsistent casing, separators and
synonyms. Everything is mapped onto the canonical choices below before any
business rule looks at it.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import re

from django.core.exceptions import ValidationError
from django.db import models


class MachineCategory(models.TextChoices):
    MACHINE = 'machine', 'Machine'
    EQUIPMENT = 'equipment', 'Equipment'
    SAFETY = 'safety', 'Safety'


class MachineStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    IN_USE = 'in-use', 'In Use'
    MAINTENANCE = 'maintenance', 'Maintenance'


class BookingStatus(models.TextChoices):
    PENDING = 'Pending', 'Pending'
    APPROVED = 'Approved', 'Approved'
    REJECTED = 'Rejected', 'Rejected'
    CANCELED = 'Canceled', 'Canceled'
    COMPLETED = 'Completed', 'Completed'


# Bookings in these states hold their time slot
BLOCKING_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})
TERMINAL_BOOKING_STATUSES = frozenset({
    BookingStatus.REJECTED, BookingStatus.CANCELED, BookingStatus.COMPLETED,
})

# Keys are normalized tokens (see normalize_token)
MACHINE_STATUS_SYNONYMS = {
    'available': MachineStatus.AVAILABLE,
    'free': MachineStatus.AVAILABLE,
    'idle': MachineStatus.AVAILABLE,
    'ready': MachineStatus.AVAILABLE,
    'operational': MachineStatus.AVAILABLE,
    'in-use': MachineStatus.IN_USE,
    'inuse': MachineStatus.IN_USE,
    'busy': MachineStatus.IN_USE,
    'occupied': MachineStatus.IN_USE,
    'running': MachineStatus.IN_USE,
    'maintenance': MachineStatus.MAINTENANCE,
    'under-maintenance': MachineStatus.MAINTENANCE,
    'in-maintenance': MachineStatus.MAINTENANCE,
    'maintainance': MachineStatus.MAINTENANCE,
    'out-of-order': MachineStatus.MAINTENANCE,
    'out-of-service': MachineStatus.MAINTENANCE,
    'broken': MachineStatus.MAINTENANCE,
    'repair': MachineStatus.MAINTENANCE,
}

BOOKING_STATUS_SYNONYMS = {
    'pending': BookingStatus.PENDING,
    'pending-approval': BookingStatus.PENDING,
    'requested': BookingStatus.PENDING,
    'awaiting-approval': BookingStatus.PENDING,
    'approved': BookingStatus.APPROVED,
    'confirmed': BookingStatus.APPROVED,
    'accepted': BookingStatus.APPROVED,
    'rejected': BookingStatus.REJECTED,
    'declined': BookingStatus.REJECTED,
    'denied': BookingStatus.REJECTED,
    'canceled': BookingStatus.CANCELED,
    'cancelled': BookingStatus.CANCELED,
    'completed': BookingStatus.COMPLETED,
    'complete': BookingStatus.COMPLETED,
    'done': BookingStatus.COMPLETED,
    'finished': BookingStatus.COMPLETED,
}

_SEPARATORS = re.compile(r'[\s_\-]+')


def normalize_token(raw):
    """Lowercase a status string and collapse spaces/underscores/hyphens to '-'."""
    if raw is None:
        return ''
    return _SEPARATORS.sub('-', str(raw).strip().lower()).strip('-')


def reconcile_machine_status(raw):
    """
    Map any machine status representation onto a MachineStatus.

    Missing or unrecognized values default to AVAILABLE: machines are usable
    unless something explicitly says otherwise.
    """
    return MACHINE_STATUS_SYNONYMS.get(normalize_token(raw), MachineStatus.AVAILABLE)


def parse_machine_status(raw):
    """Strict variant of reconcile_machine_status for admin writes."""
    status = MACHINE_STATUS_SYNONYMS.get(normalize_token(raw))
    if status is None:
        raise ValidationError(
            f"Unknown machine status '{raw}'. Expected one of: "
            f"{', '.join(MachineStatus.values)}.",
            code='invalid_status',
        )
    return status


def reconcile_booking_status(raw):
    """
    Map any booking status representation onto a BookingStatus.

    A booking always has a status, so missing or unrecognized values raise
    ValidationError instead of falling back to a default.
    """
    status = BOOKING_STATUS_SYNONYMS.get(normalize_token(raw))
    if status is None:
        raise ValidationError(
            f"Unknown booking status '{raw}'. Expected one of: "
            f"{', '.join(BookingStatus.values)}.",
            code='invalid_status',
        )
    return status


def display_machine_status(machine):
    """
    Status shown to users and fed to the eligibility gate.

    Equipment and safety items are not run through the machine lifecycle and
    always read as available.
    """
    category = normalize_token(getattr(machine, 'category', None))
    if category in (MachineCategory.EQUIPMENT, MachineCategory.SAFETY):
        return MachineStatus.AVAILABLE
    return reconcile_machine_status(getattr(machine, 'status', None))

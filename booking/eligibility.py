# booking/eligibility.py
"""
Booking eligibility gate for the Learnit Booking.

A single decision function answers "can this user book this machine at this
time". The same function drives the advisory check shown before a booking
is submitted and the authoritative check run inside the booking transaction.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import re
from datetime import date as date_cls, datetime

from django.conf import settings

from .certification import (
    evaluate_certification, has_safety_course, is_admin, safety_course_id,
)
from .status import (
    BOOKING_STATUS_SYNONYMS, BLOCKING_BOOKING_STATUSES, MachineCategory, MachineStatus,
    display_machine_status, normalize_token,
)

NOT_BOOKABLE_CATEGORY = 'not-bookable-category'
SAFETY_COURSE_REQUIRED = 'safety-course-required'
NOT_CERTIFIED = 'not-certified'
MACHINE_UNAVAILABLE = 'machine-unavailable'
TIME_SLOT_TAKEN = 'time-slot-taken'

REASONS = (
    NOT_BOOKABLE_CATEGORY,
    SAFETY_COURSE_REQUIRED,
    NOT_CERTIFIED,
    MACHINE_UNAVAILABLE,
    TIME_SLOT_TAKEN,
)

_TIME_RE = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*$')


class Eligibility:
    """Tagged result of the eligibility gate: eligible, or ineligible with a reason."""

    def __init__(self, eligible, reason=None, message='', conflicting_booking=None):
        self.eligible = eligible
        self.reason = reason
        self.message = message
        self.conflicting_booking = conflicting_booking

    @classmethod
    def ok(cls):
        return cls(True, message='Eligible to book.')

    @classmethod
    def refuse(cls, reason, message, conflicting_booking=None):
        return cls(False, reason=reason, message=message, conflicting_booking=conflicting_booking)

    def __bool__(self):
        return self.eligible

    def __repr__(self):
        if self.eligible:
            return 'Eligible()'
        return f"Ineligible({self.reason})"

    def to_dict(self):
        data = {
            'eligible': self.eligible,
            'reason': self.reason,
            'message': self.message,
        }
        if self.conflicting_booking is not None:
            data['conflicting_booking_id'] = getattr(self.conflicting_booking, 'pk', None)
        return data


def _minutes(text):
    match = _TIME_RE.match(text)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        return None
    return hours * 60 + minutes


def parse_time_slot(time, default_minutes=None):
    """
    Parse a slot string into a (start, end) pair of minutes since midnight.

    Accepts "HH:MM" (lasting BOOKING_SLOT_MINUTES) or "HH:MM-HH:MM".
    Returns None when the string cannot be parsed.
    """
    if time is None:
        return None
    if default_minutes is None:
        default_minutes = getattr(settings, 'BOOKING_SLOT_MINUTES', 60)
    text = str(time)
    if '-' in text:
        start_text, _, end_text = text.partition('-')
        start, end = _minutes(start_text), _minutes(end_text)
        if start is None or end is None or end <= start:
            return None
        return start, end
    start = _minutes(text)
    if start is None:
        return None
    return start, start + default_minutes


def slots_overlap(first, second):
    """Half-open overlap test; unparsable slots only clash when identical."""
    a, b = parse_time_slot(first), parse_time_slot(second)
    if a is None or b is None:
        return str(first).strip() == str(second).strip()
    return a[0] < b[1] and a[1] > b[0]


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    if isinstance(value, str):
        try:
            return date_cls.fromisoformat(value[:10])
        except ValueError:
            return value
    return value


def _machine_id(machine):
    machine_id = getattr(machine, 'pk', None)
    if machine_id is None:
        machine_id = getattr(machine, 'id', None)
    return str(machine_id)


def _booking_machine_id(booking):
    machine_id = getattr(booking, 'machine_id', None)
    if machine_id is None:
        machine = getattr(booking, 'machine', None)
        machine_id = getattr(machine, 'pk', machine)
    return str(machine_id)


def _holds_slot(booking):
    # Unrecognized statuses hold the slot
    status = BOOKING_STATUS_SYNONYMS.get(normalize_token(getattr(booking, 'status', None)))
    return status is None or status in BLOCKING_BOOKING_STATUSES


def find_conflicting_booking(machine, date, time, existing_bookings, exclude_pk=None):
    """Return the first slot-holding booking overlapping the requested slot, if any."""
    machine_id = _machine_id(machine)
    wanted_date = _as_date(date)
    for booking in existing_bookings or ():
        if exclude_pk is not None and getattr(booking, 'pk', None) == exclude_pk:
            continue
        if _booking_machine_id(booking) != machine_id:
            continue
        if _as_date(getattr(booking, 'date', None)) != wanted_date:
            continue
        if not _holds_slot(booking):
            continue
        if slots_overlap(getattr(booking, 'time', None), time):
            return booking
    return None


def check_booking_eligibility(user, machine, date, time, existing_bookings=()):
    """
    Decide whether `user` may book `machine` on `date` at `time`.

    Checks run in a fixed order and the first failure wins, so callers can
    show the single most actionable reason:

    1. safety items and non-bookable machines are never bookable
    2. the safety course must be completed first
    3. the user must be certified on the machine
    4. the machine must be available
    5. the slot must not overlap a pending or approved booking

    Never raises.
    """
    name = getattr(machine, 'name', None) or 'This machine'
    machine_id = _machine_id(machine)
    category = normalize_token(getattr(machine, 'category', None))

    if category == MachineCategory.SAFETY or getattr(machine, 'bookable', True) is False:
        return Eligibility.refuse(
            NOT_BOOKABLE_CATEGORY,
            f"{name} is safety equipment and cannot be booked."
            if category == MachineCategory.SAFETY else f"{name} cannot be booked.",
        )

    admin = is_admin(user)
    if not admin and machine_id != safety_course_id() and not has_safety_course(user):
        return Eligibility.refuse(
            SAFETY_COURSE_REQUIRED,
            "Complete the safety course before booking any machine.",
        )

    certification = evaluate_certification(
        user, machine_id, getattr(machine, 'requires_certification', False), category,
    )
    if not certification.certified:
        return Eligibility.refuse(
            NOT_CERTIFIED,
            f"You need a certification for {name} before booking it.",
        )

    status = display_machine_status(machine)
    if status != MachineStatus.AVAILABLE:
        return Eligibility.refuse(
            MACHINE_UNAVAILABLE,
            f"{name} is currently {MachineStatus(status).label.lower()}.",
        )

    conflict = find_conflicting_booking(machine, date, time, existing_bookings)
    if conflict is not None:
        return Eligibility.refuse(
            TIME_SLOT_TAKEN,
            "This time slot is already booked.",
            conflicting_booking=conflict,
        )

    return Eligibility.ok()

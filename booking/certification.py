# booking/certification.py
"""
Certification evaluation for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.conf import settings

from .status import MachineCategory, normalize_token

ADMIN_EXEMPT = 'admin-exempt'
CERTIFIED = 'certified'
NOT_CERTIFIED = 'not-certified'
NOT_REQUIRED = 'not-required'

GRANT_OK = 'ok'
SAFETY_COURSE_REQUIRED = 'safety-course-required'


class CertificationResult:
    """Outcome of a certification check."""

    def __init__(self, certified, reason):
        self.certified = certified
        self.reason = reason

    def __bool__(self):
        return self.certified

    def __eq__(self, other):
        if not isinstance(other, CertificationResult):
            return NotImplemented
        return (self.certified, self.reason) == (other.certified, other.reason)

    def __repr__(self):
        return f"CertificationResult(certified={self.certified}, reason='{self.reason}')"

    def to_dict(self):
        return {'certified': self.certified, 'reason': self.reason}


def safety_course_id():
    return getattr(settings, 'SAFETY_COURSE_MACHINE_ID', 'safety-course')


def is_admin(user):
    """Admins bypass every certification requirement."""
    if user is None:
        return False
    return normalize_token(getattr(user, 'role', None)) == 'admin'


def certification_set(user):
    """
    Return the machine identifiers the user is certified for.

    Anything that is not an iterable of identifiers (None, a bare string,
    a number) is treated as holding no certifications.
    """
    raw = getattr(user, 'certification_ids', None)
    if raw is None or isinstance(raw, (str, bytes)):
        return frozenset()
    try:
        return frozenset(str(item) for item in raw if item is not None and item != '')
    except TypeError:
        return frozenset()


def has_safety_course(user):
    return safety_course_id() in certification_set(user)


def is_prerequisite_exempt(machine_id, category=None):
    """Safety items can be certified without holding the safety course first."""
    if str(machine_id) == safety_course_id():
        return True
    return normalize_token(category) == MachineCategory.SAFETY


def evaluate_certification(user, machine_id, requires_certification, category=None):
    """
    Decide whether a user is certified to operate a machine.

    The safety-course sequencing rule is re-checked here even though it is
    enforced when certifications are granted: a certification set that was
    edited out of order must not unlock a machine.
    """
    if is_admin(user):
        return CertificationResult(True, ADMIN_EXEMPT)
    if not requires_certification:
        return CertificationResult(True, NOT_REQUIRED)

    held = certification_set(user)
    if str(machine_id) not in held:
        return CertificationResult(False, NOT_CERTIFIED)
    if not is_prerequisite_exempt(machine_id, category) and safety_course_id() not in held:
        return CertificationResult(False, NOT_CERTIFIED)
    return CertificationResult(True, CERTIFIED)


def check_grant_sequence(user, machine_id, category=None):
    """
    Grant-time sequencing check.

    Returns a (allowed, reason) tuple; reason is 'ok' or
    'safety-course-required'.
    """
    if is_prerequisite_exempt(machine_id, category) or is_admin(user):
        return True, GRANT_OK
    if has_safety_course(user):
        return True, GRANT_OK
    return False, SAFETY_COURSE_REQUIRED

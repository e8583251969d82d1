# booking/exceptions.py
"""
Domain errors for the Learnit Booking and their REST rendering.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base class for errors raised by booking mutations."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'error'
    default_message = 'The request could not be completed.'

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not-found'
    default_message = 'Not found.'


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'
    default_message = 'This time slot is already booked.'


class Unauthorized(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'unauthorized'
    default_message = 'You are not allowed to perform this action.'


class BookingRefused(BookingError):
    """The eligibility gate refused a booking for a reason other than a clash."""
    default_code = 'booking-refused'

    def __init__(self, reason, message=None):
        self.reason = reason
        super().__init__(message or f"Booking refused: {reason}.", code=reason)

    def to_dict(self):
        data = super().to_dict()
        data['reason'] = self.reason
        return data


class CertificationRefused(BookingError):
    """A certification grant was refused; `redirect_to` names what to complete first."""
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'certification-refused'

    def __init__(self, reason, message=None, redirect_to=None):
        self.reason = reason
        self.redirect_to = redirect_to
        super().__init__(message or f"Certification refused: {reason}.", code=reason)

    def to_dict(self):
        data = super().to_dict()
        data['reason'] = self.reason
        if self.redirect_to:
            data['redirect_to'] = self.redirect_to
        return data


def api_exception_handler(exc, context):
    """DRF exception handler that also renders domain and Django validation errors."""
    if isinstance(exc, BookingError):
        view = context.get('view')
        logger.info(f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'api'}: {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            detail = exc.message_dict
        else:
            detail = exc.messages
        message = '; '.join(exc.messages)
        return Response(
            {'error': message, 'code': 'invalid', 'detail': detail},
            status=status.HTTP_400_BAD_REQUEST,
        )

    return exception_handler(exc, context)

# booking/signals.py
"""
Django signals for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver
from django.contrib.auth.models import User
from .models import UserProfile, Booking, BookingHistory


@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    """Create UserProfile when User is created."""
    if created:
        role = UserProfile.ROLE_ADMIN if instance.is_superuser else UserProfile.ROLE_STANDARD
        UserProfile.objects.create(user=instance, role=role)


@receiver(post_save, sender=User)
def save_user_profile(sender, instance, **kwargs):
    """Save UserProfile when User is saved."""
    if hasattr(instance, 'userprofile'):
        instance.userprofile.save()


@receiver(pre_save, sender=Booking)
def remember_booking_status(sender, instance, **kwargs):
    """Keep the stored status so post_save can tell what changed."""
    if instance.pk:
        instance._previous_status = (
            Booking.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
        )
    else:
        instance._previous_status = None


@receiver(post_save, sender=Booking)
def log_booking_changes(sender, instance, created, **kwargs):
    """Log booking creation and status changes."""
    actor = getattr(instance, '_changed_by', None) or instance.user
    if created:
        BookingHistory.objects.create(
            booking=instance,
            user=actor,
            action='created',
            new_status=instance.status,
            details={'date': str(instance.date), 'time': instance.time},
        )
        return

    previous = getattr(instance, '_previous_status', None)
    if previous and previous != instance.status:
        BookingHistory.objects.create(
            booking=instance,
            user=actor,
            action=f'status_{instance.status.lower()}',
            old_status=previous,
            new_status=instance.status,
            details={'notes': instance.notes} if instance.notes else {},
        )

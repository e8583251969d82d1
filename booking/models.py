# booking/models.py
"""
Core models for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from .status import (
    BLOCKING_BOOKING_STATUSES, TERMINAL_BOOKING_STATUSES,
    BookingStatus, MachineCategory, MachineStatus,
    display_machine_status, reconcile_booking_status, reconcile_machine_status,
)


def _unique_slug(model, base, max_length=64):
    """Generate a free string primary key from a name."""
    base = (slugify(base) or model.__name__.lower())[:max_length - 4]
    candidate = base
    suffix = 2
    while model.objects.filter(pk=candidate).exists():
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


class SoftDeleteQuerySet(models.QuerySet):
    def active(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class UserProfile(models.Model):
    """Makerspace profile attached to every auth user."""
    ROLE_STANDARD = 'standard'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_STANDARD, 'Standard'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STANDARD)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_userprofile'

    def __str__(self):
        return f"{self.display_name} ({self.role})"

    @property
    def display_name(self):
        return self.user.get_full_name() or self.user.username

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def certification_ids(self):
        """Identifiers of the machines this user holds a certification for."""
        if self.user_id is None:
            return frozenset()
        return frozenset(
            Certification.objects.filter(user_id=self.user_id).values_list('machine_id', flat=True)
        )


class Machine(models.Model):
    """Machines, equipment and safety items that users train on and book."""
    id = models.CharField(max_length=64, primary_key=True, blank=True)
    name = models.CharField(max_length=200)
    machine_type = models.CharField(max_length=100, blank=True, help_text="e.g. Laser Cutter, 3D Printer")
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=MachineCategory.choices, default=MachineCategory.MACHINE)
    status = models.CharField(max_length=20, choices=MachineStatus.choices, default=MachineStatus.AVAILABLE)
    maintenance_note = models.TextField(blank=True)
    requires_certification = models.BooleanField(default=False)
    bookable = models.BooleanField(default=True, help_text="Safety items are never bookable")
    difficulty = models.CharField(max_length=50, blank=True)
    specifications = models.TextField(blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = 'booking_machine'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.get_category_display()})"

    def clean(self):
        super().clean()
        if self.category == MachineCategory.SAFETY and self.bookable:
            raise ValidationError({'bookable': "Safety items cannot be bookable."})

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = _unique_slug(Machine, self.name)
        self.status = reconcile_machine_status(self.status)
        if self.category == MachineCategory.SAFETY:
            self.bookable = False
        super().save(*args, **kwargs)

    @property
    def display_status(self):
        return display_machine_status(self)

    @property
    def is_bookable(self):
        return self.bookable and self.category != MachineCategory.SAFETY and self.deleted_at is None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def restore(self):
        self.deleted_at = None
        self.save(update_fields=['deleted_at', 'updated_at'])


class Course(models.Model):
    """Training course leading to a machine's quiz."""
    id = models.CharField(max_length=64, primary_key=True, blank=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    content = models.TextField(blank=True)
    machine = models.ForeignKey(Machine, on_delete=models.SET_NULL, null=True, blank=True, related_name='courses')
    difficulty = models.CharField(max_length=50, default='Beginner')
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = 'booking_course'
        ordering = ['title']

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = _unique_slug(Course, self.title)
        super().save(*args, **kwargs)

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])


class Quiz(models.Model):
    """Multiple-choice quiz; passing it certifies the user on `machine`."""
    id = models.CharField(max_length=64, primary_key=True, blank=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    course = models.ForeignKey(Course, on_delete=models.SET_NULL, null=True, blank=True, related_name='quizzes')
    machine = models.ForeignKey(Machine, on_delete=models.SET_NULL, null=True, blank=True, related_name='quizzes')
    questions = models.JSONField(default=list, blank=True, help_text="List of {question, options, correct_answer, explanation}")
    passing_score = models.PositiveSmallIntegerField(
        default=70,
        validators=[MaxValueValidator(100)],
        help_text="Percentage needed to pass",
    )
    difficulty = models.CharField(max_length=50, default='Beginner')
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        db_table = 'booking_quiz'
        ordering = ['title']
        verbose_name_plural = 'quizzes'

    def __str__(self):
        return self.title

    def clean(self):
        super().clean()
        if not isinstance(self.questions, list):
            raise ValidationError({'questions': "Questions must be a list."})
        for index, question in enumerate(self.questions, start=1):
            if not isinstance(question, dict):
                raise ValidationError({'questions': f"Question {index} must be an object."})
            options = question.get('options')
            answer = question.get('correct_answer')
            if not question.get('question') or not isinstance(options, list) or len(options) < 2:
                raise ValidationError({'questions': f"Question {index} needs text and at least two options."})
            if not isinstance(answer, int) or not 0 <= answer < len(options):
                raise ValidationError({'questions': f"Question {index} has an invalid correct answer."})

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = _unique_slug(Quiz, self.title)
        super().save(*args, **kwargs)

    @property
    def question_count(self):
        return len(self.questions or [])


class Certification(models.Model):
    """Durable record that a user passed the quiz for a machine."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='certifications')
    machine = models.ForeignKey(Machine, on_delete=models.CASCADE, related_name='certifications')
    quiz = models.ForeignKey(Quiz, on_delete=models.SET_NULL, null=True, blank=True, related_name='certifications')
    score = models.PositiveSmallIntegerField(null=True, blank=True)
    granted_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='certifications_granted',
    )
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_certification'
        ordering = ['granted_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'machine'], name='certification_unique_user_machine'),
        ]

    def __str__(self):
        return f"{self.user.username} certified on {self.machine_id}"


class Booking(models.Model):
    """A user's request to use a machine in a time slot on a given date."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookings')
    machine = models.ForeignKey(Machine, on_delete=models.CASCADE, related_name='bookings')
    date = models.DateField()
    time = models.CharField(max_length=11, help_text="HH:MM or HH:MM-HH:MM")
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING)
    notes = models.TextField(blank=True)

    # Snapshots so listings survive renames
    user_name = models.CharField(max_length=200, blank=True)
    machine_name = models.CharField(max_length=200, blank=True)

    decided_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='decided_bookings',
    )
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_booking'
        ordering = ['date', 'time']
        indexes = [
            models.Index(fields=['machine', 'date'], name='booking_machine_date_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['machine', 'date', 'time'],
                condition=models.Q(status__in=['Pending', 'Approved']),
                name='booking_unique_active_slot',
            ),
        ]

    def __str__(self):
        return f"{self.machine_name or self.machine_id} - {self.date} {self.time} ({self.status})"

    def save(self, *args, **kwargs):
        self.status = reconcile_booking_status(self.status)
        if not self.user_name and self.user_id:
            self.user_name = self.user.get_full_name() or self.user.username
        if not self.machine_name and self.machine_id:
            self.machine_name = self.machine.name
        super().save(*args, **kwargs)

    @property
    def holds_slot(self):
        return self.status in BLOCKING_BOOKING_STATUSES

    @property
    def is_terminal(self):
        return self.status in TERMINAL_BOOKING_STATUSES

    @property
    def can_be_cancelled(self):
        return self.status in BLOCKING_BOOKING_STATUSES


class BookingHistory(models.Model):
    """Audit trail of booking creation and status changes."""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=50)
    old_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20, blank=True)
    details = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_bookinghistory'
        ordering = ['-timestamp']
        verbose_name_plural = 'booking histories'

    def __str__(self):
        return f"{self.booking_id}: {self.action} ({self.old_status} -> {self.new_status})"

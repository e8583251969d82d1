# booking/admin.py
"""
Django admin configuration for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError

from . import admin_actions
from .exceptions import BookingError
from .models import Booking, BookingHistory, Certification, Course, Machine, Quiz, UserProfile
from .status import BookingStatus, MachineStatus


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    verbose_name_plural = 'Profile'


class CertificationInline(admin.TabularInline):
    model = Certification
    fk_name = 'user'
    extra = 0
    readonly_fields = ('granted_at', 'granted_by', 'score', 'quiz')


class UserAdmin(BaseUserAdmin):
    inlines = (UserProfileInline, CertificationInline)


admin.site.unregister(User)
admin.site.register(User, UserAdmin)


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'certification_count', 'is_active', 'created_at')
    list_filter = ('role', 'user__is_active')
    search_fields = ('user__username', 'user__first_name', 'user__last_name', 'user__email')
    readonly_fields = ('created_at', 'updated_at')

    def certification_count(self, obj):
        return len(obj.certification_ids)
    certification_count.short_description = 'Certifications'

    def is_active(self, obj):
        return obj.user.is_active
    is_active.boolean = True
    is_active.short_description = 'Active'


@admin.register(Machine)
class MachineAdmin(admin.ModelAdmin):
    list_display = ('name', 'id', 'category', 'status', 'requires_certification', 'bookable', 'deleted_at')
    list_filter = ('category', 'status', 'requires_certification', 'bookable')
    search_fields = ('id', 'name', 'machine_type', 'description')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'name', 'machine_type', 'category', 'description', 'difficulty', 'specifications')
        }),
        ('Status', {
            'fields': ('status', 'maintenance_note')
        }),
        ('Access', {
            'fields': ('requires_certification', 'bookable')
        }),
        ('System Fields', {
            'fields': ('deleted_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    actions = ['mark_available', 'mark_maintenance']

    def _set_status(self, request, queryset, new_status):
        count = 0
        for machine in queryset:
            try:
                admin_actions.update_machine_status(machine.pk, new_status, actor=request.user)
                count += 1
            except (BookingError, ValidationError) as e:
                self.message_user(request, f'{machine.name}: {e}', level=messages.ERROR)
        self.message_user(request, f'Updated {count} machine(s) to {new_status}.')

    def mark_available(self, request, queryset):
        self._set_status(request, queryset, MachineStatus.AVAILABLE)
    mark_available.short_description = 'Mark selected machines as available'

    def mark_maintenance(self, request, queryset):
        self._set_status(request, queryset, MachineStatus.MAINTENANCE)
    mark_maintenance.short_description = 'Put selected machines under maintenance'


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ('title', 'machine', 'category', 'difficulty', 'deleted_at')
    list_filter = ('category', 'difficulty')
    search_fields = ('title', 'description')


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'machine', 'course', 'question_count', 'passing_score', 'deleted_at')
    list_filter = ('difficulty',)
    search_fields = ('title', 'description')


@admin.register(Certification)
class CertificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'machine', 'score', 'granted_by', 'granted_at')
    list_filter = ('machine',)
    search_fields = ('user__username', 'machine__name')
    readonly_fields = ('granted_at',)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('machine_name', 'user_name', 'date', 'time', 'status', 'decided_by')
    list_filter = ('status', 'machine')
    search_fields = ('user__username', 'user_name', 'machine__name', 'machine_name')
    readonly_fields = ('user_name', 'machine_name', 'created_at', 'updated_at', 'decided_at')
    date_hierarchy = 'date'

    actions = ['approve_selected', 'reject_selected', 'complete_selected', 'cancel_selected']

    def _change_status(self, request, queryset, new_status):
        count = 0
        for booking in queryset:
            try:
                admin_actions.change_booking_status(booking.pk, new_status, request.user)
                count += 1
            except (BookingError, ValidationError) as e:
                self.message_user(request, f'Booking {booking.pk}: {e}', level=messages.WARNING)
        self.message_user(request, f'{count} booking(s) marked {new_status}.')

    def approve_selected(self, request, queryset):
        self._change_status(request, queryset, BookingStatus.APPROVED)
    approve_selected.short_description = 'Approve selected bookings'

    def reject_selected(self, request, queryset):
        self._change_status(request, queryset, BookingStatus.REJECTED)
    reject_selected.short_description = 'Reject selected bookings'

    def complete_selected(self, request, queryset):
        self._change_status(request, queryset, BookingStatus.COMPLETED)
    complete_selected.short_description = 'Mark selected bookings completed'

    def cancel_selected(self, request, queryset):
        self._change_status(request, queryset, BookingStatus.CANCELED)
    cancel_selected.short_description = 'Cancel selected bookings'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('machine', 'user', 'decided_by')


@admin.register(BookingHistory)
class BookingHistoryAdmin(admin.ModelAdmin):
    list_display = ('booking', 'user', 'action', 'old_status', 'new_status', 'timestamp')
    list_filter = ('action',)
    search_fields = ('booking__machine_name', 'user__username', 'action')
    readonly_fields = ('timestamp',)
    date_hierarchy = 'timestamp'

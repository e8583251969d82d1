# booking/views.py
"""
API views for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

import logging

from django.contrib.auth import update_session_auth_hash
from django.contrib.auth.models import User
from django.db.models import Count
from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from . import admin_actions
from .admin_actions import actor_is_admin
from .certification import safety_course_id
from .data_access import data_access
from .eligibility import check_booking_eligibility
from .exceptions import CertificationRefused
from .models import Booking, Certification, Course, Machine, Quiz, UserProfile
from .quiz_service import submit_quiz
from .serializers import (
    BookingCreateSerializer, BookingDecisionSerializer, BookingSerializer, BookingSlotSerializer,
    CertificationSerializer, CourseSerializer, EligibilityQuerySerializer,
    GrantCertificationSerializer, MachineSerializer, MachineStatusSerializer, PasswordChangeSerializer,
    ProfileUpdateSerializer, QuizSerializer, QuizSubmissionSerializer,
    RegisterSerializer, UserProfileSerializer,
)
from .status import BookingStatus, MachineCategory, MachineStatus

logger = logging.getLogger(__name__)

WRITE_ACTIONS = ('create', 'update', 'partial_update', 'destroy')


class IsAdminRole(permissions.BasePermission):
    """Allow access to users holding the admin role."""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and actor_is_admin(request.user))


class IsOwnerOrAdmin(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        return obj.user_id == request.user.pk or actor_is_admin(request.user)


class AdminWriteMixin:
    """Everyone authenticated may read; only admins may write."""

    def get_permissions(self):
        if self.action in WRITE_ACTIONS:
            return [permissions.IsAuthenticated(), IsAdminRole()]
        return super().get_permissions()


class SoftDeleteMixin:
    def perform_destroy(self, instance):
        instance.soft_delete()
        logger.info(f"{instance.__class__.__name__} {instance.pk} soft-deleted by {self.request.user.username}")


class RegisterView(APIView):
    """Create an account and return its API token."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        token, _ = Token.objects.get_or_create(user=user)
        logger.info(f"New user registered: {user.username}")
        return Response(
            {
                'profile': UserProfileSerializer(user.userprofile, context={'request': request}).data,
                'token': token.key,
            },
            status=status.HTTP_201_CREATED,
        )


class PasswordChangeView(APIView):
    """Change the current user's password after checking the old one."""

    def post(self, request):
        serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save(update_fields=['password'])
        update_session_auth_hash(request, request.user)
        logger.info(f"Password changed for {request.user.username}")
        return Response({'message': "Password updated successfully."})


class UserProfileViewSet(viewsets.ReadOnlyModelViewSet):
    """Profiles; admins see everyone, other users only themselves."""
    queryset = UserProfile.objects.select_related('user')
    serializer_class = UserProfileSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['role', 'user__is_active']

    def get_queryset(self):
        queryset = super().get_queryset().order_by('user__username')
        if actor_is_admin(self.request.user):
            return queryset
        return queryset.filter(user=self.request.user)

    def get_permissions(self):
        if self.action in ('grant_certification', 'revoke_certification', 'deactivate', 'activate', 'role'):
            return [permissions.IsAuthenticated(), IsAdminRole()]
        return super().get_permissions()

    @action(detail=False, methods=['get', 'patch'])
    def me(self, request):
        """Read or update the current user's profile."""
        if request.method == 'PATCH':
            serializer = ProfileUpdateSerializer(data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            profile = data_access.update_user(request.user.pk, **serializer.validated_data)
        else:
            profile = data_access.get_user(request.user.pk)
        return Response(self.get_serializer(profile).data)

    @action(detail=True, methods=['get'])
    def certifications(self, request, pk=None):
        profile = self.get_object()
        certifications = Certification.objects.filter(user_id=profile.user_id).select_related('machine', 'granted_by')
        return Response(CertificationSerializer(certifications, many=True).data)

    @action(detail=True, methods=['post'])
    def grant_certification(self, request, pk=None):
        profile = self.get_object()
        serializer = GrantCertificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        granted, reason = data_access.grant_certification(
            profile.user_id, serializer.validated_data['machine'], granted_by=request.user,
        )
        if not granted:
            raise CertificationRefused(
                reason,
                "The safety course must be granted before any other certification.",
                redirect_to=safety_course_id(),
            )
        return Response({'granted': True, 'reason': reason, 'certifications': sorted(profile.certification_ids)})

    @action(detail=True, methods=['post'])
    def revoke_certification(self, request, pk=None):
        profile = self.get_object()
        serializer = GrantCertificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        revoked = admin_actions.revoke_certification(
            profile.user_id, serializer.validated_data['machine'], request.user,
        )
        return Response({'revoked': revoked, 'certifications': sorted(profile.certification_ids)})

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        profile = self.get_object()
        admin_actions.set_user_active(profile.user_id, False, request.user)
        profile.user.refresh_from_db()
        return Response(self.get_serializer(profile).data)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        profile = self.get_object()
        admin_actions.set_user_active(profile.user_id, True, request.user)
        profile.user.refresh_from_db()
        return Response(self.get_serializer(profile).data)

    @action(detail=True, methods=['post'])
    def role(self, request, pk=None):
        profile = self.get_object()
        profile = admin_actions.set_user_role(profile.user_id, request.data.get('role'), request.user)
        return Response(self.get_serializer(profile).data)


class MachineViewSet(AdminWriteMixin, SoftDeleteMixin, viewsets.ModelViewSet):
    """Machines, equipment and safety items."""
    queryset = Machine.objects.active()
    serializer_class = MachineSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['category', 'status', 'requires_certification', 'bookable']

    @action(detail=True, methods=['get', 'put'], url_path='status')
    def machine_status(self, request, pk=None):
        """Read or (admins only) change a machine's status."""
        machine = self.get_object()
        if request.method == 'PUT':
            serializer = MachineStatusSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            machine = data_access.update_machine_status(
                machine.pk,
                serializer.validated_data['status'],
                note=serializer.validated_data.get('note'),
                actor=request.user,
            )
            data = MachineStatusSerializer(machine).data
            data['affected_bookings'] = BookingSerializer(
                admin_actions.affected_bookings(machine), many=True,
            ).data
            return Response(data)
        return Response(MachineStatusSerializer(machine).data)

    @action(detail=True, methods=['get'])
    def eligibility(self, request, pk=None):
        """Advisory check of whether the current user could book this slot."""
        machine = self.get_object()
        query = EligibilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        booking_date = query.validated_data['date']
        existing = Booking.objects.filter(machine=machine, date=booking_date)
        result = check_booking_eligibility(
            request.user.userprofile, machine, booking_date, query.validated_data['time'], existing,
        )
        return Response(result.to_dict())

    @action(detail=True, methods=['get'], permission_classes=[permissions.IsAuthenticated, IsAdminRole])
    def affected_bookings(self, request, pk=None):
        machine = self.get_object()
        bookings = admin_actions.affected_bookings(machine)
        return Response(BookingSerializer(bookings, many=True).data)

    @action(detail=True, methods=['get'])
    def bookings(self, request, pk=None):
        """Bookings for this machine, optionally limited to ?date=YYYY-MM-DD."""
        machine = self.get_object()
        bookings = data_access.list_bookings_for_machine(machine.pk, request.query_params.get('date'))
        if actor_is_admin(request.user):
            return Response(BookingSerializer(bookings, many=True).data)
        data = []
        for booking in bookings:
            if booking.user_id == request.user.pk:
                data.append(BookingSerializer(booking).data)
            elif booking.holds_slot:
                data.append(BookingSlotSerializer(booking).data)
        return Response(data)


class CourseViewSet(AdminWriteMixin, SoftDeleteMixin, viewsets.ModelViewSet):
    queryset = Course.objects.active().select_related('machine')
    serializer_class = CourseSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['machine', 'category', 'difficulty']


class QuizViewSet(AdminWriteMixin, SoftDeleteMixin, viewsets.ModelViewSet):
    queryset = Quiz.objects.active().select_related('machine', 'course')
    serializer_class = QuizSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['machine', 'course']

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """Grade an attempt; a pass certifies the user on the quiz's machine."""
        quiz = self.get_object()
        serializer = QuizSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = submit_quiz(request.user, quiz.pk, serializer.validated_data['answers'])
        return Response(result.to_dict())


class BookingViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.CreateModelMixin,
                     viewsets.GenericViewSet):
    """Bookings; created through the data access layer, changed through status actions."""
    queryset = Booking.objects.select_related('user', 'machine', 'decided_by')
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    filterset_fields = ['machine', 'status', 'date']

    def get_queryset(self):
        queryset = super().get_queryset().order_by('date', 'time')
        if actor_is_admin(self.request.user):
            return queryset
        return queryset.filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = data_access.create_booking(
            request.user.pk,
            serializer.validated_data['machine'],
            serializer.validated_data['date'],
            serializer.validated_data['time'],
            notes=serializer.validated_data.get('notes', ''),
        )
        return Response(self.get_serializer(booking).data, status=status.HTTP_201_CREATED)

    def _decide(self, request, new_status):
        booking = self.get_object()
        serializer = BookingDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = admin_actions.change_booking_status(
            booking.pk, new_status, request.user, notes=serializer.validated_data.get('notes', ''),
        )
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        return self._decide(request, BookingStatus.APPROVED)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._decide(request, BookingStatus.REJECTED)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        return self._decide(request, BookingStatus.COMPLETED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        return self._decide(request, BookingStatus.CANCELED)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated, IsAdminRole])
def admin_dashboard(request):
    """Headline numbers for the admin dashboard."""
    machines = Machine.objects.active()
    bookings_by_status = dict(
        Booking.objects.order_by().values('status').annotate(count=Count('id')).values_list('status', 'count')
    )
    machines_by_status = {value: 0 for value in MachineStatus.values}
    for machine in machines.filter(category=MachineCategory.MACHINE):
        machines_by_status[machine.display_status] += 1

    recent = Booking.objects.select_related('user', 'machine').order_by('-created_at')[:10]
    return Response({
        'users': {
            'total': User.objects.count(),
            'active': User.objects.filter(is_active=True).count(),
            'admins': UserProfile.objects.filter(role=UserProfile.ROLE_ADMIN).count(),
        },
        'machines': {
            'total': machines.count(),
            'bookable': machines.filter(bookable=True).exclude(category=MachineCategory.SAFETY).count(),
            'by_status': machines_by_status,
        },
        'bookings': {
            'total': sum(bookings_by_status.values()),
            'by_status': {value: bookings_by_status.get(value, 0) for value in BookingStatus.values},
            'upcoming': Booking.objects.filter(
                date__gte=timezone.localdate(), status__in=[BookingStatus.PENDING, BookingStatus.APPROVED],
            ).count(),
        },
        'recent_bookings': BookingSerializer(recent, many=True).data,
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def health(request):
    """Liveness check for load balancers and uptime monitors."""
    return Response({
        'status': 'ok',
        'message': "Server is up and running",
        'timestamp': timezone.now().isoformat(),
    })

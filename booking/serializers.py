# booking/serializers.py
"""
DRF serializers for the Learnit Booking.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .admin_actions import actor_is_admin
from .certification import evaluate_certification
from .models import Booking, Certification, Course, Machine, Quiz, UserProfile
from .status import MachineCategory, MachineStatus


class StringIdMixin:
    """Identifiers may be chosen on create but never changed afterwards."""

    def update(self, instance, validated_data):
        validated_data.pop('id', None)
        return super().update(instance, validated_data)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'is_active', 'last_login']
        read_only_fields = ['id', 'username', 'is_active', 'last_login']


class UserProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    full_name = serializers.CharField(source='display_name', read_only=True)
    certifications = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = ['id', 'user', 'full_name', 'role', 'certifications', 'created_at', 'updated_at']
        read_only_fields = ['id', 'role', 'created_at', 'updated_at']

    def get_certifications(self, obj):
        return sorted(obj.certification_ids)


class ProfileUpdateSerializer(serializers.Serializer):
    """Fields a user may change on their own profile."""
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField(required=False)


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("A user with that username already exists.")
        return value

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with that email already exists.")
        return value.lower()

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            first_name=validated_data.get('first_name', ''),
            last_name=validated_data.get('last_name', ''),
        )


class CertificationSerializer(serializers.ModelSerializer):
    machine_name = serializers.CharField(source='machine.name', read_only=True)
    granted_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Certification
        fields = ['id', 'machine', 'machine_name', 'quiz', 'score', 'granted_by', 'granted_at']
        read_only_fields = fields


class GrantCertificationSerializer(serializers.Serializer):
    machine = serializers.CharField(max_length=64)


class MachineSerializer(StringIdMixin, serializers.ModelSerializer):
    display_status = serializers.CharField(read_only=True)
    is_bookable = serializers.BooleanField(read_only=True)
    certified = serializers.SerializerMethodField()

    class Meta:
        model = Machine
        fields = [
            'id', 'name', 'machine_type', 'description', 'category', 'status',
            'display_status', 'maintenance_note', 'requires_certification',
            'bookable', 'is_bookable', 'difficulty', 'specifications', 'certified',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'id': {'required': False}}

    def get_certified(self, obj):
        """Whether the requesting user may operate this machine."""
        request = self.context.get('request')
        if not request or not request.user.is_authenticated:
            return False
        if actor_is_admin(request.user):
            return True
        return evaluate_certification(
            request.user.userprofile, obj.pk, obj.requires_certification, obj.category,
        ).certified

    def get_fields(self):
        fields = super().get_fields()
        if self.instance is not None:
            # Status changes go through the machine status action
            for name in ('status', 'maintenance_note'):
                fields[name].read_only = True
        return fields

    def validate(self, attrs):
        category = attrs.get('category', getattr(self.instance, 'category', MachineCategory.MACHINE))
        if category == MachineCategory.SAFETY and attrs.get('bookable'):
            raise serializers.ValidationError({'bookable': "Safety items cannot be bookable."})
        return attrs


class MachineStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=40)
    note = serializers.CharField(required=False, allow_blank=True)

    def to_representation(self, instance):
        return {
            'id': instance.pk,
            'status': instance.status,
            'display_status': instance.display_status,
            'maintenance_note': instance.maintenance_note,
            'choices': list(MachineStatus.values),
        }


class CourseSerializer(StringIdMixin, serializers.ModelSerializer):
    quizzes = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = [
            'id', 'title', 'description', 'category', 'content', 'machine',
            'difficulty', 'quizzes', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'id': {'required': False}}

    def get_quizzes(self, obj):
        return list(obj.quizzes.filter(deleted_at__isnull=True).values_list('id', flat=True))


class QuizSerializer(StringIdMixin, serializers.ModelSerializer):
    question_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Quiz
        fields = [
            'id', 'title', 'description', 'category', 'course', 'machine',
            'questions', 'question_count', 'passing_score', 'difficulty',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'id': {'required': False}}

    def validate_questions(self, value):
        try:
            Quiz(questions=value).clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict.get('questions', e.messages))
        return value

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get('request')
        if not (request and actor_is_admin(request.user)):
            # Hide the answer key from people taking the quiz
            data['questions'] = [
                {'question': q.get('question'), 'options': q.get('options', [])}
                for q in data.get('questions') or []
                if isinstance(q, dict)
            ]
        return data


class QuizSubmissionSerializer(serializers.Serializer):
    answers = serializers.JSONField()

    def validate_answers(self, value):
        if not isinstance(value, (list, dict)):
            raise serializers.ValidationError("Answers must be a list or an object.")
        return value


class BookingSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    can_cancel = serializers.BooleanField(source='can_be_cancelled', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'user', 'user_name', 'machine', 'machine_name', 'date', 'time',
            'status', 'notes', 'can_cancel', 'decided_by', 'decided_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BookingSlotSerializer(serializers.ModelSerializer):
    """A booking as other users see it: the slot it holds, not who holds it."""

    class Meta:
        model = Booking
        fields = ['id', 'machine', 'date', 'time', 'status']
        read_only_fields = fields


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value):
        try:
            validate_password(value, user=self.context['request'].user)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value


class BookingCreateSerializer(serializers.Serializer):
    machine = serializers.CharField(max_length=64)
    date = serializers.DateField()
    time = serializers.CharField(max_length=11)
    notes = serializers.CharField(required=False, allow_blank=True)


class BookingDecisionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class EligibilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    time = serializers.CharField(max_length=11)

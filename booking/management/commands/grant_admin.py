#!/usr/bin/env python3
"""
Management command to grant or revoke the makerspace admin role.

Usage:
    python manage.py grant_admin username1 username2 ...
    python manage.py grant_admin --email user@example.com
    python manage.py grant_admin --list
    python manage.py grant_admin --remove username
"""

from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth.models import User
from django.db import transaction
from booking.models import UserProfile


class Command(BaseCommand):
    help = 'Grant or revoke the admin role, which bypasses certification checks'

    def add_arguments(self, parser):
        parser.add_argument(
            'usernames',
            nargs='*',
            type=str,
            help='Usernames to grant the admin role',
        )
        parser.add_argument(
            '--email',
            type=str,
            help='Select the user by email address instead of username',
        )
        parser.add_argument(
            '--list',
            action='store_true',
            help='List current admins',
        )
        parser.add_argument(
            '--remove',
            action='store_true',
            help='Revoke the admin role instead of granting it',
        )
        parser.add_argument(
            '--superuser',
            action='store_true',
            help='Also make the user a Django superuser for /admin/ access',
        )

    def handle(self, *args, **options):
        if options['list']:
            self.list_admins()
            return

        users_to_process = []

        if options['email']:
            try:
                users_to_process.append(User.objects.get(email=options['email']))
            except User.DoesNotExist:
                raise CommandError(f'User with email "{options["email"]}" does not exist.')
        elif options['usernames']:
            for username in options['usernames']:
                try:
                    users_to_process.append(User.objects.get(username=username))
                except User.DoesNotExist:
                    self.stdout.write(
                        self.style.ERROR(f'User "{username}" does not exist. Skipping.')
                    )
        else:
            raise CommandError('Please provide usernames, use --email, or --list to view current admins.')

        if not users_to_process:
            self.stdout.write(self.style.WARNING('No valid users found to process.'))
            return

        with transaction.atomic():
            for user in users_to_process:
                if options['remove']:
                    self.remove_admin(user)
                else:
                    self.grant_admin(user, make_superuser=options['superuser'])

        self.stdout.write(
            self.style.SUCCESS(f'Successfully processed {len(users_to_process)} user(s)')
        )

    def grant_admin(self, user, make_superuser=False):
        profile, created = UserProfile.objects.get_or_create(user=user)
        if profile.role != UserProfile.ROLE_ADMIN:
            profile.role = UserProfile.ROLE_ADMIN
            profile.save(update_fields=['role', 'updated_at'])
            self.stdout.write(self.style.SUCCESS(f'Granted admin role to {user.username}'))
        else:
            self.stdout.write(self.style.WARNING(f'User {user.username} is already an admin'))

        if make_superuser and not user.is_superuser:
            user.is_superuser = True
            user.is_staff = True
            user.save(update_fields=['is_superuser', 'is_staff'])
            self.stdout.write(self.style.SUCCESS(f'Made {user.username} a Django superuser'))

    def remove_admin(self, user):
        profile = UserProfile.objects.filter(user=user).first()
        if profile is None or profile.role != UserProfile.ROLE_ADMIN:
            self.stdout.write(self.style.WARNING(f'User {user.username} is not an admin'))
            return
        profile.role = UserProfile.ROLE_STANDARD
        profile.save(update_fields=['role', 'updated_at'])
        self.stdout.write(self.style.SUCCESS(f'Removed admin role from {user.username}'))

    def list_admins(self):
        admins = UserProfile.objects.filter(role=UserProfile.ROLE_ADMIN).select_related('user')

        if not admins.exists():
            self.stdout.write('No admin users found.')
            return

        self.stdout.write(f'Admin users ({admins.count()}):\n')
        for profile in admins.order_by('user__username'):
            user = profile.user
            superuser_status = ' (Django Superuser)' if user.is_superuser else ''
            self.stdout.write(f'  - {user.username} ({user.get_full_name()}){superuser_status}')
            self.stdout.write(f'    Email: {user.email}')
            self.stdout.write(f'    Active: {"Yes" if user.is_active else "No"}')

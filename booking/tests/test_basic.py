"""Basic test to validate Django setup."""
from django.test import TestCase
from django.contrib.auth.models import User
from booking.models import UserProfile


class TestBasicSetup(TestCase):
    """Test basic Django setup and model creation."""

    def test_user_creation(self):
        """Test creating a basic user."""
        user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )
        self.assertEqual(user.username, 'testuser')
        self.assertEqual(user.email, 'test@example.com')

    def test_user_profile_creation(self):
        """Test that user profile is automatically created via signal."""
        user = User.objects.create_user(
            username='testuser2',
            email='test2@example.com',
            password='testpass123',
            first_name='Test',
            last_name='User',
        )

        self.assertTrue(hasattr(user, 'userprofile'))
        profile = user.userprofile
        self.assertEqual(profile.role, UserProfile.ROLE_STANDARD)
        self.assertFalse(profile.is_admin)
        self.assertEqual(profile.certification_ids, frozenset())
        self.assertEqual(str(profile), "Test User (standard)")

    def test_superuser_profile_is_admin(self):
        user = User.objects.create_superuser(
            username='root',
            email='root@example.com',
            password='testpass123'
        )
        self.assertTrue(user.userprofile.is_admin)

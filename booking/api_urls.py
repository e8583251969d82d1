# booking/api_urls.py
"""
API URL configuration for the booking app.

This file is part of Learnit Booking.
Copyright (C) 2025 Learnit Booking Contributors

This software is dual-licensed:
1. GNU General Public License v3.0 (GPL-3.0) - for open source use
2. Commercial License - for proprietary and commercial use

For GPL-3.0 license terms, see LICENSE file.
For commercial licensing, see COMMERCIAL-LICENSE.txt.
"""

from django.urls import path, include
from rest_framework.authtoken.views import obtain_auth_token
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'profiles', views.UserProfileViewSet)
router.register(r'machines', views.MachineViewSet)
router.register(r'courses', views.CourseViewSet)
router.register(r'quizzes', views.QuizViewSet)
router.register(r'bookings', views.BookingViewSet)

app_name = 'api'

urlpatterns = [
    path('', include(router.urls)),

    # Authentication
    path('auth/register/', views.RegisterView.as_view(), name='register'),
    path('auth/token/', obtain_auth_token, name='token'),
    path('auth/password/', views.PasswordChangeView.as_view(), name='password_change'),

    path('health/', views.health, name='health'),

    path('admin/dashboard/', views.admin_dashboard, name='admin_dashboard'),
]

#!/usr/bin/env python
"""
Test runner for the Learnit Booking.
Runs the booking tests with the Django test runner and test settings.
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'booking.tests.test_settings')
    django.setup()

    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2, interactive=False, keepdb=False)

    test_labels = sys.argv[1:] if len(sys.argv) > 1 else ['booking.tests']

    failures = test_runner.run_tests(test_labels)
    sys.exit(1 if failures else 0)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the course catalog."""

from linguadash.core.config.settings import DashboardSettings
from linguadash.domains.enrollment import COURSES, get_course, is_valid_course


class TestCourseCatalog:
    """Tests for course lookup and platform URLs."""

    def test_catalog_contains_telc_levels(self):
        """Test the four telc courses are available."""
        assert list(COURSES) == ["telc_a1", "telc_a2", "telc_b1", "telc_b2"]
        assert COURSES["telc_b2"].level == "B2"

    def test_unknown_course(self):
        """Test unknown and empty ids are invalid."""
        assert get_course("telc_c1") is None
        assert get_course(None) is None
        assert is_valid_course("telc_a1") is True
        assert is_valid_course("") is False

    def test_lessons_url_uses_hyphenated_host(self, dashboard_settings):
        """Test the course id maps to the platform subdomain."""
        course = get_course("telc_a1")

        assert course.platform_url(dashboard_settings) == "https://telc-a1.thesmartlanguage.com"
        assert course.lessons_url(dashboard_settings) == (
            "https://telc-a1.thesmartlanguage.com/lessons"
        )

    def test_platform_domain_is_configurable(self):
        """Test the domain and scheme come from settings."""
        settings = DashboardSettings(course_platform_domain="example.test", course_platform_scheme="http")

        assert get_course("telc_b1").platform_url(settings) == "http://telc-b1.example.test"

"""
Marketplace Application Configuration

This module contains the Django application configuration for the course
marketplace. It defines the application's metadata and default field
configuration.

Author: Marketplace Development Team
Version: 1.0.0
"""

from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    """
    Configuration class for the marketplace Django application.

    Attributes:
        default_auto_field: Default primary key field type for models
        name: Application name for Django registration
        verbose_name: Human-readable application name for admin interface
    """

    default_auto_field: str = "django.db.models.BigAutoField"
    name: str = "marketplace"
    verbose_name: str = "Course Marketplace"

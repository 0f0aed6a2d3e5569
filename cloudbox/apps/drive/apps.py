"""Django app configuration for drive app."""

from typing import override

from django.apps import AppConfig


class DriveConfig(AppConfig):
    """Configuration for drive app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cloudbox.apps.drive'
    label = 'drive'
    verbose_name = 'Drive'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from cloudbox.apps.drive import signals  # noqa: F401

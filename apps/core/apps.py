from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Refuse to start a non-debug deployment with weak identity settings.
        """
        if settings.DEBUG:
            return

        self._validate_identity_configuration()
        logger.info("Startup security validations passed")

    def _validate_identity_configuration(self):
        """Validate the identity provider's token secret."""
        idp_secret = getattr(settings, 'IDP_JWT_SECRET', None)
        secret_key = getattr(settings, 'SECRET_KEY', None)

        if not idp_secret:
            raise ImproperlyConfigured(
                "IDP_JWT_SECRET must be set to the identity provider's token secret."
            )

        if len(idp_secret) < 32:
            raise ImproperlyConfigured(
                f"IDP_JWT_SECRET must be at least 32 characters long. "
                f"Current length: {len(idp_secret)}."
            )

        if idp_secret == secret_key:
            raise ImproperlyConfigured(
                "IDP_JWT_SECRET must be different from SECRET_KEY."
            )

        if idp_secret in getattr(settings, 'DEVELOPMENT_SECRETS', ()):
            raise ImproperlyConfigured(
                "IDP_JWT_SECRET is still the development default."
            )

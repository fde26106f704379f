"""
Identity mirror of the external identity provider.

Credentials and sessions live with the provider. This table only mirrors
the subject id, e-mail and display name so memberships and audit entries
have something to point at.
"""
import logging
from django.db import models
from apps.core.models import BaseModel

logger = logging.getLogger(__name__)


class UserManager(models.Manager):
    """
    Manager for User queries.
    """

    def active(self):
        """Return only active users."""
        return self.filter(is_active=True)

    def by_email(self, email):
        """Find user by email."""
        return self.filter(email__iexact=self.normalize_email(email)).first()

    def get_or_create_mirror(self, email, name=''):
        """
        Return the mirror record for ``email``, creating it when unknown.

        Returns a ``(user, created)`` tuple.
        """
        user = self.by_email(email)
        if user is not None:
            return user, False
        user = self.create(email=self.normalize_email(email), name=name or '')
        logger.info("Created identity mirror", extra={'user_id': str(user.id)})
        return user, True

    def create_user(self, email, **extra_fields):
        if not email:
            raise ValueError('Email address is required')
        extra_fields.setdefault('is_active', True)
        return self.create(email=self.normalize_email(email), **extra_fields)

    @classmethod
    def normalize_email(cls, email):
        """
        Normalize the email address by lowercasing the domain part.
        """
        email = (email or '').strip()
        try:
            email_name, domain_part = email.rsplit('@', 1)
        except ValueError:
            pass
        else:
            email = email_name + '@' + domain_part.lower()
        return email

    def get_by_natural_key(self, email):
        return self.get(**{self.model.USERNAME_FIELD: email})


class User(BaseModel):
    """
    A subject known to the identity provider.

    ``id`` equals the provider's subject claim. One user may hold
    memberships, with different roles, in several organizations.

    This is the AUTH_USER_MODEL. It carries no password.
    """

    email = models.EmailField(
        unique=True,
        help_text="User email address (unique globally)"
    )
    name = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive users are treated as anonymous"
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    @property
    def is_authenticated(self):
        """Always True for a resolved subject."""
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_staff(self):
        return False

    def natural_key(self):
        return (self.email,)

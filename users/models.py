from django.db import models
from django.conf import settings
from django.contrib.auth.hashers import make_password, check_password
from uuid import uuid4

from datetime import timedelta
from django.utils.timezone import now

from .roles import ROLE_CHOICES, Role


class User(models.Model):
    email = models.EmailField(max_length=255, unique=True)
    password_hash = models.CharField(max_length=255)
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    school = models.ForeignKey(
        'schools.School',
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='members'
    )
    phone_number = models.CharField(max_length=20, blank=True, null=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return self.email

    def set_password(self, raw_password):
        """Hash and set the password."""
        self.password_hash = make_password(raw_password)

    def check_password(self, raw_password):
        """Check if the raw password matches the hashed password."""
        return check_password(raw_password, self.password_hash)

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_enum(self):
        return Role.parse(self.role)


class Session(models.Model):
    """Bearer token issued at login."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='session_info')
    token = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(db_index=True, null=True)
    is_expired = models.BooleanField(default=False)

    @classmethod
    def create_session(cls, user, duration_hours=None):
        if duration_hours is None:
            duration_hours = settings.SESSION_DURATION_HOURS
        expires_at = now() + timedelta(hours=duration_hours)
        return cls.objects.create(user=user, expires_at=expires_at)

    @classmethod
    def cleanup_expired(cls):
        cls.objects.filter(expires_at__lt=now()).update(is_expired=True)

    def has_lapsed(self):
        return self.expires_at is not None and self.expires_at < now()

    def expire(self):
        self.is_expired = True
        self.save(update_fields=['is_expired'])


def user_to_dict(user):
    return {
        'id': user.id,
        'name': user.get_full_name(),
        'email': user.email,
        'phone': user.phone_number or '',
        'role': user.role,
        'school_id': user.school_id,
    }

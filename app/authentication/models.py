"""
Authentication models.

This module defines the member identity the chat app references:
- User: Custom user model with email-based authentication

Accounts are created and managed by the account service; chat only needs a
stable id and something to show next to a message.

Related files:
    - managers.py: Custom user manager for email-based creation
    - chat/models.py: Groups and messages referencing User
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        display_name: Name shown to other group members (optional)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email='user@example.com',
            password='securepassword',
            display_name='Ada',
        )
    """

    # Primary identifier (replaces username)
    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    display_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Name shown to other members in chat groups",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """
        Return the name other members see.

        Returns:
            str: display_name, or the email if no display name is set.
        """
        return self.display_name or self.email

    def get_short_name(self):
        """Return display_name, or the local part of the email."""
        return self.display_name or self.email.split("@")[0]

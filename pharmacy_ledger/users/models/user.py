"""
PATH: users/models/user.py

CUSTOM USER MODEL

Staff identity for the ledger:
- Every stock movement, sale and alert acknowledgement names the user who performed it.
- role drives capabilities (see permissions/roles.py).
- Login by username; email is optional but unique when present.
"""

from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models

from permissions.roles import (
    ROLE_ADMIN,
    ROLE_AUDITOR,
    ROLE_CASHIER,
    ROLE_MANAGER,
    ROLE_PHARMACIST,
    ROLE_STOCK_CLERK,
)


# ---------------- USER MANAGER ----------------
class UserManager(BaseUserManager):
    def create_user(self, username, password=None, **extra_fields):
        username = (username or "").strip()
        if not username:
            raise ValueError("username is required")

        email = (extra_fields.pop("email", None) or "").strip()
        extra_fields.setdefault("is_active", True)

        user = self.model(
            username=username,
            email=self.normalize_email(email) or None,
            **extra_fields,
        )

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, username, password=None, **extra_fields):
        if not password:
            raise ValueError("Superuser must have a password")

        extra_fields.setdefault("role", ROLE_ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True")

        return self.create_user(username, password=password, **extra_fields)


# ---------------- USER MODEL ----------------
class User(AbstractBaseUser, PermissionsMixin):
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_PHARMACIST, "Pharmacist"),
        (ROLE_CASHIER, "Cashier"),
        (ROLE_STOCK_CLERK, "Stock Clerk"),
        (ROLE_AUDITOR, "Auditor"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    username = models.CharField(max_length=150, unique=True)
    email = models.EmailField(unique=True, null=True, blank=True)

    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CASHIER)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "username"
    REQUIRED_FIELDS = []

    class Meta:
        ordering = ["username"]

    def __str__(self):
        return f"{self.username} ({self.role})"

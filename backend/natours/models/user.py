"""
Database model for users.
Represents a user account in the system, containing authentication credentials,
profile information, role-based access control and password reset state.
"""
import uuid
from enum import Enum
from typing import Iterable

from tortoise import fields, models


class Role(str, Enum):
    """Closed set of roles; capability checks go through Role.allows."""

    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"

    @classmethod
    def allows(cls, role: "Role | str", allowed: Iterable["Role | str"]) -> bool:
        try:
            current = cls(role)
        except ValueError:
            return False
        return current in {cls(r) for r in allowed}


class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Reviews (one-to-many, via related_name="reviews")
    - Guides many Tours (many-to-many, via related_name="guided_tours")

    Security:
    - Password is stored as a hash and never serialized
    - Reset token is stored as a sha256 hash of the emailed value
    - Inactive users are hidden from every default read
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    name = fields.CharField(max_length=256)
    email = fields.CharField(max_length=256, unique=True, index=True)  # Always stored lower-cased
    photo = fields.CharField(max_length=256, default="default.jpg")
    role = fields.CharEnumField(Role, max_length=16, default=Role.USER)
    password_hash = fields.CharField(max_length=255)  # argon2 hash, never plain text
    password_changed_at = fields.DatetimeField(null=True)
    password_reset_token = fields.CharField(max_length=64, null=True, index=True)  # sha256 hex
    password_reset_expires = fields.DatetimeField(null=True)
    active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name

"""
Bootstrap module for application initialization.
Handles initial setup tasks such as creating default admin user on first startup.
"""
import os
import logging
from natours.models.user import Role, User
from natours.core.security import hash_password

logger = logging.getLogger("uvicorn.error")

async def ensure_default_admin() -> User | None:
    """
    If no admin exists in the database, create a default admin based on environment variables.
    Only takes effect under the following conditions:
      - Currently no active user with role="admin"
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
    Environment variables:
      ADMIN_NAME     (default: "Admin")
      ADMIN_EMAIL    (default: "admin@natours.io")
      ADMIN_PASSWORD (required, otherwise won't create)
    """
    has_admin = await User.filter(role=Role.ADMIN, active=True).exists()
    if has_admin:
        return None

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return None

    admin_name = os.getenv("ADMIN_NAME", "Admin")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@natours.io").lower()

    # Email is unique; an existing regular account with that address is promoted instead
    existing = await User.get_or_none(email=admin_email)
    if existing:
        existing.role = Role.ADMIN
        existing.active = True
        await existing.save(update_fields=["role", "active"])
        logger.warning("[bootstrap] Promoted existing user to admin -> email=%s id=%s", existing.email, existing.id)
        return existing

    u = await User.create(
        name=admin_name,
        email=admin_email,
        password_hash=hash_password(admin_password),  # Hash password before storing
        role=Role.ADMIN,
    )
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", u.email, u.id)
    return u

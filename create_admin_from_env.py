"""
Script to create the first admin from environment variables.
Run it after `alembic upgrade head` (or recreate_db.py) with ADMIN_EMAIL and
ADMIN_PASSWORD set; ADMIN_NAME and ADMIN_ROLE are optional.
"""
import logging
import os
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.config import settings
from portal.database import SessionLocal
from portal.models.admin import Admin, AdminRole
from portal.utils.security import get_password_hash

logger = logging.getLogger(__name__)


def create_admin_from_env(db: Optional[Session] = None) -> bool:
    """Create an admin from environment variables; False when skipped."""
    owns_session = db is None
    db = db or SessionLocal()

    try:
        email = os.getenv("ADMIN_EMAIL", "").strip() or settings.ADMIN_EMAIL
        password = os.getenv("ADMIN_PASSWORD", "").strip() or settings.ADMIN_PASSWORD
        name = os.getenv("ADMIN_NAME", "").strip() or settings.ADMIN_NAME
        role_str = os.getenv("ADMIN_ROLE", "").strip() or settings.ADMIN_ROLE

        if not email or not password:
            return False

        if db.query(Admin).filter(Admin.email == email).first():
            return False

        if len(password) < 6:
            logger.warning("Admin password too short, skipping admin creation")
            return False

        try:
            role = AdminRole(role_str.lower())
        except ValueError:
            role = AdminRole.SUPER_ADMIN

        admin = Admin(
            email=email,
            password_hash=get_password_hash(password),
            name=name or "Admin",
            role=role,
            is_active=True
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)

        logger.info("Admin %s created with role %s", admin.email, admin.role.value)
        return True

    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Error creating admin from env: {e}")
        return False
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    created = create_admin_from_env()
    print("[SUCCESS] Admin created" if created else "[INFO] No admin created")

"""
Admin Dependencies for Authentication and Authorization
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.admin import Admin, AdminRole
from portal.utils.security import decode_token

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db)
) -> Admin:
    """Get current authenticated admin"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None:
        logger.debug("Admin token decode failed - invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # A valid user token is authenticated but not an admin
    admin_id = payload.get("adminId")
    if not admin_id or not payload.get("isAdmin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )

    admin = db.query(Admin).filter(Admin.id == str(admin_id)).first()
    if admin is None:
        logger.error(f"Admin not found in database with ID: {admin_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is inactive"
        )

    return admin


async def require_admin_or_super_admin(
    current_admin: Admin = Depends(get_current_admin)
) -> Admin:
    """Require admin or super admin role (anything that moves money or changes settings)"""
    if current_admin.role not in [AdminRole.SUPER_ADMIN, AdminRole.ADMIN]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin or super admin role required."
        )
    return current_admin

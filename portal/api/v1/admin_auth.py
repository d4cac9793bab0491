"""
Admin Authentication Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from datetime import datetime
from portal.database import get_db
from portal.schemas.admin import AdminLogin, AdminResponse
from portal.models.admin import Admin
from portal.utils.security import verify_password, create_admin_token
from portal.api.admin_deps import get_current_admin
from portal.utils.admin_activity import log_admin_activity

router = APIRouter()


@router.post("/login")
async def admin_login(
    credentials: AdminLogin,
    request: Request,
    db: Session = Depends(get_db)
):
    """Admin login"""
    admin = db.query(Admin).filter(Admin.email == credentials.email).first()

    if not admin or not verify_password(credentials.password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is inactive"
        )

    admin.last_login = datetime.utcnow()
    db.commit()

    token = create_admin_token(admin.id, admin.email, admin.role.value)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="admin_login",
        request=request
    )

    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "admin": AdminResponse.model_validate(admin).model_dump(mode="json"),
    }


@router.get("/me")
async def get_current_admin_info(admin: Admin = Depends(get_current_admin)):
    return {"success": True, "admin": AdminResponse.model_validate(admin).model_dump(mode="json")}

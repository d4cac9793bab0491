"""
Admin Settings Management Endpoints
"""
import math
from datetime import datetime
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.schemas.settings import SettingsUpdate
from portal.models.admin import Admin
from portal.api.admin_deps import get_current_admin, require_admin_or_super_admin
from portal.services.settings_service import (
    EXAM_START_AT, HOME_HERO_IMAGE_URL, MIN_BANK_TRANSFER, MIN_TRANSFER_AMOUNT,
    delete_setting, get_public_settings, update_setting,
)
from portal.utils.admin_activity import log_admin_activity

router = APIRouter()

NUMERIC_KEYS = (MIN_TRANSFER_AMOUNT, MIN_BANK_TRANSFER)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _parse_iso_datetime(value: str) -> datetime:
    # fromisoformat before 3.11 does not take a trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@router.get("")
async def read_settings(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return {"success": True, **get_public_settings(db)}


@router.put("")
async def update_settings(
    body: SettingsUpdate,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """
    Update runtime settings. Only keys present in the body are touched.
    Minimums must be numbers; examStartAt an ISO datetime and
    homeHeroImageUrl an http(s) URL, either cleared with null or "".
    """
    provided = body.model_fields_set
    changes = {}

    for key in NUMERIC_KEYS:
        if key not in provided:
            continue
        value = getattr(body, key)
        if not _is_number(value) or value < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{key} must be a non-negative number"
            )
        changes[key] = value

    if EXAM_START_AT in provided:
        value = body.examStartAt
        if value in (None, ""):
            changes[EXAM_START_AT] = None
        else:
            try:
                _parse_iso_datetime(value if isinstance(value, str) else "")
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="examStartAt must be an ISO datetime"
                )
            changes[EXAM_START_AT] = value

    if HOME_HERO_IMAGE_URL in provided:
        value = body.homeHeroImageUrl
        if value in (None, ""):
            changes[HOME_HERO_IMAGE_URL] = None
        elif isinstance(value, str) and _is_http_url(value.strip()):
            changes[HOME_HERO_IMAGE_URL] = value.strip()
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="homeHeroImageUrl must be an http(s) URL"
            )

    for key, value in changes.items():
        if value is None:
            delete_setting(db, key, commit=False)
        else:
            update_setting(db, key, value, commit=False)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="settings_updated",
        entity_type="settings",
        details={"keys": sorted(changes)},
        request=request,
        commit=False,
    )
    db.commit()

    return {"success": True, "message": "Updated", **get_public_settings(db)}

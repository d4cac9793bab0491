from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.schemas.settings import PublicSettings
from portal.services.settings_service import get_public_settings

router = APIRouter()


@router.get("", response_model=PublicSettings)
def read_public_settings(db: Session = Depends(get_db)):
    """Public settings; keys that were never set come back as null."""
    return get_public_settings(db)

from decimal import Decimal
from typing import Any, Optional
from sqlalchemy.orm import Session
from portal.models.settings import Settings

MIN_TRANSFER_AMOUNT = "minTransferAmount"
MIN_BANK_TRANSFER = "minBankTransfer"
EXAM_START_AT = "examStartAt"
HOME_HERO_IMAGE_URL = "homeHeroImageUrl"

DEFAULT_MIN_TRANSFER_AMOUNT = Decimal("100")
DEFAULT_MIN_BANK_TRANSFER = Decimal("500")

PUBLIC_SETTING_KEYS = (MIN_TRANSFER_AMOUNT, MIN_BANK_TRANSFER, EXAM_START_AT, HOME_HERO_IMAGE_URL)


def get_setting(db: Session, key: str) -> Optional[Any]:
    """Get a setting value by key, None when unset"""
    setting = db.query(Settings).filter(Settings.key == key).first()
    return setting.value if setting else None


def update_setting(db: Session, key: str, value: Any, commit: bool = True) -> None:
    """Update or create a setting"""
    setting = db.query(Settings).filter(Settings.key == key).first()
    if setting:
        setting.value = value
    else:
        db.add(Settings(key=key, value=value))
    if commit:
        db.commit()


def delete_setting(db: Session, key: str, commit: bool = True) -> None:
    db.query(Settings).filter(Settings.key == key).delete(synchronize_session=False)
    if commit:
        db.commit()


def get_numeric_setting(db: Session, key: str, default: Decimal) -> Decimal:
    """Numeric setting as Decimal; anything that is not a JSON number falls back to the default."""
    value = get_setting(db, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return Decimal(str(value))


def get_min_transfer_amount(db: Session) -> Decimal:
    return get_numeric_setting(db, MIN_TRANSFER_AMOUNT, DEFAULT_MIN_TRANSFER_AMOUNT)


def get_min_bank_transfer(db: Session) -> Decimal:
    return get_numeric_setting(db, MIN_BANK_TRANSFER, DEFAULT_MIN_BANK_TRANSFER)


def get_public_settings(db: Session) -> dict:
    rows = db.query(Settings).filter(Settings.key.in_(PUBLIC_SETTING_KEYS)).all()
    by_key = {row.key: row.value for row in rows}
    return {key: by_key.get(key) for key in PUBLIC_SETTING_KEYS}

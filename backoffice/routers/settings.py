"""
Settings Endpoints for the restaurant back office
GET  /api/settings  - return all settings
POST /api/settings  - update settings
"""

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from sqlalchemy.orm import Session

from backoffice import config
from backoffice.api.schemas import SettingUpdate
from backoffice.database import get_db, get_setting, set_setting, get_all_settings
from backoffice.scheduling.shift_validation import OvertimeRules

router = APIRouter(prefix="/api/settings", tags=["settings"])


# Default settings applied on read for any key not stored yet
DEFAULTS: Dict[str, Any] = {
    "work_week_start": config.DEFAULT_WORK_WEEK_START,   # 0 = Sunday
    "overtime_enabled": True,
    "daily_overtime_minutes": int(config.DAILY_OVERTIME_HOURS * 60),
    "weekly_overtime_minutes": int(config.OVERTIME_WEEKLY_HOURS * 60),
    "default_markup": config.DEFAULT_MARKUP_MULTIPLIER,
    "markup_by_category": {},       # category -> retail multiplier
    "tip_share_method": "hours",
    "role_weights": {},             # role -> tip pool weight
    "business_name": "",
    "business_address_line1": "",
    "business_address_line2": "",
    "business_city": "",
    "business_state": "",
    "business_zip": "",
}


def load_settings(db: Session) -> Dict[str, Any]:
    """Stored settings merged over defaults."""
    return {**DEFAULTS, **get_all_settings(db)}


def overtime_rules(db: Session) -> OvertimeRules:
    return OvertimeRules(
        enabled=bool(get_setting(db, "overtime_enabled", DEFAULTS["overtime_enabled"])),
        daily_threshold_minutes=int(get_setting(db, "daily_overtime_minutes", DEFAULTS["daily_overtime_minutes"])),
        weekly_threshold_minutes=int(get_setting(db, "weekly_overtime_minutes", DEFAULTS["weekly_overtime_minutes"])),
    )


@router.get("")
async def get_settings_endpoint():
    """Return every stored setting, merged with defaults for any missing keys."""
    def _sync():
        db = get_db()
        try:
            return load_settings(db)
        finally:
            db.close()

    return await asyncio.to_thread(_sync)


@router.post("")
async def update_settings(body: SettingUpdate):
    """Create or update one or more settings."""
    if not body.settings:
        raise HTTPException(status_code=400, detail="No settings provided")

    def _sync():
        db = get_db()
        try:
            for key, value in body.settings.items():
                set_setting(db, key, value)
            return {"status": "ok", "updated": list(body.settings.keys())}
        finally:
            db.close()

    return await asyncio.to_thread(_sync)

"""
app/api/settings.py

Library settings endpoints (slots and pricing, email, Telegram bots, templates).
"""

from fastapi import APIRouter, Depends

from app.core.logging import get_logger
from app.models.library_settings import LibrarySettings
from app.schemas.settings import UpdateSettingsRequest, PASSWORD_MASK
from app.services.store import SeatStore, get_store

logger = get_logger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


def masked(library_settings: LibrarySettings) -> LibrarySettings:
    if not library_settings.email_password:
        return library_settings
    return library_settings.model_copy(update={"email_password": PASSWORD_MASK})


@router.get("", response_model=LibrarySettings)
async def get_settings(store: SeatStore = Depends(get_store)):
    return masked(store.library_settings)


@router.put("", response_model=LibrarySettings)
async def update_settings(request: UpdateSettingsRequest, store: SeatStore = Depends(get_store)):
    updated = await store.update_settings(request.changes())
    return masked(updated)

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.database import get_db_session
from atelier.store_settings.service import StoreSettingsService


def get_store_settings_service(
    db: Annotated[AsyncSession, Depends(get_db_session)]
) -> StoreSettingsService:
    return StoreSettingsService(db)


StoreSettingsServiceDep = Annotated[StoreSettingsService, Depends(get_store_settings_service)]

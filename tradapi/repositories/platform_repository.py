from typing import Any, Dict

from sqlalchemy.orm import Session

from tradapi.models.platform import PlatformSetting
from tradapi.repositories.base import BaseRepository
from tradapi.schemas.catalog import PlatformSettingRecord

POINTS_CONFIG_KEY = "points_config"


class PlatformSettingsRepository(BaseRepository[PlatformSetting, PlatformSettingRecord]):
    def __init__(self, db: Session):
        super().__init__(PlatformSetting, PlatformSettingRecord, db)

    def get_value(self, key: str) -> Dict[str, Any]:
        record = self.get_by_id(key)
        if record is None or not isinstance(record.value, dict):
            return {}
        return record.value

    def get_points_config(self) -> Dict[str, Any]:
        return self.get_value(POINTS_CONFIG_KEY)

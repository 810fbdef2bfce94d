from sqlalchemy import Column, JSON, String

from tradapi.models.base import BaseModel


class PlatformSetting(BaseModel):
    """Operator-tunable settings stored as JSON documents (e.g. points_config)"""

    __tablename__ = "platform_settings"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False, default=dict)

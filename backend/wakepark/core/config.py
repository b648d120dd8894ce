# backend/wakepark/core/config.py
from decimal import Decimal
import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

_BACKEND_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Engine settings.

    Values come from environment variables prefixed with ``WAKEPARK_`` or from
    ``backend/.env``. Every field has a development default so the engine can be
    imported without any environment at all.
    """

    model_config = SettingsConfigDict(
        env_prefix="WAKEPARK_",
        env_file=_BACKEND_ROOT / ".env",
        extra="ignore",
        validate_assignment=True,
    )

    environment: str = Field(default="development")
    database_url: str = Field(default="sqlite:///./wakepark.db")

    # Facility
    facility_timezone: str = Field(default="Europe/Riga")
    slot_duration_minutes: int = Field(default=30)
    minimum_slot_price: Decimal = Field(default=Decimal("15"))
    equipment_rental_fee: Decimal = Field(default=Decimal("30"))
    booking_reference_prefix: str = Field(default="WB")

    # Grid rendering
    grid_padding_hours: int = Field(default=1, ge=0, le=3)
    visibility_weeks: int = Field(default=4, ge=1, le=52)

    # Observability
    log_level: str = Field(default="INFO")
    slow_operation_threshold_seconds: float = Field(default=1.0, gt=0)

    @field_validator("facility_timezone")
    @classmethod
    def validate_facility_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("slot_duration_minutes")
    @classmethod
    def validate_slot_duration(cls, value: int) -> int:
        # Grouping and the grid both assume one fixed slot length.
        if value != 30:
            raise ValueError("slot_duration_minutes must be 30")
        return value

    @field_validator("booking_reference_prefix")
    @classmethod
    def normalize_reference_prefix(cls, value: str) -> str:
        cleaned = value.strip().upper()
        if not cleaned.isalnum():
            raise ValueError("booking_reference_prefix must be alphanumeric")
        return cleaned

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = Settings()

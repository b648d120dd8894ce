# backend/wakepark/schemas/customer.py
"""Customer contact details, validated once before they reach a service."""

import re
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..core.enums import ExperienceLevel
from ._strict_base import StrictRequestModel

PHONE_PATTERN = re.compile(r"^[0-9]{10,15}$")


class CustomerDetails(StrictRequestModel):
    """Contact data captured with every booking."""

    customer_name: str = Field(..., min_length=2, max_length=120)
    phone_number: str
    email: Optional[EmailStr] = None
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    equipment_rental: bool = False
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("customer_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        cleaned = v.strip()
        if len(cleaned) < 2:
            raise ValueError("customer_name must have at least 2 characters")
        return cleaned

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        digits = re.sub(r"[\s\-()+]", "", v)
        if not PHONE_PATTERN.match(digits):
            raise ValueError("phone_number must contain 10 to 15 digits")
        return digits

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip().lower()

"""Data models for appointment text extraction."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ExtractedAppointmentInfo(BaseModel):
    """Best-effort booking details read from an event's free text."""

    client_name: str = Field(..., description="Client name or the unknown-client sentinel")
    pet_info: str = Field(default="", description="Breed/species keywords and leftover text")
    amount: Optional[Decimal] = Field(default=None, description="Price, if one was found")
    services: List[str] = Field(..., min_length=1, description="Requested services")
    phone: Optional[str] = Field(default=None, description="First phone number found")
    address: Optional[str] = Field(default=None, description="Normalized location")
    original_summary: str = Field(..., description="Summary as read from the calendar")

    model_config = ConfigDict(frozen=True)

    @field_serializer("amount", when_used="unless-none")
    def serialize_amount(self, amount: Decimal) -> str:
        return str(amount)

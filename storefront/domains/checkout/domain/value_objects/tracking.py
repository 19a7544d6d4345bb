"""
Shipment tracking value objects.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from storefront.core.domain import ValidationException, ValueObject

AWB_PATTERN = re.compile(r"^\d{10,12}$")

DEFAULT_COURIER = "ST Courier"
TRACKING_URL_TEMPLATES = {
    "st courier": "https://www.stcourier.com/track-consignment?tracking_no={awb}",
}


@dataclass(frozen=True)
class AwbNumber(ValueObject):
    """Air waybill number: 10 to 12 digits once spaces are removed."""

    value: str

    def _validate(self) -> None:
        cleaned = re.sub(r"\s+", "", self.value or "")
        if not AWB_PATTERN.match(cleaned):
            raise ValidationException(
                "AWB number must be 10 to 12 digits",
                field="tracking_number",
                reason="INVALID_AWB",
            )
        object.__setattr__(self, "value", cleaned)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TrackingInfo(ValueObject):
    """Carrier metadata attached to an order when it ships."""

    tracking_number: AwbNumber
    courier: str
    shipped_at: datetime
    estimated_delivery: date

    @classmethod
    def create(
        cls,
        tracking_number: str,
        shipped_at: datetime,
        courier: str | None = None,
        estimated_delivery: date | None = None,
        delivery_days: int = 7,
    ) -> "TrackingInfo":
        return cls(
            tracking_number=AwbNumber(tracking_number),
            courier=courier or DEFAULT_COURIER,
            shipped_at=shipped_at,
            estimated_delivery=estimated_delivery or (shipped_at + timedelta(days=delivery_days)).date(),
        )

    @property
    def tracking_url(self) -> str | None:
        template = TRACKING_URL_TEMPLATES.get(self.courier.lower())
        return template.format(awb=self.tracking_number.value) if template else None

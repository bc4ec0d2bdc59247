"""
Boundary models for the content and prayer-time APIs.

Raw JSON is validated here and converted into the frozen domain models;
nothing loosely typed travels further in.
"""

from datetime import date, datetime, time
from typing import Any, Optional

from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .models import ContentItem, PrayerSchedule


class ContentRecord(BaseModel):
    """One record from the content endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = ""
    media_ref: str = Field(
        default="",
        validation_alias=AliasChoices("media_ref", "media_url", "content_url", "url"),
    )
    is_active: StrictBool
    display_order: int = 0
    sponsorship_amount: float = Field(default=0.0, ge=0)
    duration: Optional[int] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("duration", "carousel_duration"),
    )
    sponsorship_tier: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Numeric primary keys are accepted and treated as opaque strings
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("display_order", "sponsorship_amount", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    def to_item(self) -> ContentItem:
        return ContentItem(
            id=self.id,
            title=self.title,
            media_ref=self.media_ref,
            sponsorship_amount=self.sponsorship_amount,
            is_active=self.is_active,
            display_order=self.display_order,
            duration_seconds=self.duration,
            sponsorship_tier=self.sponsorship_tier,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class PrayerScheduleRecord(BaseModel):
    """Envelope returned by the prayer-time endpoint."""

    model_config = ConfigDict(extra="ignore")

    zone: str = Field(min_length=1)
    schedule_date: date = Field(validation_alias="date")
    times: dict[str, Any]


def parse_content_records(payload: Any) -> list[ContentItem]:
    """Validate raw content records, dropping the ones that do not fit.

    Args:
        payload: Decoded JSON, either a list of records or {"data": [...]}

    Returns:
        Valid items in payload order (inactive ones included)

    Raises:
        ValidationError: If the payload is not a list or data envelope
    """
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise ValidationError(
            f"Expected a list of content records, got {type(payload).__name__}"
        )

    items: list[ContentItem] = []
    for position, raw in enumerate(payload):
        try:
            items.append(ContentRecord.model_validate(raw).to_item())
        except PydanticValidationError as e:
            record_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning(
                f"Dropping content record #{position} (id={record_id!r}): "
                f"{e.error_count()} validation error(s)"
            )
    return items


def _parse_time_of_day(value: Any) -> Optional[time]:
    """Parse "HH:MM" or "HH:MM:SS"; None when unparseable.

    A UTC offset is dropped: times are wall-clock times in the zone's
    local time, compared against the display's naive clock.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = time.fromisoformat(value.strip())
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def parse_prayer_schedule(payload: Any) -> PrayerSchedule:
    """Validate a prayer-time response into a PrayerSchedule.

    Individual prayer entries with an unreadable time are dropped.

    Raises:
        ValidationError: If the envelope (zone, date, times) is malformed
    """
    try:
        record = PrayerScheduleRecord.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed prayer schedule: {e}") from e

    times: dict[str, time] = {}
    for name, raw in record.times.items():
        parsed = _parse_time_of_day(raw)
        if parsed is None:
            logger.warning(f"Dropping prayer time {name}={raw!r} for zone {record.zone}")
            continue
        times[name.lower()] = parsed

    return PrayerSchedule(zone_id=record.zone, date=record.schedule_date, times=times)

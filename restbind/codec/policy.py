"""
SerializationPolicy: the immutable JSON policy shared by every call of a client.

A policy is validated once at construction and frozen afterwards, so calls
running on different threads read it without any locking.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from restbind.codec.naming import NamingConvention
from restbind.errors import ConfigurationError

DEFAULT_DATE_FORMAT = "%Y-%m-%d"

# Day, month and year are all distinct so a swapped format still round-trips
# to the same value while a lossy one does not.
_SAMPLE_DATE = date(2001, 2, 3)


class SerializationPolicy(BaseModel):
    """Field naming, unknown-field handling and calendar-date format.

    Unknown response fields are ignored by default so that servers can add
    fields without breaking existing clients.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    naming: NamingConvention = NamingConvention.SNAKE_CASE
    fail_on_unknown_fields: bool = False
    date_format: str = DEFAULT_DATE_FORMAT

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid serialization policy options",
                details=exc.errors(include_url=False, include_context=False),
            ) from exc

    @field_validator("naming", mode="before")
    @classmethod
    def _parse_naming(cls, value: Any) -> NamingConvention:
        return NamingConvention.parse(value)

    @field_validator("date_format")
    @classmethod
    def _check_date_format(cls, value: str) -> str:
        try:
            rendered = _SAMPLE_DATE.strftime(value)
            parsed = datetime.strptime(rendered, value).date()
        except ValueError as exc:
            raise ConfigurationError(
                f"Date format {value!r} cannot be parsed back",
                details={"date_format": value},
            ) from exc
        if parsed != _SAMPLE_DATE:
            raise ConfigurationError(
                f"Date format {value!r} does not encode a full calendar date",
                details={"date_format": value, "rendered": rendered},
            )
        return value

    def wire_name(self, attribute: str) -> str:
        return self.naming.to_wire(attribute)

    def format_date(self, value: date) -> str:
        return value.strftime(self.date_format)

    def parse_date(self, value: str) -> date:
        """Parse a wire date; raises ValueError when it does not match the format."""
        return datetime.strptime(value, self.date_format).date()

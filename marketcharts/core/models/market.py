"""Market price models."""

from datetime import UTC, date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer, field_validator
from pydantic import ConfigDict as PydanticConfigDict

SeriesRecordSet = dict[str, list["PricePoint"]]


class PricePoint(BaseModel):
    """单个指数某交易日的OHLCV数据."""

    id: int | None = None
    index_name: str
    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = Field(default=0, ge=0)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = PydanticConfigDict(
        arbitrary_types_allowed=True,
    )

    @field_validator("date", mode="before")
    @classmethod
    def truncate_datetime(cls, value: object) -> object:
        """Accept datetimes and keep only the calendar date."""
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_serializer("open", "high", "low", "close", when_used="json")
    def serialize_decimal(self, value: Decimal) -> str:
        """Serialize Decimal to string."""
        return str(value)

    @property
    def is_internally_consistent(self) -> bool:
        """True when open and close sit inside the [low, high] range."""
        return (
            self.low <= self.high
            and self.low <= self.open <= self.high
            and self.low <= self.close <= self.high
        )


__all__ = ["PricePoint", "SeriesRecordSet"]

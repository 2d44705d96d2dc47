"""Chart-ready data structures."""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

PRICE_DATA_TYPE = "Price"
NORMALIZED_DATA_TYPE = "Normalized (%)"
EVENT_ANNOTATION = "Event"


class ChartSeries(BaseModel):
    """单条图表序列."""

    name: str
    data: list[Decimal] = Field(default_factory=list)
    color: str = ""
    data_type: str = PRICE_DATA_TYPE
    is_comparison: bool = False


class TechnicalIndicator(BaseModel):
    """技术指标, 预热期内的取值为None."""

    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    values: list[Decimal | None] = Field(default_factory=list)
    color: str = ""


class ChartAnnotation(BaseModel):
    """图表标注."""

    date: date
    text: str
    type: str = EVENT_ANNOTATION


class ChartData(BaseModel):
    """图表数据快照."""

    title: str = ""
    labels: list[str] = Field(default_factory=list)
    series: list[ChartSeries] = Field(default_factory=list)
    start_date: date
    end_date: date
    technical_indicators: list[TechnicalIndicator] = Field(default_factory=list)
    annotations: list[ChartAnnotation] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_series_lengths(self) -> "ChartData":
        """Every series must carry one value per label."""
        label_count = len(self.labels)
        for item in self.series:
            if len(item.data) != label_count:
                raise ValueError(
                    f"series '{item.name}' has {len(item.data)} values but chart has {label_count} labels"
                )
        return self

    def series_by_name(self, name: str) -> ChartSeries | None:
        for item in self.series:
            if item.name == name:
                return item
        return None


__all__ = [
    "ChartAnnotation",
    "ChartData",
    "ChartSeries",
    "EVENT_ANNOTATION",
    "NORMALIZED_DATA_TYPE",
    "PRICE_DATA_TYPE",
    "TechnicalIndicator",
]

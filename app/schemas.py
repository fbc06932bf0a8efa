"""Pydantic schemas for the HTTP API layer and the reading store."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.records import Reading, ensure_utc
from services.trend import TrendDirection

if TYPE_CHECKING:
    from app.validation import AnalyticsQuery
    from services.analytics import AnalysisResult


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys and built from domain objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ReadingRecord(CamelModel):
    """Wire and storage representation of a moisture reading."""

    location: str = Field(..., min_length=1)
    timestamp: datetime
    value: float
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_reading(self) -> Reading:
        return Reading(
            location=self.location,
            timestamp=self.timestamp,
            value=self.value,
            x=self.x,
            y=self.y,
            z=self.z,
        )


class PositionModel(CamelModel):
    x: float
    y: float
    z: Optional[float] = None


class TrendResultModel(CamelModel):
    location: str
    trend: TrendDirection
    confidence: float = Field(..., gt=0, le=1)
    change_rate: float = Field(..., description="Fitted change in value units per hour.")
    period_start: datetime
    period_end: datetime
    reading_count: int = Field(..., ge=0)


class HotspotModel(CamelModel):
    position: PositionModel
    max_value: float
    average_value: float
    readings: List[ReadingRecord] = Field(default_factory=list)


class StatBucketModel(CamelModel):
    period_start: datetime
    location: str
    count: int = Field(..., ge=1)
    average: float
    min: float
    max: float


class ReadingSummaryModel(CamelModel):
    count: int = Field(..., ge=0)
    average: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    standard_deviation: Optional[float] = None


class StatisticsModel(CamelModel):
    hourly: List[StatBucketModel] = Field(default_factory=list)
    daily: List[StatBucketModel] = Field(default_factory=list)
    summary: ReadingSummaryModel


class DateRange(CamelModel):
    start: str
    end: str


class AnalyticsMetadata(CamelModel):
    job_id: str
    reading_count: int = Field(..., ge=0)
    date_range: DateRange
    location: Optional[str] = None
    generated_at: datetime = Field(..., description="When the analysis was computed.")


class AnalyticsResponse(CamelModel):
    """Full analytics payload returned for a validated query."""

    trends: Optional[TrendResultModel] = Field(
        default=None, description="Primary trend selected across locations."
    )
    location_trends: List[TrendResultModel] = Field(default_factory=list)
    unavailable_locations: List[str] = Field(default_factory=list)
    hotspots: List[HotspotModel] = Field(default_factory=list)
    statistics: StatisticsModel
    metadata: AnalyticsMetadata

    @classmethod
    def from_result(cls, result: AnalysisResult, query: AnalyticsQuery) -> AnalyticsResponse:
        return cls(
            trends=TrendResultModel.model_validate(result.trend) if result.trend else None,
            location_trends=[TrendResultModel.model_validate(t) for t in result.location_trends],
            unavailable_locations=list(result.unavailable_locations),
            hotspots=[HotspotModel.model_validate(h) for h in result.hotspots],
            statistics=StatisticsModel.model_validate(result.statistics),
            metadata=AnalyticsMetadata(
                job_id=query.job_id,
                reading_count=result.reading_count,
                date_range=DateRange(start=query.raw_start, end=query.raw_end),
                location=query.location,
                generated_at=result.timestamp,
            ),
        )


class ErrorResponse(BaseModel):
    error: str

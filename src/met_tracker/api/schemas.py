"""Request / response models shared across API route modules."""

from __future__ import annotations

from pydantic import BaseModel, Field

from met_tracker.models import Sample


class SampleBatch(BaseModel):
    """Accelerometer samples pushed by a client device."""

    samples: list[Sample] = Field(default_factory=list, max_length=10_000)


class IngestResponse(BaseModel):
    received: int
    accepted: int


class SeedResponse(BaseModel):
    written: int

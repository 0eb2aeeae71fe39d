"""Pydantic data models for mileage ledger generation."""

from mileage_pipeline.models.account import Account
from mileage_pipeline.models.event import (
    ADJUSTMENT_DESCRIPTION,
    EARN_DESCRIPTION,
    INITIAL_GRANT_DESCRIPTION,
    USE_DESCRIPTION,
    MileageEvent,
    MileageEventType,
)

__all__ = [
    "ADJUSTMENT_DESCRIPTION",
    "Account",
    "EARN_DESCRIPTION",
    "INITIAL_GRANT_DESCRIPTION",
    "MileageEvent",
    "MileageEventType",
    "USE_DESCRIPTION",
]

"""Mileage history event model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class MileageEventType(str, Enum):
    """Kinds of ledger entries."""

    EARN = "EARN"
    USE = "USE"
    # Reserved; never produced by the generator.
    EXPIRE = "EXPIRE"


EARN_DESCRIPTION = "Mileage earned"
USE_DESCRIPTION = "Mileage used"
ADJUSTMENT_DESCRIPTION = "Balance adjustment"
INITIAL_GRANT_DESCRIPTION = "Initial grant"


class MileageEvent(BaseModel):
    """One ledger entry in a member's mileage history.

    Amounts are signed: positive for EARN, negative for USE and EXPIRE.
    """

    id: int | None = Field(
        default=None,
        description="Storage-assigned identifier, absent at generation time",
        examples=[None, 1234],
    )

    member_id: int = Field(
        ...,
        ge=1,
        description="Owning member identifier",
        examples=[1, 42],
    )

    kind: MileageEventType = Field(
        ...,
        description="Entry kind",
        examples=["EARN", "USE"],
    )

    amount: int = Field(
        ...,
        description="Signed amount (positive for EARN, negative for USE)",
        examples=[5000, -1200],
    )

    description: str = Field(
        ...,
        max_length=255,
        description="Human-readable reason for the entry",
        examples=[EARN_DESCRIPTION, ADJUSTMENT_DESCRIPTION],
    )

    occurred_at: datetime = Field(
        ...,
        description="Timestamp within the event's calendar day",
        examples=[datetime(2024, 1, 15, 14, 30, 0)],
    )

    @model_validator(mode="after")
    def _check_sign(self) -> "MileageEvent":
        if self.kind == MileageEventType.EARN and self.amount < 0:
            raise ValueError("EARN events must carry a non-negative amount")
        if self.kind != MileageEventType.EARN and self.amount > 0:
            raise ValueError(f"{self.kind.value} events must carry a negative amount")
        return self

    @property
    def is_adjustment(self) -> bool:
        """Whether this entry was emitted by balance reconciliation."""
        return self.description in (ADJUSTMENT_DESCRIPTION, INITIAL_GRANT_DESCRIPTION)

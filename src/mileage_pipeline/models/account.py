"""Mileage account model."""

from datetime import datetime

from pydantic import BaseModel, Field


class Account(BaseModel):
    """A member's mileage account holding the running ledger balance."""

    member_id: int = Field(
        ...,
        ge=1,
        description="Dense member identifier in [1, N]",
        examples=[1, 42, 100000],
    )

    balance: int = Field(
        ...,
        description="Mileage balance persisted to storage",
        examples=[0, 20000, 100000],
    )

    created_at: datetime = Field(
        ...,
        description="When the account row was created",
        examples=[datetime(2024, 1, 15, 9, 0, 0)],
    )

    updated_at: datetime = Field(
        ...,
        description="When the account row was last updated",
        examples=[datetime(2024, 1, 15, 9, 0, 0)],
    )

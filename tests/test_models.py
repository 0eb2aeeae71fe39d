"""Tests for mileage domain models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from mileage_pipeline.models import (
    ADJUSTMENT_DESCRIPTION,
    EARN_DESCRIPTION,
    INITIAL_GRANT_DESCRIPTION,
    Account,
    MileageEvent,
    MileageEventType,
)

NOW = datetime(2024, 3, 1, 12, 0, 0)


class TestMileageEvent:
    """Tests for MileageEvent validation."""

    def test_earn_positive(self):
        """Test a valid EARN event."""
        event = MileageEvent(
            member_id=1,
            kind=MileageEventType.EARN,
            amount=500,
            description=EARN_DESCRIPTION,
            occurred_at=NOW,
        )
        assert event.id is None
        assert event.is_adjustment is False

    def test_use_must_be_negative(self):
        """Test that a positive USE amount is rejected."""
        with pytest.raises(ValidationError):
            MileageEvent(
                member_id=1,
                kind=MileageEventType.USE,
                amount=500,
                description="Mileage used",
                occurred_at=NOW,
            )

    def test_earn_must_not_be_negative(self):
        """Test that a negative EARN amount is rejected."""
        with pytest.raises(ValidationError):
            MileageEvent(
                member_id=1,
                kind="EARN",
                amount=-1,
                description=EARN_DESCRIPTION,
                occurred_at=NOW,
            )

    def test_member_id_positive(self):
        """Test that member ids start at 1."""
        with pytest.raises(ValidationError):
            MileageEvent(
                member_id=0,
                kind=MileageEventType.EARN,
                amount=1,
                description=EARN_DESCRIPTION,
                occurred_at=NOW,
            )

    @pytest.mark.parametrize(
        "description", [ADJUSTMENT_DESCRIPTION, INITIAL_GRANT_DESCRIPTION]
    )
    def test_adjustment_descriptions(self, description):
        """Test that reconciliation descriptions mark adjustments."""
        event = MileageEvent(
            member_id=3,
            kind=MileageEventType.EARN,
            amount=10,
            description=description,
            occurred_at=NOW,
        )
        assert event.is_adjustment is True

    def test_string_kind(self):
        """Test that kinds parse from strings."""
        event = MileageEvent(
            member_id=1,
            kind="USE",
            amount=-10,
            description="Mileage used",
            occurred_at=NOW,
        )
        assert event.kind is MileageEventType.USE


class TestAccount:
    """Tests for Account."""

    def test_rejects_zero_member(self):
        """Test that accounts need a positive member id."""
        with pytest.raises(ValidationError):
            Account(member_id=0, balance=0, created_at=NOW, updated_at=NOW)

"""Shared fixtures for ledger generator tests."""

from collections import defaultdict

import pytest

from mileage_pipeline.models import Account, MileageEvent


class RecordingStore:
    """In-memory mileage store that keeps every batch it receives."""

    def __init__(self, fail_on_event_batch: int | None = None):
        self.account_batches: list[list[Account]] = []
        self.event_batches: list[list[MileageEvent]] = []
        self.fail_on_event_batch = fail_on_event_batch

    def bulk_insert_accounts(self, rows: list[Account]) -> int:
        self.account_batches.append(list(rows))
        return len(rows)

    def bulk_insert_events(self, rows: list[MileageEvent]) -> int:
        if (
            self.fail_on_event_batch is not None
            and len(self.event_batches) + 1 >= self.fail_on_event_batch
        ):
            raise RuntimeError("storage unavailable")
        self.event_batches.append(list(rows))
        return len(rows)

    @property
    def accounts(self) -> list[Account]:
        return [a for batch in self.account_batches for a in batch]

    @property
    def events(self) -> list[MileageEvent]:
        return [e for batch in self.event_batches for e in batch]

    def sums_by_member(self) -> dict[int, int]:
        sums: dict[int, int] = defaultdict(int)
        for event in self.events:
            sums[event.member_id] += event.amount
        return dict(sums)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of an empty SQLite database file."""
    return f"sqlite:///{tmp_path / 'ledger.db'}"

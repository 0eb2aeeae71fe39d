"""Bounded write buffers in front of the mileage store."""

from __future__ import annotations

from mileage_pipeline.db import MileageStore
from mileage_pipeline.logging import get_logger
from mileage_pipeline.models import Account, MileageEvent

log = get_logger(__name__)


class BatchPersister:
    """Buffers generated rows and bulk-inserts them in fixed-size batches.

    Accounts and events have separate buffers. A buffer is flushed as soon as
    it holds ``batch_size`` rows, so no more than ``batch_size`` rows of
    either kind are ever held in memory. Callers flush the partial remainder
    at the end of each stage with :meth:`flush_accounts`, :meth:`flush_events`
    or :meth:`flush`.

    Store failures propagate unchanged; nothing is retried.
    """

    def __init__(self, store: MileageStore, batch_size: int = 1000):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.store = store
        self.batch_size = batch_size

        self._accounts: list[Account] = []
        self._events: list[MileageEvent] = []

        self.accounts_appended = 0
        self.accounts_flushed = 0
        self.events_appended = 0
        self.events_flushed = 0
        self.batches_flushed = 0

    @property
    def pending_accounts(self) -> int:
        return len(self._accounts)

    @property
    def pending_events(self) -> int:
        return len(self._events)

    def add_account(self, account: Account) -> None:
        self._accounts.append(account)
        self.accounts_appended += 1
        if len(self._accounts) >= self.batch_size:
            self.flush_accounts()

    def add_event(self, event: MileageEvent) -> None:
        self._events.append(event)
        self.events_appended += 1
        if len(self._events) >= self.batch_size:
            self.flush_events()

    def flush_accounts(self) -> int:
        """Write any buffered accounts. Returns the number inserted."""
        if not self._accounts:
            return 0
        batch, self._accounts = self._accounts, []
        inserted = self.store.bulk_insert_accounts(batch)
        self.accounts_flushed += len(batch)
        self.batches_flushed += 1
        log.debug("Account batch flushed", rows=len(batch), inserted=inserted)
        return inserted

    def flush_events(self) -> int:
        """Write any buffered events. Returns the number inserted."""
        if not self._events:
            return 0
        batch, self._events = self._events, []
        inserted = self.store.bulk_insert_events(batch)
        self.events_flushed += len(batch)
        self.batches_flushed += 1
        log.debug("Event batch flushed", rows=len(batch), inserted=inserted)
        return inserted

    def flush(self) -> int:
        """Write both buffers."""
        return self.flush_accounts() + self.flush_events()

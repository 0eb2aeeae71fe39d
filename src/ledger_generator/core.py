"""Reconciled mileage ledger generator.

This module synthesizes a multi-day mileage history for a population of
member accounts. Every member is assigned a target balance up front; daily
EARN/USE events are generated at random while being steered toward that
target, and a final reconciliation pass emits one adjustment per member so
that the member's history sums to its target exactly.

Balances are tracked in dense numpy arrays indexed by ``member_id - 1`` and
every generated row is written through a :class:`BatchPersister`, so memory
stays bounded regardless of how many events a run produces.
"""

from __future__ import annotations

import time as clock
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

import numpy as np

from ledger_generator.batching import BatchPersister
from mileage_pipeline.config import GenerationConfig
from mileage_pipeline.db import DatabaseSession, MileageRepository, MileageStore
from mileage_pipeline.logging import bind_run_context, clear_run_context, get_logger
from mileage_pipeline.models import (
    ADJUSTMENT_DESCRIPTION,
    EARN_DESCRIPTION,
    INITIAL_GRANT_DESCRIPTION,
    USE_DESCRIPTION,
    Account,
    MileageEvent,
    MileageEventType,
)

if TYPE_CHECKING:
    from numpy.random import Generator as NPGenerator

log = get_logger(__name__)

# Organic event policy
EARN_PROBABILITY = 0.7
EARN_AMOUNT_RANGE = (100, 10_000)
USE_AMOUNT_RANGE = (100, 5_000)
MAX_FINAL_DAY_EARN = 10_000

SECONDS_PER_DAY = 86_400
MEMBER_PROGRESS_INTERVAL = 10_000

EventSink = Callable[[MileageEvent], None]


def assign_target_balances(account_count: int, max_balance: int) -> np.ndarray:
    """Compute the target balance of every member.

    ``target = (member_id * max_balance // account_count) % (max_balance + 1)``
    for ``member_id`` in ``[1, account_count]``, which spreads targets evenly
    over ``[0, max_balance]``.

    Returns:
        ``int64`` array where index ``i`` holds the target of member ``i + 1``.
    """
    if account_count <= 0:
        raise ValueError(f"account_count must be positive, got {account_count}")
    if max_balance < 0:
        raise ValueError(f"max_balance must be non-negative, got {max_balance}")

    member_ids = np.arange(1, account_count + 1, dtype=np.int64)
    return (member_ids * max_balance // account_count) % (max_balance + 1)


class TargetBalanceAssigner:
    """Assigns target balances and stages the matching account rows."""

    def __init__(self, account_count: int, max_balance: int):
        self.account_count = account_count
        self.max_balance = max_balance

    def assign(self) -> np.ndarray:
        return assign_target_balances(self.account_count, self.max_balance)

    def stage_accounts(
        self,
        targets: np.ndarray,
        persister: BatchPersister,
        created_at: datetime,
    ) -> int:
        """Queue one account per member with ``balance`` set to its target.

        Returns:
            Number of accounts staged.
        """
        for index, target in enumerate(targets.tolist()):
            member_id = index + 1
            persister.add_account(
                Account(
                    member_id=member_id,
                    balance=target,
                    created_at=created_at,
                    updated_at=created_at,
                )
            )
            if member_id % MEMBER_PROGRESS_INTERVAL == 0:
                log.info(
                    "Staging accounts",
                    progress=member_id,
                    total=self.account_count,
                )
        return len(targets)


@dataclass
class AccumulatedBalances:
    """Running totals of generated amounts per member.

    Attributes:
        totals: ``int64`` running sum per member, indexed by ``member_id - 1``.
        touched: Whether the member has received any organic event yet.
    """

    totals: np.ndarray
    touched: np.ndarray

    @classmethod
    def empty(cls, account_count: int) -> AccumulatedBalances:
        return cls(
            totals=np.zeros(account_count, dtype=np.int64),
            touched=np.zeros(account_count, dtype=bool),
        )

    def get(self, member_id: int) -> int | None:
        """Running total for a member, or None if it has no events yet."""
        index = member_id - 1
        if not self.touched[index]:
            return None
        return int(self.totals[index])

    def add(self, member_id: int, amount: int) -> None:
        index = member_id - 1
        self.totals[index] += amount
        self.touched[index] = True


def choose_event(
    accumulated: int,
    target: int,
    is_final_day: bool,
    earn_roll: float,
    earn_amount: int,
    use_amount: int,
) -> tuple[MileageEventType, int]:
    """Pick the kind and signed amount of one organic event.

    Rules, first match wins:

    1. On the final day a member still below target earns the shortfall,
       capped at ``MAX_FINAL_DAY_EARN``.
    2. A member at or above target uses ``use_amount``.
    3. Otherwise earn ``earn_amount`` with probability ``EARN_PROBABILITY``
       (``earn_roll`` below it), else use ``use_amount``.

    Returns:
        ``(kind, amount)`` where USE amounts are negative.
    """
    if is_final_day and accumulated < target:
        return MileageEventType.EARN, min(target - accumulated, MAX_FINAL_DAY_EARN)
    if accumulated >= target:
        return MileageEventType.USE, -use_amount
    if earn_roll < EARN_PROBABILITY:
        return MileageEventType.EARN, earn_amount
    return MileageEventType.USE, -use_amount


@dataclass
class DayResult:
    """Counters for one simulated day."""

    day: date
    transaction_count: int
    earn_count: int = 0
    use_count: int = 0
    earn_amount: int = 0
    use_amount: int = 0

    @property
    def net_amount(self) -> int:
        return self.earn_amount + self.use_amount


class DailyTransactionSimulator:
    """Generates one day's organic events.

    Random draws are taken in vectorized chunks of at most ``chunk_size``;
    the steering rules are then applied event by event because each event
    depends on the running total left by the previous one.
    """

    def __init__(
        self,
        targets: np.ndarray,
        rng: NPGenerator,
        emit: EventSink,
        chunk_size: int = 1000,
    ):
        """Initialize the simulator.

        Args:
            targets: Target balance per member, indexed by ``member_id - 1``.
            rng: Numpy random generator shared by the whole run.
            emit: Receives every generated event, usually
                ``BatchPersister.add_event``.
            chunk_size: Number of events whose random inputs are drawn at once.
        """
        self.targets = targets
        self.rng = rng
        self.emit = emit
        self.chunk_size = chunk_size

    def simulate_day(
        self,
        day: date,
        transaction_count: int,
        accumulated: AccumulatedBalances,
        is_final_day: bool = False,
    ) -> DayResult:
        """Generate ``transaction_count`` events dated within ``day``.

        ``accumulated`` is updated in place.
        """
        result = DayResult(day=day, transaction_count=transaction_count)
        day_start = datetime.combine(day, time.min)
        account_count = len(self.targets)

        remaining = transaction_count
        while remaining > 0:
            size = min(remaining, self.chunk_size)
            remaining -= size

            members = self.rng.integers(1, account_count + 1, size=size)
            offsets = self.rng.integers(0, SECONDS_PER_DAY, size=size)
            earn_rolls = self.rng.random(size)
            earn_amounts = self.rng.integers(
                EARN_AMOUNT_RANGE[0], EARN_AMOUNT_RANGE[1] + 1, size=size
            )
            use_amounts = self.rng.integers(
                USE_AMOUNT_RANGE[0], USE_AMOUNT_RANGE[1] + 1, size=size
            )

            for member_id, offset, roll, earn_amount, use_amount in zip(
                members.tolist(),
                offsets.tolist(),
                earn_rolls.tolist(),
                earn_amounts.tolist(),
                use_amounts.tolist(),
            ):
                index = member_id - 1
                kind, amount = choose_event(
                    accumulated=int(accumulated.totals[index]),
                    target=int(self.targets[index]),
                    is_final_day=is_final_day,
                    earn_roll=roll,
                    earn_amount=earn_amount,
                    use_amount=use_amount,
                )
                accumulated.add(member_id, amount)

                if kind == MileageEventType.EARN:
                    result.earn_count += 1
                    result.earn_amount += amount
                    description = EARN_DESCRIPTION
                else:
                    result.use_count += 1
                    result.use_amount += amount
                    description = USE_DESCRIPTION

                self.emit(
                    MileageEvent(
                        member_id=member_id,
                        kind=kind,
                        amount=amount,
                        description=description,
                        occurred_at=day_start + timedelta(seconds=offset),
                    )
                )

        return result


class HorizonDriver:
    """Runs the daily simulator over consecutive days in order."""

    def __init__(
        self,
        simulator: DailyTransactionSimulator,
        rng: NPGenerator,
        start_date: date,
        horizon_days: int,
        daily_range: tuple[int, int],
    ):
        if horizon_days <= 0:
            raise ValueError(f"horizon_days must be positive, got {horizon_days}")
        low, high = daily_range
        if low < 0 or low > high:
            raise ValueError(f"Invalid daily transaction range: {daily_range}")

        self.simulator = simulator
        self.rng = rng
        self.start_date = start_date
        self.horizon_days = horizon_days
        self.daily_range = daily_range

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.horizon_days - 1)

    def run(self, accumulated: AccumulatedBalances) -> list[DayResult]:
        """Simulate every day of the horizon; only the last day is final.

        The same ``accumulated`` state is carried through all days.
        """
        low, high = self.daily_range
        results = []

        for offset in range(self.horizon_days):
            day = self.start_date + timedelta(days=offset)
            is_final_day = offset == self.horizon_days - 1
            transaction_count = int(self.rng.integers(low, high + 1))

            log.info(
                "Generating daily history",
                day=day.isoformat(),
                progress=f"{offset + 1}/{self.horizon_days}",
                transactions=transaction_count,
                final_day=is_final_day,
            )
            results.append(
                self.simulator.simulate_day(
                    day, transaction_count, accumulated, is_final_day=is_final_day
                )
            )

        return results


class FinalBalanceReconciler:
    """Closes the gap between accumulated and target balances.

    Members with organic events whose total differs from target get one
    ``Balance adjustment`` event for the difference. Members without any
    organic event get one ``Initial grant`` EARN for their full target,
    unless that target is zero.
    """

    def __init__(self, targets: np.ndarray, emit: EventSink):
        self.targets = targets
        self.emit = emit

    def reconcile(
        self,
        accumulated: AccumulatedBalances,
        reconciled_at: datetime | None = None,
    ) -> int:
        """Emit adjustment events and bring ``accumulated`` onto target.

        Returns:
            Number of adjustment events emitted.
        """
        reconciled_at = reconciled_at or datetime.now()
        differences = self.targets - accumulated.totals
        pending = np.flatnonzero(differences != 0)

        for index in pending.tolist():
            difference = int(differences[index])
            kind = MileageEventType.EARN if difference > 0 else MileageEventType.USE
            description = (
                ADJUSTMENT_DESCRIPTION
                if accumulated.touched[index]
                else INITIAL_GRANT_DESCRIPTION
            )
            self.emit(
                MileageEvent(
                    member_id=index + 1,
                    kind=kind,
                    amount=difference,
                    description=description,
                    occurred_at=reconciled_at,
                )
            )

        accumulated.totals[pending] = self.targets[pending]
        return len(pending)


@dataclass
class GenerationSummary:
    """Outcome of a completed generation run."""

    run_id: str
    accounts: int
    organic_events: int
    adjustment_events: int
    start_date: date
    end_date: date
    days: list[DayResult] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def total_events(self) -> int:
        return self.organic_events + self.adjustment_events


class MileageDataGenerator:
    """Runs the full pipeline once against a mileage store.

    Stages, each flushed before the next begins:

    1. assign targets and write one account per member;
    2. simulate the horizon day by day;
    3. reconcile every member onto its target.
    """

    def __init__(self, config: GenerationConfig, store: MileageStore):
        self.config = config
        self.store = store
        self.rng = np.random.default_rng(config.seed)
        self.persister = BatchPersister(store, batch_size=config.batch_size)

    def _generate_run_id(self) -> str:
        return f"run_{uuid.uuid4().hex[:12]}"

    def run(self, now: datetime | None = None) -> GenerationSummary:
        """Generate, reconcile and persist a complete dataset.

        Args:
            now: Run start time, stamped on accounts and adjustments.
                Defaults to the current time.

        Returns:
            Summary counters for the run.
        """
        config = self.config
        now = now or datetime.now()
        start_date = config.resolve_start_date(today=now.date())
        run_id = self._generate_run_id()
        started = clock.perf_counter()

        bind_run_context(run_id=run_id)
        try:
            log.info(
                "Mileage data generation started",
                accounts=config.account_count,
                max_balance=config.max_balance,
                horizon_days=config.horizon_days,
                daily_range=config.daily_transaction_range,
                batch_size=config.batch_size,
                seed=config.seed,
            )

            # Stage 1: target balances
            assigner = TargetBalanceAssigner(config.account_count, config.max_balance)
            targets = assigner.assign()
            accounts = assigner.stage_accounts(targets, self.persister, created_at=now)
            self.persister.flush_accounts()
            log.info("Account balances written", accounts=accounts)

            # Stage 2: daily histories
            accumulated = AccumulatedBalances.empty(config.account_count)
            simulator = DailyTransactionSimulator(
                targets,
                self.rng,
                emit=self.persister.add_event,
                chunk_size=config.batch_size,
            )
            driver = HorizonDriver(
                simulator,
                self.rng,
                start_date=start_date,
                horizon_days=config.horizon_days,
                daily_range=config.daily_transaction_range,
            )
            days = driver.run(accumulated)
            self.persister.flush_events()
            organic_events = self.persister.events_flushed
            log.info("Daily histories written", events=organic_events)

            # Stage 3: reconciliation
            reconciler = FinalBalanceReconciler(targets, emit=self.persister.add_event)
            adjustments = reconciler.reconcile(accumulated, reconciled_at=datetime.now())
            self.persister.flush_events()
            log.info("Final balances reconciled", adjustments=adjustments)

            elapsed = clock.perf_counter() - started
            log.info(
                "Mileage data generation complete",
                accounts=accounts,
                organic_events=organic_events,
                adjustment_events=adjustments,
                elapsed_seconds=round(elapsed, 2),
            )
        finally:
            clear_run_context()

        return GenerationSummary(
            run_id=run_id,
            accounts=accounts,
            organic_events=organic_events,
            adjustment_events=adjustments,
            start_date=start_date,
            end_date=driver.end_date,
            days=days,
            elapsed_seconds=elapsed,
        )


def generate_and_persist(
    config: GenerationConfig,
    database_url: str | None = None,
    drop_tables: bool = False,
    echo: bool = False,
) -> GenerationSummary:
    """Generate a reconciled dataset and persist it to the database.

    Each batch is committed as it is written. A failure aborts the run and
    leaves the already committed batches behind; rerun with
    ``drop_tables=True`` to regenerate from scratch.

    Args:
        config: Generation configuration.
        database_url: Database connection URL. Defaults to env vars.
        drop_tables: Drop existing tables before generating.
        echo: Whether to echo SQL statements.

    Returns:
        Summary counters for the run.
    """
    db = DatabaseSession(database_url=database_url, echo=echo)
    if drop_tables:
        log.warning("Dropping existing tables")
        db.drop_tables()
    db.create_tables()

    with db.get_session() as session:
        repository = MileageRepository(session, commit_every_batch=True)
        return MileageDataGenerator(config, repository).run()

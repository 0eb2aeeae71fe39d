"""Tests for SQLAlchemy storage and persisted generation runs."""

from datetime import date, datetime

import pytest
from sqlalchemy import BigInteger

from ledger_generator import assign_target_balances, generate_and_persist
from mileage_pipeline.config import GenerationConfig
from mileage_pipeline.db import DatabaseSession, MileageHistoryDB, MileageRepository
from mileage_pipeline.models import (
    INITIAL_GRANT_DESCRIPTION,
    Account,
    MileageEvent,
    MileageEventType,
)

NOW = datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def db(database_url) -> DatabaseSession:
    db = DatabaseSession(database_url=database_url)
    db.create_tables()
    return db


def seed_rows(db: DatabaseSession) -> None:
    with db.get_session() as session:
        repository = MileageRepository(session)
        repository.bulk_insert_accounts(
            [
                Account(member_id=1, balance=300, created_at=NOW, updated_at=NOW),
                Account(member_id=2, balance=0, created_at=NOW, updated_at=NOW),
                Account(member_id=3, balance=50, created_at=NOW, updated_at=NOW),
            ]
        )
        repository.bulk_insert_events(
            [
                MileageEvent(
                    member_id=1,
                    kind=MileageEventType.EARN,
                    amount=500,
                    description="Mileage earned",
                    occurred_at=datetime(2024, 3, 1, 10, 0, 0),
                ),
                MileageEvent(
                    member_id=1,
                    kind=MileageEventType.USE,
                    amount=-200,
                    description="Mileage used",
                    occurred_at=datetime(2024, 3, 1, 9, 0, 0),
                ),
                MileageEvent(
                    member_id=3,
                    kind=MileageEventType.EARN,
                    amount=40,
                    description="Mileage earned",
                    occurred_at=datetime(2024, 3, 1, 11, 0, 0),
                ),
            ]
        )


class TestMileageRepository:
    """Tests for bulk inserts and point lookups."""

    def test_bulk_insert_counts(self, db):
        """Test that bulk inserts report and persist their rows."""
        with db.get_session() as session:
            repository = MileageRepository(session)
            assert repository.bulk_insert_accounts([]) == 0
            assert repository.bulk_insert_events([]) == 0

        seed_rows(db)

        with db.get_session() as session:
            repository = MileageRepository(session)
            assert repository.count_accounts() == 3
            assert repository.count_history() == 3
            assert repository.count_history(member_id=1) == 2

    def test_get_account(self, db):
        """Test point lookup of existing and missing accounts."""
        seed_rows(db)

        with db.get_session() as session:
            repository = MileageRepository(session)
            account = repository.get_account(1)
            missing = repository.get_account(99)

        assert account is not None
        assert account.balance == 300
        assert account.created_at == NOW
        assert missing is None

    def test_history_ordered_with_ids(self, db):
        """Test that history comes back in time order with ids."""
        seed_rows(db)

        with db.get_session() as session:
            history = MileageRepository(session).get_history(1)

        assert [e.amount for e in history] == [-200, 500]
        assert all(e.id is not None for e in history)

    def test_history_filtered_by_kind(self, db):
        """Test filtering history by kind."""
        seed_rows(db)

        with db.get_session() as session:
            history = MileageRepository(session).get_history(
                1, kind=MileageEventType.EARN
            )

        assert [e.kind for e in history] == [MileageEventType.EARN]

    def test_totals(self, db):
        """Test per-kind totals and the total balance."""
        seed_rows(db)

        with db.get_session() as session:
            repository = MileageRepository(session)
            by_kind = repository.history_totals_by_kind()
            total_balance = repository.total_balance()

        assert by_kind == {"EARN": (2, 540), "USE": (1, -200)}
        assert total_balance == 350

    def test_find_mismatched_balances(self, db):
        """Test that only off-balance members are reported."""
        seed_rows(db)

        with db.get_session() as session:
            mismatches = MileageRepository(session).find_mismatched_balances()

        assert mismatches == [(3, 50, 40)]

    def test_commit_every_batch(self, db):
        """Test that per-batch commits survive a later rollback."""
        with db.get_session() as session:
            MileageRepository(session, commit_every_batch=True).bulk_insert_accounts(
                [Account(member_id=1, balance=0, created_at=NOW, updated_at=NOW)]
            )
            session.rollback()

        with db.get_session() as session:
            assert MileageRepository(session).count_accounts() == 1

    def test_amount_column_is_64_bit(self):
        """Test that history amounts use a 64-bit column."""
        assert isinstance(MileageHistoryDB.__table__.c.amount.type, BigInteger)

    def test_large_grant_round_trips(self, db):
        """Test that a grant above the 32-bit range is stored intact."""
        with db.get_session() as session:
            MileageRepository(session).bulk_insert_events(
                [
                    MileageEvent(
                        member_id=1,
                        kind=MileageEventType.EARN,
                        amount=3_000_000_000,
                        description=INITIAL_GRANT_DESCRIPTION,
                        occurred_at=NOW,
                    )
                ]
            )

        with db.get_session() as session:
            history = MileageRepository(session).get_history(1)

        assert [e.amount for e in history] == [3_000_000_000]


class TestGenerateAndPersist:
    """End-to-end generation against a SQLite database."""

    @pytest.fixture
    def config(self) -> GenerationConfig:
        return GenerationConfig(
            account_count=25,
            max_balance=50_000,
            horizon_days=2,
            daily_transaction_min=40,
            daily_transaction_max=90,
            batch_size=16,
            seed=7,
            start_date=date(2024, 3, 1),
        )

    def test_persisted_ledger_reconciled(self, config, database_url):
        """Test that a persisted run reconciles every member."""
        summary = generate_and_persist(config, database_url=database_url)

        db = DatabaseSession(database_url=database_url)
        with db.get_session() as session:
            repository = MileageRepository(session)
            assert repository.count_accounts() == 25
            assert repository.count_history() == summary.total_events
            assert repository.find_mismatched_balances() == []

            targets = assign_target_balances(25, 50_000)
            for member_id in (1, 13, 25):
                history = repository.get_history(member_id)
                assert sum(e.amount for e in history) == targets[member_id - 1]

    def test_drop_tables_regenerates(self, config, database_url):
        """Test that dropping tables allows a clean rerun."""
        generate_and_persist(config, database_url=database_url)
        summary = generate_and_persist(
            config, database_url=database_url, drop_tables=True
        )

        db = DatabaseSession(database_url=database_url)
        with db.get_session() as session:
            repository = MileageRepository(session)
            assert repository.count_accounts() == 25
            assert repository.count_history() == summary.total_events

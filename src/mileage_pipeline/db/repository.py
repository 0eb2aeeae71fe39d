"""Storage operations for mileage balances and history."""

from typing import Protocol

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session

from mileage_pipeline.db.models import MileageDB, MileageHistoryDB
from mileage_pipeline.models import Account, MileageEvent, MileageEventType


class MileageStore(Protocol):
    """Bulk-insert boundary consumed by the generator."""

    def bulk_insert_accounts(self, rows: list[Account]) -> int: ...

    def bulk_insert_events(self, rows: list[MileageEvent]) -> int: ...


def account_to_row(account: Account) -> dict:
    """Convert an Account to a ``mileage`` row mapping."""
    return {
        "member_id": account.member_id,
        "balance": account.balance,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


def event_to_row(event: MileageEvent) -> dict:
    """Convert a MileageEvent to a ``mileage_history`` row mapping."""
    return {
        "member_id": event.member_id,
        "type": event.kind.value,
        "amount": event.amount,
        "description": event.description,
        "created_at": event.occurred_at,
    }


def row_to_account(row: MileageDB) -> Account:
    return Account(
        member_id=row.member_id,
        balance=row.balance,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def row_to_event(row: MileageHistoryDB) -> MileageEvent:
    return MileageEvent(
        id=row.id,
        member_id=row.member_id,
        kind=MileageEventType(row.type),
        amount=row.amount,
        description=row.description or "",
        occurred_at=row.created_at,
    )


class MileageRepository:
    """SQLAlchemy-backed mileage storage bound to a single session.

    By default inserts run inside the caller's transaction and committing is
    left to ``DatabaseSession.get_session``. With ``commit_every_batch`` each
    bulk insert is committed on its own, so a long run never holds one
    giant transaction open.
    """

    def __init__(self, session: Session, commit_every_batch: bool = False):
        self.session = session
        self.commit_every_batch = commit_every_batch

    def _insert(self, table: type, rows: list[dict]) -> int:
        self.session.execute(insert(table), rows)
        if self.commit_every_batch:
            self.session.commit()
        return len(rows)

    def bulk_insert_accounts(self, rows: list[Account]) -> int:
        """Insert account rows in one executemany call.

        Returns:
            Number of rows inserted.
        """
        if not rows:
            return 0
        return self._insert(MileageDB, [account_to_row(r) for r in rows])

    def bulk_insert_events(self, rows: list[MileageEvent]) -> int:
        """Insert history rows in one executemany call.

        Returns:
            Number of rows inserted.
        """
        if not rows:
            return 0
        return self._insert(MileageHistoryDB, [event_to_row(r) for r in rows])

    def get_account(self, member_id: int) -> Account | None:
        """Look up a single member's account."""
        row = self.session.get(MileageDB, member_id)
        return row_to_account(row) if row is not None else None

    def get_history(
        self,
        member_id: int,
        kind: MileageEventType | None = None,
    ) -> list[MileageEvent]:
        """Return a member's history ordered by time, optionally by kind."""
        stmt = select(MileageHistoryDB).where(MileageHistoryDB.member_id == member_id)
        if kind is not None:
            stmt = stmt.where(MileageHistoryDB.type == kind.value)
        stmt = stmt.order_by(MileageHistoryDB.created_at, MileageHistoryDB.id)
        return [row_to_event(row) for row in self.session.scalars(stmt)]

    def count_history(self, member_id: int | None = None) -> int:
        """Count history rows, for one member or overall."""
        stmt = select(func.count(MileageHistoryDB.id))
        if member_id is not None:
            stmt = stmt.where(MileageHistoryDB.member_id == member_id)
        return self.session.scalar(stmt) or 0

    def count_accounts(self) -> int:
        return self.session.scalar(select(func.count(MileageDB.member_id))) or 0

    def history_totals_by_kind(self) -> dict[str, tuple[int, int]]:
        """Return ``{kind: (count, amount_sum)}`` over the whole history."""
        rows = self.session.execute(
            select(
                MileageHistoryDB.type,
                func.count(MileageHistoryDB.id),
                func.coalesce(func.sum(MileageHistoryDB.amount), 0),
            ).group_by(MileageHistoryDB.type)
        ).all()
        return {kind: (int(count), int(total)) for kind, count, total in rows}

    def total_balance(self) -> int:
        return int(
            self.session.scalar(select(func.coalesce(func.sum(MileageDB.balance), 0)))
        )

    def find_mismatched_balances(self, limit: int | None = None) -> list[tuple]:
        """Find members whose history sum differs from their stored balance.

        Returns:
            List of ``(member_id, balance, history_sum)`` tuples.
        """
        sums = (
            select(
                MileageHistoryDB.member_id.label("member_id"),
                func.sum(MileageHistoryDB.amount).label("total"),
            )
            .group_by(MileageHistoryDB.member_id)
            .subquery()
        )
        history_sum = func.coalesce(sums.c.total, 0)
        stmt = (
            select(MileageDB.member_id, MileageDB.balance, history_sum)
            .outerjoin(sums, sums.c.member_id == MileageDB.member_id)
            .where(MileageDB.balance != history_sum)
            .order_by(MileageDB.member_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            (int(member_id), int(balance), int(total))
            for member_id, balance, total in self.session.execute(stmt).all()
        ]

"""SQLAlchemy models mirroring Pydantic models."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER primary keys.
BigIntegerKey = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class MileageDB(Base):
    """SQLAlchemy model for member mileage balances."""

    __tablename__ = "mileage"

    member_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<MileageDB(member_id={self.member_id}, balance={self.balance})>"


class MileageHistoryDB(Base):
    """SQLAlchemy model for mileage history entries."""

    __tablename__ = "mileage_history"

    id: Mapped[int] = mapped_column(
        BigIntegerKey, primary_key=True, autoincrement=True
    )
    member_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str] = mapped_column(
        String(10), nullable=False, comment="EARN, USE or EXPIRE"
    )
    amount: Mapped[int] = mapped_column(
        BigInteger, nullable=False, comment="Positive for EARN, negative for USE"
    )
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_mileage_history_member_id", "member_id"),
        Index("ix_mileage_history_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<MileageHistoryDB(id={self.id}, member_id={self.member_id}, "
            f"type={self.type}, amount={self.amount})>"
        )

"""Database models, connection management and storage operations."""

from mileage_pipeline.db.models import Base, MileageDB, MileageHistoryDB
from mileage_pipeline.db.repository import MileageRepository, MileageStore
from mileage_pipeline.db.session import DatabaseSession, get_database_url

__all__ = [
    "Base",
    "DatabaseSession",
    "MileageDB",
    "MileageHistoryDB",
    "MileageRepository",
    "MileageStore",
    "get_database_url",
]

"""Reconciled mileage ledger generator."""

from ledger_generator.batching import BatchPersister
from ledger_generator.core import (
    AccumulatedBalances,
    DailyTransactionSimulator,
    DayResult,
    FinalBalanceReconciler,
    GenerationSummary,
    HorizonDriver,
    MileageDataGenerator,
    TargetBalanceAssigner,
    assign_target_balances,
    choose_event,
    generate_and_persist,
)

__all__ = [
    "AccumulatedBalances",
    "BatchPersister",
    "DailyTransactionSimulator",
    "DayResult",
    "FinalBalanceReconciler",
    "GenerationSummary",
    "HorizonDriver",
    "MileageDataGenerator",
    "TargetBalanceAssigner",
    "assign_target_balances",
    "choose_event",
    "generate_and_persist",
]

# Jobs Package - Scheduled background tasks
from .ledger_reconcile import LedgerReconcileScheduler, run_reconcile, start_scheduler, stop_scheduler

__all__ = ["LedgerReconcileScheduler", "run_reconcile", "start_scheduler", "stop_scheduler"]

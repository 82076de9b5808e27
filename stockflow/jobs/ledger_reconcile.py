"""
Ledger Reconcile Scheduler - periodic counter vs transaction-log check
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stockflow.core import settings
from stockflow.core.database import SessionLocal
from stockflow.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

JOB_ID = "ledger_reconcile"

# Global scheduler instance
_scheduler = None


class LedgerReconcileScheduler:
    """
    Runs ReconciliationService.reconcile on a fixed interval
    """

    def __init__(self, minutes: int = None):
        self.scheduler = BackgroundScheduler()
        self.minutes = minutes or settings.LEDGER_RECONCILE_MINUTES
        self.is_running = False

    def start(self):
        if self.is_running:
            return
        self.scheduler.add_job(
            func=run_reconcile,
            trigger=IntervalTrigger(minutes=self.minutes),
            id=JOB_ID,
            name="Ledger reconciliation",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Ledger reconcile scheduler started (every {self.minutes} minutes)")

    def stop(self):
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Ledger reconcile scheduler stopped")


def run_reconcile() -> int:
    """One reconciliation pass with its own session. Returns the discrepancy count."""
    db = SessionLocal()
    try:
        discrepancies = ReconciliationService.reconcile(db)
        return len(discrepancies)
    except Exception:
        logger.exception("Scheduled ledger reconciliation failed")
        raise
    finally:
        db.close()


# ========== Global Functions ==========

def get_scheduler() -> LedgerReconcileScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = LedgerReconcileScheduler()
    return _scheduler


def start_scheduler():
    """Start the global scheduler when reconciliation is enabled"""
    if not settings.LEDGER_RECONCILE_ENABLED:
        logger.info("Ledger reconciliation job disabled")
        return
    get_scheduler().start()


def stop_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None

"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime

from stockflow import __version__
from stockflow.core import get_db
from stockflow.services import ReconciliationService

# Import sub-routers
from .orders import router as orders_router
from .inventory import router as inventory_router
from .picking import router as picking_router
from .backorders import router as backorders_router

api_router = APIRouter(tags=["API"])

# Include sub-routers
api_router.include_router(orders_router)
api_router.include_router(inventory_router)
api_router.include_router(picking_router)
api_router.include_router(backorders_router)

# ===================== HEALTH & STATUS =====================

@api_router.get("/status")
async def api_status():
    return {"status": "ok", "version": __version__, "timestamp": datetime.now().isoformat()}

# ===================== RECONCILIATION =====================

@api_router.post("/reconciliation/run")
def run_reconciliation(db: Session = Depends(get_db)):
    """Re-sum the transaction log and report counter drift; nothing is corrected"""
    discrepancies = ReconciliationService.reconcile(db)
    return {
        "ok": not discrepancies,
        "discrepancies": [d.to_dict() for d in discrepancies],
    }

import logging

from fastapi import APIRouter, Depends

from ...deps import get_storage
from ...schemas import EarningsInsiderAlert, EarningsStats
from ...storage.base import Storage
from ..responses import error_response

router = APIRouter(prefix="/api/earnings")
logger = logging.getLogger(__name__)


@router.get("", response_model=list[EarningsInsiderAlert])
async def earnings_alerts(storage: Storage = Depends(get_storage)):
    try:
        return await storage.get_earnings_alerts()
    except Exception:
        logger.exception("earnings_alerts_fetch_failed")
        return error_response(500, "Failed to fetch earnings data")


@router.get("/stats", response_model=EarningsStats)
async def earnings_stats(storage: Storage = Depends(get_storage)):
    try:
        return await storage.get_earnings_stats()
    except Exception:
        logger.exception("earnings_stats_fetch_failed")
        return error_response(500, "Failed to fetch earnings stats")

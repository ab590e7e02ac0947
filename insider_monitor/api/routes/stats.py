import logging

from fastapi import APIRouter, Depends

from ...deps import get_storage
from ...schemas import DashboardStats
from ...storage.base import Storage
from ..responses import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/stats", response_model=DashboardStats)
async def dashboard_stats(storage: Storage = Depends(get_storage)):
    try:
        return await storage.get_dashboard_stats()
    except Exception:
        logger.exception("stats_fetch_failed")
        return error_response(500, "Failed to fetch dashboard stats")

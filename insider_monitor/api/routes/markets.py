import logging

from fastapi import APIRouter, Depends

from ...core.pagination import parse_pagination
from ...deps import get_storage
from ...schemas import Market, Page
from ...storage.base import Storage
from ..responses import error_response

router = APIRouter(prefix="/api/markets")
logger = logging.getLogger(__name__)


@router.get("", response_model=Page[Market])
async def list_markets(
    limit: str | None = None,
    offset: str | None = None,
    storage: Storage = Depends(get_storage),
):
    parsed_limit, parsed_offset = parse_pagination(limit, offset)
    try:
        return await storage.get_markets(parsed_limit, parsed_offset)
    except Exception:
        logger.exception("markets_fetch_failed")
        return error_response(500, "Failed to fetch markets")


@router.get("/{market_id}", response_model=Market)
async def market_detail(market_id: str, storage: Storage = Depends(get_storage)):
    try:
        market = await storage.get_market(market_id)
    except Exception:
        logger.exception("market_fetch_failed market_id=%s", market_id)
        return error_response(500, "Failed to fetch market")
    if market is None:
        return error_response(404, "Market not found")
    return market

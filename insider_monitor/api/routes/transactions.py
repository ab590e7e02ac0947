import logging

from fastapi import APIRouter, Depends

from ...deps import get_storage
from ...schemas import Transaction
from ...storage.base import Storage
from ..responses import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/transactions", response_model=list[Transaction])
async def list_transactions(storage: Storage = Depends(get_storage)):
    try:
        return await storage.get_transactions()
    except Exception:
        logger.exception("transactions_fetch_failed")
        return error_response(500, "Failed to fetch transactions")

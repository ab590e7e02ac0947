import logging

from fastapi import APIRouter, Depends

from ...core.pagination import parse_pagination
from ...deps import get_storage
from ...schemas import Page, RiskFactors, Wallet, WalletWithTransactions
from ...storage.base import Storage
from ..responses import error_response

router = APIRouter(prefix="/api/wallets")
logger = logging.getLogger(__name__)


@router.get("", response_model=Page[Wallet])
async def list_wallets(
    limit: str | None = None,
    offset: str | None = None,
    storage: Storage = Depends(get_storage),
):
    parsed_limit, parsed_offset = parse_pagination(limit, offset)
    try:
        return await storage.get_wallets(parsed_limit, parsed_offset)
    except Exception:
        logger.exception("wallets_fetch_failed")
        return error_response(500, "Failed to fetch wallets")


@router.get("/flagged", response_model=Page[Wallet])
async def flagged_wallets(
    limit: str | None = None,
    offset: str | None = None,
    storage: Storage = Depends(get_storage),
):
    parsed_limit, parsed_offset = parse_pagination(limit, offset)
    try:
        return await storage.get_flagged_wallets(parsed_limit, parsed_offset)
    except Exception:
        logger.exception("flagged_wallets_fetch_failed")
        return error_response(500, "Failed to fetch flagged wallets")


@router.get("/historical", response_model=Page[Wallet])
async def historical_wallets(
    limit: str | None = None,
    offset: str | None = None,
    storage: Storage = Depends(get_storage),
):
    parsed_limit, parsed_offset = parse_pagination(limit, offset)
    try:
        return await storage.get_historical_wallets(parsed_limit, parsed_offset)
    except Exception:
        logger.exception("historical_wallets_fetch_failed")
        return error_response(500, "Failed to fetch historical wallets")


@router.get("/{wallet_id}", response_model=WalletWithTransactions)
async def wallet_detail(wallet_id: str, storage: Storage = Depends(get_storage)):
    try:
        wallet = await storage.get_wallet_with_transactions(wallet_id)
    except Exception:
        logger.exception("wallet_fetch_failed wallet_id=%s", wallet_id)
        return error_response(500, "Failed to fetch wallet")
    if wallet is None:
        return error_response(404, "Wallet not found")
    return wallet


@router.get("/{wallet_id}/risk-factors", response_model=RiskFactors)
async def wallet_risk_factors(wallet_id: str, storage: Storage = Depends(get_storage)):
    try:
        factors = await storage.get_wallet_risk_factors(wallet_id)
    except Exception:
        logger.exception("risk_factors_fetch_failed wallet_id=%s", wallet_id)
        return error_response(500, "Failed to fetch risk factors")
    if factors is None:
        return error_response(404, "Wallet not found")
    return factors

from fastapi import APIRouter

from .routes import earnings, health, markets, stats, transactions, wallets

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(stats.router)
api_router.include_router(wallets.router)
api_router.include_router(markets.router)
api_router.include_router(transactions.router)
api_router.include_router(earnings.router)

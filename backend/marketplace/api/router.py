from fastapi import APIRouter

from marketplace.api.routes import auth, balances, directory, health, orders, quotes, transactions

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(quotes.router)
api_router.include_router(orders.router)
api_router.include_router(transactions.router)
api_router.include_router(balances.router)
api_router.include_router(directory.router)

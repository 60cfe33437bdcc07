from fastapi import APIRouter

from services.vault.src.vault.routes.account import router as account_router
from services.vault.src.vault.routes.assets import router as assets_router
from services.vault.src.vault.routes.operations import router as operations_router
from services.vault.src.vault.routes.positions import router as positions_router

api_router = APIRouter(prefix="/api")
api_router.include_router(assets_router)
api_router.include_router(positions_router)
api_router.include_router(account_router)
api_router.include_router(operations_router)

__all__ = ["api_router"]

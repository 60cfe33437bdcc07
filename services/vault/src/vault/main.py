import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.vault.src.vault.config import settings
from services.vault.src.vault.routes import api_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and report the configured deployment on startup."""
    logger.info(
        f"Vault API starting: chain={settings.chain_id} "
        f"account={settings.custodial_account} buffer_bps={settings.borrow_buffer_bps}"
    )
    if os.getenv("INIT_DB", "true").lower() == "true":
        from services.vault.src.vault.db.engine import get_engine, init_db

        logger.info("Initializing database schema")
        init_db(get_engine())

    yield


app = FastAPI(title="Custodial Lending Vault API", lifespan=lifespan)

cors_origins = [
    "http://localhost:3000",
    "https://localhost:3000",
]

# Add custom origin from environment
if os.getenv("CORS_ORIGIN"):
    cors_origins.append(os.getenv("CORS_ORIGIN"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "custodial-lending-vault-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}

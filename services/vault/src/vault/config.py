import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.vault.src.vault.domain.fixed_point import WAD


def _find_env_file() -> str | None:
    """Find .env file, preferring .env.local for local development."""
    for env_file in [".env.local", ".env"]:
        for base in [".", os.environ.get("REPO_ROOT", "")]:
            if base:
                path = Path(base) / env_file
                if path.exists():
                    return str(path)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # DATABASE_URL from environment (production/CI)
    # Falls back to SQLite for local development if not set
    database_url: str = "sqlite:///./vault.db"

    chain_id: str = "ethereum"
    # Falls back to the chain's public endpoint when unset
    rpc_url: str | None = None
    custodial_account: str = Field(
        default="0x0000000000000000000000000000000000000000",
        description="Account holding the pooled position at the lending pool",
    )

    # Risk parameters (WAD health factors, basis points)
    min_health_factor: int = Field(default=WAD, description="Per-user HF floor")
    min_account_health_factor: int = Field(
        default=WAD, description="Custodial account HF floor"
    )
    borrow_buffer_bps: int = Field(
        default=9_500, description="Share of LTV room a single borrow may use"
    )
    interest_rate_mode: int = Field(default=2, description="2 = variable")

    @field_validator("min_health_factor", "min_account_health_factor")
    @classmethod
    def health_factor_at_least_one(cls, v: int) -> int:
        if v < WAD:
            raise ValueError("minimum health factor must be >= 1.0 (1e18)")
        return v

    @field_validator("borrow_buffer_bps")
    @classmethod
    def buffer_in_range(cls, v: int) -> int:
        if not 0 < v <= 10_000:
            raise ValueError("borrow_buffer_bps must be in (0, 10000]")
        return v


settings = Settings()

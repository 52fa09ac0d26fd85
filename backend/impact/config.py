# backend/impact/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment only."""

    database_url: str
    frontend_origin: str
    xrpl_rpc_url: str
    xrpl_faucet_url: str
    ledger_timeout: float
    ledger_max_attempts: int
    ledger_issuer_secret: Optional[str]
    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            database_url=os.getenv(
                "DATABASE_URL",
                "postgresql+psycopg://impact:devpass@db:5432/impact",
            ),
            frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:5173"),
            xrpl_rpc_url=os.getenv("XRPL_RPC_URL", "https://s.altnet.rippletest.net:51234"),
            xrpl_faucet_url=os.getenv(
                "XRPL_FAUCET_URL", "https://faucet.altnet.rippletest.net/accounts"
            ),
            ledger_timeout=float(os.getenv("LEDGER_TIMEOUT", "20")),
            ledger_max_attempts=max(1, int(os.getenv("LEDGER_MAX_ATTEMPTS", "2"))),
            ledger_issuer_secret=os.getenv("LEDGER_ISSUER_SECRET") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

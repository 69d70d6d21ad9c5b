"""Runtime settings read from the environment (and an optional ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from shop.application.batch_loader import DEFAULT_BATCH_SIZE

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DATABASE = PROJECT_ROOT / "data" / "shop.db"
DEFAULT_STRATEGY = "split-fan-out"


@dataclass(frozen=True)
class Settings:
    database: Path
    batch_size: int = DEFAULT_BATCH_SIZE
    fetch_strategy: str = DEFAULT_STRATEGY
    query_timeout: float | None = None


def load_settings() -> Settings:
    # .env in the working directory (or a parent) fills in unset variables
    load_dotenv(find_dotenv(usecwd=True))

    timeout = os.getenv("SHOP_QUERY_TIMEOUT")
    return Settings(
        database=Path(os.getenv("SHOP_DATABASE", str(DEFAULT_DATABASE))),
        batch_size=_positive_int("SHOP_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        fetch_strategy=os.getenv("SHOP_FETCH_STRATEGY", DEFAULT_STRATEGY),
        query_timeout=float(timeout) if timeout else None,
    )


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value

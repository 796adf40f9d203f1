"""Ortam değişkenlerinden yapılandırma. Tüm giriş noktaları bunu kullansın."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from botocore.config import Config
from dotenv import load_dotenv

from slotting.models.warehouse import LEVEL_MAX_WEIGHTS, ScoringWeights

logger = logging.getLogger(__name__)

# Proje kökündeki .env dosyasını bul ve yükle
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

DEFAULT_REGION = "us-west-2"
DEFAULT_CACHE_TTL = 30.0
DEFAULT_TX_ATTEMPTS = 5
DEFAULT_PROPOSAL_TTL = 300.0

BOTO_CONFIG = Config(retries={"max_attempts": 3})


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Geçersiz sayısal değer %s=%r, varsayılan kullanılıyor: %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    value = _env_float(name, float(default))
    return max(1, int(value))


@dataclass
class Settings:
    region: str = DEFAULT_REGION
    table_prefix: str = ""
    endpoint_url: Optional[str] = None
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL
    max_transaction_attempts: int = DEFAULT_TX_ATTEMPTS
    proposal_ttl_seconds: float = DEFAULT_PROPOSAL_TTL
    scoring: ScoringWeights = field(default_factory=ScoringWeights)


def load_settings() -> Settings:
    """Ortamdan Settings oluşturur; eksik değerler varsayılana düşer."""
    level_weights = dict(LEVEL_MAX_WEIGHTS)
    for level in ("1", "2", "3", "4"):
        level_weights[level] = _env_float(f"SLOTTING_LEVEL_{level}_MAX_WEIGHT", level_weights[level])

    return Settings(
        region=os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION),
        table_prefix=os.environ.get("SLOTTING_TABLE_PREFIX", ""),
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
        cache_ttl_seconds=_env_float("SLOTTING_CACHE_TTL", DEFAULT_CACHE_TTL),
        max_transaction_attempts=_env_int("SLOTTING_TX_ATTEMPTS", DEFAULT_TX_ATTEMPTS),
        proposal_ttl_seconds=_env_float("SLOTTING_PROPOSAL_TTL", DEFAULT_PROPOSAL_TTL),
        scoring=ScoringWeights(
            utilization_weight=_env_float("SLOTTING_UTILIZATION_WEIGHT", 2.0),
            height_weight=_env_float("SLOTTING_HEIGHT_WEIGHT", 3.0),
            level_max_weights=level_weights,
        ),
    )

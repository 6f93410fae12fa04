import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from cashflow.logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Settings:
    seed_path: str = "data/seed.json"
    due_soon_days: int = 3
    balance_alert: Decimal = Decimal("0")
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring %s=%r: negative, using %s", name, raw, default)
        return default
    return value


def _decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if not value.is_finite():
        logger.warning("Ignoring %s=%r: not finite, using %s", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    return Settings(
        seed_path=os.getenv("CASHFLOW_SEED_PATH") or Settings.seed_path,
        due_soon_days=_int_env("CASHFLOW_DUE_SOON_DAYS", Settings.due_soon_days),
        balance_alert=_decimal_env("CASHFLOW_BALANCE_ALERT", Settings.balance_alert),
        log_level=os.getenv("CASHFLOW_LOG_LEVEL") or Settings.log_level,
    )

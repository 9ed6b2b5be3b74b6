"""
Casino Game Engine - Configuration

Bet limits, blackjack table rules and logging setup.
Values are read once at import from the environment (a local .env is honoured),
so every engine in the process sees the same constants.

    CASINO_MIN_BET          lowest accepted stake          (default 1)
    CASINO_MAX_BET          highest accepted stake         (default 10000)
    BLACKJACK_DECKS         decks in the blackjack shoe    (default 1)
    BLACKJACK_SESSION_TTL   seconds an open hand is kept   (default 3600)
    LOG_LEVEL               root level for casino.* loggers (default INFO)
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger("casino.config").warning(
            f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


class BetLimits:
    """Global stake bounds applied to every game."""
    MIN_BET_AMOUNT = _env_float("CASINO_MIN_BET", 1)
    MAX_BET_AMOUNT = _env_float("CASINO_MAX_BET", 10000)


class BlackjackRules:
    DECK_COUNT = max(1, _env_int("BLACKJACK_DECKS", 1))
    DEALER_STAND_VALUE = 17
    DEALER_HITS_SOFT_17 = True
    BLACKJACK_PAYS = "3:2"
    MAX_SPLITS = 1
    DOUBLE_AFTER_SPLIT = True


class SessionConfig:
    # Open blackjack hands older than this are dropped by the session store
    TTL_SECONDS = max(1, _env_int("BLACKJACK_SESSION_TTL", 3600))


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = None) -> logging.Logger:
    """Configure the casino.* logger tree. Safe to call more than once."""
    logger = logging.getLogger("casino")
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for _noisy in ("urllib3", "asyncio"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)
    return logger

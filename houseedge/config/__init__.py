"""
Configuration management for HOUSEEDGE.

Loads settings from environment variables with sensible defaults.
Configures logging with rotation to prevent unbounded log growth.
The Config object is built once at startup and passed explicitly
to every component.
"""

import os
import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

from houseedge.exceptions import ConfigError

# Load .env file
load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = PROJECT_ROOT / "logs"

STRATEGIES = ("flat", "kelly", "confidence")


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [x.strip() for x in raw.split(",") if x.strip()]


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB per file
    backup_count: int = 3,
) -> None:
    """Configure logging with console output AND rotating file handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (defaults to PROJECT_ROOT/logs)
        max_bytes: Max size per log file before rotation (default 5MB)
        backup_count: Number of rotated backup files to keep
    """
    log_dir = log_dir or LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers to avoid duplicates on reload
    root.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / "houseedge.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)


@dataclass
class OddsConfig:
    bookmakers: List[str] = field(default_factory=lambda: _env_list(
        "HOUSEEDGE_BOOKMAKERS", ["pinnacle", "betfair", "bet365", "draftkings"]
    ))
    queue_size: int = field(default_factory=lambda: int(os.getenv("HOUSEEDGE_ODDS_QUEUE_SIZE", "100")))


@dataclass
class SharpConfig:
    rlm_threshold: float = field(default_factory=lambda: _env_float("HOUSEEDGE_RLM_THRESHOLD", 0.02))
    steam_threshold: float = field(default_factory=lambda: _env_float("HOUSEEDGE_STEAM_THRESHOLD", 0.015))
    min_confidence: float = field(default_factory=lambda: _env_float("HOUSEEDGE_SHARP_MIN_CONFIDENCE", 0.65))
    lookback_hours: int = 48


@dataclass
class BankrollConfig:
    default_strategy: str = field(default_factory=lambda: os.getenv("HOUSEEDGE_DEFAULT_STRATEGY", "kelly"))
    flat_fraction: float = 0.02
    kelly_fraction: float = field(default_factory=lambda: _env_float("HOUSEEDGE_KELLY_FRACTION", 0.25))
    max_stake_fraction: float = field(default_factory=lambda: _env_float("HOUSEEDGE_MAX_STAKE_FRACTION", 0.05))
    min_stake: float = field(default_factory=lambda: _env_float("HOUSEEDGE_MIN_STAKE", 10.0))
    initial_bankroll: float = field(default_factory=lambda: _env_float("HOUSEEDGE_INITIAL_BANKROLL", 1000.0))


@dataclass
class AnalysisConfig:
    form_decay: float = 0.9       # Exponential decay for form
    matches_lookback: int = 10    # Recent matches to analyze


@dataclass
class SlipsConfig:
    min_ev: float = field(default_factory=lambda: _env_float("HOUSEEDGE_MIN_EV", 0.05))
    min_confidence: float = field(default_factory=lambda: _env_float("HOUSEEDGE_MIN_CONFIDENCE", 0.70))
    max_daily_slips: int = 10


@dataclass
class PerformanceConfig:
    variance_tolerance: float = field(default_factory=lambda: _env_float("HOUSEEDGE_VARIANCE_TOLERANCE", 2.0))
    min_sample_size: int = 30
    report_hours: int = 168  # Weekly reports


@dataclass
class Config:
    """Application configuration."""

    odds: OddsConfig = field(default_factory=OddsConfig)
    sharp: SharpConfig = field(default_factory=SharpConfig)
    bankroll: BankrollConfig = field(default_factory=BankrollConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    slips: SlipsConfig = field(default_factory=SlipsConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)

    # Ledger snapshot file; None keeps the ledger in memory only
    ledger_path: Optional[Path] = field(default_factory=lambda: Path(
        os.getenv("HOUSEEDGE_LEDGER_PATH", "data/ledger.json")
    ))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> "Config":
        """Check startup constraints. Raises ConfigError listing all violations."""
        errors = []

        kelly = self.bankroll.kelly_fraction
        if not 0 <= kelly <= 1:
            errors.append(f"kelly_fraction must be in [0, 1], got {kelly}")
        if self.bankroll.initial_bankroll <= 0:
            errors.append("initial_bankroll must be positive")
        if not 0 < self.bankroll.max_stake_fraction <= 1:
            errors.append("max_stake_fraction must be in (0, 1]")
        if self.bankroll.min_stake < 0:
            errors.append("min_stake must be non-negative")
        if self.bankroll.default_strategy not in STRATEGIES:
            errors.append(
                f"default_strategy must be one of {STRATEGIES}, "
                f"got {self.bankroll.default_strategy!r}"
            )
        if self.slips.min_ev < 0:
            errors.append("min_ev must be non-negative")
        if not 0 <= self.slips.min_confidence <= 1:
            errors.append("min_confidence must be in [0, 1]")
        if not 0 <= self.sharp.min_confidence <= 1:
            errors.append("sharp min_confidence must be in [0, 1]")
        if self.performance.variance_tolerance <= 0:
            errors.append("variance_tolerance must be positive")
        if self.odds.queue_size <= 0:
            errors.append("odds queue_size must be positive")

        if errors:
            raise ConfigError("; ".join(errors))
        return self


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = Config().validate()
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    load_dotenv(override=True)
    _config = Config().validate()
    return _config

"""
Tests for configuration loading and validation
"""

import logging
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

import houseedge.config as config_module
from houseedge.config import Config, get_config, reload_config, setup_logging
from houseedge.exceptions import ConfigError


class TestConfig:

    def test_defaults_validate(self, config):
        assert config.validate() is config

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("HOUSEEDGE_KELLY_FRACTION", "0.5")
        monkeypatch.setenv("HOUSEEDGE_BOOKMAKERS", "pinnacle, betfair")
        monkeypatch.setenv("HOUSEEDGE_LEDGER_PATH", "/tmp/elsewhere.json")

        config = Config()
        assert config.bankroll.kelly_fraction == 0.5
        assert config.odds.bookmakers == ["pinnacle", "betfair"]
        assert config.ledger_path == Path("/tmp/elsewhere.json")

    @pytest.mark.parametrize("section,name,value", [
        ("bankroll", "kelly_fraction", 1.5),
        ("bankroll", "initial_bankroll", 0),
        ("bankroll", "max_stake_fraction", 0),
        ("bankroll", "default_strategy", "martingale"),
        ("slips", "min_confidence", 1.2),
        ("performance", "variance_tolerance", 0),
        ("odds", "queue_size", 0),
    ])
    def test_invalid_values(self, config, section, name, value):
        setattr(getattr(config, section), name, value)
        with pytest.raises(ConfigError):
            config.validate()

    def test_all_errors_reported(self, config):
        config.bankroll.kelly_fraction = -1
        config.slips.min_ev = -0.1
        with pytest.raises(ConfigError) as exc:
            config.validate()
        assert "kelly_fraction" in str(exc.value)
        assert "min_ev" in str(exc.value)

    def test_get_config_cached(self, monkeypatch):
        monkeypatch.setattr(config_module, "_config", None)
        assert get_config() is get_config()

    def test_reload_rejects_bad_env(self, monkeypatch):
        monkeypatch.setattr(config_module, "_config", None)
        monkeypatch.setenv("HOUSEEDGE_DEFAULT_STRATEGY", "martingale")
        with pytest.raises(ConfigError):
            reload_config()


def test_setup_logging(tmp_path):
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging("DEBUG", log_dir=tmp_path)
        logging.getLogger("houseedge.test").info("hello")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert (tmp_path / "houseedge.log").exists()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])

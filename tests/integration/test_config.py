# [TESTER] v1

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from arbordex.integration.config import (
    AppConfig,
    Environment,
    PoolSettings,
    load_config,
    parse_cors_origins,
)


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "arbordex.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults_without_file_or_env() -> None:
    cfg = load_config(environ={})
    assert cfg == AppConfig()
    assert cfg.env is Environment.DEVELOPMENT
    assert not cfg.enforce_https
    assert cfg.cors_origins == frozenset()
    assert cfg.pool.fee_rate == 0.003


def test_env_overrides() -> None:
    cfg = load_config(
        environ={
            "ARBORDEX_ENV": "Production",
            "ARBORDEX_HOST": "0.0.0.0",
            "ARBORDEX_PORT": "8080",
            "ARBORDEX_CORS_ORIGINS": "https://a.example, *, https://b.example",
            "ARBORDEX_RATE_LIMIT_RPM": "30",
            "ARBORDEX_LOG_LEVEL": "debug",
        }
    )
    assert cfg.env is Environment.PRODUCTION
    assert cfg.enforce_https
    assert cfg.host == "0.0.0.0"
    assert cfg.port == 8080
    assert cfg.cors_origins == frozenset({"https://a.example", "https://b.example"})
    assert cfg.rate_limit_rpm == 30
    assert cfg.log_level == "DEBUG"


def test_bad_port_falls_back_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="arbordex.integration.config"):
        cfg = load_config(environ={"ARBORDEX_PORT": "http"})
    assert cfg.port == 3000
    assert "ARBORDEX_PORT" in caplog.text


def test_out_of_range_values_are_clamped() -> None:
    cfg = load_config(environ={"ARBORDEX_PORT": "70000", "ARBORDEX_RATE_LIMIT_RPM": "-5"})
    assert cfg.port == 65535
    assert cfg.rate_limit_rpm == 0


def test_unknown_environment_is_development() -> None:
    assert Environment.parse("qa") is Environment.DEVELOPMENT
    assert Environment.parse(None) is Environment.DEVELOPMENT
    assert Environment.parse(" staging ") is Environment.STAGING


def test_yaml_file_is_loaded(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
server:
  env: staging
  port: 4000
  cors_origins: ["https://app.example"]
  max_body_bytes: 1024
pool:
  fee_rate: 0.001
  seed_reserve_a: 500
  seed_reserve_b: 1500000
  seed_total_shares: 27386.13
  limits:
    min_trade_amount: 0.1
    price_impact_warning: 0.02
""",
    )
    cfg = load_config(path, environ={})
    assert cfg.env is Environment.STAGING
    assert cfg.port == 4000
    assert cfg.cors_origins == frozenset({"https://app.example"})
    assert cfg.max_body_bytes == 1024
    assert cfg.pool.fee_rate == 0.001
    assert cfg.pool.limits.min_trade_amount == 0.1
    assert cfg.pool.limits.price_impact_warning == 0.02
    seed = cfg.pool.seed()
    assert seed.reserve_a == 500.0
    assert seed.k == 500.0 * 1_500_000.0


def test_env_beats_file_and_config_path_from_env(tmp_path: Path) -> None:
    path = _write(tmp_path, "server:\n  port: 4000\n")
    cfg = load_config(environ={"ARBORDEX_CONFIG": str(path), "ARBORDEX_PORT": "5000"})
    assert cfg.port == 5000
    cfg = load_config(environ={"ARBORDEX_CONFIG": str(path)})
    assert cfg.port == 4000


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "server: 3\n",
        "pool:\n  fee: 0.1\n",
        "pool:\n  limits:\n    max_trade: 5\n",
        "pool:\n  fee_rate: high\n",
        "server:\n  port: '80'\n",
        "pool:\n  fee_rate: 1" + "0" * 400 + "\n",
    ],
)
def test_bad_files_raise_value_error(tmp_path: Path, text: str) -> None:
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, text), environ={})


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    assert load_config(_write(tmp_path, ""), environ={}) == AppConfig()


def test_parse_cors_origins_ignores_wildcard_and_blanks() -> None:
    assert parse_cors_origins("*, ,") == frozenset()
    assert parse_cors_origins("") == frozenset()


class TestPoolSettings:
    def test_rejects_bad_fee(self) -> None:
        with pytest.raises(ValueError):
            PoolSettings(fee_rate=1.0)

    def test_rejects_default_slippage_above_ceiling(self) -> None:
        with pytest.raises(ValueError):
            PoolSettings(default_slippage_tolerance=0.3, max_allowed_slippage=0.2)

    def test_effective_limits_pin_slippage_ceiling(self) -> None:
        s = PoolSettings(max_allowed_slippage=0.1)
        assert s.effective_limits().max_slippage_tolerance == 0.1
        assert s.effective_limits().min_trade_amount == s.limits.min_trade_amount

    def test_effective_limits_unchanged_when_tighter(self) -> None:
        s = PoolSettings()
        assert s.effective_limits() is s.limits

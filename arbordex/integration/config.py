"""
Runtime configuration for the Arbordex service.

Sources, lowest to highest precedence:
1. dataclass defaults,
2. an optional YAML file (`ARBORDEX_CONFIG` or the `path` argument),
3. `ARBORDEX_*` environment variables.

The core never reads configuration; everything it needs is passed in from
`PoolSettings`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional

import yaml

from ..core.cpmm import DEFAULT_SLIPPAGE_TOLERANCE, FEE_RATE, MAX_ALLOWED_SLIPPAGE
from ..core.numbers import is_finite_number
from ..core.validation import ValidationLimits
from ..state.pools import SEED_RESERVE_A, SEED_RESERVE_B, SEED_TOTAL_SHARES, PoolState, seed_state

logger = logging.getLogger(__name__)


class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Environment":
        v = (raw or "").strip().lower()
        for env in cls:
            if env.value == v:
                return env
        return cls.DEVELOPMENT


@dataclass(frozen=True)
class PoolSettings:
    fee_rate: float = FEE_RATE
    default_slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE
    max_allowed_slippage: float = MAX_ALLOWED_SLIPPAGE
    seed_reserve_a: float = SEED_RESERVE_A
    seed_reserve_b: float = SEED_RESERVE_B
    seed_total_shares: float = SEED_TOTAL_SHARES
    limits: ValidationLimits = ValidationLimits()

    def __post_init__(self) -> None:
        if not (0 <= self.fee_rate < 1):
            raise ValueError(f"fee_rate must be in [0, 1): {self.fee_rate}")
        if not (0 <= self.default_slippage_tolerance <= self.max_allowed_slippage):
            raise ValueError(
                "default_slippage_tolerance must be in [0, max_allowed_slippage]: "
                f"{self.default_slippage_tolerance}"
            )

    def seed(self) -> PoolState:
        return seed_state(self.seed_reserve_a, self.seed_reserve_b, self.seed_total_shares)

    def effective_limits(self) -> ValidationLimits:
        """Validation limits with the slippage ceiling pinned to `max_allowed_slippage`."""
        if self.limits.max_slippage_tolerance <= self.max_allowed_slippage:
            return self.limits
        values = {f.name: getattr(self.limits, f.name) for f in fields(self.limits)}
        values["max_slippage_tolerance"] = self.max_allowed_slippage
        return ValidationLimits(**values)


@dataclass(frozen=True)
class AppConfig:
    env: Environment = Environment.DEVELOPMENT
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: FrozenSet[str] = frozenset()
    rate_limit_rpm: int = 600
    max_body_bytes: int = 16_384
    log_level: str = "INFO"
    pool: PoolSettings = field(default_factory=PoolSettings)

    @property
    def enforce_https(self) -> bool:
        return self.env in (Environment.STAGING, Environment.PRODUCTION)


def _env_int(environ: Mapping[str, str], name: str, default: int, *, lo: int, hi: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        logger.warning("Invalid %s: %r, using %s", name, raw, default)
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(environ: Mapping[str, str], name: str, default: str) -> str:
    raw = environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def parse_cors_origins(value: str) -> FrozenSet[str]:
    """
    Parse a comma-separated CORS allow-list.

    Default is empty (deny CORS). '*' is ignored; trusted origins must be listed.
    """
    out = set()
    for item in (value or "").split(","):
        origin = item.strip()
        if not origin or origin == "*":
            continue
        out.add(origin)
    return frozenset(out)


def _as_float(section: str, key: str, value: Any) -> float:
    if not is_finite_number(value):
        raise ValueError(f"{section}.{key} must be a finite number, got {value!r}")
    return float(value)


def _file_int(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"server.{key} must be an int, got {value!r}")
    return value


def _require_mapping(obj: Any, *, name: str) -> Dict[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"{name} must be a mapping")
    return obj


def _pool_settings_from_mapping(obj: Mapping[str, Any]) -> PoolSettings:
    limits_raw = _require_mapping(obj.get("limits"), name="pool.limits")
    limit_names = {f.name for f in fields(ValidationLimits)}
    unknown = set(limits_raw) - limit_names
    if unknown:
        raise ValueError(f"unknown pool.limits keys: {sorted(unknown)}")
    limits = ValidationLimits(**{k: _as_float("pool.limits", k, v) for k, v in limits_raw.items()})

    settings_names = {f.name for f in fields(PoolSettings)} - {"limits"}
    unknown = set(obj) - settings_names - {"limits"}
    if unknown:
        raise ValueError(f"unknown pool keys: {sorted(unknown)}")
    kwargs = {k: _as_float("pool", k, v) for k, v in obj.items() if k in settings_names}
    return PoolSettings(limits=limits, **kwargs)


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """Read a YAML config file into a plain dict. Raises ValueError on a bad shape."""
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    return _require_mapping(obj, name=f"config file {path}")


def load_config(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build an `AppConfig` from an optional YAML file and the environment.

    Raises:
        ValueError: If the YAML file has an invalid structure or values
    """
    env_map: Mapping[str, str] = os.environ if environ is None else environ

    if path is None:
        raw_path = _env_str(env_map, "ARBORDEX_CONFIG", "")
        path = Path(raw_path) if raw_path else None

    file_obj: Dict[str, Any] = load_yaml_config(path) if path is not None else {}
    server = _require_mapping(file_obj.get("server"), name="server")
    pool = _pool_settings_from_mapping(_require_mapping(file_obj.get("pool"), name="pool"))

    defaults = AppConfig()
    file_env = server.get("env", defaults.env.value)
    file_cors = server.get("cors_origins", [])
    if isinstance(file_cors, list):
        file_cors = ",".join(str(o) for o in file_cors)

    env = Environment.parse(_env_str(env_map, "ARBORDEX_ENV", str(file_env)))
    host = _env_str(env_map, "ARBORDEX_HOST", str(server.get("host", defaults.host)))
    port = _env_int(
        env_map, "ARBORDEX_PORT", _file_int(server, "port", defaults.port), lo=0, hi=65535
    )
    cors_origins = parse_cors_origins(_env_str(env_map, "ARBORDEX_CORS_ORIGINS", str(file_cors or "")))
    rpm = _env_int(
        env_map,
        "ARBORDEX_RATE_LIMIT_RPM",
        _file_int(server, "rate_limit_rpm", defaults.rate_limit_rpm),
        lo=0,
        hi=1_000_000,
    )
    max_body = _file_int(server, "max_body_bytes", defaults.max_body_bytes)
    log_level = _env_str(env_map, "ARBORDEX_LOG_LEVEL", str(server.get("log_level", defaults.log_level))).upper()

    return AppConfig(
        env=env,
        host=host,
        port=port,
        cors_origins=cors_origins,
        rate_limit_rpm=rpm,
        max_body_bytes=max(1, max_body),
        log_level=log_level,
        pool=pool,
    )

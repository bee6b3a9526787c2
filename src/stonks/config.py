"""
config.py – settings for the trading agent
==========================================

• `.env` is loaded once by `load_settings()` (python-dotenv, no override).
• Broker credentials come from the environment (required).
• Agent parameters come from an optional YAML file (`STONKS_CONFIG`,
  default `config/agent.yaml`), falling back to the defaults below.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from stonks.core.errors import ConfigError

# ───── env names ──────────────────────────────────────────────────────
API_BASE_URL_VAR = "ALPACA_API_BASE_URL"
API_KEY_ID_VAR = "ALPACA_API_KEY_ID"
API_SECRET_KEY_VAR = "ALPACA_API_SECRET_KEY"
DATA_URL_VAR = "ALPACA_DATA_URL"
DATA_STREAM_URL_VAR = "ALPACA_DATA_STREAM_URL"
LOG_LEVEL_VAR = "LOG_LEVEL"
CONFIG_PATH_VAR = "STONKS_CONFIG"
SYMBOL_VAR = "STONKS_SYMBOL"
DRY_RUN_VAR = "DRY_RUN"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_CONFIG_PATH = Path("config") / "agent.yaml"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass(frozen=True)
class AgentParams:
    symbol: str = "VTI"
    strategy: str = "martingale"
    base_bet: Decimal = Decimal("0.10")
    epsilon: Decimal = Decimal("0.01")
    tick_debounce_sec: float = 1.0
    tick_sample_every: int = 1
    open_orders_limit: int = 100


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    api_key_id: str
    api_secret_key: str
    data_url: str = "https://data.alpaca.markets"
    data_stream_url: str = "wss://stream.data.alpaca.markets/v2/iex"
    log_level: int = logging.INFO
    dry_run: bool = False
    agent: AgentParams = field(default_factory=AgentParams)


# ───── helpers ────────────────────────────────────────────────────────
def _required(env: Mapping[str, str], key: str) -> str:
    val = env.get(key)
    if not val:
        raise ConfigError(f"Missing required environment variable {key}")
    return val


def parse_log_level(raw: Optional[str]) -> int:
    name = (raw or DEFAULT_LOG_LEVEL).strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigError(f"Unparsable log level {raw!r}")
    return level


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


def parse_agent_params(raw: Mapping[str, Any], *, symbol_override: Optional[str] = None) -> AgentParams:
    defaults = AgentParams()
    try:
        params = AgentParams(
            symbol=str(symbol_override or raw.get("symbol", defaults.symbol)).upper(),
            strategy=str(raw.get("strategy", defaults.strategy)),
            base_bet=Decimal(str(raw.get("base_bet", defaults.base_bet))),
            epsilon=Decimal(str(raw.get("epsilon", defaults.epsilon))),
            tick_debounce_sec=float(raw.get("tick_debounce_sec", defaults.tick_debounce_sec)),
            tick_sample_every=int(raw.get("tick_sample_every", defaults.tick_sample_every)),
            open_orders_limit=int(raw.get("open_orders_limit", defaults.open_orders_limit)),
        )
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid agent parameter: {e}") from e

    if not params.symbol:
        raise ConfigError("agent.symbol must not be empty")
    if not (Decimal("0") < params.base_bet <= Decimal("1")):
        raise ConfigError(f"agent.base_bet must be in (0, 1], got {params.base_bet}")
    if params.epsilon <= 0:
        raise ConfigError(f"agent.epsilon must be positive, got {params.epsilon}")
    if params.tick_sample_every < 1:
        raise ConfigError("agent.tick_sample_every must be >= 1")
    return params


# ───── public ─────────────────────────────────────────────────────────
def load_settings(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment (+ YAML agent section).
    Raises ConfigError on anything missing or unparsable.
    """
    if dotenv:
        load_dotenv(override=False)
    env = os.environ if env is None else env

    cfg_path = Path(env.get(CONFIG_PATH_VAR) or DEFAULT_CONFIG_PATH)
    cfg_root = _load_yaml(cfg_path)
    agent_raw = cfg_root.get("agent") or {}
    if not isinstance(agent_raw, dict):
        raise ConfigError(f"'agent' section of {cfg_path} must be a mapping")

    defaults = Settings(api_base_url="", api_key_id="", api_secret_key="")

    return Settings(
        # Required
        api_base_url=_required(env, API_BASE_URL_VAR),
        api_key_id=_required(env, API_KEY_ID_VAR),
        api_secret_key=_required(env, API_SECRET_KEY_VAR),
        # Optional
        data_url=env.get(DATA_URL_VAR) or defaults.data_url,
        data_stream_url=env.get(DATA_STREAM_URL_VAR) or defaults.data_stream_url,
        log_level=parse_log_level(env.get(LOG_LEVEL_VAR)),
        dry_run=env.get(DRY_RUN_VAR, "0") == "1",
        agent=parse_agent_params(agent_raw, symbol_override=env.get(SYMBOL_VAR)),
    )


def configure_logging(level: int) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)

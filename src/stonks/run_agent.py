# src/stonks/run_agent.py
from __future__ import annotations

import logging

from stonks.config import configure_logging, load_settings
from stonks.core.engine.controller import Controller
from stonks.core.engine.runner import run_controller
from stonks.core.errors import ConfigError, StartupError
from stonks.core.strategy.registry import build_strategy
from stonks.exchanges.registry import build_gateway


def main() -> None:
    # -------------------------------------------------------------------------
    # CONFIG (.env first)
    # -------------------------------------------------------------------------
    try:
        settings = load_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------
    configure_logging(settings.log_level)
    logger = logging.getLogger("stonks.run_agent")

    logger.info("=== STONKS AGENT START ===")
    logger.warning(
        "DRY_RUN=%s (%s)",
        settings.dry_run,
        "NO REAL ORDERS" if settings.dry_run else "REAL ORDERS ENABLED",
    )

    # -------------------------------------------------------------------------
    # BUILD
    # -------------------------------------------------------------------------
    params = settings.agent
    gateway = build_gateway("alpaca", settings)
    strategy = build_strategy(params.strategy, base_bet=params.base_bet)

    controller = Controller(
        gateway=gateway,
        strategy=strategy,
        symbol=params.symbol,
        epsilon=params.epsilon,
        tick_debounce_sec=params.tick_debounce_sec,
        tick_sample_every=params.tick_sample_every,
        open_orders_limit=params.open_orders_limit,
    )
    logger.info(
        "Controller ready: symbol=%s strategy=%s base_bet=%s",
        params.symbol,
        strategy.strategy_id,
        params.base_bet,
    )

    # -------------------------------------------------------------------------
    # RUN
    # -------------------------------------------------------------------------
    try:
        run_controller(controller)
    except StartupError as e:
        logger.critical("Agent cannot start: %s", e)
        raise SystemExit(1)

    logger.info("=== STONKS AGENT STOPPED ===")


if __name__ == "__main__":
    main()

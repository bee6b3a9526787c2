# src/stonks/cli/quote.py
from __future__ import annotations

import argparse
import json
import logging

from stonks.config import configure_logging, load_settings
from stonks.core.errors import ConfigError, GatewayError
from stonks.exchanges.alpaca.normalize import norm_latest_quote
from stonks.exchanges.registry import build_rest


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Print the latest quote for a symbol as JSON")
    ap.add_argument("symbol", help="ticker, e.g. VTI")
    args = ap.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")

    configure_logging(settings.log_level)
    log = logging.getLogger("stonks.cli.quote")

    symbol = args.symbol.strip().upper()
    if not symbol:
        raise SystemExit("symbol must not be empty")

    try:
        raw = build_rest(settings).latest_quote(symbol)
    except GatewayError as e:
        log.error("quote request failed for %s: %s", symbol, e)
        raise SystemExit(1)

    print(json.dumps(norm_latest_quote(raw), default=str, indent=2))


if __name__ == "__main__":
    main()

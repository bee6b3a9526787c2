# src/stonks/core/engine/runner.py
from __future__ import annotations

import logging
import signal

from stonks.core.engine.controller import Controller

log = logging.getLogger("stonks.core.engine.runner")


def install_signal_handlers(controller: Controller) -> None:
    """SIGINT / SIGTERM → controller.request_stop(). Must be called from the main thread."""

    def _handler(signum, _frame) -> None:
        log.info("received %s, shutting down", signal.Signals(signum).name)
        controller.request_stop()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def run_controller(controller: Controller) -> None:
    controller.start()
    install_signal_handlers(controller)
    # main thread blocks here until stop()
    controller.run()

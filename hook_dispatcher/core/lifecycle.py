"""Process lifecycle: termination signals and the blocking run."""

from __future__ import annotations

import logging
import signal
import threading
from typing import Iterable

from hook_dispatcher.services.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ExitSignal:
    """Signal handler that records the first termination signal and cancels.

    Does no logging or I/O; ``run_until_cancelled`` logs the received signal
    once the wait is over.
    """

    def __init__(self, cancel_event: threading.Event) -> None:
        self.cancel_event = cancel_event
        self.received: signal.Signals | None = None

    def __call__(self, signum: int, _frame) -> None:
        if self.received is None:
            self.received = signal.Signals(signum)
        self.cancel_event.set()


def install_signal_handlers(
    cancel_event: threading.Event,
    signals: Iterable[signal.Signals] = TERMINATION_SIGNALS,
) -> ExitSignal:
    """Route termination signals to the cancellation event.

    Must be called from the main thread. Repeated signals are harmless.
    """
    listener = ExitSignal(cancel_event)
    for sig in signals:
        signal.signal(sig, listener)
    return listener


def run_until_cancelled(
    dispatcher: Dispatcher,
    cancel_event: threading.Event | None = None,
    *,
    handle_signals: bool = True,
) -> None:
    """Run the dispatcher until SIGINT/SIGTERM or the event is set.

    Args:
        dispatcher: Dispatcher to run.
        cancel_event: Shared cancellation event; created when omitted.
        handle_signals: Install SIGINT/SIGTERM handlers before running.

    Raises:
        SubscriptionSetupAppError: If the dispatcher cannot subscribe.
    """
    cancel_event = cancel_event or threading.Event()
    listener = install_signal_handlers(cancel_event) if handle_signals else None

    try:
        dispatcher.run(cancel_event)
    finally:
        # Idempotent; makes sure anything else waiting on the event is released.
        cancel_event.set()

    if listener is not None and listener.received is not None:
        logger.info("lifecycle.exit_signal", extra={"signal": listener.received.name})
    logger.info("lifecycle.exit_normally")

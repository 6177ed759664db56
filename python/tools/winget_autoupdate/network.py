"""Connectivity gate run before any update work."""

from __future__ import annotations

import time
from typing import Callable, Optional

from loguru import logger

from . import web
from .localization import EventKind
from .models import Severity
from .notifier import Notifier

CONNECTIVITY_URL = "https://www.msftconnecttest.com/connecttest.txt"
DEFAULT_TIMEOUT_SECONDS = 1800
POLL_INTERVAL_SECONDS = 10
WARN_AFTER_SECONDS = 300
NETWORK_TAG = "network"


def wait_for_connectivity(
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    *,
    notifier: Optional[Notifier] = None,
    url: str = CONNECTIVITY_URL,
    probe: Callable[[str], bool] = web.probe,
    sleep: Callable[[float], None] = time.sleep,
    interval: int = POLL_INTERVAL_SECONDS,
    warn_after: int = WARN_AFTER_SECONDS,
) -> bool:
    """
    Block until the endpoint answers or the timeout elapses.

    Elapsed time is counted in poll intervals, so it only covers the waits
    between probes. A warning toast is sent once when the wait reaches
    ``warn_after`` seconds, and an error toast when the timeout is reached.

    Args:
        timeout_seconds: Give up after this many seconds of waiting
        notifier: Where to send the warning and error toasts
        url: Endpoint to probe
        probe: Returns True when the endpoint answered
        sleep: Blocking sleep between probes
        interval: Seconds between probes
        warn_after: Seconds of waiting before the warning toast

    Returns:
        True as soon as a probe succeeds, False after the timeout
    """
    logger.info("Checking internet connection...")
    elapsed = 0
    warned = False

    while True:
        if probe(url):
            if elapsed:
                logger.info(f"Connected after {elapsed} seconds")
            else:
                logger.info("Connected!")
            return True

        if elapsed >= timeout_seconds:
            logger.error(f"No internet connection after {elapsed // 60} minutes, giving up")
            if notifier is not None:
                notifier.notify_event(
                    EventKind.NETWORK_TIMEOUT,
                    elapsed // 60,
                    severity=Severity.ERROR,
                    tag=NETWORK_TAG,
                )
            return False

        if elapsed >= warn_after and not warned:
            logger.warning(f"No internet connection for {elapsed // 60} minutes, still waiting")
            if notifier is not None:
                notifier.notify_event(
                    EventKind.NETWORK_WAITING,
                    elapsed // 60,
                    severity=Severity.WARNING,
                    tag=NETWORK_TAG,
                )
            warned = True

        sleep(interval)
        elapsed += interval

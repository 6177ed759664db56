#!/usr/bin/env python3
"""
Tests for the connectivity gate.
"""

from unittest.mock import MagicMock

from winget_autoupdate.localization import EventKind
from winget_autoupdate.models import Severity
from winget_autoupdate.network import wait_for_connectivity


def _probe_succeeding_after(seconds: int, interval: int = 10) -> MagicMock:
    """Probe failing until ``seconds`` of waiting have elapsed."""
    failures = seconds // interval
    return MagicMock(side_effect=[False] * failures + [True])


def _kinds(notifier) -> list:
    return [c.args[0] for c in notifier.notify_event.call_args_list]


def test_connected_immediately(notifier):
    sleep = MagicMock()
    assert wait_for_connectivity(notifier=notifier, probe=MagicMock(return_value=True), sleep=sleep)
    sleep.assert_not_called()
    notifier.notify_event.assert_not_called()


def test_connected_before_warning(notifier):
    sleep = MagicMock()
    probe = _probe_succeeding_after(290)

    assert wait_for_connectivity(notifier=notifier, probe=probe, sleep=sleep)

    assert sleep.call_count == 29
    notifier.notify_event.assert_not_called()


def test_warning_sent_once_at_five_minutes(notifier):
    probe = _probe_succeeding_after(600)

    assert wait_for_connectivity(notifier=notifier, probe=probe, sleep=MagicMock())

    assert _kinds(notifier) == [EventKind.NETWORK_WAITING]
    call = notifier.notify_event.call_args
    assert call.args[1] == 5
    assert call.kwargs["severity"] is Severity.WARNING


def test_no_warning_at_299_seconds(notifier):
    # 1-second polling makes the 299 s boundary observable
    probe = _probe_succeeding_after(299, interval=1)

    assert wait_for_connectivity(notifier=notifier, probe=probe, sleep=MagicMock(), interval=1)

    notifier.notify_event.assert_not_called()


def test_warning_once_wait_reaches_300_seconds(notifier):
    # Still offline at the 300 s probe, connected one second later
    probe = _probe_succeeding_after(301, interval=1)

    assert wait_for_connectivity(notifier=notifier, probe=probe, sleep=MagicMock(), interval=1)

    assert _kinds(notifier) == [EventKind.NETWORK_WAITING]


def test_timeout_sends_one_error(notifier):
    sleep = MagicMock()
    probe = MagicMock(return_value=False)

    assert not wait_for_connectivity(notifier=notifier, probe=probe, sleep=sleep)

    assert sleep.call_count == 180
    assert probe.call_count == 181
    assert _kinds(notifier) == [EventKind.NETWORK_WAITING, EventKind.NETWORK_TIMEOUT]
    error_call = notifier.notify_event.call_args
    assert error_call.args[1] == 30
    assert error_call.kwargs["severity"] is Severity.ERROR


def test_short_timeout_without_warning(notifier):
    probe = MagicMock(return_value=False)

    assert not wait_for_connectivity(60, notifier=notifier, probe=probe, sleep=MagicMock())

    assert _kinds(notifier) == [EventKind.NETWORK_TIMEOUT]


def test_probes_given_url():
    probe = MagicMock(return_value=True)
    wait_for_connectivity(url="https://example.invalid/ping", probe=probe, sleep=MagicMock())
    probe.assert_called_once_with("https://example.invalid/ping")

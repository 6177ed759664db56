#!/usr/bin/env python3
"""
Upgrade loop over the outdated packages reported by winget.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from loguru import logger

from .exceptions import CommandError, UpgradeFailedError
from .localization import EventKind
from .models import CommandResult, Policy, Severity, UpdateRecord, UpgradeOutcome
from .notifier import Notifier
from .winget import WingetClient


class UpgradeDriver:
    """
    Applies updates one package at a time.

    Each eligible package gets exactly one sequence: upgrade, re-list, and if
    the package is still outdated, a single install followed by one more
    re-list. The package is classified as failed only when it is still listed
    after that fallback. A winget command that cannot be run at all fails
    that package only; a missing winget still ends the run.
    """

    def __init__(self, winget: WingetClient, notifier: Optional[Notifier] = None) -> None:
        self.winget = winget
        self.notifier = notifier
        self.outcomes: List[UpgradeOutcome] = []

    def _notify(self, kind: EventKind, record: UpdateRecord, severity: Severity) -> None:
        if self.notifier is None:
            return
        self.notifier.notify_event(
            kind,
            record.name,
            record.current_version,
            record.available_version,
            severity=severity,
            tag=record.id,
        )

    def skip_reason(self, record: UpdateRecord, policy: Policy) -> Optional[str]:
        """Why a record is not eligible, or None when it should be upgraded."""
        if record.has_unknown_version:
            return "current version is unknown"
        if policy.excludes(record.id):
            return f"excluded by {policy.mode.value}"
        return None

    def upgrade_one(self, record: UpdateRecord) -> UpgradeOutcome:
        """Run the upgrade sequence for one package and classify the result."""
        logger.info(
            f"Updating {record.name} ({record.id}) "
            f"from {record.current_version} to {record.available_version}..."
        )
        self._notify(EventKind.UPDATE_STARTING, record, Severity.INFO)

        attempts: List[CommandResult] = []
        try:
            attempts.append(self.winget.upgrade(record.id))
            still_outdated = self.winget.is_outdated(record.id)

            if still_outdated:
                logger.info(f"{record.id} is still outdated, trying install instead of upgrade...")
                attempts.append(self.winget.install(record.id))
                still_outdated = self.winget.is_outdated(record.id)
        except CommandError as e:
            logger.error(f"winget could not be run for {record.id}: {e}")
            still_outdated = True

        outcome = UpgradeOutcome(record=record, succeeded=not still_outdated, attempts=attempts)

        if outcome.succeeded:
            logger.success(f"{record.name} updated to {record.available_version}")
            self._notify(EventKind.UPDATE_SUCCEEDED, record, Severity.SUCCESS)
        else:
            error = UpgradeFailedError(record.id, outcome.return_codes)
            logger.error(f"{record.name} update failed: {error}")
            self._notify(EventKind.UPDATE_FAILED, record, Severity.ERROR)

        return outcome

    def apply_updates(self, records: Iterable[UpdateRecord], policy: Policy) -> int:
        """
        Upgrade every eligible record, in listing order.

        Args:
            records: Outdated packages as listed by winget
            policy: Allow-list or deny-list restricting eligible ids

        Returns:
            Number of packages successfully updated

        Raises:
            WingetNotFoundError: If winget disappears during the run
        """
        success_count = 0

        for record in records:
            reason = self.skip_reason(record, policy)
            if reason is not None:
                logger.info(f"{record.name} ({record.id}): skipped, {reason}")
                continue

            outcome = self.upgrade_one(record)
            self.outcomes.append(outcome)
            if outcome.succeeded:
                success_count += 1

        logger.info(f"{success_count} package(s) updated")
        return success_count

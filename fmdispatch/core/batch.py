"""
Sequential batch runner with aggregated success/failure reporting.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field

from .errors import CommandFailure, DispatchError

LOGGER = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of one logical operation applied to several entries."""

    operation: str
    total: int = 0
    succeeded: int = 0
    failures: list = field(default_factory=list)

    @property
    def failed(self):
        return len(self.failures)

    @property
    def ok(self):
        return not self.failures

    def record_success(self):
        self.succeeded += 1

    def record_failure(self, path, reason):
        self.failures.append((path, reason))

    def summary(self):
        if self.failures:
            return f'{self.failed} of {self.total} failed'
        return f'{self.succeeded} of {self.total} done'


def describe_error(exc) -> str:
    """Return a short human readable reason for a caught exception."""
    if isinstance(exc, CommandFailure):
        return f"{exc.reason} [{exc.command}]"
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc) or exc.__class__.__name__


def run_batch(operation, items, action, log, describe=None) -> BatchReport:
    """Apply action to every item in order, logging each failure.

    ``describe(item)`` names the offending path in log lines; it defaults to
    the item itself. One failing entry never stops the remaining ones.
    """
    items = list(items)
    describe = describe or (lambda item: item)
    report = BatchReport(operation, total=len(items))
    for item in items:
        path = describe(item)
        try:
            action(item)
        except (DispatchError, OSError, shutil.Error) as exc:
            reason = describe_error(exc)
            LOGGER.debug('%s failed for %s', operation, path, exc_info=True)
            report.record_failure(path, reason)
            log.log_failure(f'{operation} failed ({reason})', path)
        else:
            report.record_success()
    log.log_summary(report)
    return report

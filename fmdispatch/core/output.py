"""
Named output buffers and the line-oriented operation log.
"""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path

LOGGER = logging.getLogger(__name__)

SHELL_OUTPUT_BUFFER = '*Shell Command Output*'
ARCHIVE_CONTENTS_BUFFER = '*Archive Contents*'


class OutputBuffers:
    """Registry of named text buffers filled by blocking command runs."""

    MAX_LINES = 5000

    def __init__(self):
        self._buffers = {}

    def clear(self, name):
        self._buffers[name] = []

    def write(self, name, text):
        """Append text to buffer name, keeping at most MAX_LINES lines."""
        lines = self._buffers.setdefault(name, [])
        if text:
            lines.extend(str(text).splitlines())
        if len(lines) > self.MAX_LINES:
            del lines[: len(lines) - self.MAX_LINES]

    def lines(self, name):
        return list(self._buffers.get(name, []))


class OperationLog:
    """User-visible messages plus a persistent log of failed operations.

    Every line is mirrored to the module logger. When ``log_file`` is set,
    failure and summary lines are appended to it with a timestamp so they
    survive the session.
    """

    def __init__(self, log_file=None, echo=None):
        self.log_file = Path(log_file).expanduser() if log_file else None
        self.echo = echo
        self.messages = []
        self.entries = []

    def message(self, text):
        """Show a transient status message."""
        self.messages.append(text)
        LOGGER.info('%s', text)
        if self.echo is not None:
            self.echo(text)

    def announce(self, operation, command):
        self.message(f'{operation}: {command}...')

    def announce_done(self, operation, command):
        self.message(f'{operation}: {command}...done')

    def log_failure(self, reason, path):
        line = f'{reason}: {path}'
        LOGGER.warning('%s', line)
        self._append(line)
        return line

    def log_summary(self, report):
        line = report.summary()
        if report.failures:
            names = ', '.join(os.path.basename(path) or path for path, _ in report.failures)
            self.message(f'{line}: {names}')
        else:
            self.message(line)
        self._append(line)
        return line

    def _append(self, line):
        self.entries.append(line)
        if self.log_file is None:
            return
        stamp = time.strftime('%Y-%m-%d %H:%M:%S')
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open('a', encoding='utf-8') as handle:
                handle.write(f'{stamp} {line}\n')
        except OSError as exc:
            LOGGER.error('Cannot write operation log %s: %s', self.log_file, exc)

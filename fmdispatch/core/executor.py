"""
Command materialization and execution.

A resolved command spec becomes either a literal shell string, a literal
argv list, or a direct in-process call. Blocking runs capture combined
stdout/stderr into a named output buffer; asynchronous runs are spawned and
forgotten.
"""
from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import CommandFailure
from .output import OperationLog, OutputBuffers
from .rules import Argv, Callback, CommandSpec, FormatTemplate

LOGGER = logging.getLogger(__name__)


class WaitMode(str, Enum):
    """Whether the caller waits for the spawned command."""

    BLOCKING = "blocking"
    ASYNC = "async"


@dataclass(frozen=True)
class Discard:
    """Output sink that drops everything the command prints."""


@dataclass(frozen=True)
class NamedBuffer:
    """Output sink writing into a named buffer, optionally shown right away."""

    name: str
    show: bool = False


DISCARD = Discard()
OutputSink = Union[Discard, NamedBuffer]


@dataclass(frozen=True)
class ExecutionRequest:
    operation: str
    command: Union[str, tuple]
    wait: WaitMode = WaitMode.BLOCKING
    sink: OutputSink = DISCARD
    cwd: Optional[str] = None


@dataclass(frozen=True)
class ExecutionResult:
    """Success, or failure with an exit description and output reference."""

    ok: bool
    operation: str
    command: str
    reason: str = ''
    exit_code: Optional[int] = None
    output: Optional[str] = None

    def raise_for_failure(self):
        if not self.ok:
            raise CommandFailure(self.operation, self.command, self.reason, self.output)
        return self


def describe_exit(returncode: int) -> str:
    """Turn a subprocess return code into a readable exit indicator."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = f'signal {-returncode}'
        return f'killed by {name}'
    return f'exit status {returncode}'


def command_text(command) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(command)


def substitute_template(template: str, values) -> str:
    """Fill ``%s`` slots left to right; missing values become empty strings."""
    parts = template.split('%s')
    out = [parts[0]]
    for index, part in enumerate(parts[1:]):
        out.append(values[index] if index < len(values) else '')
        out.append(part)
    return ''.join(out)


class CommandExecutor:
    """Build literal commands from specs and run them."""

    SHELL = '/bin/sh'

    def __init__(self, log=None, buffers=None, *, quote_arguments=False, display=None):
        self.log = log if log is not None else OperationLog()
        self.buffers = buffers if buffers is not None else OutputBuffers()
        self.quote_arguments = bool(quote_arguments)
        self.display = display
        # detached children, polled on the next spawn so none is left a zombie
        self.children = []

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def build_command(self, spec: CommandSpec, sources, destination=None):
        """Return the literal shell string or argv tuple for a spec."""
        sources = [str(source) for source in sources]
        if isinstance(spec, FormatTemplate):
            if self.quote_arguments:
                joined = ' '.join(shlex.quote(source) for source in sources)
                dest = shlex.quote(destination) if destination is not None else ''
            else:
                joined = ' '.join(sources)
                dest = destination if destination is not None else ''
            values = [joined, dest] if spec.placeholders > 1 else [joined]
            return substitute_template(spec.template, values)
        if isinstance(spec, Argv):
            tail = ([str(destination)] if destination is not None else []) + sources
            return spec.argv + tuple(tail)
        if isinstance(spec, Callback):
            raise TypeError('Callback specs run in-process and have no command line.')
        raise TypeError(f'Unsupported command spec: {spec!r}')

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, spec, sources, destination=None, *, operation,
                wait=WaitMode.BLOCKING, sink=DISCARD, cwd=None) -> ExecutionResult:
        """Materialize spec for sources/destination and run it."""
        if isinstance(spec, Callback):
            return self._run_callback(spec, sources, operation=operation, cwd=cwd)
        command = self.build_command(spec, sources, destination)
        return self.run(ExecutionRequest(operation, command, wait, sink, cwd))

    def run(self, request: ExecutionRequest) -> ExecutionResult:
        text = command_text(request.command)
        self.log.announce(request.operation, text)
        if request.wait == WaitMode.ASYNC:
            return self._spawn(request, text)
        return self._run_blocking(request, text)

    def _popen_kwargs(self, request):
        shell = isinstance(request.command, str)
        kwargs = {'shell': shell, 'cwd': request.cwd}
        if shell:
            kwargs['executable'] = self.SHELL
        return kwargs

    def _reap(self):
        self.children = [child for child in self.children if child.poll() is None]

    def _spawn(self, request, text):
        self._reap()
        try:
            child = subprocess.Popen(
                request.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
                **self._popen_kwargs(request),
            )
        except OSError as exc:
            reason = f'cannot execute: {exc.strerror or exc}'
            LOGGER.warning('%s: %s (%s)', request.operation, text, reason)
            return ExecutionResult(False, request.operation, text, reason)
        self.children.append(child)
        return ExecutionResult(True, request.operation, text)

    def _run_blocking(self, request, text):
        sink = request.sink
        buffer_name = sink.name if isinstance(sink, NamedBuffer) else None
        if buffer_name is not None:
            self.buffers.clear(buffer_name)
            output_args = {'stdout': subprocess.PIPE, 'stderr': subprocess.STDOUT}
        else:
            output_args = {'stdout': subprocess.DEVNULL, 'stderr': subprocess.DEVNULL}

        try:
            completed = subprocess.run(
                request.command,
                stdin=subprocess.DEVNULL,
                text=True,
                errors='replace',
                check=False,
                **output_args,
                **self._popen_kwargs(request),
            )
        except OSError as exc:
            reason = f'cannot execute: {exc.strerror or exc}'
            if buffer_name is not None:
                self.buffers.write(buffer_name, reason)
            return ExecutionResult(False, request.operation, text, reason, None, buffer_name)

        if buffer_name is not None:
            self.buffers.write(buffer_name, completed.stdout)
            if sink.show:
                self._show(buffer_name)

        if completed.returncode == 0:
            self.log.announce_done(request.operation, text)
            return ExecutionResult(True, request.operation, text, '', 0, buffer_name)

        reason = describe_exit(completed.returncode)
        LOGGER.debug('%s: %s -> %s', request.operation, text, reason)
        return ExecutionResult(False, request.operation, text, reason, completed.returncode, buffer_name)

    def _run_callback(self, spec, sources, *, operation, cwd):
        base = cwd or os.getcwd()
        label = ' '.join([spec.describe()] + [str(source) for source in sources])
        self.log.announce(operation, label)
        for source in sources:
            relative = str(source)
            absolute = os.path.abspath(os.path.join(base, relative))
            try:
                ok = spec.fn(absolute, relative)
            except (OSError, ValueError, EOFError) as exc:
                reason = getattr(exc, 'strerror', None) or str(exc)
                return ExecutionResult(False, operation, label, reason)
            if not ok:
                return ExecutionResult(False, operation, label, f'{spec.describe()} failed on {relative}')
        self.log.announce_done(operation, label)
        return ExecutionResult(True, operation, label)

    def _show(self, buffer_name):
        if self.display is not None:
            self.display(buffer_name, self.buffers.lines(buffer_name))
            return
        for line in self.buffers.lines(buffer_name):
            self.log.message(line)

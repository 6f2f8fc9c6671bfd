"""
Caller-facing file operations.

``Dispatcher`` ties the rule tables, the command executor, the recursive
directory engine and the archive resolver together. Single-file
operations raise the first error; batch operations log per-entry failures
and return a ``BatchReport``.
"""
from __future__ import annotations

import logging
import os

from ..ui.prompt import ConsolePrompter
from .archive import TargetKind, copy_into_archive, resolve_copy_target
from .batch import BatchReport, run_batch
from .config import AppConfig
from .errors import TargetConflict, UnknownFileType, UserDeclined
from .executor import DISCARD, CommandExecutor, ExecutionRequest, NamedBuffer, WaitMode, command_text
from .output import ARCHIVE_CONTENTS_BUFFER, SHELL_OUTPUT_BUFFER, OperationLog, OutputBuffers
from .recursive import DirectoryEngine
from .rules import Callback, resolve

LOGGER = logging.getLogger(__name__)


class Dispatcher:
    """Run view/print/unpack/extract/list/delete/copy on file paths."""

    VIEW_MAX_BYTES = 512 * 1024

    def __init__(self, config=None, prompter=None, log=None, buffers=None,
                 viewer=None, display=None):
        self.config = config or AppConfig()
        self.prompter = prompter or ConsolePrompter()
        self.log = log if log is not None else OperationLog(self.config.log_file or None)
        self.buffers = buffers if buffers is not None else OutputBuffers()
        self.display = display
        self.viewer = viewer or self._builtin_viewer
        self.executor = CommandExecutor(
            self.log,
            self.buffers,
            quote_arguments=self.config.quote_arguments,
            display=display,
        )
        self.engine = DirectoryEngine(
            self.prompter,
            self.log,
            delete_policy=self.config.recursive_delete,
            copy_policy=self.config.recursive_copy,
            preserve_time=self.config.preserve_time,
        )

    @property
    def rules(self):
        return self.config.rules

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _split(path):
        path = os.path.abspath(str(path))
        return os.path.dirname(path), os.path.basename(path)

    def _resolve(self, operation, path, table):
        _, name = self._split(path)
        spec = resolve(name, table)
        if spec is None:
            raise UnknownFileType(operation, name)
        return spec

    def _run_one(self, operation, path, table, *, wait=WaitMode.BLOCKING, sink=DISCARD):
        spec = self._resolve(operation, path, table)
        cwd, name = self._split(path)
        result = self.executor.execute(
            spec, [name], operation=operation, wait=wait, sink=sink, cwd=cwd
        )
        return result.raise_for_failure()

    def _run_each(self, operation, paths, table):
        return run_batch(
            operation,
            paths,
            lambda path: self._run_one(
                operation, path, table, sink=NamedBuffer(SHELL_OUTPUT_BUFFER)
            ),
            self.log,
        )

    def describe(self, operation, path):
        """Return the literal command operation would run on path."""
        table = getattr(self.rules, operation)
        spec = self._resolve(operation, path, table)
        if isinstance(spec, Callback):
            return f'{spec.describe()} {self._split(path)[1]}'
        return command_text(self.executor.build_command(spec, [self._split(path)[1]]))

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def _builtin_viewer(self, path):
        name = os.path.basename(path)
        with open(path, 'rb') as handle:
            data = handle.read(self.VIEW_MAX_BYTES)
        self.buffers.clear(name)
        self.buffers.write(name, data.decode('utf-8', 'replace'))
        if self.display is not None:
            self.display(name, self.buffers.lines(name))
        return name

    def view(self, path):
        """Open path with its viewer without waiting for it."""
        _, name = self._split(path)
        if resolve(name, self.rules.view) is None:
            self.log.message(f'Viewing {name}')
            return self.viewer(os.path.abspath(str(path)))
        return self._run_one('view', path, self.rules.view, wait=WaitMode.ASYNC)

    # ------------------------------------------------------------------
    # Batch operations through rule tables
    # ------------------------------------------------------------------

    def print_files(self, paths):
        return self._run_each('print', paths, self.rules.print)

    def compact_print(self, paths):
        return self._run_each('compact print', paths, self.rules.compact_print)

    def unpack(self, paths):
        return self._run_each('unpack', paths, self.rules.unpack)

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    def extract_one(self, path):
        """Let the user edit the extract command for path, then run it."""
        spec = self._resolve('extract', path, self.rules.extract)
        cwd, name = self._split(path)
        if isinstance(spec, Callback):
            return self.executor.execute(
                spec, [name], operation='extract', cwd=cwd
            ).raise_for_failure()

        proposed = command_text(self.executor.build_command(spec, [name]))
        command = self.prompter.edit_command('Extract', proposed)
        if not command:
            raise UserDeclined(f'Extraction of {name} cancelled')
        request = ExecutionRequest(
            'extract',
            command,
            WaitMode.BLOCKING,
            NamedBuffer(SHELL_OUTPUT_BUFFER),
            cwd,
        )
        return self.executor.run(request).raise_for_failure()

    def list_archive(self, path, buffer=None):
        """List archive contents into a named buffer and return its lines."""
        buffer = buffer or ARCHIVE_CONTENTS_BUFFER
        self._run_one(
            'list', path, self.rules.list, sink=NamedBuffer(buffer, show=True)
        )
        return self.buffers.lines(buffer)

    # ------------------------------------------------------------------
    # Delete and copy
    # ------------------------------------------------------------------

    def delete(self, paths):
        """Confirm the listing, then delete entries bottom-up."""
        paths = [str(path) for path in paths]
        if not paths:
            return BatchReport('Delete')
        names = [os.path.basename(os.path.normpath(path)) for path in paths]
        listing = '\n'.join(names)
        choice = self.prompter.ask(
            'Confirm Delete',
            f'Delete {len(paths)} item(s)?\n\n{listing}',
            ['Delete', 'Cancel'],
        )
        if choice != 0:
            self.log.message('No deletions performed')
            return None
        return self.engine.delete_many(paths)

    def copy(self, paths, destination, overwrite=None):
        """Copy paths into destination, which may be an archive target."""
        paths = [str(path) for path in paths]
        if not paths:
            return BatchReport('Copy')
        target = resolve_copy_target(destination, self.rules.archive_copy, self.prompter)

        if target.is_archive:
            report = BatchReport('Copy', total=1)
            result = copy_into_archive(target, paths, self.executor)
            if result.ok:
                report.record_success()
            else:
                report.record_failure(target.path, result.reason)
                self.log.log_failure(f"Copy failed ({result.reason} [{result.command}])", target.path)
            self.log.log_summary(report)
            return report

        if target.kind == TargetKind.ORDINARY_DIRECTORY:
            pairs = [
                (path, os.path.join(target.path, os.path.basename(os.path.normpath(path))))
                for path in paths
            ]
        elif len(paths) == 1:
            pairs = [(paths[0], target.path)]
        else:
            raise TargetConflict(
                f'Copying {len(paths)} files needs a directory or archive target: {destination}'
            )
        return self.engine.copy_many(pairs, overwrite)

"""
Archive destinations for copy operations.

A copy destination whose name matches an archive rule is treated as a
container: the whole batch of sources is handed to one archiver command
instead of being copied file by file.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ArchiveFormatUnsupported, UserDeclined
from .executor import NamedBuffer, WaitMode
from .output import SHELL_OUTPUT_BUFFER
from .rules import ArchiveRuleTable, CommandSpec

LOGGER = logging.getLogger(__name__)


class TargetKind(str, Enum):
    ORDINARY_DIRECTORY = "directory"
    NEW_ARCHIVE = "new_archive"
    APPEND_ARCHIVE = "append_archive"
    NOT_A_DESTINATION = "none"


@dataclass(frozen=True)
class CopyTarget:
    """Resolved copy destination and, for archives, the command to run."""

    kind: TargetKind
    path: str
    command: Optional[CommandSpec] = None
    remove_first: bool = False

    @property
    def is_archive(self):
        return self.kind in (TargetKind.NEW_ARCHIVE, TargetKind.APPEND_ARCHIVE)


def resolve_copy_target(destination, table: ArchiveRuleTable, prompter) -> CopyTarget:
    """Decide how a copy into destination must proceed.

    Raises ``ArchiveFormatUnsupported`` when the matching rule cannot create
    the missing archive, and ``UserDeclined`` when every offered action is
    refused. Existing directories are always ordinary directories.
    """
    path = os.path.abspath(os.path.expanduser(str(destination)))
    if os.path.isdir(path):
        return CopyTarget(TargetKind.ORDINARY_DIRECTORY, path)

    rule = table.resolve(os.path.basename(path))
    if rule is None:
        return CopyTarget(TargetKind.NOT_A_DESTINATION, path)

    name = os.path.basename(path)
    exists = os.path.lexists(path)

    if not exists or rule.append is None:
        if rule.create is None:
            raise ArchiveFormatUnsupported(f"Can't create this archive type: {name}")
        question = f'Overwrite archive {name}?' if exists else f'Create archive {name}?'
        if not prompter.confirm('Copy to archive', question):
            raise UserDeclined(f'Archive {name} left untouched')
        return CopyTarget(TargetKind.NEW_ARCHIVE, path, rule.create, remove_first=exists)

    if prompter.confirm('Copy to archive', f'Append to archive {name}?'):
        return CopyTarget(TargetKind.APPEND_ARCHIVE, path, rule.append)

    if not prompter.confirm('Copy to archive', f'Overwrite archive {name}?'):
        raise UserDeclined(f'Archive {name} left untouched')
    if rule.create is not None:
        return CopyTarget(TargetKind.NEW_ARCHIVE, path, rule.create, remove_first=True)
    # no create command: remove the old archive and let append build a new one
    return CopyTarget(TargetKind.NEW_ARCHIVE, path, rule.append, remove_first=True)


def relative_sources(sources):
    """Return (base directory, source paths relative to it)."""
    absolute = [os.path.abspath(str(source)) for source in sources]
    base = os.path.commonpath([os.path.dirname(path) for path in absolute])
    return base, [os.path.relpath(path, base) for path in absolute]


def copy_into_archive(target: CopyTarget, sources, executor, operation='Copy'):
    """Run the archive command once for the whole batch of sources."""
    base, relative = relative_sources(sources)
    if target.remove_first and os.path.lexists(target.path):
        LOGGER.info('Removing %s before rebuilding it', target.path)
        os.remove(target.path)
    return executor.execute(
        target.command,
        relative,
        target.path,
        operation=operation,
        wait=WaitMode.BLOCKING,
        sink=NamedBuffer(SHELL_OUTPUT_BUFFER),
        cwd=base,
    )

"""
Recursive delete and copy on top of single-entry primitives.

Directory recursion is governed by a ``RecursivePolicy``. The "ask once,
then always" promotion lives in a ``RecursionGate`` created for each
top-level call, so it disappears when that call returns or raises.
"""
from __future__ import annotations

import logging
import os
import shutil
from enum import Enum

from .batch import run_batch
from .errors import TargetConflict, UserDeclined
from .output import OperationLog

LOGGER = logging.getLogger(__name__)


class RecursivePolicy(str, Enum):
    """When directory recursion may happen."""

    NEVER = "never"
    ALWAYS = "always"
    TOP = "top"
    EACH = "each"

    @classmethod
    def parse(cls, value, default=None):
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for policy in cls:
            if policy.value == text:
                return policy
        if default is not None:
            return default
        raise ValueError(f'Unknown recursive policy: {value!r}')


class OverwritePolicy(str, Enum):
    """What a copy does when the target name is already taken."""

    ASK = "ask"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def parse(cls, value, default=None):
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for policy in cls:
            if policy.value == text:
                return policy
        if default is not None:
            return default
        raise ValueError(f'Unknown overwrite policy: {value!r}')


RECURSE_BUTTONS = ['Yes', 'No', 'All', 'Quit']


class RecursionGate:
    """Recursion decisions for one top-level delete or copy call."""

    def __init__(self, policy, prompter, verb):
        self.policy = RecursivePolicy.parse(policy)
        self.prompter = prompter
        self.verb = verb
        self.promoted = False
        self.prompts = 0

    def allows(self, directory):
        """Return True when recursion into directory may proceed."""
        if self.policy == RecursivePolicy.NEVER:
            return False
        if self.policy == RecursivePolicy.ALWAYS or self.promoted:
            return True

        self.prompts += 1
        choice = self.prompter.ask(
            f'Recursive {self.verb}',
            f'Recursive {self.verb} of {directory}?',
            RECURSE_BUTTONS,
        )
        if choice == 0:
            if self.policy == RecursivePolicy.TOP:
                self.promoted = True
            return True
        if choice == 2:
            self.promoted = True
            return True
        if choice == 3:
            raise UserDeclined(f'Recursive {self.verb} of {directory} cancelled')
        return False


def _is_real_dir(path):
    return os.path.isdir(path) and not os.path.islink(path)


def _child_paths(directory):
    # scandir never yields the . and .. pseudo entries
    with os.scandir(directory) as it:
        return sorted(entry.path for entry in it)


def _inside(path, parent):
    path = os.path.realpath(path)
    parent = os.path.realpath(parent)
    return path == parent or path.startswith(parent.rstrip(os.sep) + os.sep)


class DirectoryEngine:
    """Subtree delete/copy driven by the configured recursive policies."""

    def __init__(self, prompter, log=None, *, delete_policy=RecursivePolicy.TOP,
                 copy_policy=RecursivePolicy.TOP, overwrite=OverwritePolicy.ASK,
                 preserve_time=True):
        self.prompter = prompter
        self.log = log if log is not None else OperationLog()
        self.delete_policy = RecursivePolicy.parse(delete_policy)
        self.copy_policy = RecursivePolicy.parse(copy_policy)
        self.overwrite = OverwritePolicy.parse(overwrite)
        self.preserve_time = preserve_time

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_entry(self, path, policy=None):
        """Delete one file or directory as an independent top-level call."""
        gate = RecursionGate(policy or self.delete_policy, self.prompter, 'delete')
        self._delete(path, gate)
        return gate

    def _delete(self, path, gate):
        if not _is_real_dir(path):
            os.remove(path)
            return
        children = _child_paths(path)
        if children and gate.allows(path):
            for child in children:
                self._delete(child, gate)
        # non-recursive primitive: fails on a non-empty directory
        os.rmdir(path)
        LOGGER.debug('Removed directory %s', path)

    def delete_many(self, paths, operation='Delete'):
        """Delete entries bottom-up, logging failures and summarising."""
        ordered = list(reversed(list(paths)))
        return run_batch(operation, ordered, self.delete_entry, self.log)

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    def copy_entry(self, source, target, overwrite=None, policy=None):
        """Copy source to target, recursing into directories per policy."""
        overwrite = OverwritePolicy.parse(overwrite or self.overwrite)
        if _is_real_dir(source) and _inside(target, source):
            raise TargetConflict(f'Cannot copy {source} into itself')
        gate = RecursionGate(policy or self.copy_policy, self.prompter, 'copy')
        self._copy(source, target, gate, overwrite)
        return gate

    def copy_many(self, pairs, overwrite=None, operation='Copy'):
        return run_batch(
            operation,
            pairs,
            lambda pair: self.copy_entry(pair[0], pair[1], overwrite),
            self.log,
            describe=lambda pair: pair[0],
        )

    def _copy(self, source, target, gate, overwrite):
        if _is_real_dir(source) and gate.allows(source):
            self._copy_tree(source, target, gate, overwrite)
        else:
            self._copy_leaf(source, target, overwrite)

    def _copy_tree(self, source, target, gate, overwrite):
        if os.path.lexists(target) and not _is_real_dir(target):
            self._confirm_overwrite(target, overwrite)
            os.remove(target)
        if not os.path.isdir(target):
            os.mkdir(target)
            shutil.copymode(source, target)
        for child in _child_paths(source):
            self._copy(child, os.path.join(target, os.path.basename(child)), gate, overwrite)
        if self.preserve_time:
            self._copy_times(source, target)

    def _copy_leaf(self, source, target, overwrite):
        if os.path.lexists(target):
            if _is_real_dir(target):
                raise TargetConflict(f'Cannot overwrite directory {target} with {source}')
            if os.path.exists(target) and os.path.samefile(source, target):
                raise TargetConflict(f'Cannot copy {source} onto itself')
            self._confirm_overwrite(target, overwrite)
            if os.path.islink(target) or os.path.islink(source):
                os.remove(target)

        if os.path.islink(source):
            os.symlink(os.readlink(source), target)
            return
        shutil.copyfile(source, target)
        shutil.copymode(source, target)
        if self.preserve_time:
            self._copy_times(source, target)

    def _confirm_overwrite(self, target, overwrite):
        if overwrite == OverwritePolicy.ALWAYS:
            return
        if overwrite == OverwritePolicy.ASK and self.prompter.confirm(
            'Overwrite', f'Overwrite {target}?'
        ):
            return
        raise UserDeclined(f'Not overwriting {target}')

    @staticmethod
    def _copy_times(source, target):
        st = os.stat(source)
        os.utime(target, ns=(st.st_atime_ns, st.st_mtime_ns))

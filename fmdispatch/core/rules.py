"""
Pattern rule tables and first-match resolution.

A table is an ordered sequence of ``(pattern, command spec)`` pairs. Lookups
walk the table top to bottom and stop at the first pattern that matches the
candidate name once backup/version suffixes have been removed, so a
catch-all rule is only safe as the last entry.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Union

# foo~ (backup) and foo.~3~ (numbered backup) both resolve like foo.
VERSION_SUFFIX_RE = re.compile(r'(?:\.~[0-9]+(?:\.[0-9]+)*~|~)$')


def strip_version_suffix(name: str) -> str:
    """Return name without a trailing backup or version suffix."""
    return VERSION_SUFFIX_RE.sub('', name)


@dataclass(frozen=True)
class Callback:
    """Action performed in-process with ``fn(absolute_path, relative_path)``."""

    fn: Callable[[str, str], bool]
    name: str = ''

    def describe(self) -> str:
        return self.name or getattr(self.fn, '__name__', 'callback')


@dataclass(frozen=True)
class FormatTemplate:
    """Shell command with ``%s`` slots: sources first, destination second."""

    template: str

    def __post_init__(self):
        if self.template.count('%s') > 2:
            raise ValueError(f'Too many %s slots in command template: {self.template!r}')

    @property
    def placeholders(self) -> int:
        return self.template.count('%s')

    def describe(self) -> str:
        return self.template


@dataclass(frozen=True)
class Argv:
    """Literal program and fixed flags; file arguments are appended."""

    argv: tuple

    def __post_init__(self):
        object.__setattr__(self, 'argv', tuple(str(part) for part in self.argv))
        if not self.argv:
            raise ValueError('Argv command needs at least a program name.')

    def describe(self) -> str:
        return ' '.join(self.argv)


CommandSpec = Union[Callback, FormatTemplate, Argv]


def coerce_spec(value) -> CommandSpec:
    """Build a command spec from a template string, argv list or callable."""
    if isinstance(value, (Callback, FormatTemplate, Argv)):
        return value
    if isinstance(value, str):
        return FormatTemplate(value)
    if isinstance(value, (list, tuple)):
        return Argv(tuple(value))
    if callable(value):
        return Callback(value)
    raise TypeError(f'Unsupported command spec: {value!r}')


def compile_pattern(pattern) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


@dataclass(frozen=True)
class Rule:
    """One table entry: compiled pattern and the command it selects."""

    pattern: re.Pattern
    spec: CommandSpec

    def matches(self, name: str) -> bool:
        return self.pattern.search(name) is not None


def make_rule(pattern, spec) -> Rule:
    return Rule(compile_pattern(pattern), coerce_spec(spec))


class RuleTable:
    """Ordered, immutable list of rules consulted first-match-wins."""

    def __init__(self, rules: Iterable = ()):
        built = []
        for item in rules:
            if isinstance(item, Rule):
                built.append(item)
            else:
                pattern, spec = item
                built.append(make_rule(pattern, spec))
        self._rules = tuple(built)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self):
        return f'RuleTable({[rule.pattern.pattern for rule in self._rules]!r})'

    def prepend(self, rules: Iterable) -> 'RuleTable':
        """Return a new table with ``rules`` consulted before this one."""
        return RuleTable(list(RuleTable(rules)) + list(self._rules))

    def lookup(self, name: str) -> Optional[Rule]:
        candidate = strip_version_suffix(name)
        for rule in self._rules:
            if rule.matches(candidate):
                return rule
        return None


def resolve(name: str, table: RuleTable) -> Optional[CommandSpec]:
    """Return the command spec of the first rule matching name, or None."""
    rule = table.lookup(name)
    return rule.spec if rule is not None else None


@dataclass(frozen=True)
class ArchiveRule:
    """Archive destination rule carrying append and/or create commands."""

    pattern: re.Pattern
    append: Optional[CommandSpec] = None
    create: Optional[CommandSpec] = None

    def __post_init__(self):
        if self.append is None and self.create is None:
            raise ValueError(
                f'Archive rule {self.pattern.pattern!r} needs an append or create command.'
            )

    def matches(self, name: str) -> bool:
        return self.pattern.search(name) is not None


def make_archive_rule(pattern, append=None, create=None) -> ArchiveRule:
    return ArchiveRule(
        compile_pattern(pattern),
        coerce_spec(append) if append is not None else None,
        coerce_spec(create) if create is not None else None,
    )


class ArchiveRuleTable:
    """Ordered archive rules, resolved with the same first-match contract."""

    def __init__(self, rules: Iterable = ()):
        built = []
        for item in rules:
            if isinstance(item, ArchiveRule):
                built.append(item)
            else:
                built.append(make_archive_rule(*item))
        self._rules = tuple(built)

    def __iter__(self) -> Iterator[ArchiveRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def prepend(self, rules: Iterable) -> 'ArchiveRuleTable':
        return ArchiveRuleTable(list(ArchiveRuleTable(rules)) + list(self._rules))

    def resolve(self, name: str) -> Optional[ArchiveRule]:
        candidate = strip_version_suffix(name)
        for rule in self._rules:
            if rule.matches(candidate):
                return rule
        return None

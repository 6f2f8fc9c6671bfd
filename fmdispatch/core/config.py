"""Persistent config loader/saver for fmdispatch."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from .callbacks import CALLBACKS
from .defaults import (
    default_archive_copy_rules,
    default_compact_print_rules,
    default_extract_rules,
    default_list_rules,
    default_print_rules,
    default_unpack_rules,
    default_view_rules,
)
from .recursive import RecursivePolicy
from .rules import ArchiveRuleTable, Argv, Callback, FormatTemplate, RuleTable, make_archive_rule, make_rule

LOGGER = logging.getLogger(__name__)

CONFIG_ENV = "FMDISPATCH_CONFIG"

RULE_TABLES = ("unpack", "extract", "list", "view", "print", "compact_print")


@dataclass(frozen=True)
class RuleTables:
    """Every purpose-specific rule table, loaded once at startup."""

    unpack: RuleTable = field(default_factory=default_unpack_rules)
    extract: RuleTable = field(default_factory=default_extract_rules)
    list: RuleTable = field(default_factory=default_list_rules)
    view: RuleTable = field(default_factory=default_view_rules)
    print: RuleTable = field(default_factory=default_print_rules)
    compact_print: RuleTable = field(default_factory=default_compact_print_rules)
    archive_copy: ArchiveRuleTable = field(default_factory=default_archive_copy_rules)


@dataclass(frozen=True)
class AppConfig:
    """Persistent user-facing configuration."""

    recursive_delete: RecursivePolicy = RecursivePolicy.TOP
    recursive_copy: RecursivePolicy = RecursivePolicy.TOP
    preserve_time: bool = True
    quote_arguments: bool = False
    log_file: str = ""
    rules: RuleTables = field(default_factory=RuleTables)
    # accepted [[rules.<table>]] entries as read from TOML, kept for saving
    user_rules: dict = field(default_factory=dict)


def default_config_path() -> Path:
    """Return config path ($FMDISPATCH_CONFIG or ~/.config/fmdispatch/config.toml)."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "fmdispatch" / "config.toml"


def _coerce_bool(value, default=False):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("1", "true", "yes", "on"):
            return True
        if lower in ("0", "false", "no", "off"):
            return False
    return default


def _parse_spec(value):
    """Turn a TOML value into a command spec; None when it is unusable."""
    if isinstance(value, str):
        return FormatTemplate(value)
    if isinstance(value, list) and value and all(isinstance(part, str) for part in value):
        return Argv(tuple(value))
    if isinstance(value, dict) and "callback" in value:
        name = str(value["callback"])
        if name in CALLBACKS:
            return Callback(CALLBACKS[name], name)
    return None


def _rule_pattern(raw):
    pattern = raw.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        raise ValueError("missing pattern")
    return pattern


SPEC_KEYS = ("callback", "argv", "command")


def _rule_spec(raw):
    """Return (key, spec) for the first command key present in raw."""
    for key in SPEC_KEYS:
        if key in raw:
            value = {"callback": raw[key]} if key == "callback" else raw[key]
            return key, _parse_spec(value)
    return None, None


def _parse_rules(table_name, raw_rules):
    """Return (rules, accepted raw entries) for one command table."""
    rules = []
    kept = []
    if not isinstance(raw_rules, list):
        LOGGER.warning("Ignoring rules.%s: expected an array of tables", table_name)
        return rules, kept
    for index, raw in enumerate(raw_rules):
        if not isinstance(raw, dict):
            LOGGER.warning("Ignoring rules.%s[%d]: not a table", table_name, index)
            continue
        try:
            key, spec = _rule_spec(raw)
            if spec is None:
                raise ValueError("needs command, argv or a known callback")
            pattern = _rule_pattern(raw)
            rules.append(make_rule(pattern, spec))
        except (re.error, ValueError, TypeError) as exc:
            LOGGER.warning("Ignoring rules.%s[%d]: %s", table_name, index, exc)
            continue
        kept.append({"pattern": pattern, key: raw[key]})
    return rules, kept


def _parse_archive_rules(raw_rules):
    rules = []
    kept = []
    if not isinstance(raw_rules, list):
        LOGGER.warning("Ignoring rules.archive_copy: expected an array of tables")
        return rules, kept
    for index, raw in enumerate(raw_rules):
        if not isinstance(raw, dict):
            LOGGER.warning("Ignoring rules.archive_copy[%d]: not a table", index)
            continue
        try:
            append = _parse_spec(raw["append"]) if "append" in raw else None
            create = _parse_spec(raw["create"]) if "create" in raw else None
            pattern = _rule_pattern(raw)
            rules.append(make_archive_rule(pattern, append, create))
        except (re.error, ValueError, TypeError) as exc:
            LOGGER.warning("Ignoring rules.archive_copy[%d]: %s", index, exc)
            continue
        entry = {"pattern": pattern}
        for key, spec in (("append", append), ("create", create)):
            if spec is not None:
                entry[key] = raw[key]
        kept.append(entry)
    return rules, kept


def _normalize_rules(raw):
    """Return (RuleTables with user rules first, accepted raw user rules)."""
    if not isinstance(raw, dict):
        raw = {}
    defaults = RuleTables()
    changes = {}
    user_rules = {}
    for name in RULE_TABLES:
        if name in raw:
            rules, kept = _parse_rules(name, raw[name])
            changes[name] = getattr(defaults, name).prepend(rules)
            if kept:
                user_rules[name] = kept
    if "archive_copy" in raw:
        rules, kept = _parse_archive_rules(raw["archive_copy"])
        changes["archive_copy"] = defaults.archive_copy.prepend(rules)
        if kept:
            user_rules["archive_copy"] = kept
    return replace(defaults, **changes), user_rules


def _normalize_config(raw: dict) -> AppConfig:
    policy = raw.get("policy", {})
    if not isinstance(policy, dict):
        policy = {}
    output = raw.get("output", {})
    if not isinstance(output, dict):
        output = {}
    rules, user_rules = _normalize_rules(raw.get("rules", {}))

    return AppConfig(
        recursive_delete=RecursivePolicy.parse(
            policy.get("recursive_delete"), default=RecursivePolicy.TOP
        ),
        recursive_copy=RecursivePolicy.parse(
            policy.get("recursive_copy"), default=RecursivePolicy.TOP
        ),
        preserve_time=_coerce_bool(policy.get("preserve_time"), default=True),
        quote_arguments=_coerce_bool(policy.get("quote_arguments"), default=False),
        log_file=str(output.get("log_file", "") or "").strip(),
        rules=rules,
        user_rules=user_rules,
    )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from TOML file; return defaults when missing/invalid."""
    cfg_path = Path(path) if path is not None else default_config_path()
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError:
        return AppConfig()
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        LOGGER.warning("Ignoring invalid config %s: %s", cfg_path, exc)
        return AppConfig()
    return _normalize_config(raw)


_TOML_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def _toml_string(text) -> str:
    out = []
    for char in str(text):
        if char in _TOML_ESCAPES:
            out.append(_TOML_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    return '"' + "".join(out) + '"'


def _toml_value(value) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(_toml_string(item) for item in value) + "]"
    return _toml_string(value)


def _serialize_rules(user_rules) -> str:
    blocks = []
    for name in RULE_TABLES + ("archive_copy",):
        for entry in user_rules.get(name, ()):
            lines = [f"[[rules.{name}]]"]
            lines.extend(f"{key} = {_toml_value(value)}" for key, value in entry.items())
            blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def serialize_config(config: AppConfig) -> str:
    """Serialize AppConfig as TOML text, user rule tables included."""
    text = (
        "# fmdispatch user configuration\n"
        "[policy]\n"
        f'recursive_delete = "{config.recursive_delete.value}"\n'
        f'recursive_copy = "{config.recursive_copy.value}"\n'
        f"preserve_time = {'true' if config.preserve_time else 'false'}\n"
        f"quote_arguments = {'true' if config.quote_arguments else 'false'}\n"
        "\n"
        "[output]\n"
        f"log_file = {_toml_string(config.log_file)}\n"
    )
    rules = _serialize_rules(config.user_rules)
    if rules:
        text += "\n" + rules
    return text


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    """Persist config and return written path."""
    cfg_path = Path(path) if path is not None else default_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(serialize_config(config), encoding="utf-8", newline="\n")
    return cfg_path

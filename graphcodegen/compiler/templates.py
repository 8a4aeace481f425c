"""
graphcodegen Compiler: Template Primitives
==========================================
Text operations the generator applies to per-node code templates.

A template is plain text in the target language with `${name}` placeholders:

    ${value}        the node's value slot, rendered as text
    ${nodeId}       the node's stable id (handy for unique local names)
    ${<input>}      expression produced by whatever feeds data input <input>
    ${<exec out>}   block compiled from the node linked to exec output <exec out>

Replacement text is always inserted literally; a `$` or a backslash in a
value never acts as a back-reference.
"""

from __future__ import annotations

import datetime
import json
import math
import re
from typing import Any, List, Optional

# `${...}` anywhere
_PLACEHOLDER = re.compile(r"\$\{[^}]+\}")
# `${...}` sitting on its own line, with the newline and indent before it
_LEADING_PLACEHOLDER = re.compile(r"\n[ \t]*\$\{[^}]+\}")


def placeholder(name: str) -> str:
    return "${" + name + "}"


# ── Values ────────────────────────────────────────────────────────────────────

def render_value(value: Any) -> str:
    """
    Structured values (float3 dicts, lists) become compact JSON; booleans are
    lower-case; integral floats drop their trailing `.0`.
    """
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


# ── Substitution ─────────────────────────────────────────────────────────────

def substitute(template: str, name: str, text: str) -> str:
    """Replace every `${name}` with `text`."""
    return template.replace(placeholder(name), text)


def splice_block(template: str, name: str, block: str) -> str:
    """
    Replace every `${name}` with a multi-line block, indenting each line of
    the block with the whitespace that preceded the placeholder. A newline
    directly before the placeholder is kept. An empty block removes the
    placeholder together with that newline and indent.
    """
    pattern = re.compile(r"(\n)?([\t ]*)" + re.escape(placeholder(name)))

    def _replace(match: re.Match) -> str:
        if not block:
            return ""
        newline = match.group(1) or ""
        indent = match.group(2)
        return newline + "\n".join(indent + line for line in block.split("\n"))

    return pattern.sub(_replace, template)


def strip_unresolved(template: str) -> str:
    """Drop any placeholder nothing filled in, along with its line break if it had one."""
    return _PLACEHOLDER.sub("", _LEADING_PLACEHOLDER.sub("", template))


def find_placeholders(template: str) -> List[str]:
    return [m.group(0)[2:-1] for m in _PLACEHOLDER.finditer(template)]


# ── File header ───────────────────────────────────────────────────────────────

def timestamp(now: Optional[datetime.datetime] = None) -> str:
    """ISO-8601 in UTC with millisecond precision and a `Z` suffix."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    now = now.astimezone(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def header(comment_style: str, now: Optional[datetime.datetime] = None) -> str:
    return (
        f"{comment_style} Generated Code from Node Graph\n"
        f"{comment_style} Generated on: {timestamp(now)}\n\n"
    )

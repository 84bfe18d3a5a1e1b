"""
File Merge Strategies.

This module combines the pre-command ("ours") and post-command ("theirs")
content of protected files.

Key features:
- Built-in append and prepend strategies with anti-duplication
- Helpers for custom merge functions: markdown, JSON and .gitignore
"""

import json
from typing import Any

DEFAULT_SEPARATOR = "\n\n---\n\n"


def append_merge(ours: str, theirs: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """
    Ours first, then theirs.

    If theirs already contains ours verbatim, theirs is returned unchanged.
    """
    if ours in theirs:
        return theirs
    return ours.rstrip() + separator + theirs.lstrip()


def prepend_merge(ours: str, theirs: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Theirs first, then ours."""
    return theirs.rstrip() + separator + ours.lstrip()


def merge_markdown(
    ours: str,
    theirs: str,
    separator: str = DEFAULT_SEPARATOR,
    their_header: str | None = None,
) -> str:
    """
    Append markdown content, optionally under a header.

    Returns ours unchanged when it already contains theirs, and theirs when
    it already contains ours.
    """
    if not ours.strip():
        return theirs
    if not theirs.strip():
        return ours
    if theirs.strip() in ours:
        return ours
    if ours.strip() in theirs:
        return theirs

    body = theirs.strip()
    if their_header:
        body = f"{their_header}\n\n{body}"
    return ours.rstrip() + separator + body + "\n"


def deep_merge(base: Any, incoming: Any) -> Any:
    """
    Recursively merge two JSON-like values.

    Objects merge key by key, arrays become an ordered union and scalars take
    the incoming value.
    """
    if isinstance(base, dict) and isinstance(incoming, dict):
        merged = dict(base)
        for key, value in incoming.items():
            merged[key] = deep_merge(base[key], value) if key in base else value
        return merged

    if isinstance(base, list) and isinstance(incoming, list):
        merged_list = list(base)
        for item in incoming:
            if item not in merged_list:
                merged_list.append(item)
        return merged_list

    return incoming


def merge_json(ours: str, theirs: str, indent: int = 2) -> str:
    """
    Deep-merge two JSON documents, theirs winning on scalar conflicts.

    Falls back to theirs if ours is not valid JSON, and to ours if theirs is
    not.
    """
    try:
        our_data = json.loads(ours)
    except json.JSONDecodeError:
        return theirs
    try:
        their_data = json.loads(theirs)
    except json.JSONDecodeError:
        return ours

    return json.dumps(deep_merge(our_data, their_data), indent=indent) + "\n"


def merge_gitignore(ours: str, theirs: str, header: str | None = None) -> str:
    """Append .gitignore entries from theirs that ours does not already list."""
    existing = {line.strip() for line in ours.splitlines() if line.strip()}
    new_lines = []
    for line in theirs.splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#") and entry not in existing:
            new_lines.append(entry)
            existing.add(entry)

    if not new_lines:
        return ours

    block = "\n".join(new_lines)
    if header:
        block = f"# {header}\n{block}"
    prefix = ours.rstrip()
    return f"{prefix}\n\n{block}\n" if prefix else f"{block}\n"

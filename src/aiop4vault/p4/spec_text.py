"""Changelist spec text: building, rewriting the description, reading replies.

A spec is the form printed by ``p4 change -o`` and accepted by
``p4 change -i``: ``Field:`` headers, with multi-line values indented by a tab.
"""

from __future__ import annotations

import re

from ..exceptions import SpecParseError

_CREATED = re.compile(r"Change (\d+) created")


def _indented(description: str) -> list[str]:
    return ["\t" + line for line in description.split("\n")]


def new_changelist_spec(description: str) -> str:
    """Spec for a new numbered changelist."""
    return "\n".join(["Change: new", "", "Description:", *_indented(description)]) + "\n"


def replace_description(spec: str, description: str) -> str:
    """Swap the ``Description:`` block of *spec* for *description*.

    Every other field is kept as-is.  Raises :class:`SpecParseError` when the
    spec has no description block.
    """
    result: list[str] = []
    in_description = False
    replaced = False

    for line in spec.replace("\r", "").split("\n"):
        if line.startswith("Description:"):
            in_description = True
            replaced = True
            result.append("Description:")
            result.extend(_indented(description))
        elif in_description:
            if not line.startswith("\t") and line.strip():
                in_description = False
                result.append(line)
        else:
            result.append(line)

    if not replaced:
        raise SpecParseError("Failed to parse changelist spec")

    return "\n".join(result)


def parse_created_change(output: str) -> int:
    """Changelist number from a "Change N created." reply."""
    match = _CREATED.search(output)
    if not match:
        raise SpecParseError(f"Failed to parse changelist number: {output.strip()}")
    return int(match[1])

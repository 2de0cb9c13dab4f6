"""Import query template rewriting.

An import query is a template that may contain the ``$CONDITIONS`` token.
Each split replaces the token with its range predicate; schema discovery
removes it together with the connective or ``WHERE`` around it.

The token is case-sensitive. ``AND``, ``OR`` and ``WHERE`` are matched
case-insensitively.
"""

from __future__ import annotations

import re

from dbsource.core.exceptions import ConfigurationError

CONDITIONS_TOKEN = "$CONDITIONS"

_TOKEN = re.escape(CONDITIONS_TOKEN)

# Applied in this order. A bare "WHERE $CONDITIONS" only matches the last one.
_CONDITIONS_CONNECTIVE = re.compile(rf"{_TOKEN}\s+(?i:and|or)\b\s*")
_CONNECTIVE_CONDITIONS = re.compile(rf"\s*\b(?i:and|or)\s*{_TOKEN}")
_WHERE_CONDITIONS = re.compile(rf"\s+(?i:where)\s+{_TOKEN}")

# Leftover token (e.g. "WHERE ($CONDITIONS)") becomes a tautology
_TAUTOLOGY = "1 = 1"


def has_conditions(template: str) -> bool:
    """Check whether a query template contains the split token."""
    return CONDITIONS_TOKEN in template


def strip_conditions(template: str) -> str:
    """Remove the split token so the query can run without a split range.

    Used to build the schema probe query. The token is removed together
    with an adjacent ``AND``/``OR``; a ``WHERE`` left with nothing to
    filter is removed as well.

    Args:
        template: Import query, possibly containing ``$CONDITIONS``

    Returns:
        Query without the token
    """
    query = _CONDITIONS_CONNECTIVE.sub("", template)
    query = _CONNECTIVE_CONDITIONS.sub("", query)
    query = _WHERE_CONDITIONS.sub("", query)
    return query.replace(CONDITIONS_TOKEN, _TAUTOLOGY)


def bind_split(template: str, predicate: str, num_splits: int | None) -> str:
    """Substitute the split token with one split's range predicate.

    Args:
        template: Import query
        predicate: SQL predicate for the split, e.g. ``id >= %s AND id < %s``
        num_splits: Configured split count (None = chosen by the engine)

    Returns:
        Query for a single split

    Raises:
        ConfigurationError: If the token is missing and more than one split
            may be generated
    """
    if not has_conditions(template):
        if num_splits == 1:
            return template
        raise ConfigurationError(
            f"Import Query {template} must contain the string '{CONDITIONS_TOKEN}'."
        )
    return template.replace(CONDITIONS_TOKEN, f"( {predicate} )")


def clean_query(query: str | None) -> str | None:
    """Trim whitespace and trailing semicolons from a configured query."""
    if query is None:
        return None
    cleaned = query.strip()
    while cleaned.endswith(";"):
        cleaned = cleaned[:-1].rstrip()
    return cleaned

"""Front matter parsing for Folio.

A content file may begin with a YAML block delimited by ``---`` lines::

    ---
    title: Hello
    date: 2025-09-25
    categories: [consulting]
    ---
    Body text.

``parse_front_matter`` splits such text into a mapping and the remaining body;
``dump_front_matter`` writes a mapping back out in the same form.

Values are normalized into the closed FrontMatterValue type so templates and
collections only ever see strings, numbers, booleans, datetimes, lists and
string-keyed mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any, Union

import yaml

from .errors import ParseError

FrontMatterValue = Union[
    str,
    int,
    float,
    bool,
    datetime,
    list["FrontMatterValue"],
    dict[str, "FrontMatterValue"],
]
FrontMatter = dict[str, FrontMatterValue]

DELIMITER = "---"
CLOSING_DELIMITERS = ("---", "...")

# Formats accepted for a ``date`` given as a string, besides ISO 8601.
DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def parse_date(value: Any) -> datetime:
    """Coerce a front matter ``date`` value into a datetime.

    Args:
        value: A datetime, a date, or a string in one of DATE_FORMATS or ISO 8601.

    Returns:
        The parsed datetime.

    Raises:
        ParseError: If the value is not a recognizable timestamp.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ParseError(f"date {value!r} is not a valid timestamp")


def normalize_value(value: Any, key: str) -> FrontMatterValue:
    """Normalize a YAML value into a FrontMatterValue.

    Args:
        value: Value produced by ``yaml.safe_load``.
        key: Dotted key of the value, used in error messages.

    Raises:
        ParseError: For YAML types outside FrontMatterValue.
    """
    if isinstance(value, (str, bool, int, float, datetime)):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (list, tuple)):
        return [
            normalize_value(item, f"{key}[{index}]")
            for index, item in enumerate(value)
            if item is not None
        ]
    if isinstance(value, Mapping):
        return normalize_mapping(value, prefix=f"{key}.")
    raise ParseError(f"unsupported value for {key!r}: {type(value).__name__}")


def normalize_mapping(data: Mapping[Any, Any], prefix: str = "") -> FrontMatter:
    """Normalize a parsed YAML mapping. Null values are dropped."""
    result: FrontMatter = {}
    for key, value in data.items():
        if not isinstance(key, str):
            raise ParseError(f"front matter keys must be strings, got {key!r}")
        if value is None:
            continue
        result[key] = normalize_value(value, f"{prefix}{key}")
    if not prefix and "date" in result:
        result["date"] = parse_date(result["date"])
    return result


def has_front_matter(text: str) -> bool:
    """Return True if text opens with a front matter delimiter line."""
    first_line = text.lstrip("\ufeff").split("\n", 1)[0]
    return first_line.rstrip() == DELIMITER


def parse_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Split raw text into its front matter mapping and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (front matter mapping, remaining body). Text without an
        opening delimiter is returned unchanged with an empty mapping.

    Raises:
        ParseError: If the block is never closed, is not valid YAML, is not a
            mapping, or holds values outside FrontMatterValue.
    """
    if not has_front_matter(text):
        return {}, text
    lines = text.lstrip("\ufeff").splitlines(keepends=True)
    for index in range(1, len(lines)):
        if lines[index].rstrip() in CLOSING_DELIMITERS:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        raise ParseError("front matter is never closed", line=1)

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        problem = getattr(exc, "problem", None) or "invalid YAML"
        # The block starts on the second line of the file.
        line = mark.line + 2 if mark is not None else None
        raise ParseError(f"invalid front matter: {problem}", line=line) from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ParseError(
            f"front matter must be a mapping, got {type(data).__name__}"
        )
    return normalize_mapping(data), body


def dump_front_matter(front_matter: Mapping[str, FrontMatterValue], body: str = "") -> str:
    """Serialize a mapping and body into delimited front matter text.

    ``parse_front_matter(dump_front_matter(m, b))`` returns ``(m, b)`` for any
    mapping ``m`` produced by ``parse_front_matter``.
    """
    block = ""
    if front_matter:
        block = yaml.safe_dump(
            dict(front_matter),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
    return f"{DELIMITER}\n{block}{DELIMITER}\n{body}"

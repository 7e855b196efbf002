"""Field-level transformation engine.

WHY: A mapping rarely copies every value verbatim. Dates need another
pattern, codes need a substring, a column needs a constant. The rules are
small, but their edge cases (absent values, bad parameters) must behave
identically for every record and every format.

HOW: ``apply_transformation`` dispatches on the closed TransformationType
enum to one handler per rule. Handlers receive the raw value, the rule,
and the full source record (concatenate may reference another field).

RULES:
- No rule, or type "none" -> identity passthrough
- trim: strip surrounding whitespace; absent stays absent
- staticValue: ignore the raw value, emit parameter1 verbatim
- concatenate: parameter1 is looked up as a field path in the current
  record first (its value, or "" when absent); otherwise it is a literal.
  Result = (raw or "") + suffix
- dateFormat: blank raw value or blank patterns -> unchanged; strict parse
  with parameter1, reformat with parameter2; a failed parse returns the raw
  value unchanged and is deliberately silent
- substring: empty/absent -> unchanged; unparsable start -> unchanged;
  start < 0 or >= len -> ""; a parsable length is clamped to the rest
- Handlers may raise; the conversion engine turns that into a per-field
  warning and keeps the raw value
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from filemapper.core.models import TransformationRule, TransformationType
from filemapper.core.records import Record

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")

# Characters that form .NET-style custom date/time format tokens.
_DATE_TOKEN_CHARS = frozenset("yMdHhmsfFtzK")

_MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
]
_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# A token is either (format_char, repeat_count) or a literal string.
_Token = Union[Tuple[str, int], str]


def apply_transformation(
    value: Optional[str],
    rule: Optional[TransformationRule],
    record: Record,
) -> Optional[str]:
    """Apply ``rule`` to ``value`` and return the transformed value.

    Args:
        value: Raw source value (None when absent).
        rule: Rule to apply, or None for no transformation.
        record: The full source record the value came from.

    Returns:
        The transformed value (None when absent).
    """
    if rule is None or rule.type is TransformationType.NONE:
        return value
    handler = _HANDLERS[rule.type]
    return handler(value, rule, record)


def _trim(value: Optional[str], rule: TransformationRule, record: Record) -> Optional[str]:
    return value.strip() if value is not None else None


def _static_value(value: Optional[str], rule: TransformationRule, record: Record) -> Optional[str]:
    return rule.parameter1


def _concatenate(value: Optional[str], rule: TransformationRule, record: Record) -> Optional[str]:
    suffix = rule.parameter1 or ""
    if suffix in record:
        suffix = record[suffix] or ""
    return (value or "") + suffix


def _date_format(value: Optional[str], rule: TransformationRule, record: Record) -> Optional[str]:
    if value is None or not value.strip():
        return value
    source_pattern = rule.parameter1
    target_pattern = rule.parameter2
    if not source_pattern or not source_pattern.strip():
        return value
    if not target_pattern or not target_pattern.strip():
        return value

    parsed = parse_date(value, source_pattern)
    if parsed is None:
        return value  # best-effort: unparsable dates pass through
    return format_date(parsed, target_pattern)


def _substring(value: Optional[str], rule: TransformationRule, record: Record) -> Optional[str]:
    if not value:
        return value

    start = _try_parse_int(rule.parameter1)
    if start is None:
        return value
    if start < 0 or start >= len(value):
        return ""

    length = _try_parse_int(rule.parameter2)
    if length is None:
        return value[start:]
    if length < 0:
        raise ValueError("Substring length cannot be negative ({}).".format(length))
    length = min(length, len(value) - start)
    return value[start:start + length]


_HANDLERS: Dict[TransformationType, Callable[[Optional[str], TransformationRule, Record], Optional[str]]] = {
    TransformationType.TRIM: _trim,
    TransformationType.STATICVALUE: _static_value,
    TransformationType.CONCATENATE: _concatenate,
    TransformationType.DATEFORMAT: _date_format,
    TransformationType.SUBSTRING: _substring,
}


def _try_parse_int(text: Optional[str]) -> Optional[int]:
    if text is None or not _INT_RE.match(text):
        return None
    return int(text)


# ---------------------------------------------------------------------------
# Date patterns
# ---------------------------------------------------------------------------


def parse_date(value: str, pattern: str) -> Optional[datetime]:
    """Parse ``value`` strictly against a date pattern, or return None.

    Patterns use .NET-style custom tokens (``yyyy-MM-dd HH:mm:ss``) as found
    in existing mapping documents. A pattern containing ``%`` is taken as a
    Python strptime pattern instead. Token widths are exact: ``MM`` needs
    two digits and ``fff`` three.
    """
    if "%" in pattern:
        strptime_pattern = pattern
    else:
        tokens = _tokenize(pattern)
        strptime_pattern = _to_strptime(tokens)
        if strptime_pattern is None or not re.fullmatch(_to_regex(tokens), value, re.IGNORECASE):
            return None
    try:
        return datetime.strptime(value, strptime_pattern)
    except (ValueError, re.error):
        return None


def format_date(moment: datetime, pattern: str) -> str:
    """Render ``moment`` with a .NET-style (or ``%``-style) date pattern."""
    if "%" in pattern:
        return moment.strftime(pattern)
    return "".join(_render_token(moment, token) for token in _tokenize(pattern))


def _tokenize(pattern: str) -> List[_Token]:
    tokens: List[_Token] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char in ("'", '"'):
            end = pattern.find(char, i + 1)
            if end == -1:
                end = len(pattern)
            tokens.append(pattern[i + 1:end])
            i = end + 1
        elif char == "\\" and i + 1 < len(pattern):
            tokens.append(pattern[i + 1])
            i += 2
        elif char in _DATE_TOKEN_CHARS:
            run = 1
            while i + run < len(pattern) and pattern[i + run] == char:
                run += 1
            tokens.append((char, run))
            i += run
        else:
            tokens.append(char)
            i += 1
    return tokens


def _to_strptime(tokens: List[_Token]) -> Optional[str]:
    """strptime pattern for the tokens, or None if a field repeats."""
    parts: List[str] = []
    seen = set()
    for token in tokens:
        if isinstance(token, str):
            parts.append(token.replace("%", "%%"))
            continue
        directive = _directive(token)
        if directive in seen:
            return None
        seen.add(directive)
        parts.append(directive)
    return "".join(parts)


def _directive(token: Tuple[str, int]) -> str:
    char, count = token
    if char == "y":
        return "%y" if count <= 2 else "%Y"
    if char == "M":
        return "%m" if count <= 2 else ("%b" if count == 3 else "%B")
    if char == "d":
        return "%d" if count <= 2 else ("%a" if count == 3 else "%A")
    if char in ("f", "F"):
        return "%f"
    if char in ("z", "K"):
        return "%z"
    return {"H": "%H", "h": "%I", "m": "%M", "s": "%S", "t": "%p"}[char]


def _digits(count: int, fixed: int) -> str:
    # A single-letter token accepts one or two digits; longer runs are exact
    return r"\d{1,2}" if count == 1 else r"\d{{{}}}".format(fixed)


def _to_regex(tokens: List[_Token]) -> str:
    parts: List[str] = []
    for token in tokens:
        if isinstance(token, str):
            parts.append(re.escape(token))
            continue
        char, count = token
        if char == "y":
            parts.append(_digits(count, 2 if count == 2 else 4))
        elif char in ("M", "d") and count >= 3:
            parts.append("[a-z]{3}" if count == 3 else "[a-z]+")
        elif char in ("M", "d", "H", "h", "m", "s"):
            parts.append(_digits(count, 2))
        elif char == "f":
            parts.append(r"\d{{{}}}".format(count))
        elif char == "F":
            parts.append(r"\d{{1,{}}}".format(count))
        elif char == "t":
            parts.append("[ap]" if count == 1 else "[ap]m")
        else:  # z, K
            parts.append(r"(?:z|[+-]\d{2}:?\d{2}|[+-]\d{1,2})")
    return "".join(parts)


def _render_token(moment: datetime, token: _Token) -> str:
    if isinstance(token, str):
        return token
    char, count = token

    if char == "y":
        if count == 1:
            return str(moment.year % 100)
        if count == 2:
            return "{:02d}".format(moment.year % 100)
        return str(moment.year).zfill(count)
    if char == "M":
        if count >= 4:
            return _MONTH_NAMES[moment.month - 1]
        if count == 3:
            return _MONTH_NAMES[moment.month - 1][:3]
        return str(moment.month).zfill(count)
    if char == "d":
        if count >= 4:
            return _DAY_NAMES[moment.weekday()]
        if count == 3:
            return _DAY_NAMES[moment.weekday()][:3]
        return str(moment.day).zfill(count)
    if char == "H":
        return str(moment.hour).zfill(min(count, 2))
    if char == "h":
        return str(moment.hour % 12 or 12).zfill(min(count, 2))
    if char == "m":
        return str(moment.minute).zfill(min(count, 2))
    if char == "s":
        return str(moment.second).zfill(min(count, 2))
    if char in ("f", "F"):
        digits = str(moment.microsecond).zfill(6).ljust(count, "0")[:count]
        return digits.rstrip("0") if char == "F" else digits
    if char == "t":
        marker = "AM" if moment.hour < 12 else "PM"
        return marker[:1] if count == 1 else marker
    if char == "K" and moment.tzinfo is None:
        return ""
    return _render_offset(moment.utcoffset() or timedelta(0), count if char == "z" else 3)


def _render_offset(offset: timedelta, count: int) -> str:
    total_minutes = int(offset.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    if count == 1:
        return "{}{}".format(sign, hours)
    if count == 2:
        return "{}{:02d}".format(sign, hours)
    return "{}{:02d}:{:02d}".format(sign, hours, minutes)

"""
Text-level cleanup of model output before JSON parsing.

Everything here operates on strings. The repair pass is a fixed, ordered list
of substitutions for known model failure modes; each substitution only matches
text that is not already valid JSON, so applying the pass to its own output
changes nothing.

Truncated output (unbalanced braces/brackets) is rejected before any repair.
"""

import logging
import re
from typing import Callable

from glowfit.errors import TruncatedOutputError, UnparseableOutputError

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 60

# A quoted key followed by a colon: `"reps": `
_KEY = r'("[^"\\\n]*"\s*:\s*)'
# Where a scalar value ends
_END = r"(?=\s*[,}\]\n])"


# =============================================================================
# Extraction
# =============================================================================

_FENCE_RE = re.compile(r"```[A-Za-z]*[ \t]*\n?(.*?)```", re.DOTALL)
_FENCE_MARKER_RE = re.compile(r"```[A-Za-z]*")


def strip_code_fences(text: str) -> str:
    """Return the body of the first Markdown code fence, or the text without stray fence markers."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return _FENCE_MARKER_RE.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """
    Return the first balanced {...} span.

    The scan is string-aware, so braces inside quoted values do not count.
    If the object never closes, everything from the first "{" is returned and
    the balance check reports it as truncated.

    Raises:
        UnparseableOutputError: the text contains no "{" at all
    """
    start = text.find("{")
    if start == -1:
        raise UnparseableOutputError("no JSON object found", 0, error_context(text, 0))

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if escaped:
            escaped = False
            continue
        if in_string:
            if char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return text[start:]


def check_balance(text: str) -> None:
    """
    Reject output whose braces or brackets do not pair up.

    Raises:
        TruncatedOutputError: counts of "{"/"}" or "["/"]" differ
    """
    open_braces = text.count("{")
    close_braces = text.count("}")
    open_brackets = text.count("[")
    close_brackets = text.count("]")

    if open_braces != close_braces or open_brackets != close_brackets:
        raise TruncatedOutputError(open_braces, close_braces, open_brackets, close_brackets)


def error_context(text: str, position: int, window: int = CONTEXT_WINDOW) -> str:
    """Text around a parse error with a marker at the failing offset."""
    position = max(0, min(position, len(text)))
    start = max(0, position - window)
    end = min(len(text), position + window)
    before = text[start:position]
    after = text[position:end]
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(text) else ""
    return f"{prefix}{before}<<HERE>>{after}{suffix}"


# =============================================================================
# Repair pass
# =============================================================================

# Unquoted rep schemes and intensity words: "reps": to failure
_ENUM_WORDS = (
    r"as many as possible(?:\s*\(AMRAP\))?"
    r"|as many as you can"
    r"|to failure"
    r"|AMRAP"
    r"|max"
    r"|moderate"
    r"|high"
    r"|low"
)
_BAREWORD_ENUM_RE = re.compile(
    r'("(?:reps|sets|intensity|effort|duration|reps/minutes)"\s*:\s*)(' + _ENUM_WORDS + r")" + _END,
    re.IGNORECASE,
)

# Number (or range) followed by a unit: "rest": 2 - 3 min, "cooking_time": 15minutes
_UNITS = (
    r"seconds|second|secs|sec|s"
    r"|minutes|minute|mins|min"
    r"|hours|hour|hrs|hr"
    r"|kcal|kg|lbs|lb|g|ml"
    r"|reps|rep"
)
_UNIT_VALUE_RE = re.compile(
    _KEY + r"(\d+(?:\.\d+)?(?:\s*[-–]\s*\d+(?:\.\d+)?)?)\s*(" + _UNITS + r")\b\.?" + _END,
    re.IGNORECASE,
)

# Bare numeric ranges or alternatives: "reps": 8-12, "reps": 8 or 10
_NUMERIC_RANGE_RE = re.compile(
    _KEY + r"(\d+(?:\.\d+)?)\s*(-|–|to|or)\s*(\d+(?:\.\d+)?)" + _END,
)

# Any other unquoted scalar: "exercise": Bench Press, "reps": 12 each leg
_BAREWORD_VALUE_RE = re.compile(
    _KEY + r'([A-Za-z][^"{}\[\],\n]*?|\d[^"{}\[\],\n]*?\s[A-Za-z][^"{}\[\],\n]*?)\s*' + _END,
)

# Adjacent values with no separator, across a line break or between objects
_MISSING_COMMA_NEWLINE_RE = re.compile(r'([}\]"]|\d|\btrue|\bfalse|\bnull)(\s*\n\s*)(?=["{])')
_MISSING_COMMA_OBJECTS_RE = re.compile(r"\}(\s*)\{")

# The whole run of commas before a closer goes in one pass: ",,]" and ", ,}" included
_TRAILING_COMMA_RE = re.compile(r"(?:,\s*)+([}\]])")

_JSON_LITERALS = {"true", "false", "null"}


def _compact_range(number: str) -> str:
    return re.sub(r"\s*[-–]\s*", "-", number)


def _quote_enum(match: re.Match) -> str:
    return f'{match.group(1)}"{match.group(2)}"'


def _quote_unit_value(match: re.Match) -> str:
    return f'{match.group(1)}"{_compact_range(match.group(2))} {match.group(3).lower()}"'


def _quote_numeric_range(match: re.Match) -> str:
    separator = match.group(3)
    if separator in ("-", "–"):
        value = f"{match.group(2)}-{match.group(4)}"
    else:
        value = f"{match.group(2)} {separator} {match.group(4)}"
    return f'{match.group(1)}"{value}"'


def _quote_bareword(match: re.Match) -> str:
    value = match.group(2).strip()
    if value in _JSON_LITERALS:
        return match.group(0)
    return f'{match.group(1)}"{value}"'


REPAIR_STEPS: list[tuple[str, Callable[[str], str]]] = [
    ("quote_enum_values", lambda text: _BAREWORD_ENUM_RE.sub(_quote_enum, text)),
    ("quote_unit_values", lambda text: _UNIT_VALUE_RE.sub(_quote_unit_value, text)),
    ("quote_numeric_ranges", lambda text: _NUMERIC_RANGE_RE.sub(_quote_numeric_range, text)),
    ("quote_bareword_values", lambda text: _BAREWORD_VALUE_RE.sub(_quote_bareword, text)),
    ("insert_missing_commas", lambda text: _MISSING_COMMA_OBJECTS_RE.sub(
        r"},\1{", _MISSING_COMMA_NEWLINE_RE.sub(r"\1,\2", text)
    )),
    ("remove_trailing_commas", lambda text: _TRAILING_COMMA_RE.sub(r"\1", text)),
]


def repair_json(text: str) -> str:
    """Apply the ordered repair substitutions. Well-formed JSON passes through unchanged."""
    repaired = text
    for name, step in REPAIR_STEPS:
        before = repaired
        repaired = step(repaired)
        if repaired != before:
            logger.debug(f"Applied repair step: {name}")
    return repaired


# =============================================================================
# Aggressive normalization (parse fallback)
# =============================================================================

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(^|[\s,\[{])//[^\n]*", re.MULTILINE)
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][\w\-]*)\s*:")
_SINGLE_QUOTED_RE = re.compile(r"(?<=[\[{:,])(\s*)'([^'\"\n]*)'(?=\s*[:,}\]])")


def normalize_aggressively(text: str) -> str:
    """
    Second-chance cleanup used only after a strict parse has failed.

    Strips comments and anything after the last closing brace, converts
    single-quoted strings to double-quoted ones and quotes bare keys.
    """
    normalized = _BLOCK_COMMENT_RE.sub("", text)
    normalized = _LINE_COMMENT_RE.sub(r"\1", normalized)

    last_brace = normalized.rfind("}")
    if last_brace != -1:
        normalized = normalized[: last_brace + 1]

    normalized = _SINGLE_QUOTED_RE.sub(r'\1"\2"', normalized)
    normalized = _BARE_KEY_RE.sub(r'\1"\2":', normalized)
    return normalized

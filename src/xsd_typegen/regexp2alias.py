"""Expand restricted regular expressions into finite literal unions.

XSD string types are frequently narrowed with a ``pattern`` facet describing
a small closed set of values (``A|B|C``, ``[A-C]{2}``, ``v\\d``). Such
patterns can be rendered as a TypeScript union of string literals instead of
a bare ``string``. This module enumerates every string a pattern can match,
provided the set is small and every string stays under a length cap.

Supported dialect:
    * literal characters and ``\\`` escapes (``\\d``, ``\\w`` and escaped
      metacharacters); ``.`` means any character of :data:`ALL_CHARS`
    * character classes ``[...]`` with ranges and leading ``^`` negation,
      negation is relative to :data:`ALL_CHARS`
    * groups ``( ... )`` / ``(?: ... )`` containing alternatives
    * quantifiers ``?``, ``*``, ``+``, ``{m}``, ``{m,}``, ``{m,n}``
    * top level alternation ``|``

Anything else, or any expansion growing past :data:`MAX_OPTIONS` candidate
strings, is reported as "no match" and callers fall back to the declared
scalar type.

Example:
    >>> regexp_pattern2type_alias("A|B|C")
    '"A"|"B"|"C"'
    >>> regexp_pattern2type_alias("[0-9]{2}", "number")
    'number'
    >>> regexp_pattern2type_alias("", "string")
    'string'
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DIGITS = "0123456789"
UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
PUNCTUATION = "".join(sorted("~§±!@#$%^&*()-_=+[]{}|;:.,'\""))

# Ordering used to resolve ``a-z`` style ranges.
ALPHANUMERIC = DIGITS + UPPERCASE + LOWERCASE
ALL_CHARS = ALPHANUMERIC + PUNCTUATION

MAX_LENGTH = 100
MAX_OPTIONS = 1000

SPECIALS = {
    "\\d": DIGITS,
    "\\w": ALPHANUMERIC,
    "\\.": ".",
    "\\-": "-",
    "\\[": "[",
    "\\]": "]",
    "\\{": "{",
    "\\}": "}",
    "\\*": "*",
    "\\+": "+",
    "\\^": "^",
    "\\?": "?",
    "\\\\": "\\",
    ".": ALL_CHARS,
}

_BRACES = re.compile(r"\{(\d+)(,(\d*))?\}")
_NUMERIC_LITERAL = re.compile(r"-?(0|[1-9]\d*)(\.\d+)?")


class RegExpError(ValueError):
    """The pattern cannot be expanded into a bounded literal set."""


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


class RegExpProcessor:
    """Cursor based expansion of one pattern alternative at a time.

    Args:
        max_length: Longest literal produced. Extensions that would exceed it
            keep the unextended candidate instead.
        max_options: Ceiling on the candidate set; exceeding it raises
            :class:`RegExpError`.
    """

    def __init__(self, max_length: int = MAX_LENGTH, max_options: int = MAX_OPTIONS) -> None:
        self.max_length = max_length
        self.max_options = max_options

    # ---------------- Candidate sets ---------------- #

    def build_variants(self, options: List[str], series: List[str]) -> List[str]:
        """Cross every option with every string of ``series``, sorted and deduplicated."""
        combined = set()
        for option in options:
            for suffix in series:
                candidate = option + suffix
                combined.add(candidate if len(candidate) <= self.max_length else option)
        if len(combined) > self.max_options:
            raise RegExpError(f"more than {self.max_options} variants")
        return sorted(combined)

    def repeat(self, options: List[str], atom: List[str], rounds: Optional[int] = None) -> List[str]:
        """Append zero or one ``atom`` ``rounds`` times, or until nothing changes."""
        series = [""] + atom
        done = 0
        while rounds is None or done < rounds:
            extended = self.build_variants(options, series)
            done += 1
            if extended == options:
                break
            options = extended
        return options

    # ---------------- Atoms ---------------- #

    def char(self, index: int, pattern: str) -> Tuple[List[str], int]:
        """A literal character or backslash escape at ``index``."""
        if index >= len(pattern):
            return [], index
        c = pattern[index]
        if c != "\\":
            return [c], index + 1
        if index + 1 >= len(pattern):
            raise RegExpError("dangling escape at end of pattern")
        escape = pattern[index : index + 2]
        if escape in SPECIALS:
            return list(SPECIALS[escape]), index + 2
        return [pattern[index + 1]], index + 2

    def specials(self, index: int, pattern: str) -> Tuple[List[str], int]:
        for width in (2, 1):
            token = pattern[index : index + width]
            if len(token) == width and token in SPECIALS:
                return list(SPECIALS[token]), index + width
        return [], index

    def series(self, index: int, pattern: str) -> Tuple[List[str], int]:
        """A bracket class ``[...]``, with ranges and ``^`` negation."""
        if index >= len(pattern) or pattern[index] != "[":
            return [], index
        i = index + 1
        invert = i < len(pattern) and pattern[i] == "^"
        if invert:
            i += 1
        chars: List[str] = []
        while i < len(pattern) and pattern[i] != "]":
            if pattern[i] == "-" and chars and i + 1 < len(pattern) and pattern[i + 1] != "]":
                end, i = self.char(i + 1, pattern)
                chars.extend(self._expand_range(chars[-1], end))
                continue
            found, i = self.char(i, pattern)
            chars.extend(found)
        if i >= len(pattern):
            raise RegExpError("unterminated character class")
        if invert:
            chars = [c for c in ALL_CHARS if c not in chars]
        return _unique(chars), i + 1

    @staticmethod
    def _expand_range(start: str, end: List[str]) -> List[str]:
        if len(end) != 1 or start not in ALPHANUMERIC or end[0] not in ALPHANUMERIC:
            raise RegExpError(f"unsupported range {start}-{''.join(end)}")
        lo, hi = ALPHANUMERIC.index(start), ALPHANUMERIC.index(end[0])
        if hi < lo:
            raise RegExpError(f"reversed range {start}-{end[0]}")
        return list(ALPHANUMERIC[lo + 1 : hi + 1])

    def group(self, index: int, pattern: str) -> Tuple[List[str], int]:
        """A parenthesized group; its atom is the union of its alternatives."""
        if index >= len(pattern) or pattern[index] != "(":
            return [], index
        i = index + 3 if pattern.startswith("(?:", index) else index + 1
        members: List[str] = []
        while True:
            options, i = self.variants(pattern, i)
            members.extend(options if options is not None else [""])
            if i >= len(pattern):
                raise RegExpError("unbalanced parenthesis")
            if pattern[i] == ")":
                return _unique(members), i + 1
            if pattern[i] != "|":
                raise RegExpError(f"unexpected {pattern[i]!r} in group")
            i += 1

    # ---------------- Alternatives ---------------- #

    def variants(self, pattern: str, index: int = 0) -> Tuple[Optional[List[str]], int]:
        """Expand one alternative starting at ``index``.

        Stops at an unescaped ``|`` or ``)``, or at the first token it cannot
        handle. Returns the sorted candidates and the cursor position, or
        ``None`` in place of the candidates if the cursor did not move.

        Raises:
            RegExpError: If the candidate set outgrows ``max_options`` or the
                pattern is malformed.
        """
        offset = index
        options = [""]
        previous: Optional[List[str]] = None
        atom: Optional[List[str]] = None

        while index < len(pattern) and pattern[index] not in "|)":
            found, next_index = self.specials(index, pattern)
            if not found:
                found, next_index = self.series(index, pattern)
            if not found:
                found, next_index = self.group(index, pattern)
            if found:
                previous, atom = options, found
                options = self.build_variants(options, found)
                index = next_index
                continue

            quantifier = pattern[index]
            braces = _BRACES.match(pattern, index) if quantifier == "{" else None
            if quantifier in "*+?" or braces:
                if atom is None or previous is None:
                    break
                if quantifier == "?":
                    options = self.repeat(previous, atom, rounds=1)
                elif quantifier == "*":
                    options = self.repeat(previous, atom)
                elif quantifier == "+":
                    options = self.repeat(options, atom)
                else:
                    options = self._bounded(previous, atom, braces)
                    index = braces.end() - 1
                atom = previous = None
                index += 1
                continue

            found, next_index = self.char(index, pattern)
            if not found:
                break
            previous, atom = options, found
            options = self.build_variants(options, found)
            index = next_index

        return (None if index == offset else options), index

    def _bounded(self, options: List[str], atom: List[str], braces: "re.Match[str]") -> List[str]:
        low = int(braces.group(1))
        high_text = braces.group(3)
        for _ in range(low):
            options = self.build_variants(options, atom)
        if braces.group(2) is None:
            return options
        if not high_text:
            return self.repeat(options, atom)
        high = int(high_text)
        if high < low:
            raise RegExpError(f"bad repetition {braces.group(0)}")
        return self.repeat(options, atom, rounds=high - low) if high > low else options

    def expand(self, pattern: str) -> Optional[List[str]]:
        """Expand a whole pattern, top level alternatives in pattern order.

        Each alternative contributes its sorted candidates; duplicates across
        alternatives are dropped. Returns ``None`` when the pattern cannot be
        fully consumed or the candidate set overflows.
        """
        try:
            return self._expand(pattern)
        except RegExpError as exc:
            logger.debug("no literal expansion for %r: %s", pattern, exc)
            return None

    def _expand(self, pattern: str) -> Optional[List[str]]:
        results: List[str] = []
        index = 0
        while True:
            options, index = self.variants(pattern, index)
            if options is None and index < len(pattern) and pattern[index] != "|":
                return None
            results.extend(options if options is not None else [""])
            if index >= len(pattern):
                break
            if pattern[index] != "|":
                return None
            index += 1
        results = _unique(results)
        if len(results) > self.max_options:
            raise RegExpError(f"more than {self.max_options} variants")
        return results


def expand_pattern(pattern: str, max_length: int = MAX_LENGTH) -> Optional[List[str]]:
    """Return every literal ``pattern`` matches, or ``None`` if not enumerable."""
    return RegExpProcessor(max_length).expand(pattern)


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def literal_union(literals: List[str], type_name: str = "string") -> Optional[str]:
    """Join literals into a union; ``None`` if a ``number`` literal is not numeric."""
    if type_name == "number":
        if not all(_NUMERIC_LITERAL.fullmatch(literal) for literal in literals):
            return None
        return "|".join(literals)
    return "|".join(quote_literal(literal) for literal in literals)


def regexp_pattern2type_alias(
    pattern: str,
    type_name: str = "string",
    max_length: int = MAX_LENGTH,
    fallback_type: Optional[str] = None,
) -> str:
    """Render ``pattern`` as a union of literals of ``type_name``.

    Args:
        pattern: XSD ``pattern`` facet value.
        type_name: Declared scalar type. ``number`` produces bare numeric
            literals; anything else produces quoted string literals.
        max_length: Longest literal produced.
        fallback_type: Returned when the pattern is empty or cannot be
            enumerated. Defaults to ``type_name``.

    Returns:
        A ``|`` joined literal union, or the fallback type name.
    """
    fallback = fallback_type or type_name
    if not pattern:
        return fallback
    try:
        literals = expand_pattern(pattern, max_length)
    except (ValueError, IndexError) as exc:
        logger.debug("failed to expand pattern %r: %s", pattern, exc)
        return fallback
    if not literals:
        return fallback

    union = literal_union(literals, type_name)
    if union is None:
        logger.debug("pattern %r yields non numeric literals", pattern)
        return fallback
    return union

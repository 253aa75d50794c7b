"""
Hostlist Expansion
==================

Parses compact node range notation such as ``nid[001-010,015]`` or
``x1000c0s[0-3]b0n[0-1]`` into individual host names, and compresses a list
of host names back into that notation.

Grammar:
    hostlist := term ("," term)*
    term     := (literal | "[" ranges "]")+
    ranges   := item ("," item)*
    item     := digits | digits "-" digits

Zero padding of a range follows the width of its lower bound, so
``nid[001-003]`` expands to ``nid001, nid002, nid003``.
"""

import logging
import re
from typing import Dict, Iterable, List, Tuple

from .errors import HostlistParseError, InvalidArgumentError

logger = logging.getLogger(__name__)

MAX_EXPANSION = 100000

_DIGITS = re.compile(r"^[0-9]+$")
_TRAILING_NUMBER = re.compile(r"^(.*?)([0-9]+)([^0-9]*)$")


def _split_terms(expression: str) -> List[str]:
    """Split on commas that are not inside brackets."""
    terms = []
    depth = 0
    current = []

    for char in expression:
        if char == "[":
            if depth:
                raise HostlistParseError(f"Nested '[' in hostlist '{expression}'", expression)
            depth += 1
        elif char == "]":
            if not depth:
                raise HostlistParseError(f"Unbalanced ']' in hostlist '{expression}'", expression)
            depth -= 1
        elif char == "," and not depth:
            terms.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    if depth:
        raise HostlistParseError(f"Unbalanced '[' in hostlist '{expression}'", expression)

    terms.append("".join(current).strip())

    for term in terms:
        if not term:
            raise HostlistParseError(f"Empty host term in hostlist '{expression}'", expression)

    return terms


def _parse_ranges(content: str, expression: str) -> List[Tuple[int, int, int]]:
    """Parse the inside of one bracket group into (low, high, width) tuples."""
    if not content.strip():
        raise HostlistParseError(f"Empty range '[]' in hostlist '{expression}'", expression)

    ranges = []
    for item in content.split(","):
        item = item.strip()
        if not item:
            raise HostlistParseError(f"Empty range item in '[{content}]'", expression)

        low_str, sep, high_str = item.partition("-")
        low_str = low_str.strip()
        high_str = high_str.strip() if sep else low_str

        if not _DIGITS.match(low_str) or not _DIGITS.match(high_str):
            raise HostlistParseError(f"Non-numeric range bound '{item}' in hostlist '{expression}'", expression)

        low, high = int(low_str), int(high_str)
        if low > high:
            raise HostlistParseError(f"Descending range '{item}' in hostlist '{expression}'", expression)

        ranges.append((low, high, len(low_str)))

    return ranges


def _parse_term(term: str, expression: str) -> List[object]:
    """
    Break a term into literal strings and parsed bracket groups. The term
    expands to the cartesian product of its pieces.
    """
    pieces: List[object] = []
    literal = []
    position = 0

    while position < len(term):
        char = term[position]
        if char == "[":
            close = term.index("]", position)
            if literal:
                pieces.append("".join(literal))
                literal = []
            pieces.append(_parse_ranges(term[position + 1:close], expression))
            position = close + 1
            continue
        literal.append(char)
        position += 1

    if literal:
        pieces.append("".join(literal))

    return pieces


def _term_size(pieces: List[object]) -> int:
    size = 1
    for piece in pieces:
        if isinstance(piece, list):
            size *= sum(high - low + 1 for low, high, _ in piece)
    return size


def _expand_pieces(pieces: List[object]) -> List[str]:
    hosts = [""]
    for piece in pieces:
        if isinstance(piece, str):
            hosts = [host + piece for host in hosts]
            continue
        numbers = [
            str(number).zfill(width)
            for low, high, width in piece
            for number in range(low, high + 1)
        ]
        hosts = [host + number for host in hosts for number in numbers]
    return hosts


def expand(expression: str) -> List[str]:
    """
    Expand a hostlist expression into an ordered list of unique host names.

    Args:
        expression: Hostlist such as ``nid[001-004,010],login01``

    Returns:
        List[str]: Host names in expression order, duplicates removed

    Raises:
        HostlistParseError: If the expression violates the hostlist grammar
            or would expand to more than MAX_EXPANSION hosts
    """
    if not isinstance(expression, str):
        raise HostlistParseError(f"Hostlist must be a string, got {type(expression).__name__}")

    expression = expression.strip()
    if not expression:
        raise HostlistParseError("Empty hostlist expression", expression)

    parsed = [_parse_term(term, expression) for term in _split_terms(expression)]

    # Size is checked up front so an oversized expression allocates nothing
    total = sum(_term_size(pieces) for pieces in parsed)
    if total > MAX_EXPANSION:
        raise HostlistParseError(
            f"Hostlist '{expression}' expands to {total} hosts (limit {MAX_EXPANSION})", expression
        )

    seen = set()
    hosts = []
    for pieces in parsed:
        for host in _expand_pieces(pieces):
            if host not in seen:
                seen.add(host)
                hosts.append(host)

    logger.debug(f"Hostlist '{expression}' expanded to {len(hosts)} hosts")
    return hosts


def _format_runs(numbers: List[int], width: int) -> List[str]:
    runs = []
    start = previous = numbers[0]
    for number in numbers[1:] + [None]:
        if number is not None and number == previous + 1:
            previous = number
            continue
        if start == previous:
            runs.append(str(start).zfill(width))
        else:
            runs.append(f"{str(start).zfill(width)}-{str(previous).zfill(width)}")
        if number is not None:
            start = previous = number
    return runs


def compress(hosts: Iterable[str]) -> str:
    """
    Compress host names into the shortest hostlist this module produces.

    Hosts sharing a prefix, suffix and zero padding are merged into one
    bracket group; hosts without a number are kept verbatim. Groups appear in
    the order their first host was seen.

    Raises:
        InvalidArgumentError: If a host is empty or contains '[', ']' or ','
    """
    groups: Dict[Tuple[str, str, int], List[int]] = {}
    order: List[object] = []

    for host in hosts:
        host = host.strip() if isinstance(host, str) else host
        if not host or not isinstance(host, str):
            raise InvalidArgumentError(f"Invalid host identifier: {host!r}")
        if any(char in host for char in "[],"):
            raise InvalidArgumentError(f"Host identifier '{host}' contains hostlist syntax")

        match = _TRAILING_NUMBER.match(host)
        if not match:
            if host not in order:
                order.append(host)
            continue

        prefix, digits, suffix = match.groups()
        width = len(digits) if len(digits) > 1 and digits.startswith("0") else 0
        key = (prefix, suffix, width)
        if key not in groups:
            groups[key] = []
            order.append(key)
        groups[key].append(int(digits))

    if not order:
        raise InvalidArgumentError("No hosts to compress")

    parts = []
    for entry in order:
        if isinstance(entry, str):
            parts.append(entry)
            continue
        prefix, suffix, width = entry
        numbers = sorted(set(groups[entry]))
        runs = _format_runs(numbers, width)
        if len(runs) == 1 and "-" not in runs[0]:
            parts.append(f"{prefix}{runs[0]}{suffix}")
        else:
            parts.append(f"{prefix}[{','.join(runs)}]{suffix}")

    return ",".join(parts)

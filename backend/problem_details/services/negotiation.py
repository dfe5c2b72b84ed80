"""
Accept header negotiation.

Picks the best entry of an ordered list of server-side media types for a
client ``Accept`` header. Matching understands wildcards (``*/*``,
``application/*``) and structured syntax suffixes, so a priority of
``application/*+json`` matches a request for ``application/vnd.api+json``.

Selection: for every priority the most specific matching range is kept,
then the highest client quality wins, and ties go to the earlier priority.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

# Problem details representations, preferred first
NEGOTIATION_PRIORITIES: Tuple[str, ...] = (
    "application/json",
    "application/*+json",
    "application/xml",
    "application/*+xml",
)


@dataclass(frozen=True)
class MediaRange:
    """One parsed media range of an Accept header (or a priority)."""

    value: str
    base: str
    sub: str
    quality: float = 1.0
    parameters: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Match:
    quality: float
    score: int
    index: int


def accept_header(request) -> str:
    """Return all Accept header values of a request joined into one line."""
    return ", ".join(request.headers.getlist("accept"))


def parse_media_range(text: str) -> MediaRange:
    parts = [part.strip() for part in text.split(";")]
    value = parts[0].lower()
    if value == "*":
        value = "*/*"
    base, _, sub = value.partition("/")

    quality = 1.0
    parameters: Dict[str, str] = {}
    for part in parts[1:]:
        name, sep, param_value = part.partition("=")
        if not sep:
            continue
        name = name.strip().lower()
        param_value = param_value.strip().strip('"')
        if name == "q":
            quality = _parse_quality(param_value)
        else:
            parameters[name] = param_value

    return MediaRange(value=value, base=base, sub=sub, quality=quality, parameters=parameters)


def parse_accept(header: str) -> List[MediaRange]:
    """Split an Accept header into media ranges, skipping empty entries."""
    ranges = []
    for item in _split_header(header):
        if item.strip():
            ranges.append(parse_media_range(item))
    return ranges


def negotiate(header: Optional[str], priorities: Sequence[str] = NEGOTIATION_PRIORITIES) -> Optional[str]:
    """Return the best priority for ``header``, or None when nothing is acceptable.

    An empty or missing header is read as ``*/*``.
    """
    accepted = parse_accept(header or "*/*")
    candidates = [parse_media_range(priority) for priority in priorities]

    best: Dict[int, Match] = {}
    for index, priority in enumerate(candidates):
        for accept in accepted:
            match = _match(accept, priority, index)
            if match is None:
                continue
            current = best.get(index)
            if current is None or current.score < match.score:
                best[index] = match

    # The most specific range decides; a zero quality excludes the priority
    ranked = sorted(
        (match for match in best.values() if match.quality > 0),
        key=lambda match: (-match.quality, match.index),
    )
    if not ranked:
        return None
    return priorities[ranked[0].index]


def _match(accept: MediaRange, priority: MediaRange, index: int) -> Optional[Match]:
    shared = {
        name: value
        for name, value in accept.parameters.items()
        if priority.parameters.get(name) == value
    }
    params_ok = len(shared) == len(accept.parameters)
    quality = accept.quality * priority.quality

    base_equal = accept.base == priority.base
    sub_equal = accept.sub == priority.sub
    if (accept.base == "*" or base_equal) and (accept.sub == "*" or sub_equal) and params_ok:
        return Match(quality, 100 * base_equal + 10 * sub_equal + len(shared), index)

    if "+" not in accept.sub or "+" not in priority.sub:
        return None

    accept_sub, accept_plus = _split_suffix(accept.sub)
    priority_sub, priority_plus = _split_suffix(priority.sub)
    wildcard = "*" in (accept_sub, priority_sub, accept_plus, priority_plus)
    if not (accept.base == "*" or base_equal) or not wildcard:
        return None

    sub_equal = accept_sub == priority_sub
    plus_equal = accept_plus == priority_plus
    if (
        (accept_sub == "*" or priority_sub == "*" or sub_equal)
        and (accept_plus == "*" or priority_plus == "*" or plus_equal)
        and params_ok
    ):
        return Match(quality, 100 * base_equal + 10 * sub_equal + plus_equal + len(shared), index)
    return None


def _split_suffix(sub: str) -> Tuple[str, str]:
    name, _, suffix = sub.rpartition("+")
    return name, suffix


def _parse_quality(value: str) -> float:
    try:
        quality = float(value)
    except ValueError:
        return 0.0
    return min(max(quality, 0.0), 1.0)


def _split_header(header: str) -> List[str]:
    """Split on commas that are not inside quoted parameter values."""
    items = []
    current = []
    quoted = False
    for char in header:
        if char == '"':
            quoted = not quoted
        if char == "," and not quoted:
            items.append("".join(current))
            current = []
            continue
        current.append(char)
    items.append("".join(current))
    return items

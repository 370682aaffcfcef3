"""
Heuristic attribute extraction from free-form user utterances.

Each field has an ordered list of regex rules. Rules for one field are
tried in order and the first match wins; fields are evaluated
independently against the full utterance, so one number may feed more
than one field. Only fields still unset in the current record are
considered. This is a local fallback; structured extraction from the
dialogue service always takes precedence.

Usage:
    patch = extract("My warehouse is 30 meters long", AttributeRecord())
    assert patch.length == 30
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from src.schemas.attribute_schema import FIELD_ORDER, PALLET_TYPES, AttributeRecord
from src.utils import normalize_label, parse_number

logger = logging.getLogger(__name__)

_NUM = r"(?<![\d.,])(\d+(?:[.,]\d+)?)"
_INT = r"(?<![\d.,])(\d{1,3}(?:,\d{3})+|\d+)(?![.,]?\d)"
_UNIT = r"(?:m|meters?|metres?)\b"
_GAP = r"[^\d]{0,25}?"
# Short connector between a storage keyword and its count ("capacity of about 450")
_COUNT_LINK = r"\s*(?:(?:of|for|is|:)\s*)?(?:about\s+)?"
# A count must not be a measurement ("12m", "12 tall")
_NOT_MEASURE = r"(?!\s*(?:m|meters?|metres?|long|wide|high|tall)\b)"

# Keywords that claim a bare "N meters" for height or width instead of length
_NON_LENGTH_CONTEXT = re.compile(r"\b(?:height|high|tall|width|wide)\b", re.IGNORECASE)
_CONTEXT_WINDOW = 25

# Canonical storage label -> pattern; longest phrases first
STORAGE_TYPE_PATTERNS: list[tuple[str, str]] = [
    ("selective rack", r"\bselective\s+rack(?:s|ing)?\b"),
    ("mobile rack", r"\bmobile\s+rack(?:s|ing)?\b"),
    ("block stacking", r"\bblock[\s-]+stack(?:ing|ed)?\b"),
    ("drive-through", r"\bdrive[\s-]*(?:through|thru)\b"),
    ("drive-in", r"\bdrive[\s-]*in\b"),
    ("push-back", r"\bpush[\s-]*back\b"),
    ("pallet flow", r"\bpallet[\s-]+flow\b"),
    ("cantilever", r"\bcantilever\b"),
    ("mezzanine", r"\bmezzanine\b"),
    ("rack", r"\brack(?:s|ing)?\b"),
]


def _positive_float(raw: str) -> Optional[float]:
    value = parse_number(raw)
    return value if value is not None and value > 0 else None


def _positive_int(raw: str) -> Optional[int]:
    value = parse_number(raw)
    if value is None or value <= 0 or value != int(value):
        return None
    return int(value)


@dataclass(frozen=True)
class ExtractionRule:
    """One pattern for one field; ``group`` selects the capture to convert."""

    field: str
    pattern: re.Pattern
    convert: Callable[[str], Any]
    group: int = 1
    guard: Optional[Callable[[re.Match, str], bool]] = None


def _rule(
    field: str,
    pattern: str,
    convert: Callable[[str], Any],
    group: int = 1,
    guard: Optional[Callable[[re.Match, str], bool]] = None,
) -> ExtractionRule:
    return ExtractionRule(field, re.compile(pattern, re.IGNORECASE), convert, group, guard)


def _bare_length_guard(match: re.Match, text: str) -> bool:
    """Reject a bare 'N meters' if height/width wording sits right next to it."""
    before = text[max(0, match.start() - _CONTEXT_WINDOW):match.start()]
    after = text[match.end():match.end() + _CONTEXT_WINDOW]
    return not (_NON_LENGTH_CONTEXT.search(before) or _NON_LENGTH_CONTEXT.match(after.lstrip()))


_PAIR = _NUM + r"\s*(?:" + _UNIT + r")?\s*(?:x|by|×)\s*" + _NUM

RULES: list[ExtractionRule] = [
    # length
    _rule("length", _NUM + r"\s*(?:" + _UNIT + r")?\s*(?:long|in\s+length|length)\b", _positive_float),
    _rule("length", r"\b(?:length|long)\b" + _GAP + _NUM, _positive_float),
    _rule("length", _PAIR, _positive_float, group=1),
    _rule("length", _NUM + r"\s*" + _UNIT, _positive_float, guard=_bare_length_guard),
    # width
    _rule("width", _NUM + r"\s*(?:" + _UNIT + r")?\s*(?:wide|in\s+width|width)\b", _positive_float),
    _rule("width", r"\b(?:width|wide)\b" + _GAP + _NUM, _positive_float),
    _rule("width", _PAIR, _positive_float, group=2),
    # height
    _rule("height", _NUM + r"\s*(?:" + _UNIT + r")?\s*(?:high|tall|in\s+height|height)\b", _positive_float),
    _rule("height", r"\b(?:height|high|tall)\b" + _GAP + _NUM, _positive_float),
    # pallet type
    _rule(
        "pallet_type",
        r"\b(" + "|".join(PALLET_TYPES) + r")[\s-]*pallets?\b",
        normalize_label,
    ),
    # storage
    _rule("storage", _INT + r"\s+(?:[a-z]+[\s-]+)?pallets?\b", _positive_int),
    _rule("storage", r"\b(?:storage|capacity)\b" + _COUNT_LINK + _INT + _NOT_MEASURE, _positive_int),
    _rule("storage", _INT + r"\s*(?:pallet\s+)?(?:storage|capacity)\b", _positive_int),
]
for _label, _pattern in STORAGE_TYPE_PATTERNS:
    RULES.append(_rule("storage_type", _pattern, lambda _, label=_label: label, group=0))


def _first_match(rules: list[ExtractionRule], text: str) -> Any:
    for rule in rules:
        for match in rule.pattern.finditer(text):
            if rule.guard is not None and not rule.guard(match, text):
                continue
            value = rule.convert(match.group(rule.group))
            if value is not None:
                return value
    return None


def extract(utterance: str, current: AttributeRecord) -> AttributeRecord:
    """
    Guess attribute values from a user utterance.

    Returns a patch record holding only newly-guessed fields. Fields that
    are already set in ``current`` are never touched. Pure: the same
    utterance and record always give the same patch.
    """
    found: dict[str, Any] = {}
    for name in FIELD_ORDER:
        if getattr(current, name) is not None:
            continue
        value = _first_match([r for r in RULES if r.field == name], utterance)
        if value is not None:
            found[name] = value

    if found:
        logger.debug("Heuristic extraction found: %s", found)
    return AttributeRecord(**found)

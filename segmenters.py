"""
Line segmenters for multi-wager slips.

Both segmenters are small state machines fed one OCR line at a time so the
boundary logic can be tested without the rest of the parser:

- PendingListSegmenter splits an account "pending wagers" list into one
  segment per ticket header row.
- ParlayLegSegmenter splits a parlay slip into legs, closing a leg when the
  accumulated text ends in an "@ +150" style odds token.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from amounts import dollar_amounts_in_text
from config import Config
from format_router import PENDING_HEADER
from geometry import RISK_HEADERS, WIN_HEADERS, center_of, find_header_x, infer_column_split_x, is_known, word_tokens
from markets import matching_rule
from models.bet import AmountCandidate, WordAnnotation

logger = logging.getLogger("segmenters")

SECTION_WORDS = frozenset({
    "pending", "wagers", "wager", "bets", "bet", "description", "risk", "to", "win",
    "ticket", "#", "no", "date", "type", "status", "straight", "amount", "open", "my",
    "sport", "league", "accepted", "total", "totals",
})

PARLAY_BOILERPLATE = re.compile(
    r"^(?:view\s+legs|hide\s+legs|balance\b.*|home|scores|my\s+bets|bet\s*slip|ml"
    r"|(?:\d+\s*-?\s*(?:leg|team|pick)\s+)?(?:same\s+game\s+)?parlay\b.*"
    r"|(?:(?:total|potential)\s+)?(?:odds|wager|return|close|to\s*win|payout|stake|risk)\b.*"
    r"|.*successfully\s+submitted.*|bet\s+placed.*|ticket\s*(?:#|no\.?|number)?\s*:?\s*\d*"
    r"|placed\b.*)$",
    re.I,
)
LEG_BOUNDARY = re.compile(r"@\s*([+-]\d{2,5})\s*$")
SELECTION_HINT = re.compile(
    r"\b(?:over|under|ml|moneyline)\b|\bto record\b|@|[+-]\d{2,5}|(?<![\w.])[+-]\d{1,2}(?:\.5)?\b",
    re.I,
)
AMOUNT_ONLY = re.compile(r"^\$?\s?\d[\d,]*(?:\.\d{1,2})?$")
DOLLAR_AMOUNT = re.compile(r"\$\s?\d[\d,]*(?:\.\d{1,2})?")


def is_section_label(line: str) -> bool:
    tokens = re.findall(r"[a-z#]+", line.lower())
    if not tokens or re.search(r"\d", line):
        return False
    return all(t in SECTION_WORDS for t in tokens)


def is_parlay_boilerplate(line: str) -> bool:
    return bool(PARLAY_BOILERPLATE.match(line.strip()))


def is_selection_line(line: str) -> bool:
    if is_parlay_boilerplate(line):
        return False
    if SELECTION_HINT.search(line):
        return True
    # TD scorers, futures and props often print no line or odds token.
    if is_section_label(line):
        return False
    rule = matching_rule(DOLLAR_AMOUNT.sub(" ", line))
    return rule is not None and rule != "spread_number"


class PendingState(Enum):
    SCANNING = "scanning"
    COLLECTING = "collecting"


@dataclass
class PendingSegment:
    ticket_no: str
    sport: str
    league: str
    lines: List[str] = field(default_factory=list)

    @property
    def raw_text(self) -> str:
        return "\n".join(self.lines)


class PendingListSegmenter:
    def __init__(self, max_lines: int = 10) -> None:
        self.max_lines = max_lines
        self.state = PendingState.SCANNING
        self.segments: List[PendingSegment] = []
        self._current: Optional[PendingSegment] = None

    def _emit(self) -> None:
        if self._current is not None:
            self.segments.append(self._current)
        self._current = None

    def feed(self, line: str) -> None:
        m = PENDING_HEADER.match(line)
        if m:
            self._emit()
            self._current = PendingSegment(
                ticket_no=m.group(1),
                sport=m.group(2).title(),
                league=m.group(3).upper(),
            )
            rest = m.group(4).strip(" -|")
            if rest:
                self._current.lines.append(rest)
            self.state = PendingState.COLLECTING
            return
        if self.state is PendingState.SCANNING or self._current is None:
            return
        if is_section_label(line):
            return
        if len(self._current.lines) >= self.max_lines:
            return
        self._current.lines.append(line)

    def finish(self) -> List[PendingSegment]:
        self._emit()
        self.state = PendingState.SCANNING
        return self.segments


def segment_pending_list(lines: Sequence[str], max_lines: int = 10) -> List[PendingSegment]:
    segmenter = PendingListSegmenter(max_lines=max_lines)
    for line in lines:
        segmenter.feed(line)
    return segmenter.finish()


def segment_selection_text(segment: PendingSegment) -> str:
    kept = []
    for line in segment.lines:
        if AMOUNT_ONLY.match(line.strip()):
            continue
        cleaned = DOLLAR_AMOUNT.sub(" ", line)
        cleaned = re.sub(r"\b\d{1,2}/\d{1,2}/\d{2,4}(?:\s+\d{1,2}:\d{2}\s*(?:[AaPp][Mm])?)?", " ", cleaned)
        cleaned = re.sub(r"\s+", " ", cleaned).strip(" -|")
        if cleaned:
            kept.append(cleaned)
    return " ".join(kept)


def _ticket_anchor_y(annotations: Sequence[WordAnnotation], ticket_no: str) -> Optional[float]:
    suffix = ticket_no[-9:]
    candidates = []
    for ann in word_tokens(annotations):
        digits = re.sub(r"\D", "", ann.description)
        if len(digits) < 6:
            continue
        c = center_of(ann.bounding_polygon)
        if is_known(c):
            candidates.append((digits, c[1]))
    for digits, y in candidates:
        if digits[-9:] == suffix:
            return y
    for digits, y in candidates:
        if digits.endswith(suffix) or suffix.endswith(digits):
            return y
    return None


def _nearest(amounts: Sequence[AmountCandidate], anchor_y: float, max_dy: float) -> Optional[float]:
    best = None
    for a in amounts:
        dy = abs(a.y - anchor_y)
        if dy <= max_dy and (best is None or dy < best[0]):
            best = (dy, a.value)
    return best[1] if best else None


def geometry_amounts(
    segment: PendingSegment,
    annotations: Sequence[WordAnnotation],
    amounts: Sequence[AmountCandidate],
    config: Config,
) -> Optional[Tuple[Optional[float], Optional[float]]]:
    """(risk, to_win) read from the Risk / To Win columns on the ticket's row."""
    if not annotations or not amounts:
        return None
    split = infer_column_split_x(annotations)
    anchor_y = _ticket_anchor_y(annotations, segment.ticket_no)
    if split is None or anchor_y is None:
        return None
    risk_x = find_header_x(annotations, RISK_HEADERS)
    win_x = find_header_x(annotations, WIN_HEADERS)
    risk_col = [a for a in amounts if a.x < split and abs(a.x - risk_x) <= config.risk_band_px]
    win_col = [a for a in amounts if a.x >= split and abs(a.x - win_x) <= config.win_band_px]
    risk = _nearest(risk_col, anchor_y, config.anchor_max_dy)
    to_win = _nearest(win_col, anchor_y, config.anchor_max_dy)
    if risk is None and to_win is None:
        return None
    return risk, to_win


def assign_segment_amounts(
    segment: PendingSegment,
    annotations: Sequence[WordAnnotation],
    amounts: Sequence[AmountCandidate],
    config: Config,
) -> Tuple[Optional[float], Optional[float], str]:
    found = geometry_amounts(segment, annotations, amounts, config)
    if found is not None:
        return found[0], found[1], "geometry"
    values = dollar_amounts_in_text(segment.raw_text)
    risk = values[0] if len(values) >= 1 else None
    to_win = values[1] if len(values) >= 2 else None
    return risk, to_win, "text"


class LegState(Enum):
    COLLECTING = "collecting"
    BOUNDARY_FOUND = "boundary-found"
    EMIT = "emit"


@dataclass(frozen=True)
class ParlayLeg:
    text: str
    odds: int
    raw: str


class ParlayLegSegmenter:
    def __init__(self) -> None:
        self.state = LegState.COLLECTING
        self.legs: List[ParlayLeg] = []
        self._buffer: List[str] = []

    def feed(self, line: str) -> Optional[ParlayLeg]:
        if self.state is LegState.EMIT:
            self.state = LegState.COLLECTING
        if not line.strip() or is_parlay_boilerplate(line):
            return None
        self._buffer.append(line.strip())
        joined = re.sub(r"\s+", " ", " ".join(self._buffer)).strip()
        m = LEG_BOUNDARY.search(joined)
        if not m:
            return None

        self.state = LegState.BOUNDARY_FOUND
        text = joined[:m.start()].strip()
        self._buffer = []
        if not text:
            self.state = LegState.COLLECTING
            return None
        leg = ParlayLeg(text=text, odds=int(m.group(1)), raw=joined)
        self.legs.append(leg)
        self.state = LegState.EMIT
        return leg

    def leftover(self) -> List[str]:
        return list(self._buffer)


def segment_parlay_legs(lines: Sequence[str]) -> List[ParlayLeg]:
    segmenter = ParlayLegSegmenter()
    for line in lines:
        segmenter.feed(line)
    if segmenter.leftover():
        logger.debug(f"Parlay segmenter left {len(segmenter.leftover())} unterminated line(s).")
    return segmenter.legs

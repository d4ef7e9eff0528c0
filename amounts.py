import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

from config import Config
from geometry import center_of, is_known, word_tokens
from models.bet import AmountCandidate, WordAnnotation

logger = logging.getLogger("amounts")

MONEY_TOKEN = re.compile(r"^\d{1,5}(?:\.\d{2})?$")
BARE_NUMBER = re.compile(r"^\$?\d[\d,]*(?:\.\d{1,2})?$")
MONEY_IN_TEXT = re.compile(r"(?<![\w.+\-])\$?\s?\d[\d,]*(?:\.\d+)?")
DOLLAR_IN_TEXT = re.compile(r"\$\s?(\d[\d,]*(?:\.\d{1,2})?)")
ODDS_IN_TEXT = re.compile(r"([+-]\d{2,5})\b")
EVEN_ODDS = re.compile(r"\b(?:even|ev)\b", re.I)

WAGER_LABEL = re.compile(r"\b(?:wager|stake|risk)\b\s*:?", re.I)
TO_WIN_LABEL = re.compile(r"\bto\s*win\b\s*:?", re.I)
RETURN_LABEL = re.compile(r"\b(?:return|payout)\b\s*:?", re.I)
ODDS_LABEL = re.compile(r"\bodds\b\s*:?", re.I)
ANY_LABEL = re.compile(r"\b(?:wager|stake|risk|to\s*win|return|payout|odds)\b", re.I)

TICKET_LINE = re.compile(
    r"\b(?:ticket|bet\s*id|bet\s*#|ref(?:erence)?|confirmation)\s*(?:no\.?|number|#)?\s*[:#]?\s*(\d{6,})",
    re.I,
)
DATE_RE = re.compile(
    r"\b(\d{1,2})/(\d{1,2})/(\d{2,4})(?:\s+(?:at\s+)?(\d{1,2}):(\d{2})\s*([AaPp][Mm])?)?"
)
PLACED_LABEL = re.compile(r"\b(?:placed|date)\b", re.I)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_cents(value: float) -> float:
    return round_half_up(value * 100) / 100.0


def parse_money(raw: str) -> Optional[float]:
    cleaned = raw.replace(",", "").replace("$", "").replace(" ", "").strip()
    if not cleaned:
        return None
    try:
        n = float(cleaned)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def build_dollar_amounts(annotations: Sequence[WordAnnotation], config: Optional[Config] = None) -> List[AmountCandidate]:
    """Pair "$" tokens with the nearest number to their right.

    Red or low-contrast amounts often lose their "$" in OCR; when no pair is
    found every plausible standalone number is returned instead.
    """
    config = config or Config()
    tokens = word_tokens(annotations)
    dollars = []
    nums = []
    for ann in tokens:
        desc = ann.description.strip()
        c = center_of(ann.bounding_polygon)
        if not is_known(c):
            continue
        if desc == "$":
            dollars.append(c)
        elif MONEY_TOKEN.match(desc):
            nums.append((desc, c))

    out: List[AmountCandidate] = []
    for dx_, dy_ in dollars:
        best = None
        for desc, (nx, ny) in nums:
            dx = nx - dx_
            if abs(ny - dy_) < config.pair_max_dy and 0 < dx < config.pair_max_dx:
                if best is None or dx < best[0]:
                    best = (dx, desc, nx, ny)
        if best is None:
            continue
        value = parse_money(best[1])
        if value is None:
            continue
        out.append(AmountCandidate(value=value, x=best[2], y=best[3]))

    if out:
        return out

    for ann in tokens:
        desc = ann.description.strip()
        if not BARE_NUMBER.match(desc):
            continue
        digits = desc.replace("$", "").replace(",", "")
        if "." not in digits and len(digits) >= 6:
            continue
        value = parse_money(desc)
        if value is None or not (0 < value <= config.amount_max):
            continue
        c = center_of(ann.bounding_polygon)
        if not is_known(c):
            continue
        out.append(AmountCandidate(value=value, x=c[0], y=c[1]))
    if out:
        logger.debug(f"No '$' pairs found; using {len(out)} bare-number amounts.")
    return out


def dollar_amounts_in_text(text: str) -> List[float]:
    out = []
    for m in DOLLAR_IN_TEXT.finditer(text):
        value = parse_money(m.group(1))
        if value is not None:
            out.append(value)
    return out


def infer_american_odds(stake: Optional[float], profit: Optional[float]) -> Optional[int]:
    if stake is None or profit is None:
        return None
    if not (math.isfinite(stake) and math.isfinite(profit)) or stake <= 0 or profit <= 0:
        return None
    if profit >= stake:
        return round_half_up(profit / stake * 100)
    return -round_half_up(stake / profit * 100)


def normalize_ticket(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    digits = re.sub(r"\D", "", raw)
    return digits[-9:] if digits else None


def parse_date(raw: str, with_time: bool = True) -> Optional[str]:
    m = DATE_RE.search(raw)
    if not m:
        return None
    month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if year < 100:
        year += 2000
    hour = minute = 0
    if with_time and m.group(4):
        hour, minute = int(m.group(4)), int(m.group(5))
        ampm = (m.group(6) or "").lower()
        if ampm == "pm" and hour < 12:
            hour += 12
        elif ampm == "am" and hour == 12:
            hour = 0
    try:
        dt = datetime(year, month, day, hour, minute)
    except ValueError:
        return None
    if with_time and m.group(4):
        return dt.isoformat()
    return dt.date().isoformat()


def _is_label(line: str, m: re.Match) -> bool:
    # "Chiefs To Win Super Bowl +600" is a selection, not a To Win line.
    rest = line[m.end():].strip()
    return (
        not line[:m.start()].strip()
        or m.group(0).rstrip().endswith(":")
        or not rest
        or rest.startswith("$")
    )


def _labeled_texts(lines: Sequence[str], label: re.Pattern) -> Iterator[str]:
    """Text following each real occurrence of `label`, in reading order."""
    for i, line in enumerate(lines):
        for m in label.finditer(line):
            if not _is_label(line, m):
                continue
            rest = line[m.end():]
            nxt = ANY_LABEL.search(rest)
            if nxt:
                rest = rest[:nxt.start()]
            if rest.strip():
                yield rest
            elif i + 1 < len(lines) and not ANY_LABEL.search(lines[i + 1]):
                # Value printed under its label.
                yield lines[i + 1]


def _labeled_amount(lines: Sequence[str], label: re.Pattern) -> Optional[float]:
    for rest in _labeled_texts(lines, label):
        tokens = MONEY_IN_TEXT.findall(rest)
        if not tokens:
            continue
        value = parse_money(tokens[-1])
        if value is not None:
            return value
    return None


def _labeled_odds(lines: Sequence[str]) -> Optional[int]:
    for rest in _labeled_texts(lines, ODDS_LABEL):
        m = ODDS_IN_TEXT.search(rest)
        if m:
            return int(m.group(1))
        if EVEN_ODDS.search(rest):
            return 100
    return None


@dataclass
class SlipFields:
    wager: Optional[float] = None
    to_win: Optional[float] = None
    odds_american: Optional[int] = None
    odds_inferred: bool = False
    ticket_no: Optional[str] = None
    placed_at: Optional[str] = None


def parse_slip_fields(lines: Sequence[str]) -> SlipFields:
    fields = SlipFields()
    fields.wager = _labeled_amount(lines, WAGER_LABEL)

    to_win = _labeled_amount(lines, TO_WIN_LABEL)
    if to_win is None:
        to_win = _labeled_amount(lines, RETURN_LABEL)
        # "Return" includes the stake; store profit.
        if to_win is not None and fields.wager is not None and to_win > fields.wager:
            to_win = round_cents(to_win - fields.wager)
    fields.to_win = to_win

    fields.odds_american = _labeled_odds(lines)
    if fields.odds_american is None:
        fields.odds_american = infer_american_odds(fields.wager, fields.to_win)
        fields.odds_inferred = fields.odds_american is not None

    for line in lines:
        m = TICKET_LINE.search(line)
        if m:
            fields.ticket_no = normalize_ticket(m.group(1))
            break
    for line in lines:
        if PLACED_LABEL.search(line):
            fields.placed_at = parse_date(line)
            if fields.placed_at:
                break
    return fields

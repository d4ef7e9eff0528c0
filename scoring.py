"""
Confidence scoring for extracted wagers.

The weights below drive how the review screen sorts and flags rows, so
changes here change what users are asked to double-check.
"""

import re
from typing import List, Optional, Tuple

BASE_CONFIDENCE = 0.35
ODDS_WEIGHT = 0.20
EVENT_WEIGHT = 0.10
MARKET_WEIGHT = 0.20
LEG_SIGNAL_WEIGHT = 0.10

MIN_CONFIDENCE = 0.05
MAX_CONFIDENCE = 0.95

TRAILING_ODDS_TOKEN = re.compile(r"@\s*[+-]\d{2,5}\s*$")
UNSCORED_MARKETS = ("other", "parlay")


def clamp_confidence(value: float) -> float:
    return round(min(max(value, MIN_CONFIDENCE), MAX_CONFIDENCE), 2)


def score(raw: str, market_type: str, odds: Optional[int], event: Optional[str]) -> Tuple[float, List[str]]:
    """Return (confidence, issues) for one extracted wager."""
    confidence = BASE_CONFIDENCE
    issues: List[str] = []

    if odds is not None:
        confidence += ODDS_WEIGHT
    else:
        issues.append("missing_odds")

    if event:
        confidence += EVENT_WEIGHT
    else:
        issues.append("missing_event")

    if market_type not in UNSCORED_MARKETS:
        confidence += MARKET_WEIGHT
    else:
        issues.append("unknown_market")

    if TRAILING_ODDS_TOKEN.search((raw or "").strip()):
        confidence += LEG_SIGNAL_WEIGHT

    return clamp_confidence(confidence), issues

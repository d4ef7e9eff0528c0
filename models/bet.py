from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Literal, Optional, Union

BetKind = Literal["single", "parlay_leg"]
BetStyle = Literal["single", "parlay", "unknown"]
SideType = Optional[Literal["over", "under", "yes", "no"]]
ParseMode = Literal["auto", "receipt", "pending_list"]

BASE_MARKET_TYPES = (
    "moneyline",
    "spread",
    "total",
    "team_total",
    "player_prop",
    "game_prop",
    "first_td",
    "anytime_td",
    "alt_line",
    "future",
)

MARKET_TYPES = BASE_MARKET_TYPES + ("other", "parlay") + tuple(f"{m}_parlay" for m in BASE_MARKET_TYPES)


@dataclass(frozen=True)
class Vertex:
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class WordAnnotation:
    description: str
    bounding_polygon: List[Vertex] = field(default_factory=list)


@dataclass(frozen=True)
class TextInput:
    text: str


@dataclass(frozen=True)
class AnnotatedInput:
    text: str
    annotations: List[WordAnnotation] = field(default_factory=list)


OcrInput = Union[TextInput, AnnotatedInput]


@dataclass(frozen=True)
class AmountCandidate:
    value: float
    x: float
    y: float


@dataclass
class ParseOptions:
    book_hint: Optional[str] = None
    mode: ParseMode = "auto"

    @classmethod
    def coerce(cls, options: Any) -> "ParseOptions":
        if isinstance(options, cls):
            return options
        if not isinstance(options, dict):
            return cls()
        mode = options.get("mode") or "auto"
        if mode not in ("auto", "receipt", "pending_list"):
            mode = "auto"
        hint = options.get("book_hint", options.get("bookHint"))
        return cls(book_hint=hint if isinstance(hint, str) and hint.strip() else None, mode=mode)


@dataclass
class ParsedBet:
    kind: BetKind
    market_type: str
    selection_text: str
    sport: Optional[str] = None
    league: Optional[str] = None
    event: Optional[str] = None
    event_date: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    market_key: Optional[str] = None
    market_text: Optional[str] = None
    player: Optional[str] = None
    stat: Optional[str] = None
    period: Optional[str] = None
    line: Optional[float] = None
    side: SideType = None
    team: Optional[str] = None
    odds_american: Optional[int] = None
    stake: Optional[float] = None
    to_win: Optional[float] = None
    ticket_no: Optional[str] = None
    is_alt: Optional[bool] = None
    is_live: Optional[bool] = None
    confidence: float = 0.05
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "sport": self.sport,
            "league": self.league,
            "event": self.event,
            "event_date": self.event_date,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "market_type": self.market_type,
            "market_key": self.market_key,
            "market_text": self.market_text,
            "selection_text": self.selection_text,
            "player": self.player,
            "stat": self.stat,
            "period": self.period,
            "line": self.line,
            "side": self.side,
            "team": self.team,
            "odds_american": self.odds_american,
            "stake": self.stake,
            "to_win": self.to_win,
            "ticket_no": self.ticket_no,
            "is_alt": self.is_alt,
            "is_live": self.is_live,
            "confidence": self.confidence,
            "issues": list(self.issues),
        }


@dataclass
class ParsedSlip:
    bet_style: BetStyle
    bets: List[ParsedBet]
    meta: Dict[str, str]
    book: Optional[str] = None
    ticket_no: Optional[str] = None
    placed_at: Optional[str] = None
    wager: Optional[float] = None
    to_win: Optional[float] = None
    odds_american: Optional[int] = None
    currency: str = "USD"
    legs_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "book": self.book,
            "ticket_no": self.ticket_no,
            "placed_at": self.placed_at,
            "wager": self.wager,
            "to_win": self.to_win,
            "odds_american": self.odds_american,
            "currency": self.currency,
            "bet_style": self.bet_style,
            "legs_count": self.legs_count,
            "bets": [b.to_dict() for b in self.bets],
            "meta": dict(self.meta),
        }


def annotation_to_dict(ann: WordAnnotation) -> Dict[str, Any]:
    return asdict(ann)

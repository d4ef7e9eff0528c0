"""Market classification and selection-text extractors.

Classification is an ordered rule table: the first predicate that matches
decides the market type. Rule order matters (a prop line containing "ML"
must never be read as a moneyline), so tests exercise the table rule by rule.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from rapidfuzz import fuzz, process, utils

from models.bet import BASE_MARKET_TYPES

INLINE_ODDS = re.compile(r"@\s*[+-]?\d+(?:\.\d+)?")
TRAILING_ODDS = re.compile(r"@\s*([+-]\d{2,5})\s*$")
ANY_ODDS = re.compile(r"(?<![\w.])([+-]\d{3,5})(?![\w.])")
NUMERIC_TOKEN = re.compile(r"(?<![\w./:])([+-]?\d+(?:\.\d+)?)(?![\w/:]|\.\d)")

STAT_KEYWORDS = (
    "points", "pts", "rebounds", "rebs", "assists", "asts", "yards", "yds",
    "touchdowns", "receptions", "completions", "interceptions", "strikeouts",
    "goals", "saves", "shots on goal", "shots", "hits", "home runs", "rbis",
    "total bases", "steals", "blocks", "threes", "3-pointers", "3pt", "made threes",
    "pass attempts", "rush attempts", "sacks", "tackles", "pra", "runs scored",
)
STAT_RE = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in sorted(STAT_KEYWORDS, key=len, reverse=True)) + r")\b", re.I)
GAME_TOTAL_PHRASES = re.compile(r"\b(?:(?:team|game|match)\s+)?total\b[^\n|]*?\b(?:points|goals|runs)\b|\bgame\s+total\b", re.I)
STAT_PHRASE = re.compile(
    r"\b((?:(?:passing|rushing|receiving|pass|rush|rec|made|total|longest)\s+)?"
    r"(?:" + "|".join(re.escape(k) for k in sorted(STAT_KEYWORDS, key=len, reverse=True)) + r"))\b",
    re.I,
)
GAME_PROP_PHRASE = re.compile(r"\b(?:overtime|draw|tie|both\s+teams|will\s+there\s+be|first\s+team\s+to|margin\s+of\s+victory)\b", re.I)
PROP_HINT = re.compile(r"\b(?:to\s+record|to\s+score|double[\s-]double|triple[\s-]double)\b", re.I)

NON_PERSON_WORDS = frozenset({
    "team", "over", "under", "yes", "no", "total", "totals", "points", "rebounds", "assists",
    "yards", "receiving", "rushing", "passing", "alt", "alternate", "moneyline", "spread",
    "parlay", "leg", "legs", "game", "match", "player", "props", "prop", "to", "record",
    "score", "anytime", "first", "touchdown", "touchdowns", "td", "pending", "wager", "odds",
    "return", "win", "risk", "straight", "bet", "live", "half", "quarter", "period", "both", "teams",
    "nfl", "nba", "mlb", "nhl", "ncaaf", "ncaab", "wnba", "mls", "ufc", "receptions",
    "strikeouts", "goals", "shots", "hits", "threes", "made", "double", "triple",
})
NAME_TOKEN = r"[A-Z][a-z'.\-]*(?:[A-Z][a-z'.\-]+)*"
PROPER_NAME = re.compile(rf"\b({NAME_TOKEN}(?:\s+{NAME_TOKEN}){{1,2}})(?![A-Za-z])")
CAPS_NAME = re.compile(r"\b([A-Z][A-Z'.\-]+(?:\s+[A-Z][A-Z'.\-]+){1,2})\b")

EVENT_RE = re.compile(
    r"[(\[{|]\s*([A-Za-z0-9][A-Za-z0-9 .'&\-]*?)\s+@\s+([A-Za-z0-9][A-Za-z0-9 .'&\-]*?)\s*(?:[)\]}|]|$)",
    re.M,
)

PLAYER_PROP_KEYS: Tuple[Tuple[str, str], ...] = (
    (r"triple[\s-]double", "player_triple_double"),
    (r"double[\s-]double", "player_double_double"),
    (r"\bpra\b|points\s*\+\s*rebounds\s*\+\s*assists|pts\s*\+\s*rebs\s*\+\s*asts", "player_points_rebounds_assists"),
    (r"points\s*\+\s*rebounds|pts\s*\+\s*rebs", "player_points_rebounds"),
    (r"points\s*\+\s*assists|pts\s*\+\s*asts", "player_points_assists"),
    (r"anytime\s+(?:td|touchdown)", "player_anytime_td"),
    (r"pass(?:ing)?\s+(?:yards|yds)", "player_pass_yds"),
    (r"pass(?:ing)?\s+(?:touchdowns|tds)", "player_pass_tds"),
    (r"pass(?:ing)?\s+attempts", "player_pass_attempts"),
    (r"completions", "player_pass_completions"),
    (r"interceptions", "player_pass_interceptions"),
    (r"rush(?:ing)?\s+(?:yards|yds)", "player_rush_yds"),
    (r"rush(?:ing)?\s+attempts", "player_rush_attempts"),
    (r"rec(?:eiving)?\s+(?:yards|yds)", "player_reception_yds"),
    (r"receptions", "player_receptions"),
    (r"threes|3-pointers|3pt", "player_threes"),
    (r"rebounds|rebs", "player_rebounds"),
    (r"assists|asts", "player_assists"),
    (r"steals", "player_steals"),
    (r"blocks", "player_blocks"),
    (r"points|pts", "player_points"),
    (r"strikeouts", "pitcher_strikeouts"),
    (r"home\s+runs", "batter_home_runs"),
    (r"total\s+bases", "batter_total_bases"),
    (r"rbis", "batter_rbis"),
    (r"hits", "batter_hits"),
    (r"shots\s+on\s+goal", "player_shots_on_goal"),
    (r"saves", "player_goalie_saves"),
    (r"goals", "player_goals"),
    (r"sacks", "player_sacks"),
    (r"tackles", "player_tackles"),
)

MARKET_KEYS = {
    "moneyline": "h2h",
    "spread": "spreads",
    "total": "totals",
    "team_total": "team_totals",
    "first_td": "player_1st_td",
    "anytime_td": "player_anytime_td",
    "game_prop": "game_props",
    "future": "outrights",
    "other": "other",
    "parlay": "parlay",
}

PERIODS = (
    (r"\b(?:1st|first)\s+half\b|\b1h\b", "1H"),
    (r"\b(?:2nd|second)\s+half\b|\b2h\b", "2H"),
    (r"\b(?:1st|first)\s+quarter\b|\b(?:1q|q1)\b", "Q1"),
    (r"\b(?:2nd|second)\s+quarter\b|\b(?:2q|q2)\b", "Q2"),
    (r"\b(?:3rd|third)\s+quarter\b|\b(?:3q|q3)\b", "Q3"),
    (r"\b(?:4th|fourth)\s+quarter\b|\b(?:4q|q4)\b", "Q4"),
    (r"\b(?:1st|first)\s+period\b|\b1p\b", "P1"),
    (r"\b(?:2nd|second)\s+period\b|\b2p\b", "P2"),
    (r"\b(?:3rd|third)\s+period\b|\b3p\b", "P3"),
    (r"\bfirst\s+5\s+innings\b|\bf5\b|\b1st\s+5\b", "F5"),
)

LEAGUE_SPORTS = {
    "NFL": "Football", "NCAAF": "Football", "CFB": "Football",
    "NBA": "Basketball", "NCAAB": "Basketball", "CBB": "Basketball", "WNBA": "Basketball",
    "MLB": "Baseball", "NHL": "Hockey", "MLS": "Soccer", "EPL": "Soccer", "UFC": "MMA",
}
LEAGUE_RE = re.compile(r"\b(" + "|".join(LEAGUE_SPORTS) + r")\b")

TEAM_CATALOGS = {
    "NFL": ("Patriots", "Cowboys", "Eagles", "Dolphins", "Jaguars", "Bills", "Chiefs", "Jets",
            "Rams", "Seahawks", "49ers", "Packers", "Bears", "Lions", "Ravens", "Steelers"),
    "NBA": ("Lakers", "Celtics", "Heat", "Warriors", "Knicks", "Nuggets", "Bucks", "Suns", "Mavericks"),
    "MLB": ("Yankees", "Dodgers", "Red Sox", "Mets", "Braves", "Astros", "Cubs", "Phillies"),
    "NHL": ("Bruins", "Lightning", "Panthers", "Rangers", "Maple Leafs", "Oilers", "Avalanche"),
}


def normalize_market_text(text: str) -> str:
    s = INLINE_ODDS.sub(" ", text.lower())
    return re.sub(r"\s+", " ", s).strip()


def has_word(s: str, *words: str) -> bool:
    return any(re.search(rf"\b{re.escape(w)}\b", s) for w in words)


def has_stat_keyword(text: str) -> bool:
    return bool(STAT_RE.search(GAME_TOTAL_PHRASES.sub(" ", text)))


def is_game_prop_phrase(s: str) -> bool:
    return "game prop" in s or bool(GAME_PROP_PHRASE.search(s))


def _spread_number(s: str) -> bool:
    for m in NUMERIC_TOKEN.finditer(s):
        try:
            n = float(m.group(1))
        except ValueError:
            continue
        if -30 <= n <= 30:
            return True
    return False


@dataclass(frozen=True)
class MarketRule:
    name: str
    matches: Callable[[str, str], bool]
    market_type: Callable[[str], str]


def _const(market_type: str) -> Callable[[str], str]:
    return lambda s: market_type


def _total_kind(s: str) -> str:
    return "team_total" if ("team total" in s or has_word(s, "tt")) else "total"


# Predicates get (normalized, original) text.
MARKET_RULES: Tuple[MarketRule, ...] = (
    MarketRule("moneyline_literal", lambda s, raw: "moneyline" in s, _const("moneyline")),
    MarketRule(
        "player_prop_keyword",
        lambda s, raw: has_stat_keyword(s) or extract_player_name(raw) is not None,
        _const("player_prop"),
    ),
    MarketRule("ml_token", lambda s, raw: has_word(s, "ml"), _const("moneyline")),
    MarketRule(
        "total",
        lambda s, raw: has_word(s, "over", "under", "total", "tt") or "team total" in s,
        _total_kind,
    ),
    MarketRule("first_td", lambda s, raw: "first td" in s or "first touchdown" in s, _const("first_td")),
    MarketRule("anytime_td", lambda s, raw: "anytime td" in s or "anytime touchdown" in s, _const("anytime_td")),
    MarketRule("alt_line", lambda s, raw: has_word(s, "alt", "alternate"), _const("alt_line")),
    MarketRule("future", lambda s, raw: has_word(s, "future", "futures"), _const("future")),
    MarketRule("game_prop", lambda s, raw: is_game_prop_phrase(s), _const("game_prop")),
    MarketRule(
        "player_prop_phrase",
        lambda s, raw: bool(re.search(r"\bto record\b|double[\s-]double|triple[\s-]double|\bprop\b", s)),
        _const("player_prop"),
    ),
    MarketRule(
        "to_score",
        lambda s, raw: "to score" in s or "to hit" in s,
        lambda s: "game_prop" if is_game_prop_phrase(s) else "player_prop",
    ),
    MarketRule("spread_number", lambda s, raw: _spread_number(s), _const("spread")),
)


def classify_market(text: str) -> str:
    s = normalize_market_text(text)
    for rule in MARKET_RULES:
        if rule.matches(s, text):
            return rule.market_type(s)
    return "other"


def matching_rule(text: str) -> Optional[str]:
    s = normalize_market_text(text)
    for rule in MARKET_RULES:
        if rule.matches(s, text):
            return rule.name
    return None


def classify_side(text: str) -> Optional[str]:
    s = normalize_market_text(text)
    if has_word(s, "over") or re.search(r"(?<![\w.])o\s?\d", s):
        return "over"
    if has_word(s, "under") or re.search(r"(?<![\w.])u\s?\d", s):
        return "under"
    if has_word(s, "yes"):
        return "yes"
    if has_word(s, "no"):
        return "no"
    return None


def to_parlay_variant(market_type: str) -> str:
    if market_type.endswith("_parlay") or market_type == "parlay":
        return market_type
    if market_type in BASE_MARKET_TYPES:
        return f"{market_type}_parlay"
    return "parlay"


def base_market(market_type: str) -> str:
    if market_type.endswith("_parlay"):
        return market_type[: -len("_parlay")]
    return market_type


def combine_parlay_market(leg_types: Iterable[str], combined_text: str) -> str:
    """Market type for a parlay reported as one combined wager."""
    unique = sorted(set(base_market(t) for t in leg_types))
    s = normalize_market_text(combined_text)
    if len(unique) == 1 and unique[0] not in ("other", "parlay"):
        return to_parlay_variant(unique[0])
    if "alt_line" in unique:
        return "alt_line_parlay"
    if is_game_prop_phrase(s) and not has_stat_keyword(s):
        return "game_prop_parlay"
    if has_stat_keyword(s) or PROP_HINT.search(s):
        return "player_prop_parlay"
    return "parlay"


def infer_player_prop_market_key(text: str) -> str:
    s = text.lower()
    for pattern, key in PLAYER_PROP_KEYS:
        if re.search(pattern, s):
            return key
    return "player_props"


def market_key_for(market_type: str, selection_text: str) -> str:
    base = base_market(market_type)
    if base == "player_prop":
        return infer_player_prop_market_key(selection_text)
    if base == "alt_line":
        return "alternate_totals" if classify_side(selection_text) in ("over", "under") else "alternate_spreads"
    return MARKET_KEYS.get(base, "other")


@dataclass(frozen=True)
class EventMatch:
    event: str
    away_team: str
    home_team: str


def extract_event(text: str) -> Optional[EventMatch]:
    m = EVENT_RE.search(text)
    if not m:
        return None
    away, home = m.group(1).strip(" .-"), m.group(2).strip(" .-")
    if not away or not home:
        return None
    return EventMatch(event=f"{away} @ {home}", away_team=away, home_team=home)


def _title_token(token: str) -> str:
    return re.sub(r"[A-Za-z]+", lambda m: m.group(0).capitalize(), token)


def _trim_name(candidate: str) -> Optional[str]:
    tokens = candidate.split()
    while tokens and tokens[-1].lower().strip(".") in NON_PERSON_WORDS:
        tokens.pop()
    while tokens and tokens[0].lower().strip(".") in NON_PERSON_WORDS:
        tokens.pop(0)
    if len(tokens) < 2:
        return None
    return " ".join(tokens)


def extract_player_name(text: str) -> Optional[str]:
    # Only look for names on lines that read like a player prop.
    if not (has_stat_keyword(text) or PROP_HINT.search(text)):
        return None
    for m in PROPER_NAME.finditer(text):
        name = _trim_name(m.group(1))
        if name:
            return name
    for m in CAPS_NAME.finditer(text):
        name = _trim_name(m.group(1))
        if name:
            return " ".join(_title_token(t) for t in name.split())
    return None


def extract_stat(text: str) -> Optional[str]:
    m = STAT_PHRASE.search(GAME_TOTAL_PHRASES.sub(" ", text))
    if not m:
        return None
    return " ".join(w.capitalize() for w in m.group(1).split())


def extract_odds(text: str) -> Optional[int]:
    m = TRAILING_ODDS.search(text.strip())
    if m:
        return int(m.group(1))
    m = ANY_ODDS.search(text)
    return int(m.group(1)) if m else None


def strip_odds(text: str) -> str:
    return re.sub(r"\s+", " ", INLINE_ODDS.sub(" ", text)).strip()


def extract_line(text: str, market_type: str) -> Optional[float]:
    s = strip_odds(text).lower()
    m = re.search(r"\b(?:over|under|o|u)\s?(\d+(?:\.\d+)?)", s)
    if m:
        return float(m.group(1))
    if base_market(market_type) in ("spread", "alt_line"):
        for t in NUMERIC_TOKEN.finditer(s):
            n = float(t.group(1))
            if -30 <= n <= 30:
                return n
    m = re.search(r"(\d+(?:\.\d+)?)\s*\+", s)
    if m:
        return float(m.group(1))
    return None


def extract_period(text: str) -> Optional[str]:
    s = text.lower()
    for pattern, period in PERIODS:
        if re.search(pattern, s):
            return period
    return None


def is_live(text: str) -> Optional[bool]:
    return True if re.search(r"\b(?:live|in-game|in game)\b", text, re.I) else None


def detect_league(text: str) -> Optional[str]:
    m = LEAGUE_RE.search(text.upper())
    if m:
        return m.group(1)
    for league, teams in TEAM_CATALOGS.items():
        match = process.extractOne(text, teams, scorer=fuzz.token_set_ratio, processor=utils.default_process)
        if match and match[1] >= 90:
            return league
    return None


def detect_team(text: str, league: Optional[str]) -> Optional[str]:
    catalogs = [TEAM_CATALOGS[league]] if league in TEAM_CATALOGS else list(TEAM_CATALOGS.values())
    for teams in catalogs:
        match = process.extractOne(strip_odds(text), teams, scorer=fuzz.token_set_ratio, processor=utils.default_process)
        if match and match[1] >= 90:
            return match[0]
    return None


def sport_for(league: Optional[str]) -> Optional[str]:
    return LEAGUE_SPORTS.get(league) if league else None


def leg_market_types(lines: List[str]) -> List[str]:
    return [classify_market(l) for l in lines]

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from amounts import SlipFields, build_dollar_amounts, infer_american_odds, normalize_ticket, parse_date, parse_slip_fields
from config import Config
from format_router import PARLAY_HINT, detect_sportsbook_style, normalize, route_mode, split_lines
from markets import (
    base_market,
    classify_market,
    classify_side,
    combine_parlay_market,
    detect_league,
    detect_team,
    extract_event,
    extract_line,
    extract_odds,
    extract_period,
    extract_player_name,
    extract_stat,
    is_live,
    leg_market_types,
    market_key_for,
    sport_for,
    to_parlay_variant,
)
from models.bet import MARKET_TYPES, ParsedBet, ParsedSlip, ParseOptions, WordAnnotation
from scoring import score
from segmenters import (
    assign_segment_amounts,
    is_selection_line,
    segment_parlay_legs,
    segment_pending_list,
    segment_selection_text,
)

logger = logging.getLogger("parsing")

LEGS_COUNT_RE = re.compile(r"(\d+)\s*-?\s*leg\s*parlay", re.I)
COMBINED_PARLAY_CAP = 0.40
FALLBACK_CAP = 0.20
# Issue tag for odds derived from stake and payout rather than printed.
ODDS_INFERRED = "odds_inferred"

TEAM_MARKETS = ("moneyline", "spread", "team_total")
PLAYER_MARKETS = ("player_prop", "first_td", "anytime_td")


def _build_bet(
    selection_text: str,
    kind: str,
    raw: str,
    odds: Optional[int],
    market_type: Optional[str] = None,
    league: Optional[str] = None,
    sport: Optional[str] = None,
) -> ParsedBet:
    market_type = market_type or classify_market(selection_text)
    if market_type not in MARKET_TYPES:
        logger.warning(f"Unknown market type {market_type!r}, treating as other.")
        market_type = "other"
    base = base_market(market_type)
    event = extract_event(selection_text)
    league = league or detect_league(selection_text)
    confidence, issues = score(raw, market_type, odds, event.event if event else None)

    return ParsedBet(
        kind=kind,
        market_type=market_type,
        selection_text=selection_text,
        sport=sport or sport_for(league),
        league=league,
        event=event.event if event else None,
        home_team=event.home_team if event else None,
        away_team=event.away_team if event else None,
        market_key=market_key_for(market_type, selection_text),
        player=extract_player_name(selection_text) if base in PLAYER_MARKETS else None,
        stat=extract_stat(selection_text) if base == "player_prop" else None,
        period=extract_period(selection_text),
        line=extract_line(selection_text, market_type),
        side=classify_side(selection_text),
        team=detect_team(selection_text, league) if base in TEAM_MARKETS else None,
        odds_american=odds,
        is_alt=True if base == "alt_line" else None,
        is_live=is_live(selection_text),
        confidence=confidence,
        issues=issues,
    )


def _fallback_bet(text: str, tags: Sequence[str]) -> ParsedBet:
    selection = re.sub(r"\s+", " ", text).strip()
    bet = _build_bet(selection, "single", raw=selection, odds=None, market_type="other")
    bet.confidence = min(bet.confidence, FALLBACK_CAP)
    bet.issues.extend(t for t in tags if t not in bet.issues)
    return bet


def _parse_pending_list(
    lines: List[str],
    annotations: List[WordAnnotation],
    config: Config,
) -> List[ParsedBet]:
    segments = segment_pending_list(lines, max_lines=config.segment_max_lines)
    amounts = build_dollar_amounts(annotations, config) if annotations else []
    bets: List[ParsedBet] = []
    for seg in segments:
        selection = segment_selection_text(seg)
        if not selection:
            logger.debug(f"Dropping pending segment {seg.ticket_no}: no selection text.")
            continue
        risk, to_win, source = assign_segment_amounts(seg, annotations, amounts, config)
        logger.debug(f"Ticket {seg.ticket_no}: risk={risk} to_win={to_win} via {source}")

        odds = extract_odds(selection)
        inferred = odds is None
        if inferred:
            odds = infer_american_odds(risk, to_win)
        bet = _build_bet(selection, "single", raw=selection, odds=odds, league=seg.league, sport=seg.sport)
        bet.stake = risk
        bet.to_win = to_win
        bet.ticket_no = normalize_ticket(seg.ticket_no)
        bet.event_date = parse_date(seg.raw_text, with_time=False)
        if risk is None:
            bet.issues.append("missing_risk")
        if to_win is None:
            bet.issues.append("missing_to_win")
        if inferred and odds is not None:
            bet.issues.append(ODDS_INFERRED)
        bets.append(bet)
    return bets


def _parse_parlay(lines: List[str], fields: SlipFields) -> List[ParsedBet]:
    # Legs follow the "N Leg Parlay" banner; anything above it (book logo,
    # account header) would otherwise be glued onto the first leg.
    start = next((i + 1 for i, l in enumerate(lines) if PARLAY_HINT.search(l)), 0)
    legs = segment_parlay_legs(lines[start:])
    if len(legs) < 2 and start:
        legs = segment_parlay_legs(lines)
    if len(legs) >= 2:
        return [_build_bet(leg.text, "parlay_leg", raw=leg.raw, odds=leg.odds) for leg in legs]

    selection_lines = [l for l in lines if is_selection_line(l)]
    if not selection_lines:
        return []
    combined = " | ".join(selection_lines)
    market_type = combine_parlay_market(leg_market_types(selection_lines), combined)
    bet = _build_bet(combined, "single", raw=combined, odds=fields.odds_american, market_type=market_type)
    bet.confidence = min(bet.confidence, COMBINED_PARLAY_CAP)
    bet.issues.extend(["parlay_detected", "needs_review"])
    bet.stake = fields.wager
    bet.to_win = fields.to_win
    if fields.odds_inferred:
        bet.issues.append(ODDS_INFERRED)
    return [bet]


def _parse_lines(lines: List[str], fields: SlipFields) -> List[ParsedBet]:
    selection_lines = [l for l in lines if is_selection_line(l)]
    multi = len(selection_lines) > 1
    bets = []
    for line in selection_lines:
        market_type = classify_market(line)
        if multi:
            market_type = to_parlay_variant(market_type)
        odds = extract_odds(line)
        from_slip = odds is None and not multi
        if from_slip:
            odds = fields.odds_american
        bet = _build_bet(line, "parlay_leg" if multi else "single", raw=line, odds=odds, market_type=market_type)
        if not multi:
            bet.stake = fields.wager
            bet.to_win = fields.to_win
        if from_slip and fields.odds_inferred:
            bet.issues.append(ODDS_INFERRED)
        bets.append(bet)
    return bets


def _legs_count_hint(text: str) -> Optional[int]:
    m = LEGS_COUNT_RE.search(text)
    return int(m.group(1)) if m else None


def _parse(payload: Any, options: ParseOptions, config: Config) -> ParsedSlip:
    text, annotations = normalize(payload, config)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Normalized OCR text:\n" + text)

    lines = split_lines(text)
    book = options.book_hint or detect_sportsbook_style(
        text, config.router_sportsbook_hints, config.book_fuzzy_threshold
    )
    slip = ParsedSlip(
        bet_style="unknown",
        bets=[],
        meta={"parser_version": config.parser_version, "source": "ocr"},
        book=book,
    )
    if not lines:
        slip.bets = [_fallback_bet("", ["no_text", "needs_review"])]
        slip.legs_count = 1
        return slip

    mode = route_mode(text, options.mode)
    logger.debug(f"Parsing slip in {mode} mode ({len(lines)} lines, {len(annotations)} annotations).")

    if mode == "pending_list":
        bets = _parse_pending_list(lines, annotations, config)
        if bets:
            slip.bet_style = "single"
        else:
            bets = [_fallback_bet(text, ["pending_list_unparsed", "needs_review"])]
        slip.bets = bets
        slip.legs_count = len(bets)
        return slip

    fields = parse_slip_fields(lines)
    slip.wager = fields.wager
    slip.to_win = fields.to_win
    slip.odds_american = fields.odds_american
    slip.ticket_no = fields.ticket_no
    slip.placed_at = fields.placed_at

    if mode == "parlay":
        bets = _parse_parlay(lines, fields)
        if bets:
            slip.bet_style = "parlay"
            slip.legs_count = _legs_count_hint(text) or len(bets)
        else:
            bets = [_fallback_bet(text, ["parlay_unparsed", "needs_review"])]
            slip.legs_count = len(bets)
        slip.bets = bets
        return slip

    bets = _parse_lines(lines, fields)
    if bets:
        slip.bet_style = "single" if len(bets) == 1 else "parlay"
    else:
        bets = [_fallback_bet(text, ["unparsed", "needs_review"])]
    slip.bets = bets
    slip.legs_count = len(bets)
    return slip


def _raw_text(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    text = getattr(payload, "text", None)
    if text is None and isinstance(payload, dict):
        text = payload.get("text")
    return text if isinstance(text, str) else ""


def parse_slip(payload: Any, options: Any = None, config: Optional[Config] = None) -> ParsedSlip:
    """Interpret OCR output (text, or text + word boxes) as a structured slip.

    Never raises: anything unexpected yields a single low-confidence wager
    tagged for review.
    """
    config = config or Config()
    opts = ParseOptions.coerce(options)
    try:
        return _parse(payload, opts, config)
    except Exception as e:
        logger.exception(f"Slip parse failed, returning fallback: {e}")
        return ParsedSlip(
            bet_style="unknown",
            bets=[_fallback_bet(_raw_text(payload), ["parse_error", "needs_review"])],
            meta={"parser_version": config.parser_version, "source": "ocr"},
            book=opts.book_hint,
            legs_count=1,
        )


def parse_slip_json(payload: Any, options: Any = None, config: Optional[Config] = None) -> str:
    return json.dumps(parse_slip(payload, options, config).to_dict(), ensure_ascii=False)

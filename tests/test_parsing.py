"""End-to-end slip parsing tests."""

from __future__ import annotations

import json
from typing import Any

import pytest

import parsing
from parsing import parse_slip, parse_slip_json

PENDING_TEXT = "\n".join(
    [
        "Pending Wagers",
        "Ticket # Description Risk To Win",
        "1 123456789012 Football NFL",
        "Cowboys -3.5 @ -110",
        "$110.00 $100.00",
        "2 223456789 Basketball NBA",
        "Lakers ML",
        "$50.00",
    ]
)

PARLAY_TEXT = "\n".join(
    [
        "DraftKings",
        "2 Leg Parlay",
        "Cowboys -3.5 @+150",
        "Kelce Over 67.5 Receiving Yards @-120",
        "Wager: $10.00",
        "To Win: $25.00",
        "Ticket #: 987654321",
    ]
)


def _ann(text: str, x: float, y: float, key: str = "boundingPoly") -> dict[str, Any]:
    vertices = [
        {"x": x - 10, "y": y - 8},
        {"x": x + 10, "y": y - 8},
        {"x": x + 10, "y": y + 8},
        {"x": x - 10, "y": y + 8},
    ]
    if key == "boundingPoly":
        return {"description": text, "boundingPoly": {"vertices": vertices}}
    return {"description": text, key: vertices}


def _assert_well_formed(slip: Any) -> None:
    assert slip.bets
    for bet in slip.bets:
        assert 0.05 <= bet.confidence <= 0.95
        assert bet.kind in ("single", "parlay_leg")


def test_pending_list_from_text() -> None:
    slip = parse_slip(PENDING_TEXT)
    assert slip.bet_style == "single"
    assert slip.legs_count == 2
    first, second = slip.bets

    assert first.selection_text == "Cowboys -3.5 @ -110"
    assert first.market_type == "spread"
    assert first.stake == 110.0
    assert first.to_win == 100.0
    assert first.odds_american == -110
    assert first.ticket_no == "456789012"
    assert first.league == "NFL"
    assert first.sport == "Football"

    assert second.market_type == "moneyline"
    assert second.stake == 50.0
    assert second.to_win is None
    assert second.odds_american is None
    assert "missing_to_win" in second.issues
    assert "missing_odds" in second.issues


@pytest.mark.parametrize("key", ["boundingPoly", "boundingPolygon", "bounding_polygon"])
def test_pending_list_amounts_from_columns(key: str) -> None:
    text = "Pending Wagers\nDescription Risk To Win\n1 123456789 Football NFL\nChiefs ML"
    words = [
        (text, 1000, 1000),
        ("Risk", 800, 100),
        ("To", 1080, 100),
        ("Win", 1120, 100),
        ("123456789", 100, 200),
        ("$", 780, 200),
        ("55.00", 820, 200),
        ("$", 1090, 200),
        ("50.00", 1130, 200),
    ]
    annotations = [_ann(t, x, y, key) for t, x, y in words]
    slip = parse_slip({"text": text, "annotations": annotations})
    (bet,) = slip.bets
    assert bet.stake == 55.0
    assert bet.to_win == 50.0
    assert bet.odds_american == -110
    assert "odds_inferred" in bet.issues
    assert bet.ticket_no == "123456789"


def test_pending_list_without_tickets_falls_back() -> None:
    slip = parse_slip("Pending\nDescription Risk To Win\nNothing here")
    assert slip.bet_style == "unknown"
    (bet,) = slip.bets
    assert bet.market_type == "other"
    assert "pending_list_unparsed" in bet.issues
    assert bet.confidence <= 0.20


def test_parlay_legs_with_odds() -> None:
    slip = parse_slip(PARLAY_TEXT)
    assert slip.book == "DraftKings"
    assert slip.bet_style == "parlay"
    assert slip.legs_count == 2
    assert slip.wager == 10.0
    assert slip.to_win == 25.0
    assert slip.odds_american == 250
    assert slip.ticket_no == "987654321"

    first, second = slip.bets
    assert first.kind == "parlay_leg"
    assert first.selection_text == "Cowboys -3.5"
    assert first.odds_american == 150
    assert first.market_type == "spread"
    assert first.market_key == "spreads"
    assert first.team == "Cowboys"
    assert first.league == "NFL"
    assert first.line == -3.5
    assert first.confidence == 0.85

    assert second.selection_text == "Kelce Over 67.5 Receiving Yards"
    assert second.odds_american == -120
    assert second.market_type == "player_prop"
    assert second.market_key == "player_reception_yds"
    assert second.side == "over"
    assert second.line == 67.5


def test_parlay_without_leg_odds_is_one_combined_wager() -> None:
    text = "3 Leg Parlay\nChiefs ML\nOver 47.5\nKelce Over 67.5 Receiving Yards\nOdds: +600\nWager: $10"
    slip = parse_slip(text)
    assert slip.bet_style == "parlay"
    assert slip.legs_count == 3
    (bet,) = slip.bets
    assert bet.market_type == "player_prop_parlay"
    assert bet.selection_text == "Chiefs ML | Over 47.5 | Kelce Over 67.5 Receiving Yards"
    assert bet.odds_american == 600
    assert bet.stake == 10.0
    assert bet.confidence <= 0.40
    assert "parlay_detected" in bet.issues
    assert "needs_review" in bet.issues


def test_receipt_odds_inferred_from_amounts() -> None:
    slip = parse_slip("Wager: $10\nTo Win: $237\nChiefs ML")
    assert slip.bet_style == "single"
    assert slip.odds_american == 2370
    (bet,) = slip.bets
    assert bet.odds_american == 2370
    assert bet.stake == 10.0
    assert bet.to_win == 237.0
    assert bet.market_type == "moneyline"
    assert "odds_inferred" in bet.issues


def test_whole_number_spread_receipt() -> None:
    slip = parse_slip("Cowboys -3\nWager: $10\nTo Win: $9.09")
    assert slip.bet_style == "single"
    (bet,) = slip.bets
    assert bet.selection_text == "Cowboys -3"
    assert bet.market_type == "spread"
    assert bet.line == -3.0
    assert bet.stake == 10.0
    assert bet.odds_american == -110


@pytest.mark.parametrize(
    "selection, market_type, market_key",
    [
        ("Travis Kelce Anytime TD Scorer", "anytime_td", "player_anytime_td"),
        ("First TD Scorer - Derrick Henry", "first_td", "player_1st_td"),
        ("Nikola Jokic Double Double", "player_prop", "player_double_double"),
        ("Super Bowl Futures - Chiefs", "future", "outrights"),
        ("Both Teams to Score - Yes", "game_prop", "game_props"),
    ],
)
def test_receipt_selection_without_line_or_odds_token(selection: str, market_type: str, market_key: str) -> None:
    slip = parse_slip(f"{selection}\nOdds: +120\nWager: $10")
    assert slip.bet_style == "single"
    (bet,) = slip.bets
    assert bet.selection_text == selection
    assert bet.market_type == market_type
    assert bet.market_key == market_key
    assert bet.odds_american == 120
    assert "unparsed" not in bet.issues
    assert "odds_inferred" not in bet.issues


def test_receipt_without_selection_still_reports_amounts() -> None:
    slip = parse_slip("Wager: $10\nTo Win: $237")
    assert slip.odds_american == 2370
    assert slip.bet_style == "unknown"
    (bet,) = slip.bets
    assert "unparsed" in bet.issues


def test_several_selection_lines_become_parlay_legs() -> None:
    slip = parse_slip("Bills -3.5 @ -110\nOver 47.5 @ -105")
    assert slip.bet_style == "parlay"
    assert slip.legs_count == 2
    assert [b.market_type for b in slip.bets] == ["spread_parlay", "total_parlay"]
    assert all(b.kind == "parlay_leg" for b in slip.bets)


def test_event_and_full_confidence() -> None:
    slip = parse_slip("Chiefs ML (Bills @ Chiefs) @ -150")
    (bet,) = slip.bets
    assert bet.market_type == "moneyline"
    assert bet.market_key == "h2h"
    assert bet.event == "Bills @ Chiefs"
    assert bet.away_team == "Bills"
    assert bet.home_team == "Chiefs"
    assert bet.odds_american == -150
    assert bet.confidence == 0.95
    assert bet.issues == []


def test_empty_text() -> None:
    slip = parse_slip("")
    assert slip.legs_count == 1
    (bet,) = slip.bets
    assert "no_text" in bet.issues
    assert bet.confidence <= 0.20


@pytest.mark.parametrize(
    "payload",
    [
        None,
        12345,
        "   \n\n  ",
        "??? ### !!!",
        {"text": None, "annotations": "garbage"},
        {"text": "Chiefs ML", "annotations": [None, 5, {"description": "x", "boundingPoly": {"vertices": "bad"}}]},
        {"responses": []},
        PENDING_TEXT,
        PARLAY_TEXT,
    ],
)
def test_any_payload_yields_a_well_formed_slip(payload: Any) -> None:
    _assert_well_formed(parse_slip(payload))


def test_unexpected_failure_returns_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(parsing, "_parse", boom)
    slip = parse_slip("Chiefs ML", {"book_hint": "FanDuel"})
    assert slip.book == "FanDuel"
    assert slip.legs_count == 1
    (bet,) = slip.bets
    assert "parse_error" in bet.issues
    assert bet.selection_text == "Chiefs ML"


def test_options_accept_camel_case_book_hint() -> None:
    assert parse_slip("Chiefs ML", {"bookHint": "Caesars"}).book == "Caesars"
    assert parse_slip("Chiefs ML", {"mode": "nonsense"}).bet_style == "single"


def test_json_output_is_stable() -> None:
    first = parse_slip_json(PARLAY_TEXT)
    assert first == parse_slip_json(PARLAY_TEXT)
    body = json.loads(first)
    assert body["currency"] == "USD"
    assert body["meta"]["parser_version"] == "geo-1"
    assert len(body["bets"]) == 2


def test_market_type_outside_the_closed_set_becomes_other() -> None:
    bet = parsing._build_bet("Chiefs ML", "single", raw="Chiefs ML", odds=None, market_type="teaser")
    assert bet.market_type == "other"
    assert bet.market_key == "other"
    assert "unknown_market" in bet.issues

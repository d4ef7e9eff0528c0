"""Slip-level wager / to-win / odds parsing tests."""

from __future__ import annotations

from amounts import normalize_ticket, parse_date, parse_money, parse_slip_fields


def test_odds_inferred_from_wager_and_to_win() -> None:
    fields = parse_slip_fields(["Wager: $10.00", "To Win: $237.00"])
    assert fields.wager == 10.0
    assert fields.to_win == 237.0
    assert fields.odds_american == 2370
    assert fields.odds_inferred


def test_favorite_odds_inferred() -> None:
    fields = parse_slip_fields(["Wager: $300", "To Win: $100"])
    assert fields.odds_american == -300


def test_return_is_converted_to_profit() -> None:
    fields = parse_slip_fields(["Wager: $20", "Return: $38.18"])
    assert fields.to_win == 18.18
    assert fields.odds_american == -110


def test_to_win_preferred_over_return() -> None:
    fields = parse_slip_fields(["Wager: $10", "Return: $260.00", "To Win: $237"])
    assert fields.to_win == 237.0


def test_explicit_odds_line_is_not_overridden() -> None:
    fields = parse_slip_fields(["Odds: +237", "Wager: $10", "To Win: $23.70"])
    assert fields.odds_american == 237
    assert not fields.odds_inferred


def test_even_odds() -> None:
    assert parse_slip_fields(["Odds: EVEN"]).odds_american == 100


def test_value_on_line_below_label() -> None:
    fields = parse_slip_fields(["Wager", "$25.00", "To Win", "$50.00"])
    assert fields.wager == 25.0
    assert fields.to_win == 50.0
    assert fields.odds_american == 200


def test_labels_sharing_a_line() -> None:
    fields = parse_slip_fields(["Wager $10 To Win $237"])
    assert fields.wager == 10.0
    assert fields.to_win == 237.0


def test_label_words_inside_a_selection_are_not_labels() -> None:
    fields = parse_slip_fields(["Chiefs To Win Super Bowl +600", "Wager: $10", "To Win: $60"])
    assert fields.wager == 10.0
    assert fields.to_win == 60.0
    assert fields.odds_american == 600


def test_labeled_line_without_money_keeps_scanning() -> None:
    fields = parse_slip_fields(["Wager: pending", "Wager: $15"])
    assert fields.wager == 15.0


def test_signed_odds_token_is_not_an_amount() -> None:
    fields = parse_slip_fields(["To Win: +600"])
    assert fields.to_win is None


def test_missing_labels_leave_fields_empty() -> None:
    fields = parse_slip_fields(["Cowboys -3.5 @ -110"])
    assert fields.wager is None
    assert fields.to_win is None
    assert fields.odds_american is None
    assert not fields.odds_inferred


def test_ticket_and_placed_at() -> None:
    fields = parse_slip_fields(["Ticket #: 0012345678901", "Placed: 10/19/2026 7:05 PM"])
    assert fields.ticket_no == "345678901"
    assert fields.placed_at == "2026-10-19T19:05:00"


def test_small_helpers() -> None:
    assert parse_money("$1,250.50") == 1250.5
    assert parse_money("abc") is None
    assert normalize_ticket("#12-3456") == "123456"
    assert normalize_ticket(None) is None
    assert parse_date("13/45/2026") is None
    assert parse_date("Sun 10/19/26", with_time=False) == "2026-10-19"

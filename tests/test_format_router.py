"""Input coercion, normalization and routing tests."""

from __future__ import annotations

from config import Config
from format_router import (
    coerce_input,
    detect_sportsbook_style,
    looks_like_pending_list,
    normalize,
    route_mode,
    split_lines,
    strip_debug_lines,
)
from models.bet import AnnotatedInput, TextInput

HINTS = Config().router_sportsbook_hints


def test_plain_string_is_text_input() -> None:
    assert coerce_input("Chiefs ML") == TextInput("Chiefs ML")


def test_dict_with_annotations_is_annotated_input() -> None:
    payload = {
        "text": "$ 25.00",
        "annotations": [
            {"description": "$ 25.00", "boundingPoly": {"vertices": [{"x": 1, "y": 1}]}},
            {"description": "$", "boundingPoly": {"vertices": [{"x": 10}, {"x": 20, "y": "bad"}]}},
        ],
    }
    ocr_input = coerce_input(payload)
    assert isinstance(ocr_input, AnnotatedInput)
    assert len(ocr_input.annotations) == 2
    second = ocr_input.annotations[1]
    assert second.bounding_polygon[0].x == 10
    assert second.bounding_polygon[0].y is None
    assert second.bounding_polygon[1].y is None


def test_bounding_polygon_vertex_list_is_read() -> None:
    payload = {
        "text": "page",
        "annotations": [
            {"description": "page", "boundingPolygon": []},
            {"description": "Risk", "boundingPolygon": [{"x": 790, "y": 92}, {"x": 810, "y": 108}]},
        ],
    }
    ocr_input = coerce_input(payload)
    assert isinstance(ocr_input, AnnotatedInput)
    risk = ocr_input.annotations[1]
    assert [(v.x, v.y) for v in risk.bounding_polygon] == [(790, 92), (810, 108)]


def test_vision_response_is_unwrapped() -> None:
    payload = {
        "responses": [
            {
                "textAnnotations": [
                    {"description": "Chiefs ML\n$10", "boundingPoly": {"vertices": []}},
                    {"description": "Chiefs", "boundingPoly": {"vertices": []}},
                ]
            }
        ]
    }
    ocr_input = coerce_input(payload)
    assert isinstance(ocr_input, AnnotatedInput)
    assert ocr_input.text == "Chiefs ML\n$10"


def test_unusable_payloads_become_empty_text() -> None:
    assert coerce_input(12345) == TextInput("")
    assert coerce_input({"text": None, "annotations": "garbage"}) == TextInput("")
    assert coerce_input({"text": "hi", "annotations": []}) == TextInput("hi")


def test_strip_debug_lines() -> None:
    raw = "Line1\r\n--- DEBUG dump ---\nfoo\nbar\n\nLine2\nDEBUG: x\n[debug] y\nLine3"
    assert strip_debug_lines(raw) == "Line1\nLine2\nLine3"


def test_normalize_respects_config_switch() -> None:
    raw = "Chiefs ML\n[debug] y"
    assert normalize(raw)[0] == "Chiefs ML"
    assert normalize(raw, Config(router_enable_normalization=False))[0] == raw


def test_split_lines_drops_blanks() -> None:
    assert split_lines("  a \n\n   \nb") == ["a", "b"]


def test_sportsbook_exact_and_fuzzy() -> None:
    assert detect_sportsbook_style("Welcome to fanduel sportsbook", HINTS) == "FanDuel"
    assert detect_sportsbook_style("DraftKlngs\nChiefs ML", HINTS) == "DraftKings"
    assert detect_sportsbook_style("Chiefs ML\nOver 47.5", HINTS) is None


def test_pending_list_detection() -> None:
    assert looks_like_pending_list("Pending Wagers\nDescription Risk To Win")
    two_headers = "1 123456789 Football NFL\nChiefs ML\n2 223456789 Basketball NBA\nLakers ML"
    assert looks_like_pending_list(two_headers)
    assert not looks_like_pending_list("1 123456789 Football NFL\nChiefs ML")


def test_route_mode() -> None:
    pending = "Pending\nDescription Risk To Win"
    assert route_mode(pending, "auto") == "pending_list"
    assert route_mode(pending, "receipt") == "single"
    assert route_mode("Chiefs ML", "pending_list") == "pending_list"
    assert route_mode("3 Leg Parlay\nChiefs ML", "auto") == "parlay"
    assert route_mode("Chiefs ML", "auto") == "single"

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process

from config import Config
from models.bet import AnnotatedInput, OcrInput, TextInput, Vertex, WordAnnotation

logger = logging.getLogger("format_router")

DEBUG_BLOCK_START = re.compile(r"^---.*debug", re.I)
DEBUG_LINE = re.compile(r"^\s*(?:\[debug\]|debug\s*:|debug\s)", re.I)

PENDING_HEADER = re.compile(
    r"^\s*(?:#?\d{1,3}[.)]?\s+)?(\d{6,})\s+"
    r"(football|basketball|baseball|hockey|soccer|tennis|golf|mma|boxing|fighting|racing)\s+"
    r"(nfl|ncaaf|cfb|nba|ncaab|cbb|wnba|mlb|nhl|mls|epl|ufc|pga|atp|wta)\b(.*)$",
    re.I,
)

PARLAY_HINT = re.compile(r"\bparlay\b|\bleg\s+parlay\b|view\s+legs", re.I)


def _vertex(raw: Any) -> Vertex:
    if not isinstance(raw, dict):
        return Vertex()
    x, y = raw.get("x"), raw.get("y")
    return Vertex(
        x=float(x) if isinstance(x, (int, float)) else None,
        y=float(y) if isinstance(y, (int, float)) else None,
    )


def _annotation(raw: Any) -> Optional[WordAnnotation]:
    if isinstance(raw, WordAnnotation):
        return raw
    if not isinstance(raw, dict):
        return None
    poly = raw.get("boundingPoly") or raw.get("boundingPolygon") or raw.get("bounding_polygon") or {}
    vertices = poly.get("vertices", []) if isinstance(poly, dict) else poly
    if not isinstance(vertices, list):
        vertices = []
    desc = raw.get("description")
    return WordAnnotation(
        description=desc if isinstance(desc, str) else "",
        bounding_polygon=[_vertex(v) for v in vertices],
    )


def _unwrap_vision_response(payload: Dict[str, Any]) -> Dict[str, Any]:
    responses = payload.get("responses")
    if not isinstance(responses, list) or not responses or not isinstance(responses[0], dict):
        return payload
    r0 = responses[0]
    anns = r0.get("textAnnotations") or []
    full = r0.get("fullTextAnnotation") or {}
    text = full.get("text") if isinstance(full, dict) else None
    if text is None and anns and isinstance(anns[0], dict):
        text = anns[0].get("description")
    return {"text": text or "", "annotations": anns}


def coerce_input(payload: Any) -> OcrInput:
    """Resolve a raw string / dict payload into a TextInput or AnnotatedInput."""
    if isinstance(payload, (TextInput, AnnotatedInput)):
        return payload
    if isinstance(payload, str):
        return TextInput(payload)
    if not isinstance(payload, dict):
        return TextInput("")

    payload = _unwrap_vision_response(payload)
    text = payload.get("text")
    text = text if isinstance(text, str) else ""
    raw_anns = payload.get("annotations")
    if not raw_anns:
        raw_anns = payload.get("textAnnotations")
    if not isinstance(raw_anns, list) or not raw_anns:
        return TextInput(text)
    anns = [a for a in (_annotation(r) for r in raw_anns) if a is not None]
    return AnnotatedInput(text=text, annotations=anns)


def strip_debug_lines(text: str) -> str:
    # Remove injected debug dumps that some upload flows prepend to the OCR text.
    cleaned = []
    in_block = False
    for line in text.replace("\r", "").split("\n"):
        if in_block:
            if not line.strip():
                in_block = False
            continue
        if DEBUG_BLOCK_START.search(line):
            in_block = True
            continue
        if DEBUG_LINE.match(line):
            continue
        cleaned.append(line)
    return "\n".join(cleaned)


def normalize(payload: Any, config: Optional[Config] = None) -> Tuple[str, List[WordAnnotation]]:
    config = config or Config()
    ocr_input = coerce_input(payload)
    text = ocr_input.text.replace("\r", "")
    if config.router_enable_normalization:
        text = strip_debug_lines(text)
    annotations = ocr_input.annotations if isinstance(ocr_input, AnnotatedInput) else []
    return text, list(annotations)


def split_lines(text: str) -> List[str]:
    return [l.strip() for l in text.split("\n") if l.strip()]


def detect_sportsbook_style(text: str, hints: List[str], threshold: float = 88.0) -> Optional[str]:
    for h in hints:
        if re.search(rf"\b{re.escape(h)}\b", text, re.I):
            return h
    # OCR often mangles logos ("DraftKlngs"); fall back to a fuzzy match per line.
    lines = split_lines(text)[:15]
    for line in lines:
        if len(line) > 40:
            continue
        match = process.extractOne(line, hints, scorer=fuzz.ratio, processor=str.lower)
        if match and match[1] >= threshold:
            logger.debug(f"Fuzzy sportsbook match {line!r} -> {match[0]} ({match[1]:.0f})")
            return match[0]
    return None


def looks_like_pending_list(text: str) -> bool:
    lower = text.lower()
    if "pending" in lower and "description" in lower and "risk" in lower and "to win" in lower:
        return True
    headers = [l for l in split_lines(text) if PENDING_HEADER.match(l)]
    return len(headers) >= 2


def looks_like_parlay(text: str) -> bool:
    return any(PARLAY_HINT.search(l) for l in split_lines(text))


def route_mode(text: str, mode: str) -> str:
    """Pick the extraction pipeline: pending_list, parlay or single."""
    if mode == "pending_list":
        return "pending_list"
    if mode != "receipt" and looks_like_pending_list(text):
        return "pending_list"
    if looks_like_parlay(text):
        return "parlay"
    return "single"

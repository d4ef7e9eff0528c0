import os
from dataclasses import dataclass, field
from typing import List


@dataclass
class Config:
    parser_version: str = "geo-1"

    # "$" + number pairing window (pixels)
    pair_max_dy: float = 35.0
    pair_max_dx: float = 220.0

    # Pending-list geometry
    anchor_max_dy: float = 65.0
    risk_band_px: float = 220.0
    win_band_px: float = 260.0
    segment_max_lines: int = 10

    # Bare-number fallback ceiling
    amount_max: float = 10000.0

    # OCR
    ocr_confidence_threshold: float = 0.35

    # Router
    router_enable_normalization: bool = True
    router_sportsbook_hints: List[str] = field(default_factory=lambda: [
        "FanDuel", "DraftKings", "Caesars", "BetMGM", "BetRivers", "ESPN BET",
        "Fanatics", "Hard Rock", "Bovada", "BetOnline", "MyBookie", "BetMASS",
    ])
    book_fuzzy_threshold: float = 88.0

    # Debug
    debug_logging: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            parser_version=os.environ.get("PARSER_VERSION", "geo-1"),
            pair_max_dy=float(os.environ.get("PAIR_MAX_DY", "35")),
            pair_max_dx=float(os.environ.get("PAIR_MAX_DX", "220")),
            anchor_max_dy=float(os.environ.get("ANCHOR_MAX_DY", "65")),
            risk_band_px=float(os.environ.get("RISK_BAND_PX", "220")),
            win_band_px=float(os.environ.get("WIN_BAND_PX", "260")),
            segment_max_lines=int(os.environ.get("SEGMENT_MAX_LINES", "10")),
            amount_max=float(os.environ.get("AMOUNT_MAX", "10000")),
            ocr_confidence_threshold=float(os.environ.get("OCR_CONF", "0.35")),
            router_enable_normalization=os.environ.get("ROUTER_NORMALIZE", "true").lower() == "true",
            book_fuzzy_threshold=float(os.environ.get("BOOK_FUZZY_THRESHOLD", "88")),
            debug_logging=os.environ.get("DEBUG_LOGGING", "false").lower() == "true",
        )

from typing import List, Optional, Sequence, Tuple

from models.bet import Vertex, WordAnnotation

RISK_HEADERS = ("risk",)
WIN_HEADERS = ("win", "to")


def center_of(polygon: Optional[Sequence[Vertex]]) -> Tuple[float, float]:
    """Unweighted vertex mean; (0, 0) means the position is unknown."""
    if not polygon:
        return 0.0, 0.0
    xs = [v.x or 0.0 for v in polygon]
    ys = [v.y or 0.0 for v in polygon]
    return sum(xs) / len(xs), sum(ys) / len(ys)


def is_known(center: Tuple[float, float]) -> bool:
    return center[0] > 0 and center[1] > 0


def word_tokens(annotations: Sequence[WordAnnotation]) -> List[WordAnnotation]:
    # The first Vision annotation is the whole page text, not a word.
    return list(annotations[1:]) if annotations else []


def find_word_center(annotations: Sequence[WordAnnotation], word: str) -> Optional[Tuple[float, float]]:
    target = word.lower()
    for ann in word_tokens(annotations):
        if ann.description.strip().lower() != target:
            continue
        center = center_of(ann.bounding_polygon)
        if is_known(center):
            return center
    return None


def find_word_center_x(annotations: Sequence[WordAnnotation], word: str) -> Optional[float]:
    center = find_word_center(annotations, word)
    return center[0] if center is not None else None


def find_header_x(annotations: Sequence[WordAnnotation], words: Sequence[str]) -> Optional[float]:
    for w in words:
        x = find_word_center_x(annotations, w)
        if x is not None:
            return x
    return None


def infer_column_split_x(annotations: Sequence[WordAnnotation]) -> Optional[float]:
    """Midpoint between the "Risk" and "Win"/"To" headers, or None."""
    risk_x = find_header_x(annotations, RISK_HEADERS)
    win_x = find_header_x(annotations, WIN_HEADERS)
    if risk_x is None or win_x is None:
        return None
    return (risk_x + win_x) / 2.0

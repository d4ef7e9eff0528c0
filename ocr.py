import logging
from typing import Dict, Any, List

import numpy as np
import cv2
import pytesseract

from config import Config
from models.bet import AnnotatedInput, Vertex, WordAnnotation

logger = logging.getLogger("ocr")

TESSERACT_CONFIG = r"--oem 3 --psm 6"


# Most slips are phone screenshots: dark themes, narrow widths, and at
# most a slight tilt when photographed off another screen.
DARK_THEME_MEAN = 110
MIN_OCR_WIDTH = 1000
MIN_SKEW_DEG = 0.5
MAX_SKEW_DEG = 10.0


def _skew_angle(gray: np.ndarray) -> float:
    mask = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV | cv2.THRESH_OTSU)[1]
    ys, xs = np.where(mask > 0)
    if len(xs) < 50:
        return 0.0
    angle = cv2.minAreaRect(np.column_stack((xs, ys)).astype(np.float32))[-1]
    # minAreaRect reports [0, 90) on current OpenCV, [-90, 0) on older builds.
    if angle > 45:
        angle -= 90
    elif angle < -45:
        angle += 90
    return float(angle)


def _deskew(gray: np.ndarray) -> np.ndarray:
    angle = _skew_angle(gray)
    if not MIN_SKEW_DEG <= abs(angle) <= MAX_SKEW_DEG:
        return gray
    logger.debug(f"Deskewing slip by {angle:.2f} degrees.")
    (h, w) = gray.shape[:2]
    M = cv2.getRotationMatrix2D((w // 2, h // 2), angle, 1.0)
    return cv2.warpAffine(gray, M, (w, h), flags=cv2.INTER_CUBIC, borderMode=cv2.BORDER_REPLICATE)


def preprocess_for_ocr(image_bytes: bytes) -> np.ndarray:
    np_data = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(np_data, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Failed to decode image bytes.")

    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    if gray.mean() < DARK_THEME_MEAN:
        gray = cv2.bitwise_not(gray)

    # Pairing and column windows are tuned in pixels of a full-size screenshot.
    h, w = gray.shape[:2]
    if w < MIN_OCR_WIDTH:
        scale = MIN_OCR_WIDTH / w
        gray = cv2.resize(gray, (MIN_OCR_WIDTH, int(round(h * scale))), interpolation=cv2.INTER_CUBIC)

    gray = cv2.fastNlMeansDenoising(gray, h=10, templateWindowSize=7, searchWindowSize=21)
    gray = _deskew(gray)

    # Slips print amounts in red/green; adaptive thresholding keeps them legible.
    thr = cv2.adaptiveThreshold(
        gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 31, 8
    )
    return thr


def run_tesseract(image: np.ndarray) -> Dict[str, Any]:
    data = pytesseract.image_to_data(image, output_type=pytesseract.Output.DICT, config=TESSERACT_CONFIG)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Tesseract returned {len(data.get('text', []))} word boxes.")
    return {"data": data}


def _conf(raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return -1.0


def _box(left: float, top: float, width: float, height: float) -> List[Vertex]:
    return [
        Vertex(left, top),
        Vertex(left + width, top),
        Vertex(left + width, top + height),
        Vertex(left, top + height),
    ]


def extract_text_blocks(ocr_result: Dict[str, Any], min_conf: float) -> str:
    data = ocr_result["data"]
    lines = {}
    n = len(data["text"])
    for i in range(n):
        if _conf(data["conf"][i]) / 100.0 < min_conf:
            continue
        key = (data.get("block_num", [0] * n)[i], data.get("par_num", [0] * n)[i], data.get("line_num", [0] * n)[i])
        token = data["text"][i].strip()
        if not token:
            continue
        lines.setdefault(key, "")
        lines[key] += ((" " if lines[key] else "") + token)
    return "\n".join([lines[k] for k in sorted(lines.keys()) if lines[k]])


def annotations_from_tesseract(ocr_result: Dict[str, Any], min_conf: float) -> List[WordAnnotation]:
    """Convert Tesseract word boxes to Vision-style annotations.

    The first entry is the whole-page blob, as Vision returns it. A leading
    "$" is split into its own token so "$" + number pairing works the same
    way for both OCR engines.
    """
    data = ocr_result["data"]
    words: List[WordAnnotation] = []
    n = len(data["text"])
    for i in range(n):
        token = data["text"][i].strip()
        if not token or _conf(data["conf"][i]) / 100.0 < min_conf:
            continue
        left, top = float(data["left"][i]), float(data["top"][i])
        width, height = float(data["width"][i]), float(data["height"][i])
        if token.startswith("$") and len(token) > 1:
            char_w = width / len(token)
            words.append(WordAnnotation("$", _box(left, top, char_w, height)))
            words.append(WordAnnotation(token[1:], _box(left + char_w, top, width - char_w, height)))
            continue
        words.append(WordAnnotation(token, _box(left, top, width, height)))

    page = WordAnnotation(extract_text_blocks(ocr_result, min_conf), [])
    return [page] + words


def run_ocr(image_bytes: bytes, config: Config) -> AnnotatedInput:
    pre = preprocess_for_ocr(image_bytes)
    res = run_tesseract(pre)
    annotations = annotations_from_tesseract(res, config.ocr_confidence_threshold)
    return AnnotatedInput(text=annotations[0].description, annotations=annotations)

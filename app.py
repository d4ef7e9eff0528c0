import argparse
import json
import logging
import sys
from pathlib import Path

from config import Config
from models.bet import annotation_to_dict
from parsing import parse_slip

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tif", ".tiff"}

logger = logging.getLogger("BetSlipReader")


def load_payload(path: Path, config: Config, save_ocr: str = ""):
    suffix = path.suffix.lower()
    if suffix == ".json":
        return json.loads(path.read_text(encoding="utf-8"))
    if suffix in IMAGE_SUFFIXES:
        from ocr import run_ocr

        payload = run_ocr(path.read_bytes(), config)
        if save_ocr:
            dump = {"text": payload.text, "annotations": [annotation_to_dict(a) for a in payload.annotations]}
            Path(save_ocr).write_text(json.dumps(dump, indent=2), encoding="utf-8")
            logger.info(f"Saved OCR payload to {save_ocr}.")
        return payload
    return path.read_text(encoding="utf-8")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Parse a bet slip (text, OCR JSON or image) into structured wagers.")
    parser.add_argument("path", help="OCR text file, OCR JSON payload, or slip image")
    parser.add_argument("--mode", choices=["auto", "receipt", "pending_list"], default="auto")
    parser.add_argument("--book", default=None, help="Sportsbook name hint")
    parser.add_argument("--save-ocr", default="", help="Write the OCR payload of an image to this JSON file")
    args = parser.parse_args(argv)

    config = Config.from_env()
    logging.basicConfig(
        level=logging.DEBUG if config.debug_logging else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    path = Path(args.path)
    if not path.exists():
        logger.error(f"No such file: {path}")
        return 1
    try:
        payload = load_payload(path, config, args.save_ocr)
    except (ValueError, OSError) as e:
        logger.error(f"Could not read {path}: {e}")
        return 1

    slip = parse_slip(payload, {"book_hint": args.book, "mode": args.mode}, config)
    print(json.dumps(slip.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

from typing import Any

import pytesseract
from PIL import Image

from multimodal.processor.results import BoundingBox, DetectedText
from multimodal.vision.base import BaseTextDetector
from multimodal.vision.exceptions import TextDetectionError

_TESSERACT_LANGUAGES = {
    "de": "deu",
    "en": "eng",
    "es": "spa",
    "fr": "fra",
    "ja": "jpn",
    "ko": "kor",
    "zh": "chi_sim",
}


class TesseractTextDetector(BaseTextDetector):
    """Detects words with the Tesseract OCR engine."""

    def detect(self, image: Image.Image, language: str | None = None) -> list[DetectedText]:
        try:
            data: dict[str, Any] = pytesseract.image_to_data(
                image.convert("RGB"),
                lang=self._tesseract_language(language),
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            raise TextDetectionError(f"Tesseract OCR failed: {exc}") from exc

        spans: list[DetectedText] = []
        for i, raw_text in enumerate(data.get("text", [])):
            text = str(raw_text or "").strip()
            if not text:
                continue
            conf = float(data["conf"][i])
            spans.append(
                DetectedText(
                    text=text,
                    confidence=max(0.0, min(1.0, conf / 100.0)),
                    bounding_box=BoundingBox(
                        x=int(data["left"][i]),
                        y=int(data["top"][i]),
                        width=int(data["width"][i]),
                        height=int(data["height"][i]),
                    ),
                )
            )
        return spans

    @staticmethod
    def _tesseract_language(language: str | None) -> str:
        if not language:
            return "eng"
        code = language.split("-")[0].lower()
        return _TESSERACT_LANGUAGES.get(code, code)

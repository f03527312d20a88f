# recipe_api/services/ocr.py
# OCR for recipe photos: Google Cloud Vision document text detection
# - optional contrast/brightness preprocessing (Pillow) before recognition
# - upload + preprocessed copy live under per-request unique temp names and are always removed

from __future__ import annotations
import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from google.cloud import vision
from PIL import Image, ImageEnhance, UnidentifiedImageError

from recipe_api.core.config import settings
from recipe_api.core.errors import MediaProcessingError, NoTextFound, OcrFailed, OcrNotReady
from recipe_api.models.schemas import OcrBatchResult, OcrPreprocessing, OcrResult, OcrWord

logger = logging.getLogger(__name__)

# Tesseract-style codes sent by the app -> BCP-47 hints for Vision
LANGUAGE_HINTS = {
    "spa": "es",
    "cat": "ca",
    "fra": "fr",
    "eng": "en",
    "por": "pt",
    "ita": "it",
    "deu": "de",
}


def language_hints(language: str) -> List[str]:
    """'spa' -> ['es'], 'spa+eng' -> ['es', 'en']; unknown codes pass through."""
    hints: List[str] = []
    for code in (language or "").lower().split("+"):
        code = code.strip()
        if not code:
            continue
        hint = LANGUAGE_HINTS.get(code, code)
        if hint not in hints:
            hints.append(hint)
    return hints


def _get_vision_client():
    """Google Cloud Vision client. Missing credentials/disabled OCR -> OcrNotReady."""
    if not settings.OCR_ENABLED:
        raise OcrNotReady("OCR is disabled on this server (OCR_ENABLED=false)")
    try:
        return vision.ImageAnnotatorClient()
    except Exception as e:
        raise OcrNotReady(f"Google Cloud Vision client could not be created: {e}")


def _temp_path(prefix: str, filename: Optional[str], upload_dir: Optional[str]) -> Path:
    suffix = Path(filename or "").suffix.lower() or ".jpg"
    return Path(upload_dir or settings.UPLOAD_DIR) / f"{prefix}-{uuid.uuid4().hex}{suffix}"


def preprocess_image(src: Path, dst: Path, opts: OcrPreprocessing) -> Path:
    """Apply brightness/contrast (-100..100 -> enhance factor 0..2) and save as PNG."""
    try:
        with Image.open(src) as img:
            out = img.convert("RGB")
            if opts.brightness:
                out = ImageEnhance.Brightness(out).enhance(1 + opts.brightness / 100)
            if opts.contrast:
                out = ImageEnhance.Contrast(out).enhance(1 + opts.contrast / 100)
            out.save(dst, format="PNG")
    except (UnidentifiedImageError, OSError) as e:
        raise OcrFailed(f"Image could not be read for preprocessing: {e}")
    return dst


def _word_text(word: Any) -> str:
    return "".join(s.text for s in word.symbols)


def _parse_annotation(annotation: Any) -> Tuple[str, Optional[float], List[OcrWord]]:
    text = (annotation.text or "").strip()
    words: List[OcrWord] = []
    for page in annotation.pages:
        for block in page.blocks:
            for paragraph in block.paragraphs:
                for word in paragraph.words:
                    t = _word_text(word)
                    if t:
                        words.append(OcrWord(text=t, confidence=round(word.confidence * 100, 2)))
    confidence = round(sum(w.confidence for w in words) / len(words), 2) if words else None
    return text, confidence, words


def _recognize(client: Any, content: bytes, hints: List[str]) -> Any:
    image = vision.Image(content=content)
    kwargs = {"image_context": vision.ImageContext(language_hints=hints)} if hints else {}
    return client.document_text_detection(image=image, **kwargs)


async def extract_text(
    image_bytes: bytes,
    language: str = "spa",
    preprocessing: Optional[OcrPreprocessing] = None,
    *,
    filename: Optional[str] = None,
    client: Any = None,
    upload_dir: Optional[str] = None,
) -> OcrResult:
    """
    Image bytes -> {text, language, confidence, words}
    - confidence values are 0~100 (word average for the whole text)
    - empty/whitespace text -> NoTextFound
    """
    original = _temp_path("ocr", filename, upload_dir)
    processed: Optional[Path] = None
    try:
        await asyncio.to_thread(original.write_bytes, image_bytes)

        source = original
        if preprocessing is not None and not preprocessing.is_noop():
            processed = original.with_name(original.stem + "-pre.png")
            source = await asyncio.to_thread(preprocess_image, original, processed, preprocessing)

        content = await asyncio.to_thread(source.read_bytes)
        cli = client if client is not None else _get_vision_client()
        try:
            response = await asyncio.to_thread(_recognize, cli, content, language_hints(language))
        except Exception as e:
            logger.error("Vision request failed: %s", e)
            raise OcrFailed(f"Vision request failed: {e}")

        err = getattr(response, "error", None)
        if err is not None and getattr(err, "message", ""):
            raise OcrFailed(f"Vision API error: {err.message}")

        text, confidence, words = _parse_annotation(response.full_text_annotation)
        if not text:
            raise NoTextFound(
                "No text found in image. Try a sharper photo with good lighting, "
                "or adjust contrast/brightness."
            )

        logger.info("OCR extracted %d chars, %d words (lang=%s)", len(text), len(words), language)
        return OcrResult(text=text, language=language, confidence=confidence, words=words)
    finally:
        for p in (original, processed):
            if p is not None:
                p.unlink(missing_ok=True)


async def extract_text_batch(
    images: Sequence[Tuple[Optional[str], bytes]],
    language: str = "spa",
    preprocessing: Optional[OcrPreprocessing] = None,
    *,
    client: Any = None,
    upload_dir: Optional[str] = None,
) -> OcrBatchResult:
    # one bad photo does not sink the batch; engine-not-ready still aborts
    results: List[OcrResult] = []
    failed = 0
    for filename, data in images:
        try:
            results.append(
                await extract_text(
                    data, language, preprocessing,
                    filename=filename, client=client, upload_dir=upload_dir,
                )
            )
        except OcrNotReady:
            raise
        except MediaProcessingError as e:
            logger.warning("OCR failed for %s: %s", filename or "<upload>", e)
            failed += 1
    return OcrBatchResult(
        results=results,
        total_images=len(images),
        successful=len(results),
        failed=failed,
    )

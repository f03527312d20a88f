# recipe_api/api/routes_media.py
# Photo OCR and voice transcription. Both produce the rawText fed to /api/analyze-recipe

from __future__ import annotations
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError

from recipe_api.core.config import Settings
from recipe_api.core.deps import get_settings
from recipe_api.core.errors import InvalidRequest
from recipe_api.models.schemas import OcrBatchResult, OcrPreprocessing, OcrResult, TranscribeResult
from recipe_api.services import ocr, transcribe as stt

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["media"])


async def _read_upload(file: Optional[UploadFile], field: str, max_bytes: int) -> bytes:
    if file is None:
        raise InvalidRequest(f"No {field} file provided (multipart field '{field}')")
    data = await file.read()
    if not data:
        raise InvalidRequest(f"Uploaded {field} file is empty")
    if len(data) > max_bytes:
        raise InvalidRequest(f"{field} file is too large (max {max_bytes // (1024 * 1024)}MB)")
    return data


def _parse_preprocessing(raw: Optional[str]) -> Optional[OcrPreprocessing]:
    # multipart sends it as a JSON string: '{"contrast": 20, "brightness": -10}'
    if raw is None or not raw.strip():
        return None
    try:
        return OcrPreprocessing.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        raise InvalidRequest(f"Invalid preprocessing options: {e}")


@router.post("/ocr", response_model=OcrResult)
async def ocr_image(
    image: Optional[UploadFile] = File(None),
    language: str = Form("spa"),
    preprocessing: Optional[str] = Form(None),
    cfg: Settings = Depends(get_settings),
):
    """Recipe photo -> {text, language, confidence, words}. 500 when no text is found."""
    data = await _read_upload(image, "image", cfg.MAX_UPLOAD_BYTES)
    opts = _parse_preprocessing(preprocessing)
    return await ocr.extract_text(data, language, opts, filename=image.filename)


@router.post("/ocr/batch", response_model=OcrBatchResult)
async def ocr_images(
    images: Optional[List[UploadFile]] = File(None),
    language: str = Form("spa"),
    preprocessing: Optional[str] = Form(None),
    cfg: Settings = Depends(get_settings),
):
    if not images:
        raise InvalidRequest("No image files provided (multipart field 'images')")
    opts = _parse_preprocessing(preprocessing)
    uploads = [(f.filename, await _read_upload(f, "image", cfg.MAX_UPLOAD_BYTES)) for f in images]
    return await ocr.extract_text_batch(uploads, language, opts)


@router.post("/transcribe", response_model=TranscribeResult)
async def transcribe_audio(
    audio: Optional[UploadFile] = File(None),
    language: str = Form("es"),
    cfg: Settings = Depends(get_settings),
):
    """Voice note -> {text, language, model}. 500 engine missing, 504 timeout."""
    data = await _read_upload(audio, "audio", cfg.MAX_UPLOAD_BYTES)
    return await stt.transcribe(data, language, filename=audio.filename)

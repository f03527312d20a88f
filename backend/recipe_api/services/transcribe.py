# recipe_api/services/transcribe.py
# Speech-to-text for dictated recipes: Whisper CLI as a subprocess
# - WHISPER_LOCAL_BIN if it is an executable file, else `whisper` on PATH
# - hard timeout (default 5 min): the process is killed and TranscriptionTimedOut raised
# - uploaded audio and the output directory are removed on every path

from __future__ import annotations
import asyncio
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from recipe_api.core.config import settings
from recipe_api.core.errors import EngineNotInstalled, TranscriptionFailed, TranscriptionTimedOut
from recipe_api.models.schemas import TranscribeResult

log = logging.getLogger(__name__)

SYSTEM_BINARY = "whisper"


def resolve_engine(local_bin: Optional[str] = None) -> Tuple[str, str]:
    """Return (executable path, source) where source is 'local' or 'system'."""
    local = local_bin if local_bin is not None else settings.WHISPER_LOCAL_BIN
    if local and os.path.isfile(local) and os.access(local, os.X_OK):
        return local, "local"
    system = shutil.which(SYSTEM_BINARY)
    if system:
        return system, "system"
    raise EngineNotInstalled(
        "Whisper is not installed on the server. Install it with `pip install openai-whisper` "
        "or set WHISPER_LOCAL_BIN to a whisper executable."
    )


def build_command(binary: str, audio: Path, out_dir: Path, model: str, language: str) -> List[str]:
    return [
        binary,
        str(audio),
        "--model", model,
        "--language", language,
        "--output_format", "txt",
        "--output_dir", str(out_dir),
    ]


def find_transcript(out_dir: Path, audio: Path) -> Optional[Path]:
    expected = out_dir / f"{audio.stem}.txt"
    if expected.is_file():
        return expected
    # some builds name the artifact differently (e.g. "<name>.m4a.txt")
    candidates = sorted(p for p in out_dir.glob("*.txt") if p.is_file())
    return candidates[0] if candidates else None


async def _run(cmd: List[str], timeout: float) -> Tuple[int, bytes]:
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        raise TranscriptionTimedOut(
            f"Transcription timed out after {timeout:g}s. Try a shorter recording."
        )
    finally:
        # timeout or cancelled request: the engine must not outlive its temp files
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
    return proc.returncode, stderr or b""


async def transcribe(
    audio_bytes: bytes,
    language: str = "es",
    *,
    filename: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
    local_bin: Optional[str] = None,
    upload_dir: Optional[str] = None,
) -> TranscribeResult:
    binary, source = resolve_engine(local_bin)
    model = model or settings.WHISPER_MODEL
    timeout = settings.TRANSCRIBE_TIMEOUT_SECONDS if timeout is None else timeout

    token = uuid.uuid4().hex
    base = Path(upload_dir or settings.UPLOAD_DIR)
    audio = base / f"audio-{token}{Path(filename or '').suffix.lower() or '.m4a'}"
    out_dir = base / f"whisper-{token}"
    try:
        await asyncio.to_thread(audio.write_bytes, audio_bytes)
        out_dir.mkdir(parents=True, exist_ok=True)

        cmd = build_command(binary, audio, out_dir, model, language)
        log.info("Transcribing %d bytes with %s whisper (model=%s, lang=%s)", len(audio_bytes), source, model, language)
        code, stderr = await _run(cmd, timeout)
        if code != 0:
            tail = stderr.decode("utf-8", errors="replace").strip()[-500:]
            raise TranscriptionFailed(f"Whisper exited with code {code}: {tail or 'no output'}")

        transcript = find_transcript(out_dir, audio)
        if transcript is None:
            raise TranscriptionFailed("Whisper finished but produced no transcript file")

        # undecodable bytes become U+FFFD instead of failing the whole request
        text = (await asyncio.to_thread(transcript.read_text, encoding="utf-8", errors="replace")).strip()
        return TranscribeResult(text=text, language=language, model=model)
    finally:
        audio.unlink(missing_ok=True)
        shutil.rmtree(out_dir, ignore_errors=True)

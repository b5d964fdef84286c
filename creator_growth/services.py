import asyncio
import base64
import logging
import os
import subprocess
import uuid
from typing import Any, Dict, Optional

import openai
import yt_dlp
from fastapi import UploadFile
from moviepy.config import FFMPEG_BINARY
from openai import AsyncOpenAI

from .config import Settings

logger = logging.getLogger(__name__)

PLACEHOLDER_TRANSCRIPT = "Temporary transcript for testing"
CHUNK_SIZE = 1024 * 1024
VIDEO_MIME_MARKERS = ("mp4", "quicktime", "video")


class MediaError(Exception):
    pass


class UploadTooLarge(MediaError):
    pass


class TranscodeError(MediaError):
    pass


class TranscriptionError(MediaError):
    pass


# --- UTILS: COOKIES HANDLING ---
def setup_cookies(env_cookies: str, cookie_filename: str = "cookies.txt") -> Optional[str]:
    """
    Prepare a cookies.txt for yt-dlp.
    Decoded from the base64 YOUTUBE_COOKIES setting, else an existing local file (dev mode).
    """
    if env_cookies:
        try:
            decoded_cookies = base64.b64decode(env_cookies).decode("utf-8")
        except ValueError as e:
            logger.warning("Could not decode YOUTUBE_COOKIES: %s", e)
            return None
        with open(cookie_filename, "w") as f:
            f.write(decoded_cookies)
        return cookie_filename

    if os.path.exists(cookie_filename):
        return cookie_filename

    return None


def extract_video_info(url: str, env_cookies: str = "") -> Dict[str, Any]:
    """Read video metadata with yt-dlp, nothing is downloaded."""
    ydl_opts = {
        "skip_download": True,
        "quiet": True,
        "no_warnings": True,
        "nocheckcertificate": True,
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    }
    cookie_file = setup_cookies(env_cookies)
    if cookie_file:
        ydl_opts["cookiefile"] = cookie_file

    with yt_dlp.YoutubeDL(ydl_opts) as ydl:
        return ydl.extract_info(url, download=False) or {}


# --- UPLOADS ---

def is_video_upload(content_type: Optional[str]) -> bool:
    content_type = (content_type or "").lower()
    return any(marker in content_type for marker in VIDEO_MIME_MARKERS)


def remove_quietly(path: Optional[str]) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not delete temp file %s: %s", path, e)


async def save_upload(upload: UploadFile, temp_dir: str, max_bytes: int) -> str:
    """Stream an uploaded file into temp_dir, refusing anything above max_bytes."""
    os.makedirs(temp_dir, exist_ok=True)
    suffix = os.path.splitext(upload.filename or "")[1] or ".mp4"
    path = os.path.join(temp_dir, f"{uuid.uuid4().hex[:8]}_upload{suffix}")

    written = 0
    try:
        with open(path, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLarge(f"File too large (limit {max_bytes} bytes)")
                out.write(chunk)
    except BaseException:
        remove_quietly(path)
        raise
    return path


def _run_ffmpeg(video_path: str, audio_path: str, timeout: float) -> None:
    # mono 16 kHz wav is what speech-to-text models expect
    cmd = [FFMPEG_BINARY, "-y", "-i", video_path, "-vn", "-ac", "1", "-ar", "16000", audio_path]
    try:
        proc = subprocess.run(cmd, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise TranscodeError(f"FFmpeg timed out after {timeout:.0f}s") from e
    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", "replace")[-500:]
        raise TranscodeError(f"FFmpeg exited with code {proc.returncode}: {stderr}")


async def extract_audio(video_path: str, timeout: float) -> str:
    """Pull the audio track out of a video, returns the wav path."""
    audio_path = f"{os.path.splitext(video_path)[0]}.wav"
    try:
        await asyncio.to_thread(_run_ffmpeg, video_path, audio_path, timeout)
    except TranscodeError:
        remove_quietly(audio_path)
        raise
    return audio_path


# --- TRANSCRIPTION ---

class Transcriber:
    async def transcribe(self, audio_path: str) -> str:
        raise NotImplementedError


class PlaceholderTranscriber(Transcriber):
    """Stand-in used while speech-to-text is switched off."""

    async def transcribe(self, audio_path: str) -> str:
        return PLACEHOLDER_TRANSCRIPT


class WhisperTranscriber(Transcriber):
    """Audio -> text with Whisper over an OpenAI-compatible API."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def transcribe(self, audio_path: str) -> str:
        try:
            with open(audio_path, "rb") as audio_file:
                transcript = await self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio_file,
                )
        except openai.APIError as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e
        return transcript.text or ""


def build_transcriber(settings: Settings) -> Transcriber:
    if not settings.ENABLE_WHISPER_TRANSCRIPTION:
        return PlaceholderTranscriber()
    client = AsyncOpenAI(api_key=settings.AI_API_KEY or "unset", base_url=settings.AI_BASE_URL)
    return WhisperTranscriber(client, settings.TRANSCRIPTION_MODEL)

"""
OpenAI Whisper client - speech to text

Uploads a Recording as multipart form data. The upload's file name must
carry the extension of the real container, otherwise the service guesses
the wrong decoder. Failures are mapped to the error taxonomy; nothing is
retried here, the caller decides.
"""

import re
from typing import Optional

import aiohttp
from loguru import logger

from config import config
from pitchperfect.audio.formats import filename_for, is_allowed, base_mime_type
from pitchperfect.audio.recorder import Recording
from pitchperfect.utils.error_handlers import (
    BadInput,
    IncompleteResult,
    NoSpeechDetected,
    UnknownTransportError,
    UnsupportedFormat,
    error_for_status,
)


class TranscriptionClient:
    """Whisper transcription over the OpenAI REST API."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.api_key = config.api.openai_api_key
        self.base_url = config.api.openai_base_url.rstrip("/")
        self.model = config.api.whisper_model
        self.language = config.api.transcription_language
        self.max_bytes = config.audio.max_recording_bytes
        self.timeout = aiohttp.ClientTimeout(total=config.api.request_timeout)

        self.session = session
        self._owns_session = session is None

        self.total_transcriptions = 0
        self.total_audio_duration = 0.0

        logger.info(f"Whisper client ready. Model: {self.model}, language: {self.language}")

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def transcribe(self, recording: Recording) -> str:
        """
        Convert a recording to text.

        Raises:
            UnsupportedFormat: MIME type outside the allow-list (no request made)
            BadInput: empty or oversized upload (no request made)
            NoSpeechDetected: the service heard nothing
            RateLimited, Unauthorized, ServiceUnavailable, UnknownTransportError
        """
        if not is_allowed(recording.mime_type):
            raise UnsupportedFormat(f"Unsupported audio type: {recording.mime_type!r}")
        if recording.size == 0:
            raise BadInput("No audio data provided")
        if recording.size > self.max_bytes:
            raise BadInput(f"Audio file too large ({recording.size} bytes)")

        filename = filename_for(recording.mime_type)
        form = aiohttp.FormData()
        form.add_field(
            "file",
            recording.data,
            filename=filename,
            content_type=base_mime_type(recording.mime_type),
        )
        form.add_field("model", self.model)
        form.add_field("response_format", "json")
        form.add_field("language", self.language)

        logger.debug(f"Transcribing {filename} ({recording.size / 1024:.1f}KB)")
        await self._ensure_session()
        try:
            async with self.session.post(
                f"{self.base_url}/audio/transcriptions",
                data=form,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as response:
                if response.status != 200:
                    details = await response.text()
                    error = error_for_status(response.status, "Whisper", details)
                    logger.error(f"Transcription failed: {error}")
                    raise error
                try:
                    result = await response.json(content_type=None)
                except ValueError as e:
                    raise IncompleteResult("Transcription response was not JSON") from e
        except aiohttp.ClientError as e:
            logger.error(f"Whisper request failed: {e}")
            raise UnknownTransportError(f"Whisper request failed: {e}") from e

        if not isinstance(result, dict):
            raise IncompleteResult("Transcription response was not an object")
        text = self._clean_transcript(result.get("text") or "")
        if not text:
            raise NoSpeechDetected()

        self.total_transcriptions += 1
        self.total_audio_duration += float(result.get("duration") or recording.duration)
        logger.info(f"Transcription succeeded. Length: {len(text)} characters")
        return text

    def _clean_transcript(self, text: str) -> str:
        text = re.sub(r'\s+', ' ', text).strip()
        text = text.replace(' ,', ',').replace(' .', '.').replace(' ?', '?').replace(' !', '!')
        return text

    async def close(self):
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()

    def get_statistics(self) -> dict:
        return {
            "total_transcriptions": self.total_transcriptions,
            "total_audio_duration": f"{self.total_audio_duration:.1f} seconds",
            "average_duration": (
                f"{self.total_audio_duration / self.total_transcriptions:.1f} seconds"
                if self.total_transcriptions > 0 else "N/A"
            ),
        }

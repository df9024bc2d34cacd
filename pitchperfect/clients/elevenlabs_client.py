"""
ElevenLabs client - text to speech

Sends one interviewer turn to the per-voice synthesis endpoint and returns
the raw audio/mpeg bytes. Text over the service limit is rejected before any
request instead of being cut. Failures are mapped to the error taxonomy and
are not retried.
"""

import re
from typing import Optional

import aiohttp
from loguru import logger
from pydantic import BaseModel, Field

from config import config
from pitchperfect.utils.error_handlers import (
    BadInput,
    EmptyAudioReceived,
    TextTooLong,
    UnknownTransportError,
    error_for_status,
)


class VoiceParameters(BaseModel):
    voice_id: str = Field(default_factory=lambda: config.voice.voice_id)
    stability: float = Field(default_factory=lambda: config.voice.stability, ge=0.0, le=1.0)
    similarity_boost: float = Field(default_factory=lambda: config.voice.similarity_boost, ge=0.0, le=1.0)
    style: float = Field(default_factory=lambda: config.voice.style, ge=0.0, le=1.0)
    speaker_boost: bool = Field(default_factory=lambda: config.voice.speaker_boost)

    def to_voice_settings(self) -> dict:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.speaker_boost,
        }


class SpeechSynthesisClient:
    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.api_key = config.api.elevenlabs_api_key
        self.base_url = config.api.elevenlabs_base_url.rstrip("/")
        self.model_id = config.api.elevenlabs_model_id
        self.max_text_length = config.voice.max_text_length
        self.timeout = aiohttp.ClientTimeout(total=config.api.request_timeout)

        self.session = session
        self._owns_session = session is None

        self.total_characters = 0
        self.total_requests = 0

        logger.info(f"ElevenLabs client ready. Voice ID: {config.voice.voice_id}")

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def synthesize(self, text: str, voice: Optional[VoiceParameters] = None) -> bytes:
        """Interviewer text -> audio/mpeg bytes. Over-long text is rejected, never cut."""
        text = self._clean_text(text)
        if not text:
            raise BadInput("Text is required")
        if len(text) > self.max_text_length:
            raise TextTooLong(f"Text is {len(text)} characters, maximum is {self.max_text_length}")

        voice = voice or VoiceParameters()
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": voice.to_voice_settings(),
        }

        logger.debug(f"Synthesizing speech. Length: {len(text)} characters")
        await self._ensure_session()
        try:
            async with self.session.post(
                f"{self.base_url}/text-to-speech/{voice.voice_id}",
                json=payload,
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
            ) as response:
                if response.status != 200:
                    details = await response.text()
                    error = error_for_status(response.status, "ElevenLabs", details)
                    logger.error(f"Speech synthesis failed: {error}")
                    raise error
                audio = await response.read()
        except aiohttp.ClientError as e:
            logger.error(f"ElevenLabs request failed: {e}")
            raise UnknownTransportError(f"ElevenLabs request failed: {e}") from e

        if not audio:
            raise EmptyAudioReceived()

        self.total_requests += 1
        self.total_characters += len(text)
        logger.info(f"Speech synthesized: {len(audio) / 1024:.1f}KB")
        return audio

    def _clean_text(self, text: str) -> str:
        return re.sub(r'\s+', ' ', text or "").strip()

    async def close(self):
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()

    def get_statistics(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "total_characters": self.total_characters,
        }

"""
PitchPerfect - Configuration

Settings for the interview service and the local voice client.
Every group reads from the environment (and from .env) with its own prefix,
e.g. OPENAI_API_KEY, AUDIO_MIN_RECORDING_SECONDS, APP_LOG_LEVEL.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from loguru import logger

from pitchperfect.utils.logger import setup_logging

load_dotenv()


class ApiConfig(BaseSettings):
    """External service credentials and models"""

    # OpenAI (chat completion + whisper)
    openai_api_key: str = Field("", validation_alias="OPENAI_API_KEY")
    openai_base_url: str = Field("https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
    interview_model: str = Field("gpt-4", validation_alias="OPENAI_INTERVIEW_MODEL")
    analysis_model: str = Field("gpt-4o", validation_alias="OPENAI_ANALYSIS_MODEL")
    report_model: str = Field("gpt-4o", validation_alias="OPENAI_REPORT_MODEL")
    whisper_model: str = Field("whisper-1", validation_alias="OPENAI_WHISPER_MODEL")
    transcription_language: str = Field("en", validation_alias="TRANSCRIPTION_LANGUAGE")

    # ElevenLabs
    elevenlabs_api_key: str = Field("", validation_alias="ELEVEN_LABS")
    elevenlabs_base_url: str = Field("https://api.elevenlabs.io/v1", validation_alias="ELEVENLABS_BASE_URL")
    elevenlabs_model_id: str = Field("eleven_monolingual_v1", validation_alias="ELEVENLABS_MODEL_ID")

    request_timeout: float = Field(60.0, validation_alias="API_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


class AudioConfig(BaseSettings):
    """Microphone capture and playback settings"""

    sample_rate: int = 44100
    channels: int = 1
    chunk_size: int = 1024

    # Recording bounds
    min_recording_seconds: float = 1.0
    min_recording_bytes: int = 1024
    max_recording_seconds: float = 300.0
    max_recording_bytes: int = 25 * 1024 * 1024  # whisper upload limit

    # Descending preference, wav first for transcription fidelity
    preferred_mime_types: list[str] = [
        "audio/wav",
        "audio/mp4",
        "audio/mpeg",
        "audio/webm;codecs=opus",
        "audio/webm",
        "audio/ogg",
    ]
    fallback_mime_type: str = "audio/wav"

    playback_volume: float = 1.0

    @field_validator("sample_rate", mode="before")
    @classmethod
    def valid_sample_rate(cls, v: int) -> int:
        if int(v) not in [8000, 16000, 22050, 44100, 48000]:
            raise ValueError("Invalid sample rate")
        return int(v)

    @field_validator("playback_volume")
    @classmethod
    def valid_volume(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Playback volume must be between 0 and 1")
        return v

    model_config = SettingsConfigDict(env_prefix="AUDIO_", env_file=".env", extra="ignore")


class VoiceConfig(BaseSettings):
    """Default interviewer voice"""

    voice_id: str = "pNInz6obpgDQGcFmaJgB"  # Adam, professional male
    stability: float = 0.5
    similarity_boost: float = 0.8
    style: float = 0.0
    speaker_boost: bool = True
    max_text_length: int = 5000

    model_config = SettingsConfigDict(env_prefix="VOICE_", env_file=".env", extra="ignore")


class ApplicationConfig(BaseSettings):
    """General application settings"""

    base_dir: Path = Path(__file__).parent
    data_dir: Path = Path("./data/interviews")

    log_level: str = "INFO"
    log_to_file: bool = True

    # Pause before wrapping up so the closing utterance can finish
    completion_delay: float = 2.0

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    debug: bool = False

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")


class InterviewConfig(BaseSettings):
    """Interview flow settings"""

    stages: list[str] = [
        "start",
        "technical",
        "behavioral",
        "situational",
        "closing",
    ]

    personas: dict[str, str] = {
        "professional": "Traditional corporate interview style",
        "friendly": "Relaxed and approachable interviewer",
        "technical": "Deep technical focus with challenging questions",
        "startup": "Fast-paced, culture-focused interview",
    }

    interview_types: dict[str, str] = {
        "comprehensive": "Full interview covering all areas",
        "technical": "Emphasis on technical skills and problem-solving",
        "behavioral": "Focus on past experiences and soft skills",
        "case-study": "Scenario-based problem solving",
    }

    durations: list[int] = [15, 30, 45, 60]
    min_job_description_length: int = 50

    model_config = SettingsConfigDict(env_prefix="INTERVIEW_", env_file=".env", extra="ignore")


class Config:
    """Singleton configuration object"""

    _instance: Optional["Config"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized") and self._initialized:
            return

        self.api = ApiConfig()
        self.audio = AudioConfig()
        self.voice = VoiceConfig()
        self.app = ApplicationConfig()
        self.interview = InterviewConfig()

        setup_logging(
            log_level=self.app.log_level,
            base_dir=self.app.base_dir,
            log_to_file=self.app.log_to_file,
        )

        self._initialized = True

    def validate(self) -> bool:
        """Check that the external services are configured"""
        ok = True
        if not self.api.openai_api_key:
            logger.error("OPENAI_API_KEY is not set")
            ok = False
        if not self.api.elevenlabs_api_key:
            logger.warning("ELEVEN_LABS is not set, interviewer audio will be unavailable")
        return ok

    def get_summary(self) -> dict:
        """Configuration summary"""
        return {
            "models": {
                "interview": self.api.interview_model,
                "analysis": self.api.analysis_model,
                "report": self.api.report_model,
                "stt": self.api.whisper_model,
                "tts": self.api.elevenlabs_model_id,
            },
            "audio_settings": {
                "sample_rate": self.audio.sample_rate,
                "channels": self.audio.channels,
                "min_recording_seconds": self.audio.min_recording_seconds,
                "max_recording_seconds": self.audio.max_recording_seconds,
            },
            "interview_settings": {
                "stages": self.interview.stages,
                "completion_delay": self.app.completion_delay,
            },
        }


# Global config instance
config = Config()

from .whisper_client import TranscriptionClient
from .elevenlabs_client import SpeechSynthesisClient, VoiceParameters
from .chatgpt_client import ChatGPTClient, extract_json

__all__ = [
    "TranscriptionClient",
    "SpeechSynthesisClient",
    "VoiceParameters",
    "ChatGPTClient",
    "extract_json",
]

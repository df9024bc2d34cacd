"""
Audio container handling - MIME negotiation, file extensions, encoding

The transcription service infers the container partly from the upload's
file name, so the MIME type -> extension mapping must be exact.
"""

import io
import wave
from typing import Callable, Iterable, Optional

import numpy as np
import soundfile as sf
from loguru import logger

from pitchperfect.utils.error_handlers import UnsupportedFormat

# Container -> file extension
EXTENSIONS = {
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mpga": "mpga",
    "audio/mp4": "mp4",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
}

# Non audio/* types browsers and recorders commonly use for voice clips
GENERIC_FALLBACKS = {
    "video/webm": "webm",
    "video/mp4": "mp4",
    "video/ogg": "ogg",
}

# MIME -> (soundfile format, subtype) for the containers we can encode locally
ENCODERS = {
    "audio/wav": ("WAV", "PCM_16"),
    "audio/flac": ("FLAC", "PCM_16"),
    "audio/ogg": ("OGG", "VORBIS"),
    "audio/mpeg": ("MP3", "MPEG_LAYER_III"),
}


def base_mime_type(mime_type: str) -> str:
    """'audio/webm;codecs=opus' -> 'audio/webm'"""
    return mime_type.split(";", 1)[0].strip().lower()


def is_allowed(mime_type: Optional[str]) -> bool:
    if not mime_type:
        return False
    base = base_mime_type(mime_type)
    return (base.startswith("audio/") and len(base) > len("audio/")) or base in GENERIC_FALLBACKS


def extension_for(mime_type: str) -> str:
    """File extension matching the declared container."""
    if not is_allowed(mime_type):
        raise UnsupportedFormat(f"Unsupported audio type: {mime_type!r}")

    base = base_mime_type(mime_type)
    if base in EXTENSIONS:
        return EXTENSIONS[base]
    if base in GENERIC_FALLBACKS:
        return GENERIC_FALLBACKS[base]

    # Unlisted audio/* subtype: the subtype is the container name
    subtype = base.split("/", 1)[1]
    if subtype.startswith("x-"):
        subtype = subtype[2:]
    return "".join(ch for ch in subtype if ch.isalnum()) or "bin"


def filename_for(mime_type: str, stem: str = "recording") -> str:
    return f"{stem}.{extension_for(mime_type)}"


def can_encode(mime_type: str) -> bool:
    """Whether the local encoder stack can produce this container."""
    base = base_mime_type(mime_type)
    if base == "audio/wav":
        return True
    if base not in ENCODERS:
        return False
    sf_format, _ = ENCODERS[base]
    return sf_format in sf.available_formats()


def negotiate_mime_type(
    preferences: Iterable[str],
    fallback: str = "audio/wav",
    is_supported: Callable[[str], bool] = can_encode,
) -> str:
    """Pick the first supported type from a descending preference list."""
    for mime_type in preferences:
        if is_supported(mime_type):
            logger.debug(f"Selected MIME type: {mime_type}")
            return mime_type

    logger.info(f"No preferred MIME type supported, using fallback: {fallback}")
    return fallback


def encode_pcm(pcm: bytes, mime_type: str, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw 16-bit PCM into the negotiated container."""
    if not pcm:
        return b''

    base = base_mime_type(mime_type)
    if base == "audio/wav":
        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(2)
            wf.setframerate(sample_rate)
            wf.writeframes(pcm)
        return buffer.getvalue()

    if base not in ENCODERS:
        raise UnsupportedFormat(f"No local encoder for {mime_type!r}")

    sf_format, subtype = ENCODERS[base]
    samples = np.frombuffer(pcm, dtype=np.int16)
    if channels > 1:
        samples = samples.reshape(-1, channels)
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format=sf_format, subtype=subtype)
    return buffer.getvalue()


def decode_to_pcm(audio: bytes) -> tuple[bytes, int, int]:
    """Decode a synthesized clip (mp3/wav/...) to 16-bit PCM for the output device."""
    data, sample_rate = sf.read(io.BytesIO(audio), dtype="int16", always_2d=True)
    channels = data.shape[1]
    return data.tobytes(), sample_rate, channels

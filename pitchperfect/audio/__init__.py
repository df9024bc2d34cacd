from .formats import negotiate_mime_type, extension_for, filename_for, is_allowed
from .recorder import AudioCapture, Recording, validate_recording
from .player import AudioPlayer
from .playback_queue import AudioPlaybackQueue, PlaybackItem, PlaybackStatus

__all__ = [
    'negotiate_mime_type',
    'extension_for',
    'filename_for',
    'is_allowed',
    'AudioCapture',
    'Recording',
    'validate_recording',
    'AudioPlayer',
    'AudioPlaybackQueue',
    'PlaybackItem',
    'PlaybackStatus',
]

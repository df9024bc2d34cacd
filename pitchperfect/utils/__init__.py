from .logger import setup_logging
from .error_handlers import (
    ErrorSeverity,
    ErrorCategory,
    InterviewError,
    PermissionDenied,
    DeviceUnavailable,
    UnsupportedEnvironment,
    RecordingTooShort,
    UnsupportedFormat,
    NoSpeechDetected,
    TextTooLong,
    EmptyAudioReceived,
    RateLimited,
    Unauthorized,
    BadInput,
    ServiceUnavailable,
    UnknownTransportError,
    IncompleteResult,
    error_for_status,
    describe_error,
    http_status_for,
)

__all__ = [
    # logger.py
    'setup_logging',

    # error_handlers.py
    'ErrorSeverity',
    'ErrorCategory',
    'InterviewError',
    'PermissionDenied',
    'DeviceUnavailable',
    'UnsupportedEnvironment',
    'RecordingTooShort',
    'UnsupportedFormat',
    'NoSpeechDetected',
    'TextTooLong',
    'EmptyAudioReceived',
    'RateLimited',
    'Unauthorized',
    'BadInput',
    'ServiceUnavailable',
    'UnknownTransportError',
    'IncompleteResult',
    'error_for_status',
    'describe_error',
    'http_status_for',
]

from enum import Enum
from typing import Optional

from loguru import logger

# --- Error and severity classes ---

class ErrorSeverity(str, Enum):
    """How serious an error is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FATAL = "fatal"


class ErrorCategory(str, Enum):
    """Where an error comes from; decides how it is surfaced."""
    CAPTURE = "capture"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    RESULT = "result"


class InterviewError(Exception):
    """Base error for the interview system."""

    category = ErrorCategory.TRANSPORT
    default_message = "Something went wrong. Please try again."
    default_suggestion = ""

    def __init__(
        self,
        message: Optional[str] = None,
        severity=ErrorSeverity.MEDIUM,
        recoverable=True,
        recovery_suggestion: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message or self.default_message)
        self.severity = severity
        self.recoverable = recoverable
        self.recovery_suggestion = recovery_suggestion or self.default_suggestion
        self.status = status

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def user_message(self) -> str:
        """Human readable message with the suggested remedy."""
        if self.recovery_suggestion:
            return f"{self.default_message} {self.recovery_suggestion}"
        return self.default_message

    def __str__(self):
        return f"[{self.severity.value.upper()}] {super().__str__()}"


# --- Capture ---

class PermissionDenied(InterviewError):
    category = ErrorCategory.CAPTURE
    default_message = "Microphone access denied."
    default_suggestion = "Please allow microphone access and try again."


class DeviceUnavailable(InterviewError):
    category = ErrorCategory.CAPTURE
    default_message = "No microphone found."
    default_suggestion = "Please connect a microphone and try again."


class UnsupportedEnvironment(InterviewError):
    category = ErrorCategory.CAPTURE
    default_message = "Audio recording is not supported in this environment."
    default_suggestion = "Please type your response instead."


class RecordingTooShort(InterviewError):
    category = ErrorCategory.CAPTURE
    default_message = "Recording too short or empty."
    default_suggestion = "Please record for at least 2 seconds."


# --- Local validation ---

class UnsupportedFormat(InterviewError):
    category = ErrorCategory.VALIDATION
    default_message = "Audio format not supported."
    default_suggestion = "Please try recording again or use text input."


class NoSpeechDetected(InterviewError):
    category = ErrorCategory.VALIDATION
    default_message = "No speech detected in the recording."
    default_suggestion = "Please try speaking more clearly."


class TextTooLong(InterviewError):
    category = ErrorCategory.VALIDATION
    default_message = "Text too long for speech synthesis."


class EmptyAudioReceived(InterviewError):
    category = ErrorCategory.RESULT
    default_message = "The speech service returned no audio."


# --- Transport ---

class RateLimited(InterviewError):
    default_message = "Too many requests."
    default_suggestion = "Please wait a moment and try again."


class Unauthorized(InterviewError):
    default_message = "Authentication error."
    default_suggestion = "Please check the service credentials and try again."


class BadInput(InterviewError):
    default_message = "The request was rejected as invalid."
    default_suggestion = "Please check your input and try again."


class ServiceUnavailable(InterviewError):
    default_message = "The service is temporarily unavailable."
    default_suggestion = "Please check your connection and try again."


class UnknownTransportError(InterviewError):
    default_message = "Network error."
    default_suggestion = "Please check your connection and try again."


# --- Result decoding ---

class IncompleteResult(InterviewError):
    category = ErrorCategory.RESULT
    default_message = "The service returned incomplete data."
    default_suggestion = "Please try again."


# --- Helpers ---

def error_for_status(status: int, service: str, details: str = "") -> InterviewError:
    """Map an HTTP status from an upstream service to the taxonomy."""
    message = f"{service} responded with {status}"
    if details:
        message = f"{message}: {details[:200]}"

    if status == 429:
        return RateLimited(message, status=status)
    if status in (401, 403):
        return Unauthorized(message, severity=ErrorSeverity.HIGH, status=status)
    if status == 400:
        return BadInput(message, status=status)
    if 500 <= status < 600:
        return ServiceUnavailable(message, status=status)
    return UnknownTransportError(message, status=status)


def describe_error(error: BaseException) -> str:
    """User facing message for any error raised during a session."""
    if isinstance(error, InterviewError):
        return error.user_message
    logger.debug(f"No user message for {type(error).__name__}, using the generic one")
    return InterviewError.default_message


def http_status_for(error: InterviewError) -> int:
    """Status code used when an error leaves the HTTP surface."""
    if error.status in (400, 401, 429):
        return error.status
    if isinstance(error, (BadInput, UnsupportedFormat, TextTooLong, RecordingTooShort, NoSpeechDetected)):
        return 400
    if isinstance(error, Unauthorized):
        return 401
    if isinstance(error, RateLimited):
        return 429
    if isinstance(error, ServiceUnavailable):
        return 503
    if isinstance(error, (IncompleteResult, EmptyAudioReceived, UnknownTransportError)):
        return 502
    return 500

# pitchperfect/audio/recorder.py

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from pydantic import BaseModel, Field

from config import config, AudioConfig
from pitchperfect.audio.formats import encode_pcm, negotiate_mime_type
from pitchperfect.utils.error_handlers import (
    DeviceUnavailable,
    PermissionDenied,
    RecordingTooShort,
    UnsupportedEnvironment,
)


class Recording(BaseModel):
    """A finished, bounded microphone clip waiting for transcription."""
    data: bytes
    mime_type: str
    duration: float = Field(..., description="Wall-clock seconds")
    captured_at: datetime = Field(default_factory=datetime.now)

    @property
    def size(self) -> int:
        return len(self.data)


def validate_recording(recording: Recording, settings: Optional[AudioConfig] = None) -> Recording:
    settings = settings or config.audio
    if recording.duration < settings.min_recording_seconds:
        raise RecordingTooShort(
            f"Recording lasted {recording.duration:.1f}s, minimum is {settings.min_recording_seconds}s"
        )
    if recording.size < settings.min_recording_bytes:
        raise RecordingTooShort(
            f"Recording is {recording.size} bytes, minimum is {settings.min_recording_bytes}"
        )
    return recording


def _default_interface():
    import pyaudio
    return pyaudio.PyAudio()


class AudioCapture:
    """
    Exclusive microphone handle producing one Recording per start/stop.

    The device is held only between start() and stop() and is released on
    every exit path, including close() while a recording is in progress.
    """

    def __init__(
        self,
        settings: Optional[AudioConfig] = None,
        interface_factory: Callable = _default_interface,
        clock: Callable[[], float] = time.monotonic,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.settings = settings or config.audio
        self.sample_rate = self.settings.sample_rate
        self.channels = self.settings.channels
        self.chunk_size = self.settings.chunk_size
        self.mime_type = negotiate_mime_type(
            self.settings.preferred_mime_types,
            self.settings.fallback_mime_type,
        )
        self.on_tick = on_tick

        self._interface_factory = interface_factory
        self._clock = clock
        self.audio = None
        self.stream = None
        self.frames: list[bytes] = []
        self.is_recording = False
        self.elapsed_seconds = 0

        self._captured_bytes = 0
        self._started_at: Optional[float] = None
        self._ended_at: Optional[float] = None
        self._reader: Optional[asyncio.Task] = None
        self._read_error: Optional[BaseException] = None

        self.total_recordings = 0
        self.total_duration = 0.0
        logger.info(f"Audio capture ready ({self.mime_type}, {self.sample_rate} Hz)")

    async def start(self):
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        self._acquire()
        self.frames = []
        self._captured_bytes = 0
        self._read_error = None
        self.elapsed_seconds = 0
        self._started_at = self._clock()
        self._ended_at = None
        self.is_recording = True
        self._reader = asyncio.create_task(self._capture_loop())
        logger.info("Recording started")

    def request_stop(self):
        """Ask the capture loop to finish; await_recording_stop() returns the clip."""
        self.is_recording = False

    async def await_recording_stop(self) -> Recording:
        """Suspend until the recording ends (user stop or limits) and return it."""
        if self._reader is not None:
            await asyncio.shield(self._reader)
        return await self.stop()

    async def stop(self) -> Recording:
        if self._started_at is None:
            raise RuntimeError("stop() called without an active recording")

        self.is_recording = False
        try:
            if self._reader is not None:
                await self._reader
            if self._ended_at is None:
                self._ended_at = self._clock()
            if self._read_error is not None:
                raise DeviceUnavailable(f"Microphone read failed: {self._read_error}") from self._read_error

            duration = self._ended_at - self._started_at
            pcm = b''.join(self.frames)
            recording = Recording(
                data=encode_pcm(pcm, self.mime_type, self.sample_rate, self.channels),
                mime_type=self.mime_type,
                duration=duration,
            )
            validate_recording(recording, self.settings)

            self.total_recordings += 1
            self.total_duration += duration
            logger.info(f"Recording finished. Duration: {duration:.1f}s, Size: {recording.size / 1024:.1f}KB")
            return recording
        finally:
            self._release()
            self.frames = []
            self._reader = None
            self._started_at = None

    def close(self):
        """Teardown; releases the microphone even mid-recording."""
        self.is_recording = False
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        self._reader = None
        self._started_at = None
        self.frames = []
        self._release()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    # --- internals ---

    def _acquire(self):
        try:
            self.audio = self._interface_factory()
        except (ImportError, OSError) as e:
            raise UnsupportedEnvironment(f"No audio capture API available: {e}") from e

        try:
            if self.audio.get_host_api_count() == 0:
                raise UnsupportedEnvironment("No audio host API available")
            try:
                self.audio.get_default_input_device_info()
            except (IOError, OSError) as e:
                raise DeviceUnavailable(f"No input device: {e}") from e
            try:
                self.stream = self.audio.open(
                    format=self.audio.get_format_from_width(2),
                    channels=self.channels,
                    rate=self.sample_rate,
                    input=True,
                    frames_per_buffer=self.chunk_size,
                )
            except (IOError, OSError) as e:
                text = str(e).lower()
                if "permission" in text or "not allowed" in text or "denied" in text:
                    raise PermissionDenied(str(e)) from e
                raise DeviceUnavailable(f"Could not open input stream: {e}") from e
        except Exception:
            self._release()
            raise

    async def _capture_loop(self):
        loop = asyncio.get_running_loop()
        try:
            while self.is_recording:
                data = await loop.run_in_executor(None, self._read_chunk)
                if data:
                    self.frames.append(data)
                    self._captured_bytes += len(data)
                self._update_elapsed()
                if self._limit_reached():
                    break
                await asyncio.sleep(0)
        except Exception as e:
            logger.error(f"Microphone read error: {e}")
            self._read_error = e
        finally:
            self.is_recording = False
            self._ended_at = self._clock()

    def _read_chunk(self) -> bytes:
        stream = self.stream
        if stream is None:
            return b''
        return stream.read(self.chunk_size, exception_on_overflow=False)

    def _update_elapsed(self):
        seconds = int(self._clock() - self._started_at)
        if seconds != self.elapsed_seconds:
            self.elapsed_seconds = seconds
            if self.on_tick:
                self.on_tick(seconds)

    def _limit_reached(self) -> bool:
        if self._clock() - self._started_at >= self.settings.max_recording_seconds:
            logger.info("Maximum recording duration reached")
            return True
        # leave room for the container header
        if self._captured_bytes >= self.settings.max_recording_bytes - 4096:
            logger.info("Maximum recording size reached")
            return True
        return False

    def _release(self):
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                if stream.is_active():
                    stream.stop_stream()
                stream.close()
            except Exception as e:
                logger.warning(f"Error while closing input stream: {e}")

        audio, self.audio = self.audio, None
        if audio is not None:
            try:
                audio.terminate()
            except Exception as e:
                logger.warning(f"Error while terminating audio interface: {e}")
        self.is_recording = False
        logger.debug("Microphone released")

    def list_input_devices(self) -> list[dict]:
        """Available input devices, for the startup system check."""
        audio = self._interface_factory()
        try:
            devices = []
            for i in range(audio.get_device_count()):
                info = audio.get_device_info_by_index(i)
                if info.get('maxInputChannels', 0) > 0:
                    devices.append({"index": i, "name": info.get('name'), "channels": info['maxInputChannels']})
            return devices
        finally:
            audio.terminate()

    def get_statistics(self) -> dict:
        avg_duration = (self.total_duration / self.total_recordings if self.total_recordings > 0 else 0)
        return {
            "total_recordings": self.total_recordings,
            "total_duration": f"{self.total_duration:.1f} seconds",
            "average_duration": f"{avg_duration:.1f} seconds",
            "sample_rate": f"{self.sample_rate} Hz",
            "mime_type": self.mime_type,
        }

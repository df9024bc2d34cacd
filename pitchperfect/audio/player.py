"""
AudioPlayer - plays synthesized interviewer speech on the output device.

The clip (mp3 from the synthesis service, or wav) is decoded to PCM and
written chunk by chunk; stop() ends playback between chunks and releases
the device.
"""

import asyncio
import time
from typing import Callable, Optional

import numpy as np
from loguru import logger

from pitchperfect.audio.formats import decode_to_pcm


def _default_interface():
    import pyaudio
    return pyaudio.PyAudio()


class AudioPlayer:
    def __init__(
        self,
        volume: float = 1.0,
        interface_factory: Callable = _default_interface,
        chunk: int = 2048,
    ):
        self._interface_factory = interface_factory
        self.audio = None
        self.stream = None
        self.is_playing: bool = False
        self.volume: float = volume  # 0.0-1.0
        self.chunk = chunk
        self.play_start_time: Optional[float] = None
        self.play_end_time: Optional[float] = None

    async def play(self, clip: bytes) -> bool:
        """
        Play one clip to the end.

        Returns False when playback was stopped early. Decode and device
        errors propagate to the caller.
        """
        if self.is_playing:
            raise RuntimeError("Another clip is still playing")

        pcm, sample_rate, channels = decode_to_pcm(clip)
        if self.volume != 1.0:
            pcm = self._apply_gain(pcm, self.volume)

        self.is_playing = True
        self.play_start_time = time.time()
        completed = False
        loop = asyncio.get_running_loop()

        try:
            if self.audio is None:
                self.audio = self._interface_factory()
            self.stream = self.audio.open(
                format=self.audio.get_format_from_width(2),
                channels=channels,
                rate=sample_rate,
                output=True,
                frames_per_buffer=self.chunk,
            )

            step = self.chunk * 2 * channels
            for i in range(0, len(pcm), step):
                if not self.is_playing:
                    break
                await loop.run_in_executor(None, self._write, pcm[i:i + step])
            else:
                completed = True
        finally:
            self.stop()
            self.play_end_time = time.time()
            logger.debug(f"Playback took {self.play_end_time - self.play_start_time:.2f}s")

        return completed

    def _write(self, frame: bytes):
        stream = self.stream
        if stream is not None:
            stream.write(frame)

    def stop(self):
        """Stop playback and release the output stream."""
        self.is_playing = False

        stream, self.stream = self.stream, None
        if stream is None:
            return
        try:
            if stream.is_active():
                stream.stop_stream()
            stream.close()
        except Exception as e:
            logger.warning(f"Error while closing output stream: {e}")
        logger.debug("AudioPlayer stopped")

    def release(self):
        """Stop and give the output device back."""
        self.stop()
        audio, self.audio = self.audio, None
        if audio is not None:
            try:
                audio.terminate()
            except Exception as e:
                logger.warning(f"Error while terminating audio interface: {e}")

    def _apply_gain(self, frame: bytes, gain: float) -> bytes:
        """Simple PCM16 volume adjustment."""
        if not frame:
            return frame
        arr = np.frombuffer(frame, dtype=np.int16).astype(np.float32)
        arr *= gain
        arr = np.clip(arr, -32768, 32767).astype(np.int16)
        return arr.tobytes()

    def get_play_duration(self) -> Optional[float]:
        if self.play_start_time and self.play_end_time:
            return self.play_end_time - self.play_start_time
        return None

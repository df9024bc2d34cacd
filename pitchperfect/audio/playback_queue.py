"""
Serialized playback of interviewer turns.

Each enqueued text is synthesized and played in enqueue order by a single
worker task, so at most one item is ever playing.
"""

import asyncio
import uuid
from collections import deque
from enum import Enum
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field

from pitchperfect.utils.error_handlers import describe_error


class PlaybackStatus(str, Enum):
    PENDING = "pending"
    PLAYING = "playing"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class PlaybackItem(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    text: str
    audio: Optional[bytes] = None
    status: PlaybackStatus = PlaybackStatus.PENDING
    interrupted: bool = False
    error: Optional[str] = None


class AudioPlaybackQueue:
    """
    pending -> playing -> done | failed, or -> skipped when interrupted
    before any audio was played.

    `synthesizer` needs `async synthesize(text, voice) -> bytes`, `player`
    needs `async play(bytes) -> bool`, `stop()` and `release()`.
    """

    def __init__(self, synthesizer, player, voice=None, enabled: bool = True):
        self.synthesizer = synthesizer
        self.player = player
        self.voice = voice
        self.enabled = enabled

        self.items: deque[PlaybackItem] = deque()
        self.current: Optional[PlaybackItem] = None
        self._worker: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

        self.played_count = 0
        self.failed_count = 0
        self.skipped_count = 0

    @property
    def is_speaking(self) -> bool:
        """True from enqueue until the worker has drained the queue."""
        return self.current is not None or not self._idle.is_set()

    def enqueue(self, text: str) -> PlaybackItem:
        item = PlaybackItem(text=text)
        self.items.append(item)
        logger.debug(f"Queued playback {item.id} ({len(text)} chars)")
        self._advance()
        return item

    def enable(self):
        self.enabled = True
        self._advance()

    def disable(self):
        """Stop auto-advancing; the current item finishes, pending items stay."""
        self.enabled = False

    def interrupt(self):
        """Stop the current item, drop pending ones and free the output device."""
        for item in self.items:
            item.status = PlaybackStatus.SKIPPED
            self.skipped_count += 1
        skipped = len(self.items)
        self.items.clear()

        if self.current is not None:
            self.current.interrupted = True
        self.player.stop()
        self.player.release()
        logger.info(f"Playback interrupted, {skipped} pending item(s) skipped")

    async def await_playback_end(self):
        """Suspend until nothing is playing and the worker has gone idle."""
        await self._idle.wait()

    async def close(self):
        self.interrupt()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._idle.set()

    def get_statistics(self) -> dict:
        return {
            "played": self.played_count,
            "failed": self.failed_count,
            "skipped": self.skipped_count,
            "pending": len(self.items),
            "enabled": self.enabled,
        }

    # --- worker ---

    def _advance(self):
        if not self.enabled or not self.items:
            return
        if self._worker is None or self._worker.done():
            self._idle.clear()
            self._worker = asyncio.create_task(self._run())

    async def _run(self):
        try:
            while self.enabled and self.items:
                item = self.items.popleft()
                await self._play_item(item)
        finally:
            self.current = None
            self._idle.set()

    async def _play_item(self, item: PlaybackItem):
        self.current = item
        item.status = PlaybackStatus.PLAYING
        try:
            if item.audio is None:
                item.audio = await self.synthesizer.synthesize(item.text, self.voice)
            if item.interrupted:
                # stopped before a single frame was played
                item.status = PlaybackStatus.SKIPPED
                self.skipped_count += 1
                return
            completed = await self.player.play(item.audio)
            item.interrupted = item.interrupted or not completed
            item.status = PlaybackStatus.DONE
            self.played_count += 1
        except Exception as e:
            logger.error(f"Playback {item.id} failed: {e}")
            item.status = PlaybackStatus.FAILED
            item.error = describe_error(e)
            self.failed_count += 1
        finally:
            self.current = None

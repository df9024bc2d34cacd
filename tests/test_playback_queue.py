import asyncio

from pitchperfect.audio.playback_queue import AudioPlaybackQueue, PlaybackStatus
from pitchperfect.utils.error_handlers import ServiceUnavailable


class FakeSynthesizer:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    async def synthesize(self, text, voice=None):
        self.calls.append(text)
        if text in self.fail_on:
            raise ServiceUnavailable("tts down")
        return f"audio:{text}".encode()


class FakePlayer:
    """Plays instantly unless `hold` is set; stop() ends a held clip early."""

    def __init__(self, queue_ref=None, hold=False):
        self.hold = hold
        self.played = []
        self.playing_counts = []
        self.queue_ref = queue_ref
        self.released = 0
        self._stop = asyncio.Event()

    async def play(self, clip):
        if self.queue_ref is not None:
            items = self.queue_ref["items"]
            self.playing_counts.append(sum(1 for i in items if i.status == PlaybackStatus.PLAYING))
        self.played.append(clip)
        if self.hold:
            await self._stop.wait()
            return False
        await asyncio.sleep(0)
        return True

    def stop(self):
        self._stop.set()

    def release(self):
        self.released += 1


async def test_items_play_in_order_one_at_a_time():
    ref = {"items": []}
    player = FakePlayer(queue_ref=ref)
    queue = AudioPlaybackQueue(FakeSynthesizer(), player)

    ref["items"] = [queue.enqueue(text) for text in ("one", "two", "three")]
    await queue.await_playback_end()

    assert player.played == [b"audio:one", b"audio:two", b"audio:three"]
    assert all(count == 1 for count in player.playing_counts)
    assert [i.status for i in ref["items"]] == [PlaybackStatus.DONE] * 3
    assert not queue.is_speaking


async def test_failed_item_is_marked_and_queue_moves_on():
    player = FakePlayer()
    queue = AudioPlaybackQueue(FakeSynthesizer(fail_on={"two"}), player)

    items = [queue.enqueue(text) for text in ("one", "two", "three")]
    await queue.await_playback_end()

    assert [i.status for i in items] == [PlaybackStatus.DONE, PlaybackStatus.FAILED, PlaybackStatus.DONE]
    assert items[1].error
    assert player.played == [b"audio:one", b"audio:three"]
    assert queue.get_statistics()["failed"] == 1


async def test_disabled_queue_keeps_items_pending():
    player = FakePlayer()
    queue = AudioPlaybackQueue(FakeSynthesizer(), player, enabled=False)

    item = queue.enqueue("hello")
    await asyncio.sleep(0)
    assert item.status == PlaybackStatus.PENDING
    assert player.played == []

    queue.enable()
    await queue.await_playback_end()
    assert item.status == PlaybackStatus.DONE


async def test_interrupt_stops_current_and_skips_pending():
    player = FakePlayer(hold=True)
    queue = AudioPlaybackQueue(FakeSynthesizer(), player)

    first = queue.enqueue("first")
    second = queue.enqueue("second")
    third = queue.enqueue("third")
    for _ in range(5):
        await asyncio.sleep(0)
    assert first.status == PlaybackStatus.PLAYING
    assert queue.is_speaking

    queue.interrupt()
    await queue.await_playback_end()

    assert first.status == PlaybackStatus.DONE
    assert first.interrupted
    assert second.status == PlaybackStatus.SKIPPED
    assert third.status == PlaybackStatus.SKIPPED
    assert player.released == 1
    assert player.played == [b"audio:first"]
    assert not queue.is_speaking


async def test_enqueue_after_idle_starts_again():
    player = FakePlayer()
    queue = AudioPlaybackQueue(FakeSynthesizer(), player)

    queue.enqueue("one")
    await queue.await_playback_end()
    queue.enqueue("two")
    await queue.await_playback_end()

    assert player.played == [b"audio:one", b"audio:two"]


class HeldSynthesizer:
    """Synthesis that only finishes once `done` is set."""

    def __init__(self):
        self.done = asyncio.Event()

    async def synthesize(self, text, voice=None):
        await self.done.wait()
        return f"audio:{text}".encode()


async def test_interrupt_during_synthesis_skips_item():
    synthesizer = HeldSynthesizer()
    player = FakePlayer()
    queue = AudioPlaybackQueue(synthesizer, player)

    item = queue.enqueue("never heard")
    for _ in range(3):
        await asyncio.sleep(0)
    assert item.status == PlaybackStatus.PLAYING

    queue.interrupt()
    synthesizer.done.set()
    await queue.await_playback_end()

    assert item.status == PlaybackStatus.SKIPPED
    assert item.interrupted
    assert player.played == []
    stats = queue.get_statistics()
    assert stats["played"] == 0
    assert stats["skipped"] == 1


async def test_pending_item_counts_as_speaking():
    queue = AudioPlaybackQueue(FakeSynthesizer(), FakePlayer())

    queue.enqueue("hello")
    assert queue.is_speaking
    await queue.await_playback_end()
    assert not queue.is_speaking


async def test_disabled_queue_with_pending_items_is_not_speaking():
    queue = AudioPlaybackQueue(FakeSynthesizer(), FakePlayer(), enabled=False)
    queue.enqueue("later")
    assert not queue.is_speaking

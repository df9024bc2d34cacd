import pytest
from pydantic import ValidationError

from pitchperfect.clients.elevenlabs_client import SpeechSynthesisClient, VoiceParameters
from pitchperfect.utils.error_handlers import (
    EmptyAudioReceived,
    RateLimited,
    ServiceUnavailable,
    TextTooLong,
    Unauthorized,
)

from conftest import FakeResponse, FakeSession


async def test_synthesize_posts_voice_settings():
    session = FakeSession(FakeResponse(200, body=b"ID3fake-mp3"))
    client = SpeechSynthesisClient(session=session)
    voice = VoiceParameters(voice_id="voice123", stability=0.3, similarity_boost=0.9, style=0.1, speaker_boost=False)

    audio = await client.synthesize("Welcome to the interview.", voice)

    assert audio == b"ID3fake-mp3"
    url, kwargs = session.calls[0]
    assert url.endswith("/text-to-speech/voice123")
    assert kwargs["headers"]["Accept"] == "audio/mpeg"
    assert kwargs["headers"]["xi-api-key"]
    assert kwargs["json"] == {
        "text": "Welcome to the interview.",
        "model_id": "eleven_monolingual_v1",
        "voice_settings": {
            "stability": 0.3,
            "similarity_boost": 0.9,
            "style": 0.1,
            "use_speaker_boost": False,
        },
    }


async def test_default_voice_parameters():
    voice = VoiceParameters()
    assert voice.voice_id == "pNInz6obpgDQGcFmaJgB"
    assert voice.stability == 0.5
    assert voice.similarity_boost == 0.8
    assert voice.style == 0.0
    assert voice.speaker_boost is True


def test_voice_parameters_are_bounded():
    with pytest.raises(ValidationError):
        VoiceParameters(stability=1.5)


async def test_long_text_rejected_locally_and_not_truncated():
    session = FakeSession()
    client = SpeechSynthesisClient(session=session)

    with pytest.raises(TextTooLong):
        await client.synthesize("a" * 5001)
    assert session.calls == []


async def test_text_at_limit_is_sent_whole():
    session = FakeSession(FakeResponse(200, body=b"audio"))
    client = SpeechSynthesisClient(session=session)

    await client.synthesize("a" * 5000)
    assert len(session.calls[0][1]["json"]["text"]) == 5000


async def test_empty_payload():
    session = FakeSession(FakeResponse(200, body=b""))
    client = SpeechSynthesisClient(session=session)

    with pytest.raises(EmptyAudioReceived):
        await client.synthesize("Hello")


@pytest.mark.parametrize("status,error", [
    (429, RateLimited),
    (401, Unauthorized),
    (500, ServiceUnavailable),
])
async def test_status_mapping(status, error):
    session = FakeSession(FakeResponse(status, text="nope"))
    client = SpeechSynthesisClient(session=session)

    with pytest.raises(error):
        await client.synthesize("Hello")
    assert len(session.calls) == 1

import asyncio

import pytest

from lio_agent.agent.media import MediaSynthesizer, estimate_duration_ms
from lio_agent.agent.reply import CAP_WARNING, ReplyAssembler, ReplyHandle, ReplyHandleUsedError
from lio_agent.bus.events import AudioMessage, ImageMessage, TextMessage
from lio_agent.providers.speech import SpeechClip


class _Speech:
    def __init__(self, audio: bytes | None):
        self.audio = audio
        self.voices: list[str | None] = []

    async def synthesize(self, text, voice=None):
        self.voices.append(voice)
        return SpeechClip(audio=self.audio) if self.audio is not None else None


class _Images:
    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()

    async def generate(self, prompt):
        if prompt in self.failing:
            raise RuntimeError("content policy")
        return b"\x89PNG" + prompt.encode()


class _Uploader:
    def __init__(self):
        self.names: list[str] = []

    async def upload_file(self, content, name):
        self.names.append(name)
        return f"https://cdn.example.com/{name}"


class _Recorder:
    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple[str, list[dict]]] = []
        self.error = error

    async def __call__(self, token, messages):
        self.calls.append((token, messages))
        if self.error:
            raise self.error


def test_estimate_duration_ms():
    assert estimate_duration_ms(160 * 1024) == 10000
    assert estimate_duration_ms(0) == 1000
    assert estimate_duration_ms(8 * 1024) == 1000


def test_synthesize_voice_and_images_in_order():
    uploader = _Uploader()
    synth = MediaSynthesizer(_Speech(b"a" * 32 * 1024), _Images(), uploader)

    media = asyncio.run(synth.synthesize("你好", ["cat", "dog"], voice="Roger", prefix="tok"))

    assert isinstance(media.audio, AudioMessage)
    assert media.audio.duration == 2000
    assert [type(m) for m in media.images] == [ImageMessage, ImageMessage]
    assert media.images[0].original_content_url == media.images[0].preview_image_url
    assert all(name.startswith("tok-") for name in uploader.names)
    assert any(name.endswith(".mp3") for name in uploader.names)
    assert sum(name.endswith(".png") for name in uploader.names) == 2


def test_synthesize_falls_back_per_item():
    synth = MediaSynthesizer(_Speech(None), _Images(failing={"bad"}), _Uploader())

    media = asyncio.run(synth.synthesize("說這句", ["good", "bad"]))

    assert isinstance(media.audio, TextMessage)
    assert media.audio.text == (
        "⚠️ Sorry, I couldn't generate the voice message. "
        "Here's what I wanted to say: \"說這句\""
    )
    assert isinstance(media.images[0], ImageMessage)
    assert media.images[1].text == "⚠️ Sorry, I couldn't generate the requested image for prompt: \"bad\"."


def test_synthesize_skips_voice_without_narration():
    speech = _Speech(b"abc")
    media = asyncio.run(MediaSynthesizer(speech, _Images(), _Uploader()).synthesize("", []))

    assert media.audio is None
    assert media.images == []
    assert speech.voices == []


def test_assemble_orders_text_audio_images_with_quote_token():
    batch = ReplyAssembler().assemble(
        "好的",
        AudioMessage("https://a/v.mp3", 1000),
        [ImageMessage("https://a/1.png", "https://a/1.png")],
        quote_token="q-1",
    )

    lines = [m.to_line() for m in batch]
    assert [m["type"] for m in lines] == ["text", "audio", "image"]
    assert lines[0]["quoteToken"] == "q-1"


def test_dispatch_over_cap_sends_single_warning():
    recorder = _Recorder()
    handle = ReplyHandle("reply-token", recorder)
    batch = [TextMessage(text=f"m{i}") for i in range(6)]

    result = asyncio.run(ReplyAssembler().dispatch(handle, batch))

    assert result.status == "capped"
    assert len(recorder.calls) == 1
    assert recorder.calls[0][1] == [{"type": "text", "text": CAP_WARNING}]


def test_dispatch_exactly_five_messages_is_sent():
    recorder = _Recorder()
    batch = [TextMessage(text=f"m{i}") for i in range(5)]

    result = asyncio.run(ReplyAssembler().dispatch(ReplyHandle("t", recorder), batch))

    assert result.status == "sent"
    assert len(recorder.calls[0][1]) == 5


def test_dispatch_empty_batch_makes_no_call():
    recorder = _Recorder()
    handle = ReplyHandle("t", recorder)

    result = asyncio.run(ReplyAssembler().dispatch(handle, []))

    assert result.status == "empty"
    assert recorder.calls == []
    assert handle.used is False


def test_dispatch_platform_error_is_reported_not_raised():
    recorder = _Recorder(error=RuntimeError("400 invalid reply token"))

    result = asyncio.run(ReplyAssembler().dispatch(ReplyHandle("t", recorder), [TextMessage(text="hi")]))

    assert result.status == "failed"
    assert "invalid reply token" in result.error
    assert result.delivered is False


def test_reply_handle_is_single_use():
    recorder = _Recorder()
    handle = ReplyHandle("t", recorder)

    async def _twice():
        await handle.send([TextMessage(text="one")])
        with pytest.raises(ReplyHandleUsedError):
            await handle.send([TextMessage(text="two")])

    asyncio.run(_twice())
    assert len(recorder.calls) == 1

import wave
from io import BytesIO

from conftest import png_bytes
from src.services.contracts import VideoDetails, VideoMetadata, collect_visuals, wrap_pcm_as_wav
from src.video.timeline_schema import VisualAsset, VisualKind
from src.video.utils import get_media_duration


class _FakeImageSynth:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate_image(self, prompt: str) -> bytes:
        self.prompts.append(prompt)
        return png_bytes((0, 0, 0))


def test_wrap_pcm_as_wav_writes_voice_format_header() -> None:
    wav_bytes = wrap_pcm_as_wav(b"\x00\x00" * 24000)

    assert wav_bytes[:4] == b"RIFF"
    with wave.open(BytesIO(wav_bytes), "rb") as handle:
        assert handle.getframerate() == 24000
        assert handle.getnchannels() == 1
        assert handle.getsampwidth() == 2
        assert handle.getnframes() == 24000


def test_wrapped_pcm_duration_is_readable(tmp_path) -> None:
    path = tmp_path / "voice.wav"
    path.write_bytes(wrap_pcm_as_wav(b"\x00\x00" * 36000))

    assert get_media_duration(path) == 1.5


def test_collect_visuals_keeps_uploaded_visuals() -> None:
    uploaded = [VisualAsset(name="mine.png", media=png_bytes((1, 1, 1)), mime_type="image/png")]
    synth = _FakeImageSynth()

    assert collect_visuals(uploaded, ["a prompt"], synth) == uploaded
    assert synth.prompts == []


def test_collect_visuals_generates_one_image_per_prompt() -> None:
    synth = _FakeImageSynth()
    statuses: list[str] = []

    visuals = collect_visuals([], ["A misty harbour at dawn with fishing boats", "Close-up"], synth, statuses.append)

    assert [visual.name for visual in visuals] == ["AI: A misty harbour at dawn w...", "AI: Close-up..."]
    assert all(visual.kind is VisualKind.IMAGE for visual in visuals)
    assert statuses == ["Generating image 1/2...", "Generating image 2/2..."]


def test_video_details_extends_metadata() -> None:
    details = VideoDetails(title="T", tags=["history"], script='"Hi."', voice="Kore")

    assert isinstance(details, VideoMetadata)
    assert details.audio is None
    assert details.image_prompts == []

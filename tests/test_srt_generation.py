from src.video.captions import build_srt_from_captions, write_srt_file
from src.video.timeline_schema import Caption


def _sample_captions() -> list[Caption]:
    return [
        Caption(text="First", start=0.0, end=1.5),
        Caption(text="Second", start=1.5, end=3.5),
        Caption(text="Third", start=3.5, end=6.5),
    ]


def test_build_srt_from_captions_writes_one_cue_per_caption() -> None:
    srt_text = build_srt_from_captions(_sample_captions())

    assert "1\n00:00:00,000 --> 00:00:01,500\nFirst" in srt_text
    assert "2\n00:00:01,500 --> 00:00:03,500\nSecond" in srt_text
    assert "3\n00:00:03,500 --> 00:00:06,500\nThird" in srt_text
    assert srt_text.count(" --> ") == 3


def test_build_srt_from_captions_empty_is_empty_string() -> None:
    assert build_srt_from_captions([]) == ""


def test_write_srt_file_writes_all_cues(tmp_path) -> None:
    out_path = write_srt_file(tmp_path / "subs" / "captions.srt", _sample_captions())

    content = out_path.read_text(encoding="utf-8")
    assert content.count(" --> ") == 3
    assert "Third" in content

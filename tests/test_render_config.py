from src.config import RenderConfig, get_secret, resolve_render_config


def _reader(values: dict[str, str]):
    return lambda name, default="": values.get(name, default)


def test_get_secret_checks_case_variants(monkeypatch) -> None:
    monkeypatch.delenv("render_video_codec", raising=False)
    monkeypatch.setenv("RENDER_VIDEO_CODEC", "libvpx-vp9")

    assert get_secret("render_video_codec") == "libvpx-vp9"


def test_get_secret_rejects_placeholders(monkeypatch) -> None:
    monkeypatch.setenv("RENDER_CAPTION_FONT", "PASTE_FONT_HERE")

    assert get_secret("RENDER_CAPTION_FONT", "fallback") == "fallback"


def test_render_config_defaults_match_fixed_geometry() -> None:
    config = RenderConfig()

    assert (config.width, config.height, config.fps, config.fade_frames) == (1280, 720, 30, 15)
    assert config.mime_type == "video/webm"
    assert config.realtime is False


def test_resolve_render_config_applies_overrides() -> None:
    config = resolve_render_config(
        _reader({"render_video_codec": "libvpx-vp9", "render_realtime": "yes", "render_encoder_timeout_sec": "30"})
    )

    assert config.video_codec == "libvpx-vp9"
    assert config.realtime is True
    assert config.encoder_timeout_sec == 30.0
    assert config.width == 1280


def test_resolve_render_config_ignores_bad_timeout() -> None:
    config = resolve_render_config(_reader({"render_encoder_timeout_sec": "soon"}))

    assert config.encoder_timeout_sec == 120.0

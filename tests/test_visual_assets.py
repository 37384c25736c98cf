import asyncio
import base64

import pytest
from PIL import Image

from conftest import png_bytes
from src.video.assets import LoadedClip, LoadedImage, cover_fit, decode_visual, load_visuals
from src.video.errors import AssetLoadError
from src.video.timeline_schema import VisualAsset, VisualKind


def test_visual_asset_kind_comes_from_declared_mime_type() -> None:
    image = VisualAsset(name="a.png", media=b"not really a png", mime_type="image/png")
    clip = VisualAsset(name="b.mp4", media=b"", mime_type="video/mp4")

    assert image.kind is VisualKind.IMAGE
    assert clip.kind is VisualKind.MOTION_CLIP


def test_visual_asset_from_data_url_decodes_payload() -> None:
    payload = png_bytes((10, 20, 30))
    data_url = "data:image/png;base64," + base64.b64encode(payload).decode("ascii")

    asset = VisualAsset.from_data_url("upload.png", data_url)

    assert asset.media == payload
    assert asset.kind is VisualKind.IMAGE


def test_visual_asset_from_data_url_treats_video_prefix_as_clip() -> None:
    asset = VisualAsset.from_data_url("clip", "data:video/webm;base64," + base64.b64encode(b"xyz").decode())

    assert asset.kind is VisualKind.MOTION_CLIP


def test_visual_asset_from_data_url_rejects_unknown_category() -> None:
    with pytest.raises(AssetLoadError, match="notes.txt"):
        VisualAsset.from_data_url("notes.txt", "data:text/plain;base64,aGk=")


def test_visual_asset_from_path_reads_file(tmp_path) -> None:
    path = tmp_path / "s01.png"
    path.write_bytes(png_bytes((1, 2, 3)))

    asset = VisualAsset.from_path(path)

    assert asset.name == "s01.png"
    assert asset.mime_type == "image/png"


def test_visual_asset_from_path_missing_file_names_asset(tmp_path) -> None:
    with pytest.raises(AssetLoadError, match="missing.png"):
        VisualAsset.from_path(tmp_path / "missing.png")


def test_cover_fit_fills_frame_without_letterboxing() -> None:
    tall = Image.new("RGB", (100, 400), color=(200, 0, 0))

    covered = cover_fit(tall, (1280, 720))

    assert covered.size == (1280, 720)
    assert covered.getpixel((0, 0)) == (200, 0, 0)
    assert covered.getpixel((1279, 719)) == (200, 0, 0)


def test_cover_fit_crops_centre_of_wide_source() -> None:
    wide = Image.new("RGB", (400, 100), color=(0, 0, 255))
    for x in range(150, 250):
        for y in range(100):
            wide.putpixel((x, y), (0, 255, 0))

    covered = cover_fit(wide, (160, 90))

    assert covered.size == (160, 90)
    assert covered.getpixel((80, 45)) == (0, 255, 0)


def test_decode_visual_returns_image_variant(tmp_path) -> None:
    asset = VisualAsset(name="s01.png", media=png_bytes((5, 6, 7), size=(64, 32)), mime_type="image/png")

    loaded = decode_visual(asset, tmp_path)

    assert isinstance(loaded, LoadedImage)
    assert loaded.size == (64, 32)


def test_decode_visual_with_bad_image_raises_asset_load_error(tmp_path) -> None:
    asset = VisualAsset(name="broken.png", media=b"garbage", mime_type="image/png")

    with pytest.raises(AssetLoadError, match="broken.png"):
        decode_visual(asset, tmp_path)


def test_load_visuals_preserves_order(tmp_path) -> None:
    assets = [
        VisualAsset(name=f"s{i}.png", media=png_bytes((i, i, i)), mime_type="image/png")
        for i in range(4)
    ]

    loaded = asyncio.run(load_visuals(assets, tmp_path))

    assert [visual.name for visual in loaded] == ["s0.png", "s1.png", "s2.png", "s3.png"]


def test_load_visuals_fails_whole_batch_on_single_failure(tmp_path) -> None:
    assets = [
        VisualAsset(name="good.png", media=png_bytes((9, 9, 9)), mime_type="image/png"),
        VisualAsset(name="bad.png", media=b"\x00\x01", mime_type="image/png"),
    ]

    with pytest.raises(AssetLoadError, match="bad.png") as excinfo:
        asyncio.run(load_visuals(assets, tmp_path))
    assert excinfo.value.asset_name == "bad.png"


def test_decode_visual_clip_plays_and_rewinds(tmp_path, ffmpeg_exe) -> None:
    import imageio_ffmpeg

    clip_path = tmp_path / "clip.mp4"
    writer = imageio_ffmpeg.write_frames(str(clip_path), (64, 48), fps=30, ffmpeg_log_level="error")
    writer.send(None)
    for value in range(0, 250, 25):
        writer.send(Image.new("RGB", (64, 48), color=(value, 0, 0)).tobytes())
    writer.close()
    asset = VisualAsset(name="clip.mp4", media=clip_path.read_bytes(), mime_type="video/mp4")

    workdir = tmp_path / "work"
    workdir.mkdir()
    loaded = decode_visual(asset, workdir, index=0)

    assert isinstance(loaded, LoadedClip)
    assert loaded.size == (64, 48)
    surface = Image.new("RGB", (32, 24))
    loaded.play()
    for _ in range(5):
        loaded.draw(surface)
    assert surface.getpixel((16, 12))[0] > loaded.poster.getpixel((32, 24))[0]

    loaded.pause()
    loaded.rewind()
    loaded.draw(surface)
    assert abs(surface.getpixel((16, 12))[0] - loaded.poster.getpixel((32, 24))[0]) <= 8

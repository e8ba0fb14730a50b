import base64

import pytest

from bedrock_kit.content import (
    DocumentBlock,
    ImageBlock,
    TextBlock,
    VideoBlock,
    block_from_wire,
    encode_attachment,
)
from bedrock_kit.errors import (
    BuildError,
    ReadFailure,
    UnsupportedCombinationError,
    UnsupportedKindError,
    UnsupportedOutputModality,
)
from bedrock_kit.files import classify


def test_local_image_is_inlined(tmp_path):
    img = tmp_path / "cat.png"
    img.write_bytes(b"\x89PNG fake")
    block = encode_attachment(classify(str(img)))
    assert block == ImageBlock(format="png", data=base64.b64encode(b"\x89PNG fake").decode())
    assert block.raw_bytes() == b"\x89PNG fake"


def test_jpg_uses_wire_format_jpeg(tmp_path):
    img = tmp_path / "dog.JPG"
    img.write_bytes(b"jpeg")
    block = encode_attachment(str(img))
    assert block.format == "jpeg"


def test_local_video_is_inlined(tmp_path):
    vid = tmp_path / "clip.3gp"
    vid.write_bytes(b"video")
    block = encode_attachment(str(vid))
    assert isinstance(block, VideoBlock)
    assert block.format == "three_gp"
    assert block.s3_uri is None
    assert block.to_wire() == {
        "video": {"format": "three_gp", "source": {"bytes": base64.b64encode(b"video").decode()}}
    }


def test_s3_video_is_sent_by_reference(monkeypatch):
    def fail_read(path):
        raise AssertionError("s3 videos must not be read")

    monkeypatch.setattr("bedrock_kit.content.read_bytes", fail_read)
    block = encode_attachment("s3://bucket/movie.webm")
    assert block == VideoBlock(format="webm", s3_uri="s3://bucket/movie.webm")
    assert block.to_wire() == {
        "video": {
            "format": "webm",
            "source": {"s3Location": {"uri": "s3://bucket/movie.webm"}},
        }
    }


def test_document_carries_stem_as_name(tmp_path):
    doc = tmp_path / "quarterly report.pdf"
    doc.write_bytes(b"%PDF-1.4")
    block = encode_attachment(str(doc))
    assert isinstance(block, DocumentBlock)
    assert block.name == "quarterly report"
    assert block.to_wire()["document"]["name"] == "quarterly report"
    assert block.to_wire()["document"]["format"] == "pdf"


@pytest.mark.parametrize("uri", ["s3://bucket/cat.png", "s3://bucket/notes.pdf"])
def test_s3_only_allowed_for_video(uri):
    with pytest.raises(UnsupportedCombinationError) as exc:
        encode_attachment(uri)
    assert exc.value.path == uri
    assert isinstance(exc.value, BuildError)


def test_unsupported_kind_echoes_path():
    with pytest.raises(UnsupportedKindError) as exc:
        encode_attachment("notes.xyz")
    assert exc.value.path == "notes.xyz"
    assert "notes.xyz" in str(exc.value)


def test_missing_file_is_read_failure(tmp_path):
    missing = tmp_path / "gone.png"
    with pytest.raises(ReadFailure) as exc:
        encode_attachment(str(missing))
    assert exc.value.path == str(missing)


def test_video_block_needs_exactly_one_source():
    with pytest.raises(ValueError):
        VideoBlock(format="mp4")
    with pytest.raises(ValueError):
        VideoBlock(format="mp4", data="AA==", s3_uri="s3://b/k.mp4")


def test_block_from_wire_maps_known_tags():
    assert block_from_wire({"text": "hi"}) == TextBlock("hi")
    assert block_from_wire(
        {"image": {"format": "gif", "source": {"bytes": "R0lG"}}}
    ) == ImageBlock("gif", "R0lG")
    assert block_from_wire(
        {"video": {"format": "mp4", "source": {"s3Location": {"uri": "s3://b/v.mp4"}}}}
    ) == VideoBlock("mp4", s3_uri="s3://b/v.mp4")


def test_block_from_wire_rejects_unknown_tag():
    with pytest.raises(UnsupportedOutputModality) as exc:
        block_from_wire({"toolUse": {"name": "get_weather"}})
    assert exc.value.kind == "toolUse"


def test_block_from_wire_rejects_malformed_block():
    with pytest.raises(ValueError):
        block_from_wire({"image": {"format": "png"}})
    with pytest.raises(ValueError):
        block_from_wire({"text": "a", "image": {}})

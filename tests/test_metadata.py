"""
Metadata Embedder Tests
=======================

Embedding the editing state as a zTXt chunk before IEND and reading it back.
"""

import io
import json
import zlib

import pytest
from PIL import Image

from vision_canvas.models.canvas_models import CanvasConfig, ExportDocument, TextElement
from vision_canvas.png import metadata
from vision_canvas.png.chunk_codec import MalformedContainer, find_terminator, iter_chunks, make_chunk


@pytest.fixture
def png():
    buffer = io.BytesIO()
    Image.new("RGB", (64, 32), (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def document():
    text = "héllo 🙂  two  spaces"
    return ExportDocument(
        settings=CanvasConfig(width_tokens=2, height_tokens=1, font_size=12, char_wrap=True),
        text_elements=[TextElement(text=text, font_size=12)],
        current_text=text,
        exported_at="2024-05-01T12:00:00.000Z"
    )


def test_round_trip(png, document):
    out = metadata.embed(png, document)
    assert metadata.extract(out) == document


def test_round_trip_is_byte_exact(png, document):
    out = metadata.embed(png, document)
    text = metadata.extract_json(out)
    assert text == metadata.canonical_json(document)
    assert metadata.canonical_json(metadata.extract(out)) == text


def test_json_uses_export_field_names(png, document):
    raw = json.loads(metadata.extract_json(metadata.embed(png, document)))
    assert list(raw) == ["settings", "textElements", "currentText", "exportedAt"]
    assert raw["settings"] == {
        "widthTokens": 2, "heightTokens": 1, "pixelSize": 32, "fontSize": 12, "charWrap": True
    }
    assert raw["textElements"][0] == {
        "id": "main-text",
        "text": document.current_text,
        "x": 2,
        "y": 2,
        "fontSize": 12,
        "color": "#000000",
        "fontWeight": "normal",
    }


def test_chunk_is_spliced_before_iend(png, document):
    out = metadata.embed(png, document)
    terminator = find_terminator(png)

    assert out[:terminator] == png[:terminator]
    assert out.endswith(png[terminator:])

    chunks = list(iter_chunks(out))
    assert chunks[-1].type == b"IEND"
    assert chunks[-2].type == b"zTXt"
    assert len(chunks) == len(list(iter_chunks(png))) + 1


def test_chunk_payload_header(png, document):
    out = metadata.embed(png, document)
    chunk = list(iter_chunks(out))[-2]
    assert chunk.data.startswith(b"vision-canvas-state\x00\x00")

    compressed = chunk.data[len(b"vision-canvas-state\x00\x00"):]
    assert zlib.decompress(compressed).decode("utf-8") == metadata.canonical_json(document)


def test_standard_decoder_still_reads_image(png, document):
    out = metadata.embed(png, document)
    image = Image.open(io.BytesIO(out))
    image.load()
    assert image.size == (64, 32)
    # Pillow exposes zTXt values decoded as latin-1
    embedded = image.text["vision-canvas-state"].encode("latin-1")
    assert embedded == metadata.canonical_json(document).encode("utf-8")


def test_embed_without_iend_fails(png, document):
    with pytest.raises(MalformedContainer):
        metadata.embed(png[:find_terminator(png)], document)


def test_embed_rejects_non_png(document):
    with pytest.raises(MalformedContainer):
        metadata.embed(b"not a png at all", document)


def test_extract_without_state_fails(png):
    with pytest.raises(MalformedContainer, match="No embedded"):
        metadata.extract(png)


def _with_chunk(png, payload):
    terminator = find_terminator(png)
    return png[:terminator] + make_chunk(b"zTXt", payload) + png[terminator:]


def test_extract_ignores_other_keywords(png):
    out = _with_chunk(png, b"Comment\x00\x00" + zlib.compress(b"hello"))
    with pytest.raises(MalformedContainer, match="No embedded"):
        metadata.extract(out)


def test_extract_rejects_unknown_compression(png):
    out = _with_chunk(png, b"vision-canvas-state\x00\x01" + zlib.compress(b"{}"))
    with pytest.raises(MalformedContainer, match="compression"):
        metadata.extract(out)


def test_extract_rejects_corrupt_stream(png):
    out = _with_chunk(png, b"vision-canvas-state\x00\x00garbage")
    with pytest.raises(MalformedContainer, match="corrupt"):
        metadata.extract(out)


def test_extract_rejects_foreign_json(png):
    out = _with_chunk(png, b"vision-canvas-state\x00\x00" + zlib.compress(b'{"hello": 1}'))
    with pytest.raises(MalformedContainer, match="not a canvas document"):
        metadata.extract(out)


def test_latest_embedded_state_wins(png, document):
    newer = document.model_copy(update={"current_text": "newer"})
    out = metadata.embed(metadata.embed(png, document), newer)
    assert metadata.extract(out).current_text == "newer"

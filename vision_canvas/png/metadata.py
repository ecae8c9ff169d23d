"""
Metadata Embedder
=================

Stores the canvas editing state inside an exported PNG.

The state document is serialized to compact JSON, deflated at level 9,
and written as a zTXt chunk right before IEND:

    keyword | 0x00 | compression method (0 = deflate) | deflated JSON

Standard decoders skip the ancillary chunk; ``extract`` reads it back.
"""

import json
import logging
import zlib
from typing import Optional

from pydantic import ValidationError

from ..models.canvas_models import ExportDocument
from .chunk_codec import MalformedContainer, find_terminator, iter_chunks, make_chunk

logger = logging.getLogger(__name__)

METADATA_CHUNK_TYPE = b"zTXt"
METADATA_KEYWORD = b"vision-canvas-state"
COMPRESSION_DEFLATE = 0


def canonical_json(document: ExportDocument) -> str:
    """Compact JSON with keys in model order and non-ASCII kept as-is."""
    return json.dumps(document.to_json_dict(), ensure_ascii=False, separators=(",", ":"))


def build_metadata_chunk(document: ExportDocument) -> bytes:
    raw = canonical_json(document).encode("utf-8")
    compressed = zlib.compress(raw, 9)
    payload = METADATA_KEYWORD + b"\x00" + bytes([COMPRESSION_DEFLATE]) + compressed
    logger.info(f"[METADATA] Packed {len(raw)} bytes of state into {len(compressed)} deflated bytes")
    return make_chunk(METADATA_CHUNK_TYPE, payload)


def embed(png: bytes, document: ExportDocument) -> bytes:
    """
    Return ``png`` with ``document`` spliced in before the IEND chunk.

    Chunks before IEND are copied untouched. Raises MalformedContainer
    if the stream has no IEND chunk.
    """
    try:
        terminator = find_terminator(png)
    except MalformedContainer as e:
        logger.error(f"[METADATA] Cannot embed state: {e}")
        raise

    chunk = build_metadata_chunk(document)
    return png[:terminator] + chunk + png[terminator:]


def _find_payload(png: bytes) -> Optional[bytes]:
    found = None
    for chunk in iter_chunks(png):
        if chunk.type != METADATA_CHUNK_TYPE:
            continue
        keyword, sep, rest = chunk.data.partition(b"\x00")
        if sep and keyword == METADATA_KEYWORD:
            found = rest
    return found


def extract_json(png: bytes) -> str:
    """Return the embedded JSON text exactly as it was written."""
    payload = _find_payload(png)
    if payload is None:
        raise MalformedContainer("No embedded canvas state found")
    if not payload or payload[0] != COMPRESSION_DEFLATE:
        raise MalformedContainer("Unsupported compression method in embedded state")

    try:
        return zlib.decompress(payload[1:]).decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as e:
        raise MalformedContainer(f"Embedded state is corrupt: {e}") from e


def extract(png: bytes) -> ExportDocument:
    """Recover the ExportDocument embedded by ``embed``."""
    text = extract_json(png)
    try:
        return ExportDocument.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        raise MalformedContainer(f"Embedded state is not a canvas document: {e}") from e

"""Decoding and sniffing of request payloads."""

import base64
import binascii

from lab_analysis.extraction.exceptions import PayloadDecodeError

PDF_MAGIC = b"%PDF"

_IMAGE_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def decode_payload(payload: bytes | str) -> bytes:
    """Return binary payload bytes.

    Strings are accepted as data URIs (``data:<mime>;base64,<data>``) or bare
    base64.

    Raises:
        PayloadDecodeError: if a string payload is not valid base64.
    """
    if isinstance(payload, bytes):
        return payload
    encoded = payload.strip()
    if encoded.startswith("data:"):
        _, _, encoded = encoded.partition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError(f"payload is not valid base64: {exc}") from exc


def data_uri_mime_type(payload: bytes | str) -> str:
    """Mime type declared by a data URI payload, or an empty string."""
    if isinstance(payload, str) and payload.startswith("data:"):
        header, _, _ = payload.partition(",")
        return header[len("data:"):].split(";", 1)[0]
    return ""


def is_pdf(data: bytes) -> bool:
    return data.lstrip()[:len(PDF_MAGIC)] == PDF_MAGIC


def sniff_image_mime_type(data: bytes) -> str:
    """Detect a raster image format from its signature, or return an empty string."""
    for signature, mime_type in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return ""

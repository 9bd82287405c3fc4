"""Synchronous request checks run before any progress entry or token spend."""

from lab_analysis.extraction.exceptions import PayloadDecodeError
from lab_analysis.extraction.payload import decode_payload, is_pdf, sniff_image_mime_type
from lab_analysis.processor.exceptions import (
    EmptyPayloadError,
    MissingPayloadError,
    PayloadTooLargeError,
    UnsupportedContentError,
)
from lab_analysis.processor.models import AnalysisRequest, ContentKind

SUPPORTED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})


def payload_size(payload: bytes | str) -> int:
    if isinstance(payload, bytes):
        return len(payload)
    return len(payload.encode("utf-8"))


def validate_request(request: AnalysisRequest, max_payload_bytes: int) -> None:
    """Reject requests that can never be analyzed.

    Raises:
        MissingPayloadError: no payload and not a text-only request with notes.
        EmptyPayloadError: the payload is empty or blank.
        UnsupportedContentError: unknown kind, or a format the chain cannot read.
        PayloadTooLargeError: the payload exceeds ``max_payload_bytes``.
    """
    if request.kind is not None and not isinstance(request.kind, ContentKind):
        raise UnsupportedContentError(f"Unsupported content kind: {request.kind!r}")

    payload = request.payload
    if payload is None:
        if request.text_only and request.notes and request.notes.strip():
            return
        raise MissingPayloadError(
            f"Plan {request.plan_id} has no document and no notes to analyze"
        )
    if not isinstance(payload, (bytes, str)):
        raise UnsupportedContentError(
            f"Unsupported payload type: {type(payload).__name__}"
        )
    if not payload or (isinstance(payload, str) and not payload.strip()):
        raise EmptyPayloadError(f"Plan {request.plan_id} has an empty document")

    size = payload_size(payload)
    if size > max_payload_bytes:
        raise PayloadTooLargeError(
            f"Document is {size} bytes, the limit is {max_payload_bytes} bytes"
        )

    if request.kind is ContentKind.RAW_TEXT:
        return

    data = _decode(payload)
    if request.kind is ContentKind.PDF:
        if not is_pdf(data):
            raise UnsupportedContentError("Document declared as PDF is not a PDF file")
        return
    if request.kind is ContentKind.IMAGE:
        declared = request.mime_type.lower()
        if declared and declared not in SUPPORTED_IMAGE_MIME_TYPES:
            raise UnsupportedContentError(f"Unsupported image format: {request.mime_type}")
        if not sniff_image_mime_type(data):
            raise UnsupportedContentError("Document declared as image is not a supported image")
        return
    if not is_pdf(data) and not sniff_image_mime_type(data):
        raise UnsupportedContentError("Document is neither a PDF nor a supported image")


def _decode(payload: bytes | str) -> bytes:
    try:
        return decode_payload(payload)
    except PayloadDecodeError as exc:
        raise UnsupportedContentError(f"Document could not be decoded: {exc}") from exc

import base64

import pytest

from lab_analysis.processor.exceptions import (
    EmptyPayloadError,
    InputError,
    MissingPayloadError,
    PayloadTooLargeError,
    UnsupportedContentError,
)
from lab_analysis.processor.models import AnalysisRequest, ContentKind
from lab_analysis.processor.validation import validate_request

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8
LIMIT = 1000


def _request(**kwargs: object) -> AnalysisRequest:
    return AnalysisRequest(plan_id="p1", tenant_id="acme", **kwargs)  # type: ignore[arg-type]


class TestAcceptedRequests:
    @pytest.mark.parametrize(
        "request_",
        [
            _request(text_only=True, notes="Hemoglobina 9.8 g/dL (ref 12-16)"),
            _request(kind=ContentKind.RAW_TEXT, payload="Glucose 132 mg/dL"),
            _request(kind=ContentKind.PDF, payload=b"%PDF-1.4"),
            _request(kind=ContentKind.IMAGE, payload=PNG, mime_type="image/png"),
            _request(payload=b"%PDF-1.4"),
            _request(payload="data:image/png;base64," + base64.b64encode(PNG).decode()),
        ],
    )
    def test_valid(self, request_: AnalysisRequest) -> None:
        validate_request(request_, LIMIT)


class TestRejectedRequests:
    def test_missing_payload(self) -> None:
        with pytest.raises(MissingPayloadError):
            validate_request(_request(), LIMIT)

    def test_text_only_without_notes(self) -> None:
        with pytest.raises(MissingPayloadError):
            validate_request(_request(text_only=True, notes="   "), LIMIT)

    @pytest.mark.parametrize("payload", [b"", "", "   "])
    def test_empty_payload(self, payload: bytes | str) -> None:
        with pytest.raises(EmptyPayloadError):
            validate_request(_request(kind=ContentKind.PDF, payload=payload), LIMIT)

    def test_unknown_kind(self) -> None:
        with pytest.raises(UnsupportedContentError, match="content kind"):
            validate_request(_request(kind="spreadsheet", payload=b"x"), LIMIT)

    def test_unsupported_payload_type(self) -> None:
        with pytest.raises(UnsupportedContentError, match="payload type"):
            validate_request(_request(kind=ContentKind.PDF, payload=12345), LIMIT)

    def test_payload_too_large(self) -> None:
        with pytest.raises(PayloadTooLargeError):
            validate_request(_request(kind=ContentKind.PDF, payload=b"x" * (LIMIT + 1)), LIMIT)

    def test_unsupported_image_format(self) -> None:
        request = _request(kind=ContentKind.IMAGE, payload=PNG, mime_type="image/tiff")
        with pytest.raises(UnsupportedContentError, match="image format"):
            validate_request(request, LIMIT)

    def test_undecodable_string(self) -> None:
        with pytest.raises(UnsupportedContentError, match="could not be decoded"):
            validate_request(_request(payload="not base64 at all!"), LIMIT)

    def test_unrecognized_binary(self) -> None:
        with pytest.raises(UnsupportedContentError, match="neither a PDF"):
            validate_request(_request(payload=b"plain bytes"), LIMIT)

    def test_all_rejections_are_input_errors(self) -> None:
        with pytest.raises(InputError):
            validate_request(_request(payload=b""), LIMIT)


class TestDeclaredKindMustMatchContent:
    def test_pdf_kind_with_zip_bytes(self) -> None:
        request = _request(kind=ContentKind.PDF, payload=b"PK\x03\x04" + b"\x00" * 26)
        with pytest.raises(UnsupportedContentError, match="not a PDF"):
            validate_request(request, LIMIT)

    def test_pdf_kind_with_base64_pdf(self) -> None:
        payload = base64.b64encode(b"%PDF-1.7\n").decode()
        validate_request(_request(kind=ContentKind.PDF, payload=payload), LIMIT)

    def test_image_kind_without_mime_type_and_text_bytes(self) -> None:
        request = _request(kind=ContentKind.IMAGE, payload=b"not an image at all" * 5)
        with pytest.raises(UnsupportedContentError, match="not a supported image"):
            validate_request(request, LIMIT)

    def test_image_kind_with_supported_mime_type_and_text_bytes(self) -> None:
        request = _request(
            kind=ContentKind.IMAGE, payload=b"not an image at all", mime_type="image/png"
        )
        with pytest.raises(UnsupportedContentError):
            validate_request(request, LIMIT)

    def test_image_kind_without_mime_type_and_png_bytes(self) -> None:
        validate_request(_request(kind=ContentKind.IMAGE, payload=PNG), LIMIT)

    def test_declared_kind_with_undecodable_string(self) -> None:
        request = _request(kind=ContentKind.PDF, payload="%%% not base64 %%%")
        with pytest.raises(UnsupportedContentError, match="could not be decoded"):
            validate_request(request, LIMIT)

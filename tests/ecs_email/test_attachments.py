"""Tests for attachment content-type detection."""

from unittest.mock import patch

import pytest

from ecs_email.attachments import DEFAULT_CONTENT_TYPE, guess_content_type

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PADDING = b"\x00" * 64


class TestContentSniffing:
    @pytest.mark.parametrize(
        "header,expected",
        [
            (b"%PDF-1.7\n%\xe2\xe3", "application/pdf"),
            (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
            (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
            (b"GIF89a\x01\x00", "image/gif"),
            (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/x-wav"),
            (b"ID3\x03\x00\x00\x00\x00\x00\x00", "audio/mpeg"),
            (b"\x1f\x8b\x08\x00", "application/gzip"),
            (b"PK\x03\x04\x14\x00", "application/zip"),
        ],
    )
    def test_detected_from_content(self, header, expected):
        assert guess_content_type(header + PADDING) == expected

    def test_content_beats_misleading_extension(self):
        assert guess_content_type(b"\x89PNG\r\n\x1a\n" + PADDING, "photo.txt") == "image/png"


class TestFallbacks:
    def test_extension_used_when_content_inconclusive(self):
        assert guess_content_type(b"hello world", "notes.txt") == "text/plain"

    def test_unknown(self):
        assert guess_content_type(b"\x00\x01\x02\x03") == DEFAULT_CONTENT_TYPE
        assert guess_content_type(b"\x00\x01", "blob.unknownext") == DEFAULT_CONTENT_TYPE

    def test_empty_data(self):
        assert guess_content_type(b"", "report.pdf") == "application/pdf"
        assert guess_content_type(b"") == DEFAULT_CONTENT_TYPE

    def test_container_prefers_extension(self):
        with patch("ecs_email.attachments.mimetypes.guess_type", return_value=(DOCX_TYPE, None)):
            assert guess_content_type(b"PK\x03\x04\x14\x00" + PADDING, "letter.docx") == DOCX_TYPE

    def test_container_without_name(self):
        assert guess_content_type(b"PK\x03\x04\x14\x00" + PADDING) == "application/zip"

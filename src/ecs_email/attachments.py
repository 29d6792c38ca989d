"""
Attachment content-type detection.

Content is inspected with ``filetype`` first, then the file name extension is
looked up with ``mimetypes``, falling back to application/octet-stream.
"""

import mimetypes

import filetype

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Generic containers; the extension is more precise (e.g. .jar, .msg)
_CONTAINER_TYPES = {"application/zip", "application/x-ole-storage", "application/x-cfb"}


def guess_content_type(data: bytes, filename: str | None = None) -> str:
    """
    Guess the MIME type of attachment content.

    Args:
        data: Raw attachment bytes
        filename: Optional file name used when bytes are inconclusive

    Returns:
        MIME type string, e.g. "application/pdf"

    Example:
        >>> guess_content_type(b"%PDF-1.7 ...")
        'application/pdf'
        >>> guess_content_type(b"hello", "notes.txt")
        'text/plain'
    """
    sniffed = filetype.guess_mime(data) if data else None
    by_name = mimetypes.guess_type(filename)[0] if filename else None

    if sniffed and sniffed in _CONTAINER_TYPES and by_name:
        return by_name
    if sniffed:
        return sniffed
    return by_name or DEFAULT_CONTENT_TYPE


__all__ = ["guess_content_type", "DEFAULT_CONTENT_TYPE"]

"""
Source Resolution
=================
Turns the user's source reference (URL or local path) into something the
remote service can read: an http(s) URL or a validated local PDF.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from docucast.errors import InvalidSourceError

SUPPORTED_SCHEMES = ("http", "https")

# Smallest byte count that can hold a PDF header and trailer
MIN_PDF_BYTES = 25


@dataclass(frozen=True)
class ResolvedSource:
    """A source the remote client can submit."""
    url: Optional[str] = None
    path: Optional[Path] = None

    @property
    def is_remote(self) -> bool:
        return self.url is not None

    def describe(self) -> str:
        return self.url if self.url is not None else str(self.path)


def validate_pdf(file_path: Path) -> None:
    """
    Validate that a file is a readable PDF.

    Args:
        file_path: Path to the PDF file

    Raises:
        InvalidSourceError: If the file is missing, unreadable or not a PDF
    """
    if not file_path.is_file():
        raise InvalidSourceError("File not found", str(file_path))

    try:
        size = file_path.stat().st_size
        if size < MIN_PDF_BYTES:
            raise InvalidSourceError("File too small to be a valid PDF", str(file_path))

        with open(file_path, 'rb') as f:
            header = f.read(8)
            if not header.startswith(b'%PDF-'):
                raise InvalidSourceError("Invalid PDF header", str(file_path))

            # The %%EOF marker lives in the last kilobyte of a complete file
            f.seek(max(0, size - 1024))
            if b'%%EOF' not in f.read():
                raise InvalidSourceError(
                    "Missing PDF EOF marker - file may be truncated", str(file_path)
                )
    except OSError as e:
        raise InvalidSourceError(f"File is not readable: {e}", str(file_path))


def resolve_source(source: Union[str, Path]) -> ResolvedSource:
    """
    Resolve a source reference.

    Strings with a URL scheme must be http(s) with a host; anything else
    is treated as a local PDF path.

    Args:
        source: URL string or filesystem path

    Returns:
        ResolvedSource with either `url` or `path` set

    Raises:
        InvalidSourceError: If the reference cannot be resolved
    """
    if isinstance(source, Path):
        path = source.expanduser()
        validate_pdf(path)
        return ResolvedSource(path=path.resolve())

    text = (source or "").strip()
    if not text:
        raise InvalidSourceError("Source reference is empty")

    parsed = urlparse(text)
    if parsed.scheme and len(parsed.scheme) > 1:
        if parsed.scheme.lower() == "file":
            return resolve_source(Path(parsed.path))
        if parsed.scheme.lower() not in SUPPORTED_SCHEMES:
            raise InvalidSourceError(f"Unsupported URL scheme '{parsed.scheme}'", text)
        if not parsed.netloc:
            raise InvalidSourceError("URL has no host", text)
        return ResolvedSource(url=text)

    # Single-letter schemes are Windows drive letters
    return resolve_source(Path(text))

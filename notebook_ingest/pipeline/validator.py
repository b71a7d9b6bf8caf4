"""Admission checks for candidate sources.

Everything in this module is a pure function of its arguments: no I/O, no
logging, no records.  A rejected candidate never reaches the record store.

File rules, evaluated in order:
    1. Declared media type in the accepted set -> its mapped tag.
    2. Otherwise the filename extension -> its mapped tag.
    3. Neither matches -> "unsupported file type".
    4. Size above the limit -> "exceeds size limit", regardless of step 1-3.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import urlparse

from notebook_ingest.models.pipeline import FileValidation
from notebook_ingest.models.source import SourceType

MAX_FILE_SIZE = 50 * 1024 * 1024  # 52,428,800 bytes

REASON_UNSUPPORTED_TYPE = "unsupported file type"
REASON_TOO_LARGE = "exceeds size limit"

ACCEPTED_MEDIA_TYPES: dict[str, SourceType] = {
    "application/pdf": SourceType.PDF,
    "application/msword": SourceType.TEXT,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": SourceType.TEXT,
    "text/plain": SourceType.TEXT,
    "text/markdown": SourceType.TEXT,
    "audio/mpeg": SourceType.AUDIO,
    "audio/wav": SourceType.AUDIO,
}

ACCEPTED_EXTENSIONS: dict[str, SourceType] = {
    ".pdf": SourceType.PDF,
    ".txt": SourceType.TEXT,
    ".md": SourceType.TEXT,
    ".doc": SourceType.TEXT,
    ".docx": SourceType.TEXT,
    ".mp3": SourceType.AUDIO,
    ".wav": SourceType.AUDIO,
}

_URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)

_YOUTUBE_HOSTS = frozenset({"youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be"})

TEXT_TITLE_MAX_CHARS = 50
DEFAULT_TEXT_TITLE = "Pasted text"


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def detect_source_type(filename: str, content_type: str | None) -> SourceType | None:
    """Map a declared media type, then a filename extension, to a type tag."""
    if content_type:
        # Browsers sometimes append parameters ("text/plain; charset=utf-8").
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type in ACCEPTED_MEDIA_TYPES:
            return ACCEPTED_MEDIA_TYPES[media_type]

    suffix = PurePosixPath(filename).suffix.lower()
    return ACCEPTED_EXTENSIONS.get(suffix)


def validate_file(
    filename: str,
    content_type: str | None,
    size: int,
    max_size: int = MAX_FILE_SIZE,
) -> FileValidation:
    """Decide whether a candidate file may be admitted.

    Parameters
    ----------
    filename:
        Name as submitted by the user.
    content_type:
        Declared media type; may be empty or ``None``.
    size:
        Size in bytes.
    max_size:
        Inclusive upper bound in bytes.

    Returns
    -------
    FileValidation
        ``accepted=True`` with the type tag, or ``accepted=False`` with one
        or more human-readable reasons.
    """
    source_type = detect_source_type(filename, content_type)

    reasons: list[str] = []
    if source_type is None:
        reasons.append(REASON_UNSUPPORTED_TYPE)
    if size > max_size:
        reasons.append(REASON_TOO_LARGE)

    if reasons:
        return FileValidation(filename=filename, accepted=False, reasons=reasons)
    return FileValidation(filename=filename, accepted=True, source_type=source_type)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


def is_valid_url(url: str) -> bool:
    """Return ``True`` when *url* matches ``^https?://.+`` (any case)."""
    return bool(_URL_PATTERN.match(url))


def parse_url_lines(raw_text: str) -> list[str]:
    """Split multi-line input into accepted URLs.

    Lines are stripped; blank and invalid lines are dropped without being
    reported.  Order is preserved.
    """
    accepted: list[str] = []
    for line in raw_text.splitlines():
        candidate = line.strip()
        if candidate and is_valid_url(candidate):
            accepted.append(candidate)
    return accepted


def count_valid_urls(raw_text: str) -> int:
    """Number of lines :func:`parse_url_lines` would accept."""
    return len(parse_url_lines(raw_text))


def _hostname(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def is_youtube_url(url: str) -> bool:
    """Return ``True`` for valid URLs on a YouTube host."""
    if not is_valid_url(url):
        return False
    return _hostname(url).lower() in _YOUTUBE_HOSTS


def domain_label(url: str) -> str:
    """Display title for a link: the hostname without a leading ``www.``."""
    host = _hostname(url)
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


# ---------------------------------------------------------------------------
# Pasted text
# ---------------------------------------------------------------------------


def derive_text_title(content: str) -> str:
    """Title for pasted text: its first non-blank line, at most 50 chars."""
    for line in content.splitlines():
        first_line = line.strip()
        if first_line:
            if len(first_line) > TEXT_TITLE_MAX_CHARS:
                return first_line[:TEXT_TITLE_MAX_CHARS] + "..."
            return first_line
    return DEFAULT_TEXT_TITLE

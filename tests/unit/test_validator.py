"""Unit tests for admission checks in notebook_ingest.pipeline.validator."""

from __future__ import annotations

import pytest

from notebook_ingest.models.source import SourceType
from notebook_ingest.pipeline.validator import (
    DEFAULT_TEXT_TITLE,
    MAX_FILE_SIZE,
    REASON_TOO_LARGE,
    REASON_UNSUPPORTED_TYPE,
    count_valid_urls,
    derive_text_title,
    detect_source_type,
    domain_label,
    is_valid_url,
    is_youtube_url,
    parse_url_lines,
    validate_file,
)

MIB = 1024 * 1024


# ======================================================================
# Files
# ======================================================================


class TestDetectSourceType:
    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("application/pdf", SourceType.PDF),
            ("text/plain", SourceType.TEXT),
            ("text/markdown", SourceType.TEXT),
            ("application/msword", SourceType.TEXT),
            (
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                SourceType.TEXT,
            ),
            ("audio/mpeg", SourceType.AUDIO),
            ("audio/wav", SourceType.AUDIO),
        ],
    )
    def test_declared_media_type(self, content_type: str, expected: SourceType) -> None:
        assert detect_source_type("upload.bin", content_type) == expected

    def test_media_type_parameters_are_ignored(self) -> None:
        assert detect_source_type("x", "text/plain; charset=utf-8") == SourceType.TEXT

    def test_media_type_wins_over_extension(self) -> None:
        assert detect_source_type("song.mp3", "application/pdf") == SourceType.PDF

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("paper.PDF", SourceType.PDF),
            ("readme.md", SourceType.TEXT),
            ("letter.docx", SourceType.TEXT),
            ("memo.doc", SourceType.TEXT),
            ("voice.wav", SourceType.AUDIO),
        ],
    )
    def test_extension_fallback(self, filename: str, expected: SourceType) -> None:
        assert detect_source_type(filename, "application/octet-stream") == expected
        assert detect_source_type(filename, None) == expected

    def test_unknown(self) -> None:
        assert detect_source_type("image.png", "image/png") is None


class TestValidateFile:
    def test_accepts_pdf_under_limit(self) -> None:
        verdict = validate_file("notes.pdf", "application/pdf", 2 * MIB)

        assert verdict.accepted is True
        assert verdict.source_type == SourceType.PDF
        assert verdict.reasons == []
        assert verdict.reason is None

    def test_size_equal_to_limit_is_accepted(self) -> None:
        assert validate_file("notes.pdf", "application/pdf", MAX_FILE_SIZE).accepted is True

    def test_oversized_pdf_is_rejected(self) -> None:
        verdict = validate_file("big.pdf", "application/pdf", 60 * MIB)

        assert verdict.accepted is False
        assert verdict.reasons == [REASON_TOO_LARGE]
        assert verdict.source_type is None

    def test_one_byte_over_limit_is_rejected(self) -> None:
        assert validate_file("a.txt", "text/plain", MAX_FILE_SIZE + 1).accepted is False

    def test_unsupported_type_is_rejected(self) -> None:
        verdict = validate_file("photo.png", "image/png", 10)

        assert verdict.accepted is False
        assert verdict.reasons == [REASON_UNSUPPORTED_TYPE]

    def test_unsupported_and_oversized_reports_both(self) -> None:
        verdict = validate_file("movie.mkv", "video/x-matroska", 60 * MIB)

        assert verdict.reasons == [REASON_UNSUPPORTED_TYPE, REASON_TOO_LARGE]
        assert verdict.reason == f"{REASON_UNSUPPORTED_TYPE}; {REASON_TOO_LARGE}"

    def test_custom_limit(self) -> None:
        assert validate_file("a.txt", "text/plain", 11, max_size=10).accepted is False
        assert validate_file("a.txt", "text/plain", 10, max_size=10).accepted is True

    def test_empty_content_type_uses_extension(self) -> None:
        verdict = validate_file("talk.mp3", "", 1024)

        assert verdict.accepted is True
        assert verdict.source_type == SourceType.AUDIO


# ======================================================================
# URLs
# ======================================================================


class TestUrls:
    @pytest.mark.parametrize(
        "url",
        ["https://example.com", "http://a.b/c?d=e", "HTTPS://EXAMPLE.COM/Path"],
    )
    def test_valid_urls(self, url: str) -> None:
        assert is_valid_url(url) is True

    @pytest.mark.parametrize(
        "url", ["", "example.com", "ftp://example.com", "https://", "not a url"]
    )
    def test_invalid_urls(self, url: str) -> None:
        assert is_valid_url(url) is False

    def test_parse_url_lines_keeps_valid_lines_in_order(self) -> None:
        raw = (
            "https://one.example.com\n"
            "\n"
            "   http://two.example.com/page   \n"
            "not-a-url\n"
            "https://three.example.com/a?b=c\n"
        )

        assert parse_url_lines(raw) == [
            "https://one.example.com",
            "http://two.example.com/page",
            "https://three.example.com/a?b=c",
        ]
        assert count_valid_urls(raw) == 3

    def test_parse_url_lines_all_invalid(self) -> None:
        assert parse_url_lines("foo\nbar\n\n") == []
        assert count_valid_urls("") == 0

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://m.youtube.com/watch?v=abc",
            "http://youtube.com/shorts/abc",
        ],
    )
    def test_youtube_urls(self, url: str) -> None:
        assert is_youtube_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "https://vimeo.com/123",
            "https://notyoutube.com/watch?v=1",
            "youtube.com/watch?v=1",
        ],
    )
    def test_non_youtube_urls(self, url: str) -> None:
        assert is_youtube_url(url) is False

    def test_domain_label_strips_www(self) -> None:
        assert domain_label("https://www.example.com/a/b") == "example.com"
        assert domain_label("https://docs.python.org/3/") == "docs.python.org"


# ======================================================================
# Pasted text
# ======================================================================


class TestDeriveTextTitle:
    def test_first_non_blank_line(self) -> None:
        assert derive_text_title("\n\n  Meeting notes  \nsecond line") == "Meeting notes"

    def test_long_first_line_is_truncated(self) -> None:
        title = derive_text_title("x" * 80)

        assert title == "x" * 50 + "..."

    def test_exactly_fifty_characters_is_kept(self) -> None:
        assert derive_text_title("y" * 50) == "y" * 50

    def test_blank_content_falls_back(self) -> None:
        assert derive_text_title("   \n\t\n") == DEFAULT_TEXT_TITLE

"""Unit tests for GitHub Actions helpers."""

from __future__ import annotations

from pathlib import Path

from tfapply._tf_github import (
    append_github_output,
    error_annotation,
    group_end,
    group_start,
    mask_secret,
    warning_annotation,
)


def test_mask_secret_masks_each_line() -> None:
    masked: list[str] = []
    mask_secret("line1\n\nline2", masked.append)
    assert masked == ["::add-mask::line1", "::add-mask::line2"]


def test_mask_secret_skips_empty() -> None:
    masked: list[str] = []
    mask_secret("", masked.append)
    assert masked == []


def test_annotations_escape_newlines() -> None:
    assert warning_annotation("a\nb") == "::warning::a%0Ab"
    assert error_annotation("100% failed") == "::error::100%25 failed"


def test_group_markers() -> None:
    assert group_start("aws_s3_bucket.logs") == "::group::aws_s3_bucket.logs"
    assert group_end() == "::endgroup::"


def test_append_github_output_single_line(tmp_path: Path) -> None:
    output_file = tmp_path / "out"
    append_github_output(output_file, {"apply_status": "success"})
    assert output_file.read_text(encoding="utf-8") == "apply_status=success\n"


def test_append_github_output_supports_multiline(tmp_path: Path) -> None:
    output_file = tmp_path / "nested" / "out"
    append_github_output(output_file, {"report": "line1\nline2"})
    content = output_file.read_text(encoding="utf-8")
    assert content.startswith("report<<EOF\n"), "Expected heredoc header"
    assert "line1\nline2\nEOF\n" in content, "Expected multiline content"

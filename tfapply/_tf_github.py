"""GitHub Actions helpers for the terraform-apply action."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TextIO


def mask_secret(value: str, stream: Callable[[str], object] = print) -> None:
    """Emit the GitHub Actions secret masking command.

    Parameters
    ----------
    value
        Secret value to mask.
    stream
        Output stream for the masking command (defaults to ``print``).

    Returns
    -------
    None
        Writes one masking command per non-empty line in ``value``.

    Examples
    --------
    >>> mask_secret("token")
    ::add-mask::token
    """
    if not value:
        return
    for line in value.splitlines():
        if line.strip():
            stream(f"::add-mask::{line}")


def _escape_annotation(message: str) -> str:
    """Escape characters GitHub treats specially in workflow commands."""
    return (
        message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    )


def warning_annotation(message: str) -> str:
    """Return a ``::warning::`` workflow command line.

    Examples
    --------
    >>> warning_annotation("No Terraform JSON output found.")
    '::warning::No Terraform JSON output found.'
    """
    return f"::warning::{_escape_annotation(message)}"


def error_annotation(message: str) -> str:
    """Return an ``::error::`` workflow command line.

    Examples
    --------
    >>> error_annotation("terraform apply failed")
    '::error::terraform apply failed'
    """
    return f"::error::{_escape_annotation(message)}"


def group_start(title: str) -> str:
    """Return the marker that opens a collapsible log group."""
    return f"::group::{title}"


def group_end() -> str:
    """Return the marker that closes the current log group."""
    return "::endgroup::"


def _choose_multiline_delimiter(value: str, base: str = "EOF") -> str:
    """Choose a heredoc delimiter that is not present in the value."""
    delimiter = base
    counter = 0
    while delimiter in value:
        counter += 1
        delimiter = f"{base}_{counter}"
    return delimiter


def _write_github_multiline(handle: TextIO, key: str, value: str) -> None:
    """Write a multiline GitHub Actions value using heredoc syntax."""
    delimiter = _choose_multiline_delimiter(value)
    handle.write(f"{key}<<{delimiter}\n")
    handle.write(f"{value}\n")
    handle.write(f"{delimiter}\n")


def _append_github_kv(target_file: Path, items: Mapping[str, str]) -> None:
    """Append key-value pairs to a GitHub Actions metadata file."""
    target_file.parent.mkdir(parents=True, exist_ok=True)
    with target_file.open("a", encoding="utf-8") as handle:
        for key, value in items.items():
            if "\n" in value or "\r" in value:
                _write_github_multiline(handle, key, value)
            else:
                handle.write(f"{key}={value}\n")


def append_github_output(output_file: Path, outputs: Mapping[str, str]) -> None:
    """Append outputs to the ``GITHUB_OUTPUT`` file.

    Parameters
    ----------
    output_file
        Path to the ``GITHUB_OUTPUT`` file.
    outputs
        Outputs to append.

    Returns
    -------
    None
        Writes entries to the ``GITHUB_OUTPUT`` file.

    Examples
    --------
    >>> append_github_output(Path("/tmp/out"), {"apply_status": "success"})
    """
    _append_github_kv(output_file, outputs)

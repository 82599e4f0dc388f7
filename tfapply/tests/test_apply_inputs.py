"""Unit tests for apply input resolution and environment building."""

from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest

from tfapply._apply_inputs import (
    ApplyInputs,
    RawApplyInputs,
    build_terraform_environment,
    materialize_gcp_credentials,
    parse_secrets,
    resolve_apply_inputs,
    resolve_workdir,
)
from tfapply._input_resolution import InputResolution, resolve_input
from tfapply._tf_errors import SecretsInputError, WorkdirError

_INPUT_KEYS = (
    "GITHUB_WORKSPACE",
    "GITHUB_OUTPUT",
    "INPUT_WORKDIR",
    "INPUT_SECRETS",
    "INPUT_PLAN_FILE",
    "INPUT_TERRAFORM_BINARY",
    "INPUT_COMMAND_TIMEOUT",
    "GOOGLE_APPLICATION_CREDENTIALS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in _INPUT_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def _make_inputs(tmp_path: Path, **overrides: object) -> ApplyInputs:
    defaults: dict[str, object] = {
        "workspace": tmp_path,
        "workdir": ".",
        "github_output": tmp_path / "output",
        "plan_file": "tfplan",
        "terraform_binary": "terraform",
        "command_timeout": None,
        "secrets": "{}",
        "google_credentials": None,
    }
    defaults.update(overrides)
    return ApplyInputs(**defaults)


def test_resolve_apply_inputs_defaults(clean_env: pytest.MonkeyPatch) -> None:
    inputs = resolve_apply_inputs(RawApplyInputs())
    assert inputs.workspace == Path(".")
    assert inputs.workdir == "."
    assert inputs.secrets == "{}"
    assert inputs.plan_file == "tfplan"
    assert inputs.terraform_binary == "terraform"
    assert inputs.command_timeout is None
    assert inputs.google_credentials is None


def test_resolve_apply_inputs_from_environment(
    clean_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    clean_env.setenv("GITHUB_WORKSPACE", str(tmp_path))
    clean_env.setenv("GITHUB_OUTPUT", str(tmp_path / "out"))
    clean_env.setenv("INPUT_WORKDIR", "infra")
    clean_env.setenv("INPUT_SECRETS", '{"token": "t"}')
    clean_env.setenv("INPUT_COMMAND_TIMEOUT", "600")
    clean_env.setenv("INPUT_TERRAFORM_BINARY", "tofu")

    inputs = resolve_apply_inputs(RawApplyInputs())
    assert inputs.workspace == tmp_path
    assert inputs.github_output == tmp_path / "out"
    assert inputs.workdir == "infra"
    assert inputs.secrets == '{"token": "t"}'
    assert inputs.command_timeout == 600.0
    assert inputs.terraform_binary == "tofu"


def test_resolve_apply_inputs_cli_override(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("INPUT_WORKDIR", "env-dir")
    inputs = resolve_apply_inputs(RawApplyInputs(workdir="cli-dir"))
    assert inputs.workdir == "cli-dir"


def test_blank_action_inputs_use_defaults(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("INPUT_WORKDIR", "")
    clean_env.setenv("INPUT_SECRETS", "")
    clean_env.setenv("INPUT_COMMAND_TIMEOUT", "")
    inputs = resolve_apply_inputs(RawApplyInputs())
    assert inputs.workdir == "."
    assert inputs.secrets == "{}"
    assert inputs.command_timeout is None


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_invalid_timeout_is_ignored(clean_env: pytest.MonkeyPatch, value: str) -> None:
    inputs = resolve_apply_inputs(RawApplyInputs(command_timeout=value))
    assert inputs.command_timeout is None


def test_resolve_workdir(tmp_path: Path) -> None:
    (tmp_path / "infra").mkdir()
    assert resolve_workdir(tmp_path, "infra") == (tmp_path / "infra").resolve()


def test_resolve_workdir_missing(tmp_path: Path) -> None:
    with pytest.raises(WorkdirError, match="does not exist"):
        resolve_workdir(tmp_path, "absent")


def test_parse_secrets_masks_string_values() -> None:
    masked: list[str] = []
    value = parse_secrets(
        '{"db": {"password": "hunter2"}, "keys": ["k1"], "port": 5432}', masked.append
    )
    assert json.loads(value) == {
        "db": {"password": "hunter2"},
        "keys": ["k1"],
        "port": 5432,
    }
    assert masked == ["::add-mask::hunter2", "::add-mask::k1"]


@pytest.mark.parametrize("raw", ["{broken", "[1, 2]", '"text"'])
def test_parse_secrets_rejects_invalid(raw: str) -> None:
    with pytest.raises(SecretsInputError):
        parse_secrets(raw, lambda _line: None)


def test_materialize_gcp_credentials_writes_key_file(tmp_path: Path) -> None:
    blob = '{"type": "service_account", "project_id": "demo"}'
    lines: list[str] = []

    variables = materialize_gcp_credentials(blob, tmp_path, lines.append)

    key_path = tmp_path / "gcp-credentials.json"
    assert variables == {"GOOGLE_APPLICATION_CREDENTIALS": str(key_path)}
    assert key_path.read_text(encoding="utf-8") == blob
    assert stat.S_IMODE(key_path.stat().st_mode) == 0o600
    assert f"::add-mask::{blob}" in lines


def test_materialize_gcp_credentials_passes_paths_through(tmp_path: Path) -> None:
    variables = materialize_gcp_credentials("/keys/sa.json", tmp_path, lambda _l: None)
    assert variables == {"GOOGLE_APPLICATION_CREDENTIALS": "/keys/sa.json"}
    assert not (tmp_path / "gcp-credentials.json").exists()


def test_materialize_gcp_credentials_warns_when_unset(tmp_path: Path) -> None:
    lines: list[str] = []
    assert materialize_gcp_credentials(None, tmp_path, lines.append) == {}
    assert lines == ["::warning::GOOGLE_APPLICATION_CREDENTIALS is not set."]


def test_build_terraform_environment(tmp_path: Path) -> None:
    inputs = _make_inputs(
        tmp_path,
        secrets='{"api_key": "abc"}',
        google_credentials='{"type": "service_account"}',
        terraform_binary="tofu",
        command_timeout=120.0,
    )
    environment = build_terraform_environment(inputs, lambda _line: None)

    assert environment.binary == "tofu"
    assert environment.timeout == 120.0
    assert environment.variables == {
        "TF_VAR_secrets": '{"api_key":"abc"}',
        "GOOGLE_APPLICATION_CREDENTIALS": str(tmp_path / "gcp-credentials.json"),
    }


def test_parse_secrets_rejects_deeply_nested_payload() -> None:
    raw = '{"a": ' + "[" * 100_000 + "]" * 100_000 + "}"
    with pytest.raises(SecretsInputError, match="nested too deeply"):
        parse_secrets(raw, lambda _line: None)


def test_progress_lines_go_to_the_given_stream(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    inputs = _make_inputs(tmp_path, google_credentials='{"type": "service_account"}')
    lines: list[str] = []

    build_terraform_environment(inputs, lines.append)

    assert "All secrets available as 'TF_VAR_secrets'" in lines
    assert f"Writing GCP credentials to {tmp_path / 'gcp-credentials.json'}" in lines
    assert capsys.readouterr().out == "", "Nothing should bypass the stream"


def test_required_input_exits_when_missing() -> None:
    resolution = InputResolution("INPUT_WORKDIR", required=True)
    with pytest.raises(SystemExit, match="INPUT_WORKDIR is required"):
        resolve_input(None, resolution, env={"INPUT_WORKDIR": "  "})


def test_path_inputs_resolve_to_paths() -> None:
    resolution = InputResolution("GITHUB_OUTPUT", as_path=True)
    resolved = resolve_input(None, resolution, env={"GITHUB_OUTPUT": "/tmp/out"})
    assert resolved == Path("/tmp/out")

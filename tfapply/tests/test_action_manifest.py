"""Structural tests for the terraform-apply composite action."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

ACTION_PATH = Path(__file__).resolve().parents[2] / "action.yml"


def _load_action() -> dict[str, Any]:
    return yaml.safe_load(ACTION_PATH.read_text(encoding="utf-8"))


def test_optional_inputs_have_defaults() -> None:
    """Verify every input is optional with the documented default."""
    inputs = _load_action()["inputs"]

    expected_defaults = {
        "workdir": ".",
        "secrets": "{}",
        "plan_file": "tfplan",
        "terraform_binary": "terraform",
    }

    for input_name, expected_default in expected_defaults.items():
        assert input_name in inputs, f"Missing optional input: {input_name}"
        assert inputs[input_name].get("required", False) is False, (
            f"Input {input_name} should not be required"
        )
        assert inputs[input_name].get("default") == expected_default, (
            f"Input {input_name} should default to {expected_default}"
        )


def test_secrets_input_not_marked_as_secret() -> None:
    """GitHub Actions does not support a 'secret' key on action inputs."""
    inputs = _load_action()["inputs"]
    assert "secret" not in inputs["secrets"]


def test_outputs_are_wired_to_apply_step() -> None:
    outputs = _load_action()["outputs"]

    for output_name in ("apply_status", "resources_changed", "change_details"):
        assert output_name in outputs, f"Missing output: {output_name}"
        assert outputs[output_name]["value"] == (
            f"${{{{ steps.apply.outputs.{output_name} }}}}"
        ), f"Output {output_name} should be wired to the apply step"


def test_apply_step_invokes_script_with_inputs() -> None:
    action = _load_action()
    assert action["runs"]["using"] == "composite"

    apply_step = next(step for step in action["runs"]["steps"] if step.get("id") == "apply")
    assert "tfapply/terraform_apply.py" in apply_step["run"]

    env = apply_step.get("env", {})
    for var in (
        "INPUT_WORKDIR",
        "INPUT_SECRETS",
        "INPUT_PLAN_FILE",
        "INPUT_TERRAFORM_BINARY",
        "INPUT_COMMAND_TIMEOUT",
    ):
        assert var in env, f"Missing environment variable in apply step: {var}"


def test_terraform_wrapper_is_disabled() -> None:
    """The setup-terraform wrapper would corrupt ``show -json`` output."""
    steps = _load_action()["runs"]["steps"]
    setup = next(step for step in steps if "setup-terraform" in step.get("uses", ""))
    assert setup["with"]["terraform_wrapper"] is False

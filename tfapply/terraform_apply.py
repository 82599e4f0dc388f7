#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.13"
# dependencies = ["cyclopts>=2.9", "plumbum>=1.8"]
# ///
"""Apply Terraform configuration and summarize the applied changes.

This script:
- resolves the Terraform working directory under the workspace;
- exports the ``secrets`` input as ``TF_VAR_secrets`` and materializes GCP
  credentials for the Terraform child processes;
- runs terraform init, plan (when no saved plan exists), show, and apply; and
- prints collapsible per-resource change groups and publishes
  ``apply_status``, ``resources_changed``, and ``change_details`` to
  ``$GITHUB_OUTPUT``.

Examples
--------
>>> python tfapply/terraform_apply.py --workdir infra/prod
>>> python tfapply/terraform_apply.py summarize plan.json
"""

from __future__ import annotations

from pathlib import Path

from cyclopts import App, Parameter
from tfapply._apply_flow import publish_change_outputs, run_apply
from tfapply._apply_inputs import RawApplyInputs, resolve_apply_inputs
from tfapply._input_resolution import InputResolution, resolve_input
from tfapply._plan_summary import (
    emit_report,
    summarize_plan_output,
    summarize_unavailable,
)
from tfapply._tf_errors import TerraformApplyError
from tfapply._tf_github import error_annotation

app = App(help="Apply Terraform configuration and summarize the changes.")

WORKDIR_PARAM = Parameter(help="Terraform directory relative to the workspace.")
SECRETS_PARAM = Parameter(help="JSON object exported as TF_VAR_secrets.")
PLAN_FILE_PARAM = Parameter(help="Saved plan file name inside the workdir.")
TERRAFORM_BINARY_PARAM = Parameter(help="Terraform executable name or path.")
COMMAND_TIMEOUT_PARAM = Parameter(help="Timeout in seconds for each command.")
WORKSPACE_PARAM = Parameter(help="GITHUB_WORKSPACE path override.")
GITHUB_OUTPUT_PARAM = Parameter(help="GITHUB_OUTPUT path override.")


@app.default
def main(
    workdir: str | None = WORKDIR_PARAM,
    secrets: str | None = SECRETS_PARAM,
    plan_file: str | None = PLAN_FILE_PARAM,
    terraform_binary: str | None = TERRAFORM_BINARY_PARAM,
    command_timeout: str | None = COMMAND_TIMEOUT_PARAM,
    workspace: Path | None = WORKSPACE_PARAM,
    github_output: Path | None = GITHUB_OUTPUT_PARAM,
) -> int:
    """Run terraform init, plan, and apply, then publish a change summary.

    Inputs not given on the command line are resolved from the action's
    ``INPUT_*`` variables and the runner environment.

    Returns
    -------
    int
        Exit code (0 for success, 1 when any step failed).
    """
    raw_inputs = RawApplyInputs(
        workspace=workspace,
        workdir=workdir,
        github_output=github_output,
        plan_file=plan_file,
        terraform_binary=terraform_binary,
        command_timeout=command_timeout,
        secrets=secrets,
    )
    inputs = resolve_apply_inputs(raw_inputs)

    try:
        outcome = run_apply(inputs)
    except TerraformApplyError as exc:
        print(error_annotation(f"Terraform apply failed: {exc}"))
        return 1

    print(f"\nTerraform apply complete: {outcome.report.summary.total_changed} changes.")
    return 0


@app.command
def summarize(
    plan_json: Path,
    github_output: Path | None = GITHUB_OUTPUT_PARAM,
) -> int:
    """Print the change report for an existing ``terraform show -json`` file.

    Parameters
    ----------
    plan_json
        Path to the saved JSON plan. A missing or undecodable file produces
        a warning and a zero summary rather than an error.
    github_output
        When given (or set via ``GITHUB_OUTPUT``), ``resources_changed`` and
        ``change_details`` are published there.

    Returns
    -------
    int
        Exit code (0 for success, 1 when the details cannot be serialized).
    """
    try:
        raw = plan_json.read_text(encoding="utf-8") if plan_json.is_file() else None
    except (OSError, UnicodeDecodeError) as exc:
        report = summarize_unavailable(f"Could not read {plan_json}: {exc}")
    else:
        report = summarize_plan_output(raw)
    emit_report(report)

    output_path = resolve_input(
        github_output,
        InputResolution(env_key="GITHUB_OUTPUT", as_path=True),
    )
    if output_path is None:
        return 0
    try:
        publish_change_outputs(report, Path(output_path), apply_status=None)
    except TerraformApplyError as exc:
        print(error_annotation(f"Change summary failed: {exc}"))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(app())

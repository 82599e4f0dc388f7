"""Run Terraform init, plan, and apply, then publish a change summary.

This module sequences the Terraform CLI for one working directory and turns
the saved plan's JSON form into the action's console report and outputs. Use
it after inputs have been resolved (typically via
``tfapply/terraform_apply.py``).

Prerequisites
-------------
Terraform (or a compatible binary named by ``terraform_binary``) must be on
the PATH. Provider credentials reach Terraform only through the
:class:`TerraformEnvironment` built from the resolved inputs.

Outputs
-------
``apply_status``, ``resources_changed``, and ``change_details`` are appended
to ``GITHUB_OUTPUT``. The plan's JSON form is also written to
``<workspace>/tfapply.json`` for later steps.

Examples
--------
>>> inputs = resolve_apply_inputs(RawApplyInputs(workdir="infra"))
>>> outcome = run_apply(inputs)
>>> outcome.apply_status
'success'

Side Effects
------------
Terraform commands run one after another in the working directory. A failed
command stops the run; nothing is retried. The GCP key file and
``tfapply.json`` are written under the workspace.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from tfapply._apply_inputs import (
    ApplyInputs,
    build_terraform_environment,
    resolve_workdir,
)
from tfapply._plan_summary import ChangeReport, emit_report, summarize_plan_output
from tfapply._tf_command import (
    terraform_apply,
    terraform_init,
    terraform_plan,
    terraform_show,
    terraform_show_json,
)
from tfapply._tf_errors import TerraformApplyError
from tfapply._tf_github import append_github_output
from tfapply._tf_models import TerraformEnvironment

logger = logging.getLogger(__name__)

APPLY_JSON_FILENAME = "tfapply.json"
APPLY_STATUS_SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class ApplyOutcome:
    """Result of a completed apply."""

    apply_status: str
    report: ChangeReport
    outputs: dict[str, str]


def _print_output(text: str, stream: Callable[[str], object]) -> None:
    if text.strip():
        stream(text.rstrip("\n"))


def ensure_plan(
    workdir: Path,
    environment: TerraformEnvironment,
    plan_file: str,
    stream: Callable[[str], object] = print,
) -> None:
    """Create ``plan_file`` unless a saved plan already exists.

    A plan produced by an earlier workflow step is applied as-is.
    """
    if (workdir / plan_file).exists():
        stream(f"Using existing plan {plan_file}")
        return
    stream("\n--- Running terraform plan ---")
    terraform_plan(workdir, environment, plan_file)
    stream("Plan generated.")


def read_plan_json(
    workdir: Path,
    environment: TerraformEnvironment,
    plan_file: str,
    artifact_path: Path,
) -> str:
    """Return the saved plan's JSON form and keep a copy at ``artifact_path``.

    Empty output is passed through; the summary reports it as unavailable.
    """
    raw = terraform_show_json(workdir, environment, plan_file)
    if not raw.strip():
        logger.warning("terraform show -json produced no output")
    try:
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        artifact_path.write_text(raw, encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to write Terraform JSON output to {artifact_path}: {exc}"
        raise TerraformApplyError(msg) from exc
    return raw


def publish_change_outputs(
    report: ChangeReport,
    github_output: Path,
    apply_status: str | None = APPLY_STATUS_SUCCESS,
) -> dict[str, str]:
    """Append the summary outputs to ``GITHUB_OUTPUT``.

    Serialization happens before anything is written so a
    :class:`~tfapply._tf_errors.ChangeDetailsError` never leaves a partial
    set of outputs behind.

    Examples
    --------
    >>> publish_change_outputs(summarize_plan_output("{}"), Path("/tmp/out"))
    {'resources_changed': '0', 'change_details': '{"create":[],"update":[],"delete":[]}', 'apply_status': 'success'}
    """
    outputs = report.summary.to_outputs()
    if apply_status is not None:
        outputs["apply_status"] = apply_status
    append_github_output(github_output, outputs)
    return outputs


def run_apply(
    inputs: ApplyInputs,
    stream: Callable[[str], object] = print,
) -> ApplyOutcome:
    """Run the full init, plan, show, apply, and summary sequence.

    Parameters
    ----------
    inputs : ApplyInputs
        Normalized action inputs.
    stream : Callable[[str], object], optional
        Console sink for progress lines and the change report.

    Returns
    -------
    ApplyOutcome
        Apply status, change report, and the published outputs.

    Raises
    ------
    TerraformApplyError
        If any step fails; the caller decides how to report it.
    """
    workdir = resolve_workdir(inputs.workspace, inputs.workdir)
    stream(f"Workdir: {workdir}")

    environment = build_terraform_environment(inputs, stream)

    stream("\n--- Running terraform init ---")
    _print_output(terraform_init(workdir, environment).stdout, stream)

    ensure_plan(workdir, environment, inputs.plan_file, stream)

    stream("\n--- Showing terraform plan before apply ---")
    _print_output(terraform_show(workdir, environment, inputs.plan_file).stdout, stream)
    stream("The above plan will be applied now.")

    stream("\n--- Running terraform apply ---")
    _print_output(terraform_apply(workdir, environment, inputs.plan_file).stdout, stream)

    stream("\n--- Extracting applied changes ---")
    raw = read_plan_json(
        workdir,
        environment,
        inputs.plan_file,
        inputs.workspace / APPLY_JSON_FILENAME,
    )
    report = summarize_plan_output(raw)
    emit_report(report, stream)

    outputs = publish_change_outputs(report, inputs.github_output)
    return ApplyOutcome(
        apply_status=APPLY_STATUS_SUCCESS,
        report=report,
        outputs=outputs,
    )

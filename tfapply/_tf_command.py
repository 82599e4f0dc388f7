"""Terraform command helpers for the terraform-apply action.

Every command runs through :func:`run_terraform`, which layers the explicit
:class:`TerraformEnvironment` over the parent environment for the child
process only.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from plumbum import local
from plumbum.commands.processes import CommandNotFound, ProcessTimedOut

from tfapply._tf_errors import TerraformCommandError
from tfapply._tf_models import TerraformEnvironment, TerraformResult

logger = logging.getLogger(__name__)


def _validate_command_args(args: Sequence[str]) -> None:
    """Validate Terraform CLI arguments for safe execution."""
    for arg in args:
        if not isinstance(arg, str):
            msg = f"Terraform argument must be a string, got {type(arg).__name__}"
            raise TypeError(msg)
        if any(char in arg for char in ("\x00", "\n", "\r")):
            msg = "Terraform argument contains an invalid control character"
            raise ValueError(msg)


def run_terraform(
    args: Sequence[str],
    cwd: Path,
    environment: TerraformEnvironment,
) -> TerraformResult:
    """Execute a Terraform command and return the result.

    Parameters
    ----------
    args
        Command arguments (without the binary name).
    cwd
        Working directory for the command.
    environment
        Binary, timeout, and extra variables for the child process.

    Returns
    -------
    TerraformResult
        Result containing success status, output, and return code.

    Raises
    ------
    TerraformCommandError
        If the binary cannot be found or the command times out.

    Examples
    --------
    >>> from pathlib import Path
    >>> run_terraform(["version"], Path("."), TerraformEnvironment()).success
    True
    """
    _validate_command_args([environment.binary, *args])
    try:
        command = local[environment.binary]
    except CommandNotFound as exc:
        msg = f"{environment.binary} executable not found on PATH"
        raise TerraformCommandError(msg) from exc

    merged_env = {**os.environ, **environment.variables}
    logger.debug("running %s %s in %s", environment.binary, " ".join(args), cwd)
    try:
        return_code, stdout, stderr = command[list(args)].run(
            retcode=None,
            cwd=str(cwd),
            env=merged_env,
            timeout=environment.timeout,
        )
    except ProcessTimedOut as exc:
        msg = (
            f"{environment.binary} {args[0] if args else ''} timed out "
            f"after {environment.timeout}s"
        )
        raise TerraformCommandError(msg) from exc

    return TerraformResult(
        success=return_code == 0,
        stdout=stdout or "",
        stderr=stderr or "",
        return_code=return_code,
    )


def _require_success(result: TerraformResult, step: str, cwd: Path) -> TerraformResult:
    """Raise :class:`TerraformCommandError` when ``result`` failed."""
    if result.success:
        return result
    detail = result.stderr.strip() or result.stdout.strip()
    msg = (
        f"terraform {step} failed "
        f"(cwd={cwd}, return_code={result.return_code}): {detail}"
    )
    raise TerraformCommandError(msg)


def terraform_init(cwd: Path, environment: TerraformEnvironment) -> TerraformResult:
    """Run ``terraform init`` without interactive prompts."""
    result = run_terraform(["init", "-input=false"], cwd, environment)
    return _require_success(result, "init", cwd)


def terraform_plan(
    cwd: Path,
    environment: TerraformEnvironment,
    plan_file: str,
) -> TerraformResult:
    """Run ``terraform plan`` and save the plan to ``plan_file``.

    Examples
    --------
    >>> from pathlib import Path
    >>> terraform_plan(Path("infra"), TerraformEnvironment(), "tfplan").success
    True
    """
    result = run_terraform(
        ["plan", "-input=false", f"-out={plan_file}"], cwd, environment
    )
    return _require_success(result, "plan", cwd)


def terraform_show(
    cwd: Path,
    environment: TerraformEnvironment,
    plan_file: str,
) -> TerraformResult:
    """Render the saved plan in Terraform's human-readable form."""
    result = run_terraform(["show", "-no-color", plan_file], cwd, environment)
    return _require_success(result, "show", cwd)


def terraform_apply(
    cwd: Path,
    environment: TerraformEnvironment,
    plan_file: str,
) -> TerraformResult:
    """Apply the saved plan.

    Applying a saved plan never prompts, so no ``-auto-approve`` is needed.
    """
    result = run_terraform(["apply", "-input=false", plan_file], cwd, environment)
    return _require_success(result, "apply", cwd)


def terraform_show_json(
    cwd: Path,
    environment: TerraformEnvironment,
    plan_file: str,
) -> str:
    """Return the saved plan as Terraform's JSON representation.

    The text is returned unparsed; interpreting it is the job of the plan
    summary, which degrades gracefully on malformed output.

    Examples
    --------
    >>> from pathlib import Path
    >>> raw = terraform_show_json(Path("infra"), TerraformEnvironment(), "tfplan")
    >>> "resource_changes" in raw
    True
    """
    result = run_terraform(["show", "-json", plan_file], cwd, environment)
    return _require_success(result, "show -json", cwd).stdout

"""Data models shared by the Terraform runner and the apply flow.

Examples
--------
>>> result = TerraformResult(success=True, stdout="ok", stderr="", return_code=0)
>>> result.success
True
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class TerraformResult:
    """Result of a Terraform command execution.

    Attributes
    ----------
    success
        Whether the command exited with status code ``0``.
    stdout
        Captured standard output.
    stderr
        Captured standard error.
    return_code
        Process exit status code returned by Terraform.

    Examples
    --------
    >>> TerraformResult(success=False, stdout="", stderr="boom", return_code=1).success
    False
    """

    success: bool
    stdout: str
    stderr: str
    return_code: int


@dataclass(frozen=True, slots=True)
class TerraformEnvironment:
    """Explicit environment handed to every Terraform invocation.

    Variables collected here are layered over the parent process environment
    for the child process only; ``os.environ`` itself is never modified.

    Attributes
    ----------
    variables
        Extra environment variables such as ``TF_VAR_secrets``.
    binary
        Name or path of the Terraform executable.
    timeout
        Optional per-command timeout in seconds.

    Examples
    --------
    >>> env = TerraformEnvironment({"TF_VAR_secrets": "{}"})
    >>> env.binary
    'terraform'
    """

    variables: Mapping[str, str] = field(default_factory=dict, repr=False)
    binary: str = "terraform"
    timeout: float | None = None

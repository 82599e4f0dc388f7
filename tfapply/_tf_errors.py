"""Exception hierarchy for the terraform-apply action helpers.

These exceptions provide a domain-specific error surface so the CLI entrypoint
can catch a single base error and report it as one failure annotation.

Examples
--------
>>> raise TerraformCommandError("terraform apply failed")
"""

from __future__ import annotations


class TerraformApplyError(Exception):
    """Base error for terraform-apply orchestration helpers.

    Parameters
    ----------
    message
        Human-readable error message describing the failure.

    Examples
    --------
    >>> raise TerraformApplyError("unexpected apply failure")
    """


class TerraformCommandError(TerraformApplyError):
    """Raised when a Terraform command fails, times out, or cannot start.

    Examples
    --------
    >>> raise TerraformCommandError("terraform apply failed: exit status 1")
    """


class WorkdirError(TerraformApplyError):
    """Raised when the configured working directory does not exist."""


class SecretsInputError(TerraformApplyError):
    """Raised when the ``secrets`` input is not a JSON object."""


class CredentialsError(TerraformApplyError):
    """Raised when cloud credentials cannot be written to disk."""


class ChangeDetailsError(TerraformApplyError):
    """Raised when the categorized change details cannot be serialized.

    Downstream steps rely on ``change_details`` whenever ``apply_status`` is
    ``success``, so this failure is never replaced by an empty value.
    """

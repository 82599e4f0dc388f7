"""Resolve action inputs and build the Terraform child-process environment."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from tfapply._input_resolution import InputResolution, resolve_input
from tfapply._tf_errors import CredentialsError, SecretsInputError, WorkdirError
from tfapply._tf_github import mask_secret, warning_annotation
from tfapply._tf_models import TerraformEnvironment

logger = logging.getLogger(__name__)

SECRETS_VARIABLE = "TF_VAR_secrets"
CREDENTIALS_VARIABLE = "GOOGLE_APPLICATION_CREDENTIALS"
CREDENTIALS_FILENAME = "gcp-credentials.json"


@dataclass(frozen=True, slots=True)
class ApplyInputs:
    """Inputs for one terraform-apply run."""

    # Locations
    workspace: Path
    workdir: str
    github_output: Path

    # Terraform invocation
    plan_file: str
    terraform_binary: str
    command_timeout: float | None

    # Secret material
    secrets: str
    google_credentials: str | None


@dataclass(frozen=True, slots=True)
class RawApplyInputs:
    """Raw apply inputs from CLI or defaults."""

    workspace: Path | None = None
    workdir: str | None = None
    github_output: Path | None = None
    plan_file: str | None = None
    terraform_binary: str | None = None
    command_timeout: str | None = None
    secrets: str | None = None
    google_credentials: str | None = None


def _parse_timeout(value: str | Path | None) -> float | None:
    """Parse a timeout in seconds; blank, invalid, or non-positive means none."""
    if value is None:
        return None
    try:
        timeout = float(str(value))
    except ValueError:
        logger.warning("Invalid command_timeout ignored: %s", value)
        return None
    return timeout if timeout > 0 else None


def resolve_apply_inputs(raw: RawApplyInputs) -> ApplyInputs:
    """Resolve apply inputs from CLI values, action inputs, and defaults.

    Parameters
    ----------
    raw : RawApplyInputs
        Values supplied on the command line; ``None`` falls back to the
        matching ``INPUT_*`` or runner environment variable.

    Returns
    -------
    ApplyInputs
        Normalized inputs ready for the apply flow.

    Examples
    --------
    >>> resolve_apply_inputs(RawApplyInputs(workdir="infra")).workdir
    'infra'
    """

    def to_path(value: Path | str | None) -> Path:
        return value if isinstance(value, Path) else Path(str(value))

    workspace = resolve_input(
        raw.workspace,
        InputResolution(env_key="GITHUB_WORKSPACE", default=Path("."), as_path=True),
    )
    workdir = resolve_input(
        raw.workdir, InputResolution(env_key="INPUT_WORKDIR", default=".")
    )
    # Matches the fallback used for GITHUB_ENV so local runs do not fail hard.
    github_output = resolve_input(
        raw.github_output,
        InputResolution(
            env_key="GITHUB_OUTPUT",
            default=Path("/tmp/github-output-undefined"),
            as_path=True,
        ),
    )
    plan_file = resolve_input(
        raw.plan_file, InputResolution(env_key="INPUT_PLAN_FILE", default="tfplan")
    )
    terraform_binary = resolve_input(
        raw.terraform_binary,
        InputResolution(env_key="INPUT_TERRAFORM_BINARY", default="terraform"),
    )
    command_timeout = resolve_input(
        raw.command_timeout, InputResolution(env_key="INPUT_COMMAND_TIMEOUT")
    )
    secrets = resolve_input(
        raw.secrets, InputResolution(env_key="INPUT_SECRETS", default="{}")
    )
    google_credentials = resolve_input(
        raw.google_credentials, InputResolution(env_key=CREDENTIALS_VARIABLE)
    )

    return ApplyInputs(
        workspace=to_path(workspace),
        workdir=str(workdir),
        github_output=to_path(github_output),
        plan_file=str(plan_file),
        terraform_binary=str(terraform_binary),
        command_timeout=_parse_timeout(command_timeout),
        secrets=str(secrets),
        google_credentials=str(google_credentials) if google_credentials else None,
    )


def resolve_workdir(workspace: Path, workdir: str) -> Path:
    """Return the absolute Terraform working directory.

    Raises
    ------
    WorkdirError
        If the directory does not exist.

    Examples
    --------
    >>> resolve_workdir(Path("/"), ".")
    PosixPath('/')
    """
    path = (workspace / workdir).resolve()
    if not path.is_dir():
        msg = f"Specified workdir '{path}' does not exist"
        raise WorkdirError(msg)
    return path


def _iter_secret_strings(value: object) -> Iterator[str]:
    """Yield every string leaf of a decoded secrets payload."""
    pending = [value]
    while pending:
        match pending.pop():
            case str() as text:
                yield text
            case dict() as mapping:
                pending.extend(reversed(list(mapping.values())))
            case list() as items:
                pending.extend(reversed(items))


def parse_secrets(raw: str, stream: Callable[[str], object] = print) -> str:
    """Validate the ``secrets`` input and return it as compact JSON.

    Every string value is masked in the workflow log before Terraform runs.

    Parameters
    ----------
    raw
        JSON object mapping secret names to values.
    stream
        Output stream for the masking commands.

    Returns
    -------
    str
        Compact JSON suitable for ``TF_VAR_secrets``.

    Raises
    ------
    SecretsInputError
        If ``raw`` is not valid JSON or is not an object.

    Examples
    --------
    >>> parse_secrets('{"db_password": "hunter2"}', stream=lambda _line: None)
    '{"db_password":"hunter2"}'
    """
    try:
        secrets = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        msg = f"Error parsing secrets input: {exc}"
        raise SecretsInputError(msg) from exc
    except RecursionError as exc:
        msg = "Error parsing secrets input: nested too deeply"
        raise SecretsInputError(msg) from exc
    if not isinstance(secrets, dict):
        msg = "secrets input must be a JSON object"
        raise SecretsInputError(msg)

    for value in _iter_secret_strings(secrets):
        mask_secret(value, stream)
    return json.dumps(secrets, separators=(",", ":"), ensure_ascii=False)


def materialize_gcp_credentials(
    credentials: str | None,
    workspace: Path,
    stream: Callable[[str], object] = print,
) -> dict[str, str]:
    """Write a GCP service-account key to disk for the Google provider.

    Parameters
    ----------
    credentials
        Value of ``GOOGLE_APPLICATION_CREDENTIALS``. A JSON key blob is
        written to ``<workspace>/gcp-credentials.json``; anything else is
        taken to be a path and passed through unchanged.
    workspace
        Directory that receives the key file.
    stream
        Output stream for masking and warning commands.

    Returns
    -------
    dict[str, str]
        Environment variables for the Terraform child process.

    Raises
    ------
    CredentialsError
        If the key file cannot be written.
    """
    if not credentials or not credentials.strip():
        stream(warning_annotation(f"{CREDENTIALS_VARIABLE} is not set."))
        return {}
    if not credentials.lstrip().startswith("{"):
        return {CREDENTIALS_VARIABLE: credentials}

    mask_secret(credentials, stream)
    key_path = workspace / CREDENTIALS_FILENAME
    stream(f"Writing GCP credentials to {key_path}")
    try:
        key_path.parent.mkdir(parents=True, exist_ok=True)
        key_path.write_text(credentials, encoding="utf-8")
        key_path.chmod(0o600)
    except OSError as exc:
        msg = f"Error processing GCP credentials: {exc}"
        raise CredentialsError(msg) from exc
    return {CREDENTIALS_VARIABLE: str(key_path)}


def build_terraform_environment(
    inputs: ApplyInputs,
    stream: Callable[[str], object] = print,
) -> TerraformEnvironment:
    """Assemble the explicit environment for every Terraform command.

    Examples
    --------
    >>> inputs = resolve_apply_inputs(RawApplyInputs(secrets="{}", google_credentials="/keys/sa.json"))
    >>> build_terraform_environment(inputs).variables["TF_VAR_secrets"]
    '{}'
    """
    variables = {SECRETS_VARIABLE: parse_secrets(inputs.secrets, stream)}
    stream(f"All secrets available as '{SECRETS_VARIABLE}'")
    variables.update(
        materialize_gcp_credentials(inputs.google_credentials, inputs.workspace, stream)
    )
    return TerraformEnvironment(
        variables=variables,
        binary=inputs.terraform_binary,
        timeout=inputs.command_timeout,
    )

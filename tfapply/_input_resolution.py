"""Resolve action inputs from the command line, ``INPUT_*`` variables, or defaults.

The composite action exports each ``with:`` value as an ``INPUT_*`` variable
(``INPUT_WORKDIR``, ``INPUT_SECRETS`` and so on) and the runner supplies
``GITHUB_WORKSPACE`` and ``GITHUB_OUTPUT``. A value given on the command line
always wins, which keeps local runs of ``terraform_apply.py`` independent of
the runner environment.
"""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Where one action input comes from when the command line omits it.

    Attributes
    ----------
    env_key
        ``INPUT_*`` or runner variable consulted next.
    default
        Value used when the variable is unset or blank.
    required
        Exit instead of falling back to ``default``.
    as_path
        Return environment values as :class:`~pathlib.Path`.
    """

    env_key: str
    default: str | Path | None = None
    required: bool = False
    as_path: bool = False


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> str | Path | None:
    """Return the command-line value, else the environment value, else the default.

    An input left empty in the workflow still reaches the script as a blank
    ``INPUT_*`` variable, so a blank value counts as unset.

    Raises
    ------
    SystemExit
        If the input is required and no value was found.

    Examples
    --------
    >>> resolve_input(None, InputResolution("INPUT_PLAN_FILE", default="tfplan"), env={})
    'tfplan'
    >>> resolve_input(None, InputResolution("INPUT_WORKDIR"), env={"INPUT_WORKDIR": "infra"})
    'infra'
    >>> resolve_input(None, InputResolution("INPUT_SECRETS", default="{}"), env={"INPUT_SECRETS": " "})
    '{}'
    """
    if param_value is not None:
        return param_value

    env_value = (env if env is not None else os.environ).get(resolution.env_key)
    if env_value is not None and env_value.strip():
        return Path(env_value) if resolution.as_path else env_value

    if resolution.required:
        msg = f"{resolution.env_key} is required"
        raise SystemExit(msg)

    return resolution.default

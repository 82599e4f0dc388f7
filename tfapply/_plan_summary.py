"""Summarize classified Terraform changes for the console and action outputs.

The report mirrors what a reviewer wants when scanning a workflow log: a count
line, then one collapsible group per resource under its action banner.

Examples
--------
>>> report = summarize_plan_output(None)
>>> report.summary.total_changed
0
>>> report.lines
('::warning::No Terraform JSON output found.',)
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field

from tfapply._plan_changes import (
    CHANGE_ACTIONS,
    ClassifiedChangeSet,
    PlanDocument,
    UnreadablePlan,
    classify_changes,
    parse_plan_document,
)
from tfapply._tf_errors import ChangeDetailsError
from tfapply._tf_github import group_end, group_start, warning_annotation

ACTION_LABELS: dict[str, str] = {
    "create": "CREATE",
    "update": "UPDATE",
    "delete": "DELETE",
}


@dataclass(frozen=True, slots=True)
class ChangeSummary:
    """Machine-readable summary of one apply.

    Attributes
    ----------
    total_changed
        Number of records in the plan's ``resource_changes`` list. A replace
        counts once even though it appears in two buckets.
    details
        The classified buckets published as ``change_details``.
    """

    total_changed: int
    details: ClassifiedChangeSet = field(default_factory=ClassifiedChangeSet)

    def change_details_json(self) -> str:
        """Serialize :attr:`details` as compact JSON.

        Raises
        ------
        ChangeDetailsError
            If the buckets cannot be serialized.

        Examples
        --------
        >>> ChangeSummary(total_changed=0).change_details_json()
        '{"create":[],"update":[],"delete":[]}'
        """
        try:
            return json.dumps(
                self.details.to_mapping(), separators=(",", ":"), ensure_ascii=False
            )
        except (TypeError, ValueError) as exc:
            msg = f"Failed to serialize change details: {exc}"
            raise ChangeDetailsError(msg) from exc

    def to_outputs(self) -> dict[str, str]:
        """Return the ``resources_changed`` and ``change_details`` outputs."""
        return {
            "resources_changed": str(self.total_changed),
            "change_details": self.change_details_json(),
        }


@dataclass(frozen=True, slots=True)
class ChangeReport:
    """Console lines together with the summary they describe."""

    lines: tuple[str, ...]
    summary: ChangeSummary
    degraded: bool = False

    @property
    def text(self) -> str:
        """Return the console lines joined with newlines."""
        return "\n".join(self.lines)


def summarize_changes(classified: ClassifiedChangeSet, total_count: int) -> ChangeReport:
    """Build the console report and summary for classified changes.

    Parameters
    ----------
    classified
        Changes grouped by action.
    total_count
        Number of source change records.

    Returns
    -------
    ChangeReport
        Report lines in display order plus the machine-readable summary.

    Examples
    --------
    >>> summarize_changes(ClassifiedChangeSet(), 0).lines[3]
    'CREATE: 0 | UPDATE: 0 | DELETE: 0'
    """
    counts = classified.counts()
    lines: list[str] = [
        "Terraform apply changes:",
        f"Found {total_count} resource changes.",
        "",
        " | ".join(
            f"{ACTION_LABELS[action]}: {counts[action]}" for action in CHANGE_ACTIONS
        ),
        "",
    ]

    for action in CHANGE_ACTIONS:
        entries = classified.bucket(action)
        if not entries:
            continue
        lines.append(f"{ACTION_LABELS[action]}:")
        for entry in entries:
            lines.append(group_start(entry.address))
            lines.append(entry.formatted_attributes)
            lines.append(group_end())
        lines.append("")

    return ChangeReport(
        lines=tuple(lines),
        summary=ChangeSummary(total_changed=total_count, details=classified),
    )


def summarize_unavailable(reason: str) -> ChangeReport:
    """Build the degraded report used when no usable plan JSON exists.

    Examples
    --------
    >>> summarize_unavailable("No Terraform JSON output found.").degraded
    True
    """
    return ChangeReport(
        lines=(warning_annotation(reason),),
        summary=ChangeSummary(total_changed=0),
        degraded=True,
    )


def summarize_plan_output(raw: str | None) -> ChangeReport:
    """Parse, classify, and summarize raw ``terraform show -json`` output.

    Never raises for missing or malformed input; those produce the degraded
    report from :func:`summarize_unavailable`.
    """
    match parse_plan_document(raw):
        case PlanDocument(changes=changes):
            return summarize_changes(classify_changes(changes), len(changes))
        case UnreadablePlan(reason=reason):
            return summarize_unavailable(reason)


def emit_report(report: ChangeReport, stream: Callable[[str], object] = print) -> None:
    """Write each report line to ``stream``."""
    for line in report.lines:
        stream(line)

"""Parse Terraform plan JSON and classify resource changes by action.

The parser returns either a :class:`PlanDocument` or an :class:`UnreadablePlan`
so the degraded path is an explicit value callers can match on rather than a
silent fallthrough.

Examples
--------
>>> raw = '{"resource_changes": [{"address": "a.b", "change": {"actions": ["create"]}}]}'
>>> document = parse_plan_document(raw)
>>> classify_changes(document.changes).counts()
{'create': 1, 'update': 0, 'delete': 0}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from tfapply._attribute_render import DEFAULT_INDENT, render_attributes

logger = logging.getLogger(__name__)

CHANGE_ACTIONS: tuple[str, ...] = ("create", "update", "delete")
UNKNOWN_ADDRESS = "<unknown>"


@dataclass(frozen=True, slots=True)
class ResourceChange:
    """One entry of the plan's ``resource_changes`` list.

    Attributes
    ----------
    address
        Fully-qualified resource address.
    actions
        Action tags in plan order, e.g. ``("delete", "create")`` for a replace.
    after
        Resource attributes after the change; empty when absent.
    """

    address: str
    actions: tuple[str, ...] = ()
    after: Mapping[str, object] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: object) -> ResourceChange:
        """Build a change from one raw ``resource_changes`` entry.

        Malformed entries are coerced rather than rejected so that they still
        count toward the total number of changes.

        Examples
        --------
        >>> ResourceChange.from_mapping(
        ...     {"address": "x.y", "change": {"actions": ["update"], "after": None}}
        ... )
        ResourceChange(address='x.y', actions=('update',), after={})
        >>> ResourceChange.from_mapping("garbage").actions
        ()
        """
        if not isinstance(raw, Mapping):
            logger.warning("Ignoring malformed resource change entry: %r", raw)
            return cls(address=UNKNOWN_ADDRESS)

        address = raw.get("address")
        change = raw.get("change")
        if not isinstance(change, Mapping):
            change = {}
        actions = change.get("actions")
        after = change.get("after")
        return cls(
            address=str(address) if address is not None else UNKNOWN_ADDRESS,
            actions=(
                tuple(str(action) for action in actions)
                if isinstance(actions, list)
                else ()
            ),
            after=after if isinstance(after, Mapping) else {},
        )


@dataclass(frozen=True, slots=True)
class PlanDocument:
    """Successfully parsed plan with its resource changes in source order."""

    changes: tuple[ResourceChange, ...] = ()


@dataclass(frozen=True, slots=True)
class UnreadablePlan:
    """Plan output that is missing or could not be parsed."""

    reason: str


def parse_plan_document(raw: str | None) -> PlanDocument | UnreadablePlan:
    """Parse ``terraform show -json`` output.

    Parameters
    ----------
    raw
        JSON text, or ``None`` when no output was produced.

    Returns
    -------
    PlanDocument | UnreadablePlan
        The parsed changes, or the reason the document is unusable. A missing
        or non-list ``resource_changes`` member yields an empty document.

    Examples
    --------
    >>> parse_plan_document(None)
    UnreadablePlan(reason='No Terraform JSON output found.')
    >>> parse_plan_document("{}")
    PlanDocument(changes=())
    """
    if raw is None or not raw.strip():
        return UnreadablePlan(reason="No Terraform JSON output found.")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        return UnreadablePlan(reason=f"Terraform JSON output is not valid JSON: {exc}")
    except RecursionError:
        return UnreadablePlan(reason="Terraform JSON output is nested too deeply.")
    if not isinstance(payload, Mapping):
        return UnreadablePlan(reason="Terraform JSON output must be an object.")

    entries = payload.get("resource_changes")
    if entries is None:
        return PlanDocument()
    if not isinstance(entries, list):
        logger.warning(
            "resource_changes is %s, not a list; treating as no changes",
            type(entries).__name__,
        )
        return PlanDocument()
    return PlanDocument(
        changes=tuple(ResourceChange.from_mapping(entry) for entry in entries)
    )


@dataclass(frozen=True, slots=True)
class ClassifiedChange:
    """A resource address paired with its rendered attribute block."""

    address: str
    formatted_attributes: str

    def to_mapping(self) -> dict[str, str]:
        """Return the published ``change_details`` form of this entry."""
        return {
            "address": self.address,
            "formattedAttributes": self.formatted_attributes,
        }


@dataclass(slots=True)
class ClassifiedChangeSet:
    """Resource changes grouped into create, update, and delete buckets."""

    create: list[ClassifiedChange] = field(default_factory=list)
    update: list[ClassifiedChange] = field(default_factory=list)
    delete: list[ClassifiedChange] = field(default_factory=list)

    def bucket(self, action: str) -> list[ClassifiedChange]:
        """Return the bucket for ``action``.

        Raises
        ------
        KeyError
            If ``action`` is not one of :data:`CHANGE_ACTIONS`.
        """
        if action not in CHANGE_ACTIONS:
            raise KeyError(action)
        return getattr(self, action)

    def counts(self) -> dict[str, int]:
        """Return the number of entries per bucket in fixed action order."""
        return {action: len(self.bucket(action)) for action in CHANGE_ACTIONS}

    def to_mapping(self) -> dict[str, list[dict[str, str]]]:
        """Return a JSON-serializable copy of all three buckets."""
        return {
            action: [entry.to_mapping() for entry in self.bucket(action)]
            for action in CHANGE_ACTIONS
        }


def classify_changes(changes: Iterable[ResourceChange]) -> ClassifiedChangeSet:
    """File each change under every recognized action it declares.

    A replace (``delete`` + ``create``) lands in both buckets. Tags such as
    ``no-op`` and ``read`` are not bucketed.

    Examples
    --------
    >>> replace = ResourceChange("a.b", ("delete", "create"), {"id": 1})
    >>> classify_changes([replace]).counts()
    {'create': 1, 'update': 0, 'delete': 1}
    """
    classified = ClassifiedChangeSet()
    for change in changes:
        formatted = render_attributes(change.after, DEFAULT_INDENT)
        for action in change.actions:
            if action not in CHANGE_ACTIONS:
                logger.debug("Not bucketing %s action for %s", action, change.address)
                continue
            classified.bucket(action).append(
                ClassifiedChange(address=change.address, formatted_attributes=formatted)
            )
    return classified

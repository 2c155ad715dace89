"""Domain models for the sidecar terminator operator.

This module defines typed data structures for the Sidecar resource, the
pods it targets and the errors raised while reconciling it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict, NotRequired


# =============================================================================
# Enums for constrained values
# =============================================================================


class ConditionStatus(Enum):
    """Kubernetes condition status."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


# =============================================================================
# TypedDicts for CRD spec (external data from Kubernetes)
# =============================================================================


class DeleteRuleSpec(TypedDict, total=False):
    """Single delete rule from the CRD."""

    namespace: str
    labels: dict[str, str]


class SidecarSpec(TypedDict):
    """Full Sidecar CRD spec."""

    deleteRules: NotRequired[list[DeleteRuleSpec]]


# =============================================================================
# Dataclasses for internal state and status
# =============================================================================


@dataclass(frozen=True)
class DeleteRule:
    """A delete rule as read for one reconcile pass.

    ``labels`` is kept as received; the selector builder is responsible for
    rejecting anything that is not a flat mapping of strings.
    """

    namespace: str
    labels: Any = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: DeleteRuleSpec) -> "DeleteRule":
        """Create from a ``spec.deleteRules`` entry."""
        labels = data.get("labels")
        return cls(
            namespace=data.get("namespace") or "",
            labels={} if labels is None else labels,
        )


@dataclass(frozen=True)
class PodRef:
    """The parts of a pod the culler needs."""

    namespace: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Condition:
    """Kubernetes-style condition."""

    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for Kubernetes status."""
        return {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
        }


@dataclass
class Sidecar:
    """A Sidecar resource as fetched from the API server.

    Existing ``status.conditions`` entries are kept as the raw dicts that
    were read, so fields this operator does not model survive a write.
    """

    name: str
    namespace: str
    delete_rules: list[DeleteRule] = field(default_factory=list)
    conditions: list[dict[str, Any]] = field(default_factory=list)
    body: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "Sidecar":
        """Create from a raw custom object."""
        metadata = body.get("metadata", {}) or {}
        spec: SidecarSpec = body.get("spec") or {}
        status = body.get("status", {}) or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            delete_rules=[
                DeleteRule.from_dict(rule) for rule in spec.get("deleteRules") or []
            ],
            conditions=[dict(c) for c in status.get("conditions") or []],
            body=body,
        )

    def status_body(self) -> dict[str, Any]:
        """Build the body for a status-subresource replace.

        The fetched ``metadata`` (including ``resourceVersion``) is carried
        over so the API server rejects a write based on a stale read.
        """
        status = dict(self.body.get("status") or {})
        status["conditions"] = list(self.conditions)
        return {
            "apiVersion": self.body.get("apiVersion"),
            "kind": self.body.get("kind"),
            "metadata": self.body.get("metadata", {}),
            "status": status,
        }

    def add_condition(self, condition: Condition) -> None:
        """Append a condition after the ones already recorded."""
        self.conditions.append(condition.to_dict())


@dataclass
class ReconcileResult:
    """Outcome of one reconcile pass."""

    found: bool = True
    rules_processed: int = 0
    namespaces_processed: int = 0
    deleted_pods: list[tuple[str, str]] = field(default_factory=list)
    condition: Condition | None = None


# =============================================================================
# Exceptions
# =============================================================================


class OperatorError(Exception):
    """Base exception for operator errors."""

    pass


class NotFoundError(OperatorError):
    """The Sidecar resource no longer exists."""

    pass


class ClusterQueryError(OperatorError):
    """Listing or reading cluster objects failed."""

    pass


class SelectorConstructionError(OperatorError):
    """A delete rule's labels do not form a valid label selector."""

    pass


class DeletionError(OperatorError):
    """A pod delete call failed."""

    pass


class StatusUpdateError(OperatorError):
    """Persisting the Sidecar status failed."""

    pass

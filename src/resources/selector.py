"""Label selector construction for delete rules.

A rule's ``labels`` is one flat mapping. Every pair becomes an equality
requirement and all requirements must hold. Only the Kubernetes label syntax
is accepted, so a built selector always renders to a query the API server
parses the same way ``matches`` evaluates it.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from constants import WILDCARD
from models import SelectorConstructionError

# Name part of a label key, and any non-empty label value
_NAME_RE = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
# DNS-1123 subdomain, used as the optional key prefix
_PREFIX_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")

MAX_NAME_LENGTH = 63
MAX_PREFIX_LENGTH = 253


def validate_label_key(key: Any) -> None:
    """Raise SelectorConstructionError unless key is a valid label key."""
    if not isinstance(key, str):
        raise SelectorConstructionError(f"label key must be a string, got {key!r}")

    prefix, sep, name = key.rpartition("/")
    if sep:
        if not prefix:
            raise SelectorConstructionError(f"invalid label key {key!r}: empty prefix")
        if len(prefix) > MAX_PREFIX_LENGTH or not _PREFIX_RE.match(prefix):
            raise SelectorConstructionError(
                f"invalid label key {key!r}: prefix must be a DNS-1123 subdomain "
                f"of at most {MAX_PREFIX_LENGTH} characters"
            )
    if not name:
        raise SelectorConstructionError(f"invalid label key {key!r}: empty name")
    if len(name) > MAX_NAME_LENGTH or not _NAME_RE.match(name):
        raise SelectorConstructionError(
            f"invalid label key {key!r}: name must be at most {MAX_NAME_LENGTH} "
            "alphanumeric characters, '-', '_' or '.', starting and ending "
            "with an alphanumeric character"
        )


def validate_label_value(key: str, value: Any) -> None:
    """Raise SelectorConstructionError unless value is a valid label value."""
    if not isinstance(value, str):
        raise SelectorConstructionError(
            f"value for label {key!r} must be a string, got {value!r}"
        )
    if value == "":
        return
    if len(value) > MAX_NAME_LENGTH or not _NAME_RE.match(value):
        raise SelectorConstructionError(
            f"invalid value {value!r} for label {key!r}: must be at most "
            f"{MAX_NAME_LENGTH} alphanumeric characters, '-', '_' or '.', "
            "starting and ending with an alphanumeric character"
        )


@dataclass(frozen=True)
class LabelSelector:
    """AND-combined equality requirements over pod labels.

    A selector without requirements selects every pod.
    """

    requirements: tuple[tuple[str, str], ...] = ()

    @classmethod
    def everything(cls) -> "LabelSelector":
        return cls()

    @property
    def is_everything(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        """Return True if a pod with these labels is selected."""
        labels = labels or {}
        return all(
            key in labels and labels[key] == value
            for key, value in self.requirements
        )

    def to_query(self) -> str:
        """Render as a ``labelSelector`` query parameter."""
        return ",".join(f"{key}={value}" for key, value in self.requirements)

    def __str__(self) -> str:
        if self.is_everything:
            return "<everything>"
        return self.to_query()


def is_wildcard(labels: Mapping[Any, Any]) -> bool:
    """Return True for the ``{"*": "*"}`` match-all marker."""
    return len(labels) == 1 and labels.get(WILDCARD) == WILDCARD


def build_selector(labels: Any) -> LabelSelector:
    """Build the pod selector for a rule's label mapping.

    An empty mapping or the wildcard marker selects everything.

    Raises:
        SelectorConstructionError: labels is not a flat mapping, or a key
            or value is not valid label syntax
    """
    if labels is None:
        return LabelSelector.everything()
    if not isinstance(labels, Mapping):
        raise SelectorConstructionError(
            f"labels must be a mapping of label key to value, got {type(labels).__name__}"
        )
    if not labels or is_wildcard(labels):
        return LabelSelector.everything()

    for key, value in labels.items():
        validate_label_key(key)
        validate_label_value(key, value)

    return LabelSelector(requirements=tuple(sorted(labels.items())))

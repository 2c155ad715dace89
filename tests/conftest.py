"""Shared fixtures: an in-memory cluster behind the KubeClient interface."""

import copy
import logging
import time
from typing import Any

import pytest

from constants import GROUP, KIND, VERSION
from models import (
    ClusterQueryError,
    DeletionError,
    NotFoundError,
    PodRef,
    StatusUpdateError,
)
from resources.selector import LabelSelector


def _parse_selector(query: str) -> LabelSelector:
    if not query:
        return LabelSelector.everything()
    return LabelSelector(
        requirements=tuple(tuple(part.split("=", 1)) for part in query.split(","))  # type: ignore[misc]
    )


class FakeKubeClient:
    """Records calls and mimics the KubeClient error translation."""

    def __init__(self) -> None:
        self.namespaces: dict[str, list[PodRef]] = {}
        self.sidecars: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.deleted: list[tuple[str, str]] = []
        self.status_updates: list[dict[str, Any]] = []
        self.fail_delete: set[tuple[str, str]] = set()
        self.fail_list_namespaces = False
        self.fail_list_pods: set[str] = set()
        self.fail_status_update = False

    # Setup helpers

    def add_namespace(self, name: str) -> None:
        self.namespaces.setdefault(name, [])

    def remove_namespace(self, name: str) -> None:
        del self.namespaces[name]

    def add_pod(self, namespace: str, name: str, labels: dict[str, str] | None = None) -> None:
        self.add_namespace(namespace)
        self.namespaces[namespace].append(PodRef(namespace, name, dict(labels or {})))

    def pod_names(self, namespace: str) -> list[str]:
        return [pod.name for pod in self.namespaces.get(namespace, [])]

    def add_sidecar(
        self,
        namespace: str,
        name: str,
        delete_rules: list[Any],
        conditions: list[dict[str, str]] | None = None,
    ) -> None:
        body: dict[str, Any] = {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": KIND,
            "metadata": {"name": name, "namespace": namespace, "resourceVersion": "1"},
            "spec": {"deleteRules": delete_rules},
        }
        if conditions is not None:
            body["status"] = {"conditions": conditions}
        self.sidecars[(namespace, name)] = body

    def conditions(self, namespace: str, name: str) -> list[dict[str, str]]:
        body = self.sidecars[(namespace, name)]
        return body.get("status", {}).get("conditions", [])

    # KubeClient interface

    def get_sidecar(self, namespace: str, name: str) -> dict[str, Any]:
        self.calls.append(("get_sidecar", namespace, name))
        body = self.sidecars.get((namespace, name))
        if body is None:
            raise NotFoundError(f"Sidecar {namespace}/{name} not found")
        return copy.deepcopy(body)

    def list_namespaces(self) -> list[str]:
        self.calls.append(("list_namespaces",))
        if self.fail_list_namespaces:
            raise ClusterQueryError("Failed to list namespaces: 403 Forbidden")
        return list(self.namespaces)

    def list_pods(self, namespace: str, label_selector: str = "") -> list[PodRef]:
        self.calls.append(("list_pods", namespace, label_selector))
        if namespace in self.fail_list_pods:
            raise ClusterQueryError(f"Failed to list pods in namespace {namespace}")
        selector = _parse_selector(label_selector)
        return [
            pod
            for pod in self.namespaces.get(namespace, [])
            if selector.matches(pod.labels)
        ]

    def delete_pod(self, namespace: str, name: str) -> None:
        self.calls.append(("delete_pod", namespace, name))
        if (namespace, name) in self.fail_delete:
            raise DeletionError(f"Failed to delete pod {namespace}/{name}: 404 Not Found")
        pods = self.namespaces.get(namespace, [])
        if not any(pod.name == name for pod in pods):
            raise DeletionError(f"Failed to delete pod {namespace}/{name}: 404 Not Found")
        self.namespaces[namespace] = [pod for pod in pods if pod.name != name]
        self.deleted.append((namespace, name))

    def replace_sidecar_status(
        self, namespace: str, name: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("replace_sidecar_status", namespace, name))
        if self.fail_status_update:
            raise StatusUpdateError(
                f"Failed to update status of Sidecar {namespace}/{name}: 409 Conflict"
            )
        self.status_updates.append(copy.deepcopy(body))
        stored = self.sidecars[(namespace, name)]
        stored["status"] = copy.deepcopy(body["status"])
        return copy.deepcopy(stored)


@pytest.fixture
def cluster() -> FakeKubeClient:
    return FakeKubeClient()


@pytest.fixture
def wait_for_waiters(caplog):
    """Return a function that blocks until callers are queued on a ReconcileGate."""
    caplog.set_level(logging.DEBUG, logger="workqueue")

    def wait(count: int = 1, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            waiting = [
                r for r in caplog.records if "already in flight" in r.getMessage()
            ]
            if len(waiting) >= count:
                return True
            time.sleep(0.01)
        return False

    return wait

"""Kubernetes API wrapper used by the reconciler.

Every call is throttled by the shared rate limiter, timed, and has its
``ApiException`` translated into the operator's error taxonomy. Nothing is
retried or cached here.
"""

import logging
import os
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from kubernetes.client import ApiException, CoreV1Api, CustomObjectsApi
from urllib3.exceptions import HTTPError

from constants import GROUP, PLURAL, VERSION
from metrics import KUBE_API_CALLS, KUBE_API_DURATION
from models import (
    ClusterQueryError,
    DeletionError,
    NotFoundError,
    PodRef,
    StatusUpdateError,
)
from ratelimit import RateLimiter

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Transport failures surface from the kubernetes client as urllib3 errors
API_ERRORS: tuple[type[Exception], ...] = (ApiException, HTTPError)


def instrumented(operation: str) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator that throttles and times a KubeClient call."""

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            self = args[0]
            start = time.monotonic()
            status = "error"
            try:
                with self.rate_limiter.acquire():  # type: ignore[attr-defined]
                    result = func(*args, **kwargs)
                status = "success"
                return result
            finally:
                KUBE_API_CALLS.labels(operation=operation, status=status).inc()
                KUBE_API_DURATION.labels(operation=operation).observe(
                    time.monotonic() - start
                )

        return wrapper

    return decorator


def _reason(error: Exception) -> str:
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return str(error)


class KubeClient:
    """Wrapper around the Kubernetes API for Sidecars, namespaces and pods."""

    def __init__(
        self,
        core_api: CoreV1Api,
        custom_api: CustomObjectsApi,
        rate_limiter: RateLimiter | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize the wrapper.

        Args:
            core_api: CoreV1Api client for namespaces and pods
            custom_api: CustomObjectsApi client for Sidecar resources
            rate_limiter: Shared limiter (default: unthrottled)
            request_timeout: Per-call timeout in seconds
                (default: KUBE_REQUEST_TIMEOUT_SECONDS env, 30)
        """
        self.core_api = core_api
        self.custom_api = custom_api
        self.rate_limiter = rate_limiter or RateLimiter(
            max_concurrent=1000, requests_per_second=0
        )
        if request_timeout is None:
            request_timeout = float(
                os.environ.get("KUBE_REQUEST_TIMEOUT_SECONDS", "30")
            )
        self.request_timeout = request_timeout

    # -------------------------------------------------------------------------
    # Sidecar operations
    # -------------------------------------------------------------------------

    @instrumented("get_sidecar")
    def get_sidecar(self, namespace: str, name: str) -> dict[str, Any]:
        """Fetch a Sidecar by identity.

        Raises:
            NotFoundError: the Sidecar does not exist
            ClusterQueryError: any other failure
        """
        try:
            return self.custom_api.get_namespaced_custom_object(
                GROUP,
                VERSION,
                namespace,
                PLURAL,
                name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"Sidecar {namespace}/{name} not found") from e
            raise ClusterQueryError(
                f"Failed to get Sidecar {namespace}/{name}: {_reason(e)}"
            ) from e
        except HTTPError as e:
            raise ClusterQueryError(
                f"Failed to get Sidecar {namespace}/{name}: {e}"
            ) from e

    @instrumented("replace_sidecar_status")
    def replace_sidecar_status(
        self, namespace: str, name: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace the status subresource of a Sidecar."""
        try:
            return self.custom_api.replace_namespaced_custom_object_status(
                GROUP,
                VERSION,
                namespace,
                PLURAL,
                name,
                body,
                _request_timeout=self.request_timeout,
            )
        except API_ERRORS as e:
            raise StatusUpdateError(
                f"Failed to update status of Sidecar {namespace}/{name}: {_reason(e)}"
            ) from e

    # -------------------------------------------------------------------------
    # Namespace operations
    # -------------------------------------------------------------------------

    @instrumented("list_namespaces")
    def list_namespaces(self) -> list[str]:
        """List the names of every namespace in the cluster."""
        try:
            namespaces = self.core_api.list_namespace(
                _request_timeout=self.request_timeout
            )
        except API_ERRORS as e:
            raise ClusterQueryError(f"Failed to list namespaces: {_reason(e)}") from e
        return [ns.metadata.name for ns in namespaces.items]

    # -------------------------------------------------------------------------
    # Pod operations
    # -------------------------------------------------------------------------

    @instrumented("list_pods")
    def list_pods(self, namespace: str, label_selector: str = "") -> list[PodRef]:
        """List pods in a namespace matching a label selector query."""
        try:
            pods = self.core_api.list_namespaced_pod(
                namespace,
                label_selector=label_selector,
                _request_timeout=self.request_timeout,
            )
        except API_ERRORS as e:
            raise ClusterQueryError(
                f"Failed to list pods in namespace {namespace} "
                f"(selector {label_selector!r}): {_reason(e)}"
            ) from e
        return [
            PodRef(
                namespace=pod.metadata.namespace or namespace,
                name=pod.metadata.name,
                labels=dict(pod.metadata.labels or {}),
            )
            for pod in pods.items
        ]

    @instrumented("delete_pod")
    def delete_pod(self, namespace: str, name: str) -> None:
        """Delete a pod. A pod that is already gone is an error."""
        try:
            self.core_api.delete_namespaced_pod(
                name, namespace, _request_timeout=self.request_timeout
            )
        except API_ERRORS as e:
            raise DeletionError(
                f"Failed to delete pod {namespace}/{name}: {_reason(e)}"
            ) from e

"""Shared operator state - thread-safe singleton for Kubernetes clients."""

import threading
from dataclasses import dataclass, field

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from kube_client import KubeClient
from ratelimit import RateLimiter, rate_limiter_from_env
from retry import RetryPolicy, get_retry_policy
from workqueue import ReconcileGate


@dataclass
class OperatorState:
    """Thread-safe operator state container.

    This class provides thread-safe access to shared operator resources:
    - Kubernetes API clients
    - The KubeClient wrapper and its rate limiter
    - The per-Sidecar reconcile gate
    - The retry policy

    All handlers should use the global `state` instance rather than
    creating their own clients. Nothing here caches cluster objects.
    """

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _k8s_core_api: k8s_client.CoreV1Api | None = field(default=None, repr=False)
    _k8s_custom_api: k8s_client.CustomObjectsApi | None = field(default=None, repr=False)
    _k8s_configured: bool = field(default=False, repr=False)
    _rate_limiter: RateLimiter | None = field(default=None, repr=False)
    _kube_client: KubeClient | None = field(default=None, repr=False)
    _retry_policy: RetryPolicy | None = field(default=None, repr=False)
    gate: ReconcileGate = field(default_factory=ReconcileGate, repr=False)

    def _ensure_k8s_config(self) -> None:
        """Ensure Kubernetes configuration is loaded (must hold lock)."""
        if not self._k8s_configured:
            try:
                k8s_config.load_incluster_config()
            except k8s_config.ConfigException:
                k8s_config.load_kube_config()
            self._k8s_configured = True

    def get_k8s_core_api(self) -> k8s_client.CoreV1Api:
        """Get or create the Kubernetes CoreV1Api client (thread-safe)."""
        with self._lock:
            self._ensure_k8s_config()
            if self._k8s_core_api is None:
                self._k8s_core_api = k8s_client.CoreV1Api()
            return self._k8s_core_api

    def get_k8s_custom_api(self) -> k8s_client.CustomObjectsApi:
        """Get or create the Kubernetes CustomObjectsApi client (thread-safe)."""
        with self._lock:
            self._ensure_k8s_config()
            if self._k8s_custom_api is None:
                self._k8s_custom_api = k8s_client.CustomObjectsApi()
            return self._k8s_custom_api

    def get_kube_client(self) -> KubeClient:
        """Get or create the KubeClient wrapper (thread-safe)."""
        core_api = self.get_k8s_core_api()
        custom_api = self.get_k8s_custom_api()
        with self._lock:
            if self._rate_limiter is None:
                self._rate_limiter = rate_limiter_from_env()
            if self._kube_client is None:
                self._kube_client = KubeClient(
                    core_api, custom_api, rate_limiter=self._rate_limiter
                )
            return self._kube_client

    def get_retry_policy(self) -> RetryPolicy:
        """Get or create the retry policy (thread-safe)."""
        with self._lock:
            if self._retry_policy is None:
                self._retry_policy = get_retry_policy()
            return self._retry_policy

    def set_retry_policy(self, policy: RetryPolicy) -> None:
        """Replace the retry policy used by the handlers."""
        with self._lock:
            self._retry_policy = policy

    def close(self) -> None:
        """Close all connections."""
        with self._lock:
            for api in (self._k8s_core_api, self._k8s_custom_api):
                if api is not None:
                    api.api_client.close()
            self._k8s_core_api = None
            self._k8s_custom_api = None
            self._kube_client = None


# Global operator state singleton
state = OperatorState()


def get_kube_client() -> KubeClient:
    """Get the shared KubeClient."""
    return state.get_kube_client()

"""Kopf handlers for the Sidecar CRD and the pods it owns."""

import logging
import os
import sys
import time
from pathlib import Path
from typing import Any

# Add src directory to path for imports when run as script by Kopf
_src_dir = Path(__file__).parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import kopf
from prometheus_client import start_http_server

from constants import GROUP, PLURAL, VERSION
from models import OperatorError, ReconcileResult
from reconciler import reconcile_sidecar
from state import state, get_kube_client
from utils import identity, sidecar_owner
from metrics import (
    RECONCILE_TOTAL,
    RECONCILE_DURATION,
    RECONCILE_IN_PROGRESS,
    RECONCILE_COALESCED,
    set_operator_info,
    init_metrics,
)

logger = logging.getLogger(__name__)

# Operator version
OPERATOR_VERSION = "0.1.0"

# Seconds between periodic reconciles of every Sidecar (0 disables)
RESYNC_INTERVAL_SECONDS = float(os.environ.get("RESYNC_INTERVAL_SECONDS", "300"))


def run_reconcile(namespace: str, name: str, trigger: str) -> ReconcileResult | None:
    """Reconcile a Sidecar through the shared gate, recording metrics.

    Returns None if the trigger was coalesced into a reconcile of the same
    Sidecar that was already running. A failure of that reconcile is raised
    to this caller as well, so each trigger source applies its own retry.
    """
    client = get_kube_client()
    start_time = time.monotonic()
    RECONCILE_IN_PROGRESS.inc()

    try:
        ran, result = state.gate.run(
            identity(namespace, name),
            lambda: reconcile_sidecar(client, namespace, name),
        )
    except OperatorError:
        RECONCILE_TOTAL.labels(trigger=trigger, status="error").inc()
        raise
    finally:
        RECONCILE_IN_PROGRESS.dec()

    if not ran:
        RECONCILE_COALESCED.labels(trigger=trigger).inc()
        return None

    RECONCILE_TOTAL.labels(trigger=trigger, status="success").inc()
    RECONCILE_DURATION.labels(trigger=trigger).observe(time.monotonic() - start_time)
    return result


def _reconcile_or_requeue(
    namespace: str,
    name: str,
    body: kopf.Body,
    retry: int,
    trigger: str,
) -> None:
    """Reconcile, turning operator errors into a delayed Kopf retry."""
    try:
        run_reconcile(namespace, name, trigger)
    except OperatorError as e:
        delay = state.get_retry_policy().delay(e, retry)
        logger.error(
            f"Failed to reconcile Sidecar {namespace}/{name} "
            f"(attempt {retry + 1}, retrying in {delay:.0f}s): {e}"
        )
        kopf.warn(body, reason="ReconcileFailed", message=str(e)[:200])
        raise kopf.TemporaryError(f"Reconcile failed: {e}", delay=delay)


def owned_by_sidecar(meta: kopf.Meta, **_: Any) -> bool:
    """Filter for pods that have a Sidecar owner reference."""
    return sidecar_owner(meta.get("ownerReferences"), GROUP) is not None


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure operator settings on startup."""
    # Reduce logging noise
    settings.posting.level = logging.WARNING
    # Bounded worker pool for synchronous handlers
    settings.execution.max_workers = int(os.environ.get("MAX_WORKERS", "4"))
    # Set watching namespace - explicit cluster-wide or specific namespace
    # Can be overridden by WATCH_NAMESPACE env var
    watch_namespace = os.environ.get("WATCH_NAMESPACE", "")
    if watch_namespace:
        settings.watching.namespaces = [watch_namespace]
    else:
        settings.watching.clusterwide = True

    # Start Prometheus metrics server
    metrics_port = int(os.environ.get("METRICS_PORT", "9090"))
    try:
        start_http_server(metrics_port)
        logger.info("Prometheus metrics server started on port %d", metrics_port)
    except OSError as e:
        logger.warning("Failed to start metrics server on port %d: %s", metrics_port, e)

    init_metrics()
    set_operator_info(OPERATOR_VERSION, watch_namespace or "cluster")

    logger.info("Sidecar terminator operator started (version %s)", OPERATOR_VERSION)


@kopf.on.cleanup()
def cleanup(**_: Any) -> None:
    """Clean up resources on operator shutdown."""
    logger.info("Sidecar terminator operator shutting down")
    state.close()


@kopf.on.create(GROUP, VERSION, PLURAL)
def create_sidecar(
    namespace: str, name: str, body: kopf.Body, retry: int, **_: Any
) -> None:
    """Handle Sidecar creation."""
    logger.info(f"Sidecar created: {namespace}/{name}")
    _reconcile_or_requeue(namespace, name, body, retry, "create")


@kopf.on.update(GROUP, VERSION, PLURAL)
def update_sidecar(
    namespace: str, name: str, body: kopf.Body, retry: int, **_: Any
) -> None:
    """Handle Sidecar spec updates."""
    logger.info(f"Sidecar updated: {namespace}/{name}")
    _reconcile_or_requeue(namespace, name, body, retry, "update")


@kopf.on.resume(GROUP, VERSION, PLURAL)
def resume_sidecar(
    namespace: str, name: str, body: kopf.Body, retry: int, **_: Any
) -> None:
    """Reconcile existing Sidecars when the operator starts."""
    logger.info(f"Resuming Sidecar: {namespace}/{name}")
    _reconcile_or_requeue(namespace, name, body, retry, "resume")


@kopf.on.event("pods", when=owned_by_sidecar)
def owned_pod_event(
    event: dict[str, Any],
    meta: kopf.Meta,
    namespace: str,
    name: str,
    **_: Any,
) -> None:
    """Reconcile the owning Sidecar when one of its pods changes.

    Kopf does not retry event handlers, so failures are only logged; the
    next event or the periodic resync reconciles again.
    """
    owner = sidecar_owner(meta.get("ownerReferences"), GROUP)
    if owner is None:
        return

    logger.debug(f"Pod {namespace}/{name} {event.get('type')}, reconciling Sidecar {owner}")
    try:
        run_reconcile(namespace, owner, "pod")
    except OperatorError as e:
        logger.error(
            f"Failed to reconcile Sidecar {namespace}/{owner} "
            f"after event on pod {name}: {e}"
        )


def resync_sidecar(namespace: str, name: str, **_: Any) -> None:
    """Periodic reconciliation to catch triggers that were lost or failed."""
    logger.debug(f"Resyncing Sidecar: {namespace}/{name}")
    try:
        run_reconcile(namespace, name, "timer")
    except OperatorError as e:
        logger.error(f"Periodic reconcile failed for Sidecar {namespace}/{name}: {e}")


if RESYNC_INTERVAL_SECONDS > 0:
    kopf.timer(GROUP, VERSION, PLURAL, interval=RESYNC_INTERVAL_SECONDS)(resync_sidecar)


def main() -> None:
    """Entry point for running the operator."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Kopf will be run via the CLI, but this allows direct invocation for testing
    logger.info("Starting sidecar terminator operator...")
    logger.info("Use 'kopf run src/handlers.py' to run the operator")
    sys.exit(0)


if __name__ == "__main__":
    main()

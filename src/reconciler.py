"""Delete rule evaluation for a single Sidecar."""

import logging

from kube_client import KubeClient
from models import NotFoundError, ReconcileResult, Sidecar
from resources.namespace import resolve_namespaces
from resources.pod import cull_pods
from resources.selector import build_selector
from resources.status import report_status

logger = logging.getLogger(__name__)


def reconcile_sidecar(client: KubeClient, namespace: str, name: str) -> ReconcileResult:
    """Run one full reconcile pass for a Sidecar.

    Reads the Sidecar, applies its delete rules in declared order and, once
    every rule has run, appends a Reconciled condition to its status.

    A Sidecar that no longer exists is not an error. Any other failure
    aborts the pass immediately: later rules are skipped and the status is
    left unchanged. Pods already deleted are not restored.

    Raises:
        ClusterQueryError: reading the Sidecar or listing namespaces/pods failed
        SelectorConstructionError: a rule's labels are not a valid selector
        DeletionError: a pod delete failed
        StatusUpdateError: the final status update failed
    """
    try:
        body = client.get_sidecar(namespace, name)
    except NotFoundError:
        logger.info(f"Sidecar {namespace}/{name} not found, assuming it was deleted")
        return ReconcileResult(found=False)

    sidecar = Sidecar.from_body(body)
    result = ReconcileResult()

    for index, rule in enumerate(sidecar.delete_rules):
        target_namespaces = resolve_namespaces(client, rule.namespace)
        selector = build_selector(rule.labels)
        logger.debug(
            f"Sidecar {namespace}/{name} rule {index}: selector {selector} "
            f"in {len(target_namespaces)} namespaces"
        )

        for target in target_namespaces:
            deleted = cull_pods(client, target, selector)
            result.deleted_pods.extend((target, pod) for pod in deleted)

        result.rules_processed += 1
        result.namespaces_processed += len(target_namespaces)

    result.condition = report_status(
        client, sidecar, result.rules_processed, result.namespaces_processed
    )

    logger.info(
        f"Reconciled Sidecar {namespace}/{name}: {result.rules_processed} rules, "
        f"{result.namespaces_processed} namespaces, "
        f"{len(result.deleted_pods)} pods deleted"
    )
    return result

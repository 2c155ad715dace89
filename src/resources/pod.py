"""Pod culling for resolved delete rules."""

import logging

from kube_client import KubeClient
from metrics import PODS_DELETED
from resources.selector import LabelSelector

logger = logging.getLogger(__name__)


def cull_pods(client: KubeClient, namespace: str, selector: LabelSelector) -> list[str]:
    """Delete every pod in a namespace matched by the selector.

    Pods are deleted one by one in listing order. The first failed delete
    aborts the cull; pods deleted before it stay deleted.

    Returns:
        Names of the deleted pods, in deletion order

    Raises:
        ClusterQueryError: listing pods failed
        DeletionError: a delete call failed
    """
    pods = client.list_pods(namespace, selector.to_query())
    if not pods:
        logger.debug(f"No pods match {selector} in namespace {namespace}")
        return []

    deleted: list[str] = []
    for pod in pods:
        logger.info(f"Deleting pod {pod.namespace}/{pod.name}")
        client.delete_pod(pod.namespace, pod.name)
        PODS_DELETED.labels(namespace=pod.namespace).inc()
        deleted.append(pod.name)

    return deleted

"""Namespace resolution for delete rules."""

import logging

from constants import WILDCARD
from kube_client import KubeClient

logger = logging.getLogger(__name__)


def resolve_namespaces(client: KubeClient, namespace: str) -> list[str]:
    """Expand a rule's namespace field into the namespaces to target.

    A literal name is returned as-is without checking that it exists. The
    wildcard is expanded against the live namespace list on every call.

    Raises:
        ClusterQueryError: listing namespaces failed
    """
    if namespace != WILDCARD:
        return [namespace]

    namespaces = client.list_namespaces()
    logger.debug(f"Wildcard namespace expanded to {len(namespaces)} namespaces")
    return namespaces

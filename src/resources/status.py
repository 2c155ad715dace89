"""Status reporting for reconciled Sidecars."""

import logging

from constants import RECONCILED_CONDITION, RECONCILED_REASON
from kube_client import KubeClient
from models import Condition, ConditionStatus, Sidecar
from utils import now_iso

logger = logging.getLogger(__name__)


def reconciled_condition(rules_processed: int, namespaces_processed: int) -> Condition:
    """Build the condition recorded after a successful reconcile."""
    return Condition(
        type=RECONCILED_CONDITION,
        status=ConditionStatus.TRUE,
        reason=RECONCILED_REASON,
        message=(
            f"Processed {rules_processed} DeleteRules "
            f"for {namespaces_processed} namespaces"
        ),
        last_transition_time=now_iso(),
    )


def report_status(
    client: KubeClient,
    sidecar: Sidecar,
    rules_processed: int,
    namespaces_processed: int,
) -> Condition:
    """Append a Reconciled condition to the Sidecar and persist its status.

    Earlier conditions, including older Reconciled ones, are kept.

    Raises:
        StatusUpdateError: the status update was rejected
    """
    condition = reconciled_condition(rules_processed, namespaces_processed)
    sidecar.add_condition(condition)

    client.replace_sidecar_status(
        sidecar.namespace, sidecar.name, sidecar.status_body()
    )
    logger.debug(
        f"Recorded {condition.type} condition on Sidecar "
        f"{sidecar.namespace}/{sidecar.name}: {condition.message}"
    )
    return condition

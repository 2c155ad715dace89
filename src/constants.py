"""Constants used across the operator."""

# Sidecar custom resource coordinates
GROUP = "terminator.defenseunicorns.com"
VERSION = "v1alpha1"
PLURAL = "sidecars"
KIND = "Sidecar"

# "*" means "all" for a rule namespace, or as both key and value of a label
WILDCARD = "*"

# Condition appended after every successful reconcile
RECONCILED_CONDITION = "Reconciled"
RECONCILED_REASON = "Reconciled"

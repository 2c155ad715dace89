"""Tests for data models."""

from models import (
    ConditionStatus,
    Condition,
    DeleteRule,
    Sidecar,
)


class TestDeleteRule:
    """Tests for DeleteRule dataclass."""

    def test_from_dict(self):
        rule = DeleteRule.from_dict({"namespace": "default", "labels": {"app": "x"}})

        assert rule.namespace == "default"
        assert rule.labels == {"app": "x"}

    def test_from_dict_missing_fields(self):
        rule = DeleteRule.from_dict({})

        assert rule.namespace == ""
        assert rule.labels == {}

    def test_from_dict_null_labels(self):
        rule = DeleteRule.from_dict({"namespace": "*", "labels": None})

        assert rule.labels == {}


class TestCondition:
    """Tests for Condition dataclass."""

    def test_to_dict(self):
        condition = Condition(
            type="Reconciled",
            status=ConditionStatus.TRUE,
            reason="Reconciled",
            message="Processed 1 DeleteRules for 2 namespaces",
            last_transition_time="2024-01-01T00:00:00Z",
        )
        result = condition.to_dict()

        assert result == {
            "type": "Reconciled",
            "status": "True",
            "reason": "Reconciled",
            "message": "Processed 1 DeleteRules for 2 namespaces",
            "lastTransitionTime": "2024-01-01T00:00:00Z",
        }


class TestSidecar:
    """Tests for Sidecar dataclass."""

    BODY = {
        "apiVersion": "terminator.defenseunicorns.com/v1alpha1",
        "kind": "Sidecar",
        "metadata": {"name": "sc", "namespace": "default", "resourceVersion": "42"},
        "spec": {
            "deleteRules": [
                {"namespace": "default", "labels": {"app": "x"}},
                {"namespace": "*", "labels": {"*": "*"}},
            ]
        },
        "status": {
            "conditions": [
                {
                    "type": "Reconciled",
                    "status": "True",
                    "reason": "Reconciled",
                    "message": "",
                    "lastTransitionTime": "2024-01-01T00:00:00Z",
                }
            ],
        },
    }

    def test_from_body(self):
        sidecar = Sidecar.from_body(self.BODY)

        assert sidecar.name == "sc"
        assert sidecar.namespace == "default"
        assert [r.namespace for r in sidecar.delete_rules] == ["default", "*"]
        assert sidecar.delete_rules[1].labels == {"*": "*"}
        assert len(sidecar.conditions) == 1

    def test_from_body_without_spec_or_status(self):
        sidecar = Sidecar.from_body({"metadata": {"name": "sc", "namespace": "ns"}})

        assert sidecar.delete_rules == []
        assert sidecar.conditions == []

    def test_status_body(self):
        sidecar = Sidecar.from_body(self.BODY)
        sidecar.add_condition(
            Condition("Reconciled", ConditionStatus.TRUE, "Reconciled", "again", "t")
        )

        body = sidecar.status_body()

        assert body["metadata"]["resourceVersion"] == "42"
        assert body["kind"] == "Sidecar"
        assert len(body["status"]["conditions"]) == 2
        assert body["status"]["conditions"][1]["message"] == "again"
        assert "spec" not in body

    def test_status_body_keeps_unmodelled_condition_fields(self):
        legacy = {"type": "Legacy", "status": "true", "observedGeneration": 3}
        sidecar = Sidecar.from_body(
            {"metadata": {"name": "sc"}, "status": {"conditions": [legacy]}}
        )

        assert sidecar.status_body()["status"]["conditions"] == [legacy]

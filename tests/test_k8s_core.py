"""Tests for the Kubernetes workload directory and mutator."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import ApiException

from apps.autoscaler.models.workload import Workload
from apps.autoscaler.services.k8s_core import (
    KubernetesWorkloads,
    list_scalable_workloads,
    scale_deployment,
)

GET_APPS_API = "apps.autoscaler.services.k8s_core.get_apps_api"


def _deployment(name, namespace="default", replicas=3, annotations=None):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, namespace=namespace, annotations=annotations),
        spec=SimpleNamespace(replicas=replicas),
    )


@pytest.fixture
def apps_api():
    api = MagicMock()
    with patch(GET_APPS_API, return_value=api):
        yield api


class TestListScalableWorkloads:
    def test_namespaced(self, apps_api):
        apps_api.list_namespaced_deployment.return_value = SimpleNamespace(
            items=[_deployment("web", annotations={"prometheusScaler/scale-to": "2"})]
        )

        workloads = list_scalable_workloads("scale==prometheus", namespace="shop")

        apps_api.list_namespaced_deployment.assert_called_once_with(
            namespace="shop", label_selector="scale==prometheus"
        )
        assert workloads == [
            Workload(
                name="web",
                namespace="default",
                replicas=3,
                annotations={"prometheusScaler/scale-to": "2"},
            )
        ]

    def test_all_namespaces(self, apps_api):
        apps_api.list_deployment_for_all_namespaces.return_value = SimpleNamespace(
            items=[_deployment("a", "ns1"), _deployment("b", "ns2")]
        )

        workloads = list_scalable_workloads("scale==prometheus")

        apps_api.list_deployment_for_all_namespaces.assert_called_once_with(
            label_selector="scale==prometheus"
        )
        apps_api.list_namespaced_deployment.assert_not_called()
        assert [w.key for w in workloads] == ["ns1/a", "ns2/b"]

    def test_missing_replicas_and_annotations(self, apps_api):
        apps_api.list_deployment_for_all_namespaces.return_value = SimpleNamespace(
            items=[_deployment("web", replicas=None, annotations=None)]
        )

        (workload,) = list_scalable_workloads("scale==prometheus")

        assert workload.replicas == 1
        assert workload.annotations == {}

    def test_api_error_is_raised(self, apps_api):
        apps_api.list_deployment_for_all_namespaces.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(ApiException):
            list_scalable_workloads("scale==prometheus")


class TestScaleDeployment:
    def test_patches_scale_subresource(self, apps_api):
        apps_api.patch_namespaced_deployment_scale.return_value = SimpleNamespace(
            metadata=SimpleNamespace(name="web"), spec=SimpleNamespace(replicas=5)
        )

        result = scale_deployment("web", 5, "shop")

        apps_api.patch_namespaced_deployment_scale.assert_called_once_with(
            name="web",
            namespace="shop",
            body={"spec": {"replicas": 5}},
        )
        assert result == {"name": "web", "namespace": "shop", "replicas": 5}

    def test_api_error_is_raised(self, apps_api):
        apps_api.patch_namespaced_deployment_scale.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ApiException):
            scale_deployment("web", 5, "shop")


class TestKubernetesWorkloads:
    def test_empty_namespace_means_all(self):
        assert KubernetesWorkloads("scale==prometheus", "").namespace is None

    def test_scale_uses_workload_identity(self, apps_api):
        apps_api.patch_namespaced_deployment_scale.return_value = SimpleNamespace(
            metadata=SimpleNamespace(name="api"), spec=SimpleNamespace(replicas=2)
        )
        workload = Workload(name="api", namespace="shop", replicas=4)

        KubernetesWorkloads("scale==prometheus").scale(workload, 2)

        kwargs = apps_api.patch_namespaced_deployment_scale.call_args.kwargs
        assert (kwargs["name"], kwargs["namespace"]) == ("api", "shop")

"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List, Optional

import pytest

from apps.autoscaler.models.workload import Workload
from apps.autoscaler.services.prometheus_client import MetricQueryError
from apps.policy_engine.schemas.policy import ANNOTATION_PREFIX, ScalingAnnotations


def annotations_for(**fields: str) -> Dict[str, str]:
    """Build a raw annotation map from ScalingAnnotations field names."""
    keys = {
        "query": "prometheus-query",
        "min_scale": "min-scale",
        "max_scale": "max-scale",
        "scale_up_when": "scale-up-when",
        "scale_down_when": "scale-down-when",
        "scale_to": "scale-to",
        "scale_by": "scale-by",
    }
    return {ANNOTATION_PREFIX + keys[name]: value for name, value in fields.items()}


@pytest.fixture
def make_config():
    """Factory for ScalingAnnotations with a query and bounds filled in."""

    def _make(min_scale="2", max_scale="4", query="sum(rate(http_requests_total[1m]))", **kwargs):
        return ScalingAnnotations(query=query, min_scale=min_scale, max_scale=max_scale, **kwargs)

    return _make


@pytest.fixture
def make_workload():
    def _make(name="web", namespace="default", replicas=3, **fields):
        fields.setdefault("query", "sum(rate(http_requests_total[1m]))")
        fields.setdefault("min_scale", "2")
        fields.setdefault("max_scale", "4")
        return Workload(
            name=name,
            namespace=namespace,
            replicas=replicas,
            annotations=annotations_for(**fields),
        )

    return _make


class FakeDirectory:
    def __init__(self, workloads: Optional[List[Workload]] = None, error: Optional[Exception] = None):
        self.workloads = workloads or []
        self.error = error

    def list_workloads(self) -> List[Workload]:
        if self.error:
            raise self.error
        return list(self.workloads)


class FakeMetricSource:
    def __init__(self, values: Optional[Dict[str, Any]] = None, default: Optional[float] = None):
        self.values = values or {}
        self.default = default
        self.queries: List[str] = []

    def query_scalar(self, query: str) -> float:
        self.queries.append(query)
        if query in self.values:
            value = self.values[query]
            if isinstance(value, Exception):
                raise value
            return value
        if self.default is None:
            raise MetricQueryError(f"query {query!r} returned an empty vector")
        return self.default


class FakeMutator:
    def __init__(self, fail_times: int = 0):
        self.calls: List[tuple] = []
        self.fail_times = fail_times

    def scale(self, workload: Workload, replicas: int):
        self.calls.append((workload.key, replicas))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("conflict")
        return {"name": workload.name, "namespace": workload.namespace, "replicas": replicas}


@pytest.fixture
def fake_directory():
    return FakeDirectory


@pytest.fixture
def fake_metric_source():
    return FakeMetricSource


@pytest.fixture
def fake_mutator():
    return FakeMutator

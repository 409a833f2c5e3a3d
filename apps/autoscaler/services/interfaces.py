"""
Collaborators the scaling cycle depends on.

The Kubernetes and Prometheus implementations live in k8s_core and
prometheus_client; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Any, List, Protocol

from ..models.workload import Workload


class WorkloadDirectory(Protocol):
    def list_workloads(self) -> List[Workload]:
        ...


class MetricSource(Protocol):
    def query_scalar(self, query: str) -> float:
        ...


class WorkloadMutator(Protocol):
    def scale(self, workload: Workload, replicas: int) -> Any:
        ...

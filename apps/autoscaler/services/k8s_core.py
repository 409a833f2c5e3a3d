import logging
import time
from typing import Any, Dict, List, Optional

from kubernetes.client import ApiException, AppsV1Api
from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from ..models.workload import Workload
from ..utils.k8s_client import get_apps_api

logger = logging.getLogger("prometheus_scaler.k8s")
tracer = trace.get_tracer(__name__)

# Used for the metric label when listing across all namespaces
ALL_NAMESPACES = "*"

# -------------------------------------------------------------------------
# Prometheus metrics for Kubernetes operations
# -------------------------------------------------------------------------

K8S_API_CALLS_TOTAL = Counter(
    "prometheus_scaler_k8s_api_calls_total",
    "Total Kubernetes API calls from the autoscaler",
    ["verb", "resource", "namespace"],
)

K8S_API_ERRORS_TOTAL = Counter(
    "prometheus_scaler_k8s_api_errors_total",
    "Total failed Kubernetes API calls from the autoscaler",
    ["verb", "resource", "namespace"],
)

K8S_API_LATENCY_SECONDS = Histogram(
    "prometheus_scaler_k8s_api_latency_seconds",
    "Latency of Kubernetes API calls from the autoscaler",
    ["verb", "resource", "namespace"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)

K8S_SCALE_TOTAL = Counter(
    "prometheus_scaler_k8s_scale_total",
    "Total Kubernetes Deployment scale operations",
    ["namespace", "deployment"],
)

DEPLOYMENT_DESIRED_REPLICAS = Gauge(
    "prometheus_scaler_deployment_desired_replicas",
    "Desired replicas per scalable Deployment (last observed)",
    ["namespace", "deployment"],
)


def _observe(labels: Dict[str, str], start: float, failed: bool = False) -> None:
    K8S_API_CALLS_TOTAL.labels(**labels).inc()
    K8S_API_LATENCY_SECONDS.labels(**labels).observe(time.time() - start)
    if failed:
        K8S_API_ERRORS_TOTAL.labels(**labels).inc()


# -------------------------------------------------------------------------
# Workload directory
# -------------------------------------------------------------------------


def list_scalable_workloads(
    label_selector: str,
    namespace: Optional[str] = None,
) -> List[Workload]:
    """
    Returns every Deployment matching `label_selector`.

    An empty namespace lists across all namespaces.
    """
    ns_label = namespace or ALL_NAMESPACES
    labels = {"verb": "list", "resource": "deployment", "namespace": ns_label}

    with tracer.start_as_current_span("k8s.list_scalable_workloads") as span:
        span.set_attribute("prometheus_scaler.k8s.namespace", ns_label)
        span.set_attribute("prometheus_scaler.k8s.label_selector", label_selector)

        apps_v1 = get_apps_api()

        start = time.time()
        try:
            if namespace:
                resp = apps_v1.list_namespaced_deployment(
                    namespace=namespace,
                    label_selector=label_selector,
                )
            else:
                resp = apps_v1.list_deployment_for_all_namespaces(
                    label_selector=label_selector,
                )
            _observe(labels, start)
        except ApiException as exc:
            _observe(labels, start, failed=True)
            logger.error("Error listing deployments in %s: %s", ns_label, exc)
            span.record_exception(exc)
            raise

        workloads: List[Workload] = []
        for dep in resp.items:
            # the API server defaults an omitted replica count to 1
            replicas = dep.spec.replicas if dep.spec.replicas is not None else 1

            DEPLOYMENT_DESIRED_REPLICAS.labels(
                namespace=dep.metadata.namespace, deployment=dep.metadata.name
            ).set(replicas)

            workloads.append(
                Workload(
                    name=dep.metadata.name,
                    namespace=dep.metadata.namespace,
                    replicas=replicas,
                    annotations=dep.metadata.annotations or {},
                )
            )

        span.set_attribute("prometheus_scaler.k8s.deployment_count", len(workloads))
        return workloads


# -------------------------------------------------------------------------
# Workload mutator
# -------------------------------------------------------------------------


def scale_deployment(
    name: str,
    replicas: int,
    namespace: str,
) -> Dict[str, Any]:
    labels = {"verb": "patch_scale", "resource": "deployment", "namespace": namespace}

    with tracer.start_as_current_span("k8s.scale_deployment") as span:
        span.set_attribute("prometheus_scaler.k8s.deployment", name)
        span.set_attribute("prometheus_scaler.k8s.replicas", replicas)
        span.set_attribute("prometheus_scaler.k8s.namespace", namespace)

        apps_v1: AppsV1Api = get_apps_api()
        body = {"spec": {"replicas": replicas}}

        start = time.time()
        try:
            resp = apps_v1.patch_namespaced_deployment_scale(
                name=name,
                namespace=namespace,
                body=body,
            )
            _observe(labels, start)
        except ApiException as exc:
            _observe(labels, start, failed=True)
            logger.error("Error scaling deployment %s/%s: %s", namespace, name, exc)
            span.record_exception(exc)
            raise

        K8S_SCALE_TOTAL.labels(namespace=namespace, deployment=name).inc()
        DEPLOYMENT_DESIRED_REPLICAS.labels(
            namespace=namespace, deployment=name
        ).set(resp.spec.replicas or 0)

        return {
            "name": resp.metadata.name,
            "namespace": namespace,
            "replicas": resp.spec.replicas,
        }


class KubernetesWorkloads:
    """
    Workload directory and workload mutator backed by the Kubernetes API.
    """

    def __init__(self, label_selector: str, namespace: Optional[str] = None) -> None:
        self.label_selector = label_selector
        self.namespace = namespace or None

    def list_workloads(self) -> List[Workload]:
        return list_scalable_workloads(self.label_selector, self.namespace)

    def scale(self, workload: Workload, replicas: int) -> Dict[str, Any]:
        return scale_deployment(
            name=workload.name,
            replicas=replicas,
            namespace=workload.namespace,
        )

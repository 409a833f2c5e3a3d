"""
Kubernetes client helper for the autoscaler.

- Prefers in-cluster configuration (ServiceAccount).
- Falls back to local kubeconfig (for dev/testing).
"""

from __future__ import annotations

import logging

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger("prometheus_scaler.k8s")


def get_apps_api() -> client.AppsV1Api:
    """
    Returns an AppsV1Api client.

    Order of config:
      1. In-cluster (for pods in the cluster)
      2. KUBECONFIG / ~/.kube/config (for local dev)
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except ConfigException:
        logger.debug("In-cluster config not found, trying local kubeconfig")
        config.load_kube_config()
        logger.debug("Loaded local kubeconfig")

    return client.AppsV1Api()

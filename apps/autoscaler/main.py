# apps/autoscaler/main.py

import logging
import time

from prometheus_client import start_http_server

from apps.autoscaler.config import Settings, settings
from apps.autoscaler.services.k8s_core import KubernetesWorkloads
from apps.autoscaler.services.prometheus_client import PrometheusClient
from apps.autoscaler.services.scale_runner import ScaleRunner
from apps.autoscaler.services.scaling_cycle import ScalingCycle
from apps.policy_engine.runtime.audit_logger import AuditLogger

logger = logging.getLogger("prometheus_scaler")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def build_cycle(cfg: Settings) -> ScalingCycle:
    workloads = KubernetesWorkloads(
        label_selector=cfg.LABEL_SELECTOR,
        namespace=cfg.NAMESPACE,
    )
    return ScalingCycle(
        directory=workloads,
        metric_source=PrometheusClient(
            base_url=cfg.PROMETHEUS_URL,
            timeout_seconds=cfg.PROMETHEUS_QUERY_TIMEOUT_SECONDS,
        ),
        mutator=workloads,
        runner=ScaleRunner(max_retries=cfg.APPLY_MAX_RETRIES),
        annotation_prefix=cfg.ANNOTATION_PREFIX,
        dry_run=cfg.DRY_RUN,
        audit_logger=AuditLogger(cfg.AUDIT_LOG_PATH) if cfg.AUDIT_LOG_PATH else None,
    )


def main() -> None:
    configure_logging(settings.LOG_LEVEL)

    logger.info("prometheus-url=%s", settings.PROMETHEUS_URL)
    logger.info("assessment-interval=%ss", settings.ASSESSMENT_INTERVAL_SECONDS)
    logger.info("label-selector=%s dry-run=%s", settings.LABEL_SELECTOR, settings.DRY_RUN)

    if settings.METRICS_PORT:
        start_http_server(settings.METRICS_PORT)
        logger.info("Serving autoscaler metrics on :%d", settings.METRICS_PORT)

    cycle = build_cycle(settings)

    try:
        while True:
            cycle.run_once()
            time.sleep(settings.ASSESSMENT_INTERVAL_SECONDS)
    except KeyboardInterrupt:
        logger.info("Exiting on Ctrl+C")


if __name__ == "__main__":
    main()

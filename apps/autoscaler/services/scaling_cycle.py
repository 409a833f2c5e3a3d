"""
One pass of the autoscaler over every scalable workload.

Per workload:
  1. build the policy from the workload's annotations
  2. query the metric source with the policy's query
  3. decide the next replica count
  4. apply it through the scale runner when it differs from the current one

A failure for one workload is recorded as its outcome and never stops the
others.
"""

import datetime
import logging
import time
from typing import List, Optional

from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from apps.policy_engine.runtime.audit_logger import AuditLogger
from apps.policy_engine.runtime.builder import build_policy
from apps.policy_engine.runtime.engine import decide
from apps.policy_engine.runtime.errors import ConfigError, EvalError
from apps.policy_engine.schemas.policy import ANNOTATION_PREFIX, ScalingAnnotations

from ..models.workload import OutcomeStatus, Workload, WorkloadOutcome
from .interfaces import MetricSource, WorkloadDirectory, WorkloadMutator
from .prometheus_client import MetricQueryError
from .scale_runner import ScaleRunner

logger = logging.getLogger("prometheus_scaler.cycle")
tracer = trace.get_tracer(__name__)

# --------------------------------------------------------------------------
# Prometheus metrics
# --------------------------------------------------------------------------

SCALER_DECISIONS_TOTAL = Counter(
    "prometheus_scaler_decisions_total",
    "Per-workload outcomes of scaling cycles",
    ["status", "policy"],
)

SCALER_CYCLE_ERRORS_TOTAL = Counter(
    "prometheus_scaler_cycle_errors_total",
    "Scaling cycles aborted because workloads could not be listed",
)

SCALER_CYCLE_DURATION_SECONDS = Histogram(
    "prometheus_scaler_cycle_duration_seconds",
    "Duration of one scaling cycle over all workloads",
    buckets=(0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60),
)

SCALER_OBSERVED_VALUE = Gauge(
    "prometheus_scaler_observed_value",
    "Last value returned by a workload's scaling query",
    ["namespace", "deployment"],
)

SCALER_TARGET_REPLICAS = Gauge(
    "prometheus_scaler_target_replicas",
    "Last replica count decided for a workload",
    ["namespace", "deployment"],
)


class ScalingCycle:
    def __init__(
        self,
        directory: WorkloadDirectory,
        metric_source: MetricSource,
        mutator: WorkloadMutator,
        runner: Optional[ScaleRunner] = None,
        annotation_prefix: str = ANNOTATION_PREFIX,
        dry_run: bool = False,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.directory = directory
        self.metric_source = metric_source
        self.mutator = mutator
        self.runner = runner or ScaleRunner()
        self.annotation_prefix = annotation_prefix
        self.dry_run = dry_run
        self.audit_logger = audit_logger

    def run_once(self) -> List[WorkloadOutcome]:
        start = time.time()

        with tracer.start_as_current_span("scaler.cycle") as span:
            try:
                workloads = self.directory.list_workloads()
            except Exception as exc:  # noqa: BLE001
                logger.error("Listing workloads failed: %s", exc)
                span.record_exception(exc)
                SCALER_CYCLE_ERRORS_TOTAL.inc()
                return []

            logger.info("Considering %d deployments for scaling.", len(workloads))
            span.set_attribute("prometheus_scaler.cycle.workloads", len(workloads))

            outcomes = [self.evaluate_workload(w) for w in workloads]

        SCALER_CYCLE_DURATION_SECONDS.observe(time.time() - start)
        return outcomes

    def evaluate_workload(self, workload: Workload) -> WorkloadOutcome:
        with tracer.start_as_current_span("scaler.workload") as span:
            span.set_attribute("prometheus_scaler.workload", workload.key)
            try:
                outcome = self._evaluate(workload)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected failure evaluating %s", workload.key)
                span.record_exception(exc)
                outcome = WorkloadOutcome(
                    namespace=workload.namespace,
                    name=workload.name,
                    status=OutcomeStatus.INTERNAL_ERROR,
                    cur_scale=workload.replicas,
                    error=f"{type(exc).__name__}: {exc}",
                )
            span.set_attribute("prometheus_scaler.outcome", outcome.status.value)

        self._record(outcome)
        return outcome

    def _evaluate(self, workload: Workload) -> WorkloadOutcome:
        def outcome(status: OutcomeStatus, **kwargs) -> WorkloadOutcome:
            return WorkloadOutcome(
                namespace=workload.namespace,
                name=workload.name,
                status=status,
                cur_scale=workload.replicas,
                **kwargs,
            )

        config = ScalingAnnotations.from_annotations(
            workload.annotations, prefix=self.annotation_prefix
        )

        try:
            policy = build_policy(config, workload.replicas)
        except ConfigError as exc:
            return outcome(OutcomeStatus.CONFIG_ERROR, error=str(exc))

        kind = policy.kind.value

        try:
            observed = self.metric_source.query_scalar(policy.query)
        except MetricQueryError as exc:
            return outcome(OutcomeStatus.QUERY_ERROR, policy_kind=kind, error=str(exc))

        SCALER_OBSERVED_VALUE.labels(
            namespace=workload.namespace, deployment=workload.name
        ).set(observed)

        try:
            new_scale = decide(policy, observed)
        except EvalError as exc:
            return outcome(
                OutcomeStatus.EVAL_ERROR, observed=observed, policy_kind=kind, error=str(exc)
            )

        SCALER_TARGET_REPLICAS.labels(
            namespace=workload.namespace, deployment=workload.name
        ).set(new_scale)

        if new_scale == workload.replicas:
            return outcome(
                OutcomeStatus.UNCHANGED, new_scale=new_scale, observed=observed, policy_kind=kind
            )

        result = self.runner.run(
            self.mutator.scale,
            replicas=new_scale,
            dry_run=self.dry_run,
            target=workload.key,
            workload=workload,
        )

        if result["status"] == "dry_run":
            status = OutcomeStatus.DRY_RUN
        elif result["status"] == "success":
            status = OutcomeStatus.SCALED
        else:
            status = OutcomeStatus.APPLY_ERROR

        return outcome(
            status,
            new_scale=new_scale,
            observed=observed,
            policy_kind=kind,
            error=result["error"],
        )

    def _record(self, outcome: WorkloadOutcome) -> None:
        SCALER_DECISIONS_TOTAL.labels(
            status=outcome.status.value, policy=outcome.policy_kind or "none"
        ).inc()

        target = f"{outcome.namespace}/{outcome.name}"
        if outcome.status is OutcomeStatus.UNCHANGED:
            logger.info("curScale == newScale (%d). Not scaling %s", outcome.cur_scale, target)
        elif outcome.ok:
            logger.info(
                "%s: %s -> %s (observed=%s policy=%s)",
                target,
                outcome.cur_scale,
                outcome.new_scale,
                outcome.observed,
                outcome.policy_kind,
            )
        else:
            logger.warning("%s skipped (%s): %s", target, outcome.status.value, outcome.error)

        if self.audit_logger is not None:
            event = outcome.to_dict()
            event["ts_utc"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
            try:
                self.audit_logger.write_event(event)
            except OSError as exc:
                logger.error("Writing audit event failed: %s", exc)

import logging
import random
import time
from typing import Any, Callable, Dict, Optional

from opentelemetry import trace

logger = logging.getLogger("prometheus_scaler.scale_runner")
tracer = trace.get_tracer(__name__)


class ScaleRunner:
    """
    Applies a scale decision through a workload mutator with:
      - optional dry-run (decision is logged, nothing is patched)
      - retries with exponential backoff and jitter
      - OpenTelemetry spans

    Never raises: failures are reported in the returned result dict
    {status, attempts, duration_seconds, result, error}, where status is
    success | failed | dry_run.
    """

    def __init__(
        self,
        max_retries: int = 1,
        base_backoff_seconds: float = 0.5,
        max_backoff_seconds: float = 5.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

    def _compute_backoff(self, attempt: int) -> float:
        base = min(self.max_backoff_seconds, self.base_backoff_seconds * (2 ** attempt))
        jitter = random.uniform(0, base * 0.2)
        return base + jitter

    def run(
        self,
        scale_fn: Callable[..., Any],
        *,
        replicas: int,
        dry_run: bool = False,
        target: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        start_time = time.time()

        with tracer.start_as_current_span("scaler.action.scale") as span:
            span.set_attribute("prometheus_scaler.action.replicas", replicas)
            span.set_attribute("prometheus_scaler.action.dry_run", dry_run)
            if target:
                span.set_attribute("prometheus_scaler.action.target", target)

            if dry_run:
                logger.info("Dry-run: would set replicas=%d on %s", replicas, target)
                span.set_attribute("prometheus_scaler.action.status", "dry_run")
                return {
                    "status": "dry_run",
                    "attempts": 0,
                    "duration_seconds": time.time() - start_time,
                    "result": None,
                    "error": None,
                }

            last_error: Optional[Exception] = None
            attempts = 0

            for attempt in range(self.max_retries + 1):
                attempts = attempt + 1
                try:
                    span.add_event("attempt_start", {"attempt": attempts})
                    result = scale_fn(replicas=replicas, **kwargs)

                    duration = time.time() - start_time
                    logger.info(
                        "Scaled %s to %d replicas (attempts=%d duration=%.2fs)",
                        target,
                        replicas,
                        attempts,
                        duration,
                    )
                    span.set_attribute("prometheus_scaler.action.status", "success")
                    span.set_attribute("prometheus_scaler.action.attempts", attempts)

                    return {
                        "status": "success",
                        "attempts": attempts,
                        "duration_seconds": duration,
                        "result": result,
                        "error": None,
                    }

                except Exception as exc:  # noqa: BLE001
                    last_error = exc
                    logger.warning(
                        "Scale failed: target=%s attempt=%d/%d error=%s",
                        target,
                        attempts,
                        self.max_retries + 1,
                        exc,
                    )
                    span.record_exception(exc)

                    if attempt >= self.max_retries:
                        break

                    backoff = self._compute_backoff(attempt)
                    logger.info("Retrying scale of %s after %.2fs", target, backoff)
                    time.sleep(backoff)

            span.set_attribute("prometheus_scaler.action.status", "failed")
            span.set_attribute("prometheus_scaler.action.attempts", attempts)

            return {
                "status": "failed",
                "attempts": attempts,
                "duration_seconds": time.time() - start_time,
                "result": None,
                "error": str(last_error) if last_error else "Unknown error",
            }

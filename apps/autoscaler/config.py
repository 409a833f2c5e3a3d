import os


class Settings:
    """
    Centralized autoscaler configuration.

    Backed by environment variables so behavior can be tuned per environment
    without changing code.

    Fields:
      - PROMETHEUS_URL / PROMETHEUS_QUERY_TIMEOUT_SECONDS: metric source
      - SCALER_LABEL_SELECTOR / SCALER_NAMESPACE: which Deployments are scaled
        (empty namespace = all namespaces)
      - SCALER_ANNOTATION_PREFIX: prefix of the scaling annotations
      - SCALER_ASSESSMENT_INTERVAL_SECONDS: sleep between scaling cycles
      - SCALER_DRY_RUN: log decisions without patching Deployments
      - SCALER_APPLY_MAX_RETRIES: retries of a failed scale patch
      - SCALER_LOG_LEVEL, SCALER_METRICS_PORT, SCALER_AUDIT_LOG_PATH
    """

    # ------------------------------------------------------------------
    # Metric source
    # ------------------------------------------------------------------
    PROMETHEUS_URL: str = os.getenv("PROMETHEUS_URL", "http://prometheus:9090")
    PROMETHEUS_QUERY_TIMEOUT_SECONDS: float = float(
        os.getenv("PROMETHEUS_QUERY_TIMEOUT_SECONDS", "5")
    )

    # ------------------------------------------------------------------
    # Workload selection
    # ------------------------------------------------------------------
    LABEL_SELECTOR: str = os.getenv("SCALER_LABEL_SELECTOR", "scale==prometheus")
    NAMESPACE: str = os.getenv("SCALER_NAMESPACE", "")
    ANNOTATION_PREFIX: str = os.getenv("SCALER_ANNOTATION_PREFIX", "prometheusScaler/")

    # ------------------------------------------------------------------
    # Loop behavior
    # ------------------------------------------------------------------
    ASSESSMENT_INTERVAL_SECONDS: float = float(
        os.getenv("SCALER_ASSESSMENT_INTERVAL_SECONDS", "60")
    )
    DRY_RUN: bool = (
        os.getenv("SCALER_DRY_RUN", "false").lower()
        in ("1", "true", "yes", "y")
    )
    APPLY_MAX_RETRIES: int = int(os.getenv("SCALER_APPLY_MAX_RETRIES", "1"))

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------
    LOG_LEVEL: str = os.getenv("SCALER_LOG_LEVEL", "INFO")
    METRICS_PORT: int = int(os.getenv("SCALER_METRICS_PORT", "9102"))
    AUDIT_LOG_PATH: str = os.getenv("SCALER_AUDIT_LOG_PATH", "")

    def __init__(self) -> None:
        # A negative interval would make time.sleep() raise.
        if self.ASSESSMENT_INTERVAL_SECONDS < 0:
            self.ASSESSMENT_INTERVAL_SECONDS = 0.0
        if self.APPLY_MAX_RETRIES < 0:
            self.APPLY_MAX_RETRIES = 0


settings = Settings()

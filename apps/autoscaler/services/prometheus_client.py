import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger("prometheus_scaler.prometheus")


class MetricQueryError(RuntimeError):
    """Raised when a query does not produce a single scalar value."""


class PrometheusClient:
    """
    Metric source backed by the Prometheus HTTP API.

    `query_scalar` runs an instant query and returns one float. The query
    must evaluate to a scalar, or to an instant vector with exactly one
    sample; anything else is a MetricQueryError.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

        logger.info("PrometheusClient base_url=%s timeout=%.1fs", self.base_url, timeout_seconds)

    def _instant_query(self, query: str) -> Dict[str, Any]:
        try:
            r = self.session.get(
                f"{self.base_url}/api/v1/query",
                params={"query": query},
                timeout=self.timeout_seconds,
            )
            r.raise_for_status()
            payload = r.json()
        except ValueError as exc:
            raise MetricQueryError(f"query {query!r} returned invalid JSON: {exc}") from exc
        except requests.RequestException as exc:
            raise MetricQueryError(f"query {query!r} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise MetricQueryError(f"query {query!r} returned an unexpected body {payload!r}")

        if payload.get("status") != "success":
            raise MetricQueryError(
                f"query {query!r} failed: {payload.get('errorType')}: {payload.get('error')}"
            )

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise MetricQueryError(f"query {query!r} returned unexpected data {data!r}")
        return data

    def query_scalar(self, query: str) -> float:
        data = self._instant_query(query)
        result_type = data.get("resultType")
        result = data.get("result")

        # Prometheus returns sample values as [ <timestamp>, "<value>" ]
        if result_type == "scalar":
            sample = result
        elif result_type == "vector":
            if not isinstance(result, list):
                raise MetricQueryError(f"query {query!r} returned a malformed vector {result!r}")
            if not result:
                raise MetricQueryError(f"query {query!r} returned an empty vector")
            if len(result) > 1:
                raise MetricQueryError(
                    f"query {query!r} returned {len(result)} series, expected one"
                )
            if not isinstance(result[0], dict):
                raise MetricQueryError(f"query {query!r} returned a malformed sample {result[0]!r}")
            sample = result[0].get("value")
        else:
            raise MetricQueryError(f"query {query!r} returned unsupported result type {result_type!r}")

        try:
            value = float(sample[1])
        except (TypeError, IndexError, KeyError, ValueError) as exc:
            raise MetricQueryError(f"query {query!r} returned an unparsable sample {sample!r}") from exc

        logger.debug("query=%s value=%s", query, value)
        return value

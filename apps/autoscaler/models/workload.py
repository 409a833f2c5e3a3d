"""
Models shared by the workload directory, the scaling cycle and the audit log.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Workload(BaseModel):
    """A scalable Deployment as reported by the workload directory."""

    name: str
    namespace: str
    replicas: int = Field(..., ge=0, description="Current desired replica count")
    annotations: Dict[str, str] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class OutcomeStatus(str, Enum):
    SCALED = "scaled"
    UNCHANGED = "unchanged"
    DRY_RUN = "dry_run"
    CONFIG_ERROR = "config_error"
    QUERY_ERROR = "query_error"
    EVAL_ERROR = "eval_error"
    APPLY_ERROR = "apply_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class WorkloadOutcome:
    """What one scaling cycle did for one workload."""

    namespace: str
    name: str
    status: OutcomeStatus
    cur_scale: int
    new_scale: Optional[int] = None
    observed: Optional[float] = None
    policy_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (
            OutcomeStatus.SCALED,
            OutcomeStatus.UNCHANGED,
            OutcomeStatus.DRY_RUN,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        # NaN and Inf are not valid JSON
        if self.observed is not None and not math.isfinite(self.observed):
            data["observed"] = str(self.observed)
        return data

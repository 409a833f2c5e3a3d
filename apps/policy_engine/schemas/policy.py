from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

ANNOTATION_PREFIX = "prometheusScaler/"

# model field -> annotation key (without prefix)
ANNOTATION_KEYS: Dict[str, str] = {
    "query": "prometheus-query",
    "min_scale": "min-scale",
    "max_scale": "max-scale",
    "scale_up_when": "scale-up-when",
    "scale_down_when": "scale-down-when",
    "scale_to": "scale-to",
    "scale_by": "scale-by",
}


class ScalingAnnotations(BaseModel):
    """
    Declarative scaling configuration of one workload.

    Every field is the raw annotation text (or None when absent); parsing
    and validation happen in the policy builder so errors can name the
    offending field.
    """

    model_config = ConfigDict(frozen=True)

    query: Optional[str] = None
    min_scale: Optional[str] = None
    max_scale: Optional[str] = None
    scale_up_when: Optional[str] = None
    scale_down_when: Optional[str] = None
    scale_to: Optional[str] = None
    scale_by: Optional[str] = None

    @classmethod
    def from_annotations(
        cls,
        annotations: Optional[Dict[str, str]],
        prefix: str = ANNOTATION_PREFIX,
    ) -> "ScalingAnnotations":
        annotations = annotations or {}
        return cls(
            **{
                name: annotations.get(prefix + key)
                for name, key in ANNOTATION_KEYS.items()
            }
        )

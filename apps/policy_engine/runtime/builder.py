"""
Policy builder: annotations + current replica count -> ScalingPolicy.

Selection (first match wins):
  1. scale-up-when AND scale-down-when  -> StepPolicy
  2. scale-to                           -> DirectPolicy
  3. scale-by                           -> RelativePolicy

Expressions are compiled here so syntax errors are reported at build time.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from apps.policy_engine.dsl.model import CompiledExpression
from apps.policy_engine.dsl.parser import ExpressionSyntaxError, compile_expression
from apps.policy_engine.schemas.policy import ScalingAnnotations

from .errors import ConfigError
from .policy import Bounds, DirectPolicy, RelativePolicy, ScalingPolicy, StepPolicy

logger = logging.getLogger("prometheus_scaler.policy_engine")

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_BASE10_INT = re.compile(r"[+-]?[0-9]+")


def _compile(text: str, field: str) -> CompiledExpression:
    try:
        return compile_expression(text)
    except ExpressionSyntaxError as exc:
        raise ConfigError(str(exc), field=field) from exc


def _parse_scale(raw: Optional[str], field: str) -> int:
    text = raw or ""
    if not _BASE10_INT.fullmatch(text):
        raise ConfigError(f"invalid integer {text!r}", field=field)

    value = int(text)
    if not INT32_MIN <= value <= INT32_MAX:
        raise ConfigError(f"value {text!r} out of 32-bit range", field=field)
    return value


def build_policy(config: ScalingAnnotations, cur_scale: int) -> ScalingPolicy:
    """
    Build an immutable ScalingPolicy from a workload's configuration.

    Raises ConfigError (with `field` set where one applies) when no policy
    shape is recognized, an expression does not compile, or the query or
    bounds are missing or invalid.
    """
    logger.debug("scaleUpWhen: %s", config.scale_up_when)
    logger.debug("scaleDownWhen: %s", config.scale_down_when)
    logger.debug("scaleTo: %s", config.scale_to)
    logger.debug("scaleBy: %s", config.scale_by)

    if config.scale_up_when and config.scale_down_when:
        expressions = {
            "scale_up_when": _compile(config.scale_up_when, "scale-up-when"),
            "scale_down_when": _compile(config.scale_down_when, "scale-down-when"),
        }
        policy_cls = StepPolicy
    elif config.scale_to:
        expressions = {"scale_to": _compile(config.scale_to, "scale-to")}
        policy_cls = DirectPolicy
    elif config.scale_by:
        expressions = {"scale_by": _compile(config.scale_by, "scale-by")}
        policy_cls = RelativePolicy
    else:
        raise ConfigError("no scaling policy specified")

    query = config.query or ""
    if not query.strip():
        raise ConfigError("query is required", field="query")

    min_scale = _parse_scale(config.min_scale, "min-scale")
    max_scale = _parse_scale(config.max_scale, "max-scale")

    if min_scale < 0:
        raise ConfigError(f"must not be negative, got {min_scale}", field="min-scale")
    if min_scale > max_scale:
        raise ConfigError(
            f"{max_scale} is below min-scale {min_scale}",
            field="max-scale",
        )

    return policy_cls(
        query=query,
        bounds=Bounds(min_scale=min_scale, max_scale=max_scale),
        cur_scale=int(cur_scale),
        **expressions,
    )

from __future__ import annotations

import logging
import math
from typing import Any, Dict

from apps.policy_engine.dsl.model import CompiledExpression, Value

from .errors import EvalError
from .evaluator import ExpressionEvalError, evaluate
from .policy import (
    DirectPolicy,
    PolicyKind,
    RelativePolicy,
    ScalingPolicy,
    StepPolicy,
)

logger = logging.getLogger("prometheus_scaler.policy_engine")

# the only variable bound for policy expressions
RESULT_PARAMETER = "result"


def decide(policy: ScalingPolicy, observed: float) -> int:
    """
    Compute the next replica count for `policy` given the observed metric value.

    Pure: no state is kept between calls. The result is always within the
    policy bounds. Raises EvalError (with `field` naming the expression)
    when an expression fails or returns the wrong type.
    """
    parameters = {RESULT_PARAMETER: float(observed)}

    if policy.kind is PolicyKind.STEP:
        return _decide_step(policy, parameters)
    if policy.kind is PolicyKind.DIRECT:
        return _decide_direct(policy, parameters)
    if policy.kind is PolicyKind.RELATIVE:
        return _decide_relative(policy, parameters)

    raise EvalError(f"unknown policy kind: {policy.kind!r}")


def _evaluate(expression: CompiledExpression, parameters: Dict[str, Any], field: str) -> Value:
    try:
        return evaluate(expression, parameters)
    except ExpressionEvalError as exc:
        raise EvalError(str(exc), field=field) from exc


def _condition(expression: CompiledExpression, parameters: Dict[str, Any], field: str) -> bool:
    value = _evaluate(expression, parameters, field)
    if not isinstance(value, bool):
        raise EvalError(f"non-boolean result {value!r}", field=field)
    return value


def _round_half_up(value: Value, field: str, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvalError(f"non-numeric {name} result", field=field)
    if not math.isfinite(value):
        raise EvalError(f"non-finite {name} result {value!r}", field=field)
    # floor(x + 0.5), not round(): 4.5 -> 5 and 2.5 -> 3
    return int(math.floor(value + 0.5))


def _decide_step(policy: StepPolicy, parameters: Dict[str, Any]) -> int:
    scale_up = _condition(policy.scale_up_when, parameters, "scale-up-when")
    scale_down = _condition(policy.scale_down_when, parameters, "scale-down-when")

    logger.debug("scaleUp: %s", scale_up)
    logger.debug("scaleDown: %s", scale_down)

    # up then down on the same accumulator: both true cancels out
    new_scale = policy.cur_scale
    if scale_up and new_scale < policy.bounds.max_scale:
        new_scale += 1
    if scale_down and new_scale > policy.bounds.min_scale:
        new_scale -= 1

    return policy.bounds.clamp(new_scale)


def _decide_direct(policy: DirectPolicy, parameters: Dict[str, Any]) -> int:
    scale_to = _evaluate(policy.scale_to, parameters, "scale-to")
    logger.debug("scaleTo: %s", scale_to)

    return policy.bounds.clamp(_round_half_up(scale_to, "scale-to", "scaleTo"))


def _decide_relative(policy: RelativePolicy, parameters: Dict[str, Any]) -> int:
    scale_by = _evaluate(policy.scale_by, parameters, "scale-by")
    logger.debug("scaleBy: %s", scale_by)

    delta = _round_half_up(scale_by, "scale-by", "scaleBy")
    return policy.bounds.clamp(policy.cur_scale + delta)

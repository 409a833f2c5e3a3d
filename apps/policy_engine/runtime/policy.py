from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from apps.policy_engine.dsl.model import CompiledExpression


class PolicyKind(str, Enum):
    STEP = "step"
    DIRECT = "direct"
    RELATIVE = "relative"


@dataclass(frozen=True)
class Bounds:
    min_scale: int
    max_scale: int

    def clamp(self, scale: int) -> int:
        return max(self.min_scale, min(scale, self.max_scale))


@dataclass(frozen=True)
class BaseScalable:
    query: str
    bounds: Bounds
    cur_scale: int


@dataclass(frozen=True)
class StepPolicy(BaseScalable):
    scale_up_when: CompiledExpression
    scale_down_when: CompiledExpression
    kind: PolicyKind = field(default=PolicyKind.STEP, init=False)


@dataclass(frozen=True)
class DirectPolicy(BaseScalable):
    scale_to: CompiledExpression
    kind: PolicyKind = field(default=PolicyKind.DIRECT, init=False)


@dataclass(frozen=True)
class RelativePolicy(BaseScalable):
    scale_by: CompiledExpression
    kind: PolicyKind = field(default=PolicyKind.RELATIVE, init=False)


ScalingPolicy = Union[StepPolicy, DirectPolicy, RelativePolicy]

from dataclasses import dataclass
from typing import Union

# Values an expression can produce. Numbers are always floats.
Value = Union[bool, float]


@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str  # "neg" | "not"
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str  # "add" | "sub" | "mul" | "div" | "mod" | "pow" | "eq" | ... | "and" | "or"
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Ternary:
    condition: "Node"
    when_true: "Node"
    when_false: "Node"


Node = Union[Literal, Variable, UnaryOp, BinaryOp, Ternary]


@dataclass(frozen=True)
class CompiledExpression:
    text: str
    root: Node

    def __str__(self) -> str:
        return self.text

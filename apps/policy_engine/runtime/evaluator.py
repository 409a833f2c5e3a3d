import math
from typing import Any, Mapping

from apps.policy_engine.dsl.model import (
    BinaryOp,
    CompiledExpression,
    Literal,
    Node,
    Ternary,
    UnaryOp,
    Value,
    Variable,
)


class ExpressionEvalError(ValueError):
    """Raised when a compiled expression cannot be evaluated."""


_COMPARISONS = {
    "lt": lambda a, b: a < b,
    "le": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "ge": lambda a, b: a >= b,
}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _number(v: Value, op: str) -> float:
    if not _is_number(v):
        raise ExpressionEvalError(f"operator '{op}' expects a number, got {v!r}")
    return float(v)


def _boolean(v: Value, op: str) -> bool:
    if not isinstance(v, bool):
        raise ExpressionEvalError(f"operator '{op}' expects a boolean, got {v!r}")
    return v


def _lookup(name: str, parameters: Mapping[str, Any]) -> Value:
    if name not in parameters:
        raise ExpressionEvalError(f"no parameter '{name}' found")
    value = parameters[name]
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return float(value)
    raise ExpressionEvalError(f"parameter '{name}' has unsupported type {type(value).__name__}")


def _arithmetic(op: str, a: float, b: float) -> float:
    if op == "add":
        return a + b
    if op == "sub":
        return a - b
    if op == "mul":
        return a * b
    if op == "div":
        if b == 0:
            raise ExpressionEvalError("division by zero")
        return a / b
    if op == "mod":
        if b == 0:
            raise ExpressionEvalError("modulo by zero")
        return math.fmod(a, b)
    if op == "pow":
        try:
            return math.pow(a, b)
        except (OverflowError, ValueError) as exc:
            raise ExpressionEvalError(f"cannot raise {a!r} to {b!r}: {exc}") from exc
    raise ExpressionEvalError(f"unknown operator '{op}'")


def _eval(node: Node, parameters: Mapping[str, Any]) -> Value:
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Variable):
        return _lookup(node.name, parameters)

    if isinstance(node, UnaryOp):
        operand = _eval(node.operand, parameters)
        if node.op == "neg":
            return -_number(operand, "-")
        return not _boolean(operand, "!")

    if isinstance(node, Ternary):
        condition = _boolean(_eval(node.condition, parameters), "?:")
        return _eval(node.when_true if condition else node.when_false, parameters)

    if isinstance(node, BinaryOp):
        # && and || short-circuit, so the right side is evaluated lazily
        if node.op == "and":
            if not _boolean(_eval(node.left, parameters), "&&"):
                return False
            return _boolean(_eval(node.right, parameters), "&&")
        if node.op == "or":
            if _boolean(_eval(node.left, parameters), "||"):
                return True
            return _boolean(_eval(node.right, parameters), "||")

        left = _eval(node.left, parameters)
        right = _eval(node.right, parameters)

        if node.op in ("eq", "ne"):
            same = isinstance(left, bool) == isinstance(right, bool) and left == right
            return same if node.op == "eq" else not same

        if node.op in _COMPARISONS:
            return _COMPARISONS[node.op](_number(left, node.op), _number(right, node.op))

        return _arithmetic(node.op, _number(left, node.op), _number(right, node.op))

    raise ExpressionEvalError(f"unknown expression node {node!r}")


def evaluate(expression: CompiledExpression, parameters: Mapping[str, Any]) -> Value:
    """
    Evaluate a compiled expression against named parameters.

    Returns a bool or a float. Raises ExpressionEvalError on unbound
    variables, operands of the wrong type and arithmetic failures.
    """
    try:
        return _eval(expression.root, parameters)
    except RecursionError as exc:
        raise ExpressionEvalError("expression too deeply nested") from exc

from __future__ import annotations

from lark import Lark, Transformer
from lark.exceptions import LarkError, VisitError

from .grammar import EXPRESSION_GRAMMAR
from .model import BinaryOp, CompiledExpression, Literal, Ternary, UnaryOp, Variable


class ExpressionSyntaxError(ValueError):
    """Raised when an expression cannot be compiled."""


_PARSER = Lark(EXPRESSION_GRAMMAR, start="start", parser="lalr")


class _ExpressionTransformer(Transformer):
    def number(self, items):
        return Literal(value=float(items[0]))

    def true(self, _):
        return Literal(value=True)

    def false(self, _):
        return Literal(value=False)

    def variable(self, items):
        return Variable(name=str(items[0]))

    def neg(self, items):
        return UnaryOp(op="neg", operand=items[0])

    def not_(self, items):
        return UnaryOp(op="not", operand=items[0])

    def ternary(self, items):
        condition, when_true, when_false = items
        return Ternary(condition=condition, when_true=when_true, when_false=when_false)

    def or_(self, items):
        return BinaryOp(op="or", left=items[0], right=items[1])

    def and_(self, items):
        return BinaryOp(op="and", left=items[0], right=items[1])

    def eq(self, items):
        return BinaryOp(op="eq", left=items[0], right=items[1])

    def ne(self, items):
        return BinaryOp(op="ne", left=items[0], right=items[1])

    def lt(self, items):
        return BinaryOp(op="lt", left=items[0], right=items[1])

    def le(self, items):
        return BinaryOp(op="le", left=items[0], right=items[1])

    def gt(self, items):
        return BinaryOp(op="gt", left=items[0], right=items[1])

    def ge(self, items):
        return BinaryOp(op="ge", left=items[0], right=items[1])

    def add(self, items):
        return BinaryOp(op="add", left=items[0], right=items[1])

    def sub(self, items):
        return BinaryOp(op="sub", left=items[0], right=items[1])

    def mul(self, items):
        return BinaryOp(op="mul", left=items[0], right=items[1])

    def div(self, items):
        return BinaryOp(op="div", left=items[0], right=items[1])

    def mod(self, items):
        return BinaryOp(op="mod", left=items[0], right=items[1])

    def pow(self, items):
        return BinaryOp(op="pow", left=items[0], right=items[1])


def compile_expression(text: str) -> CompiledExpression:
    """
    Parse expression text into a CompiledExpression.

    Only syntax is checked here. Unknown variables and type mismatches
    surface when the expression is evaluated.
    """
    if text is None or not text.strip():
        raise ExpressionSyntaxError("empty expression")

    try:
        tree = _PARSER.parse(text)
        root = _ExpressionTransformer().transform(tree)
    except RecursionError as exc:
        raise ExpressionSyntaxError("expression too deeply nested") from exc
    except VisitError as exc:
        if isinstance(exc.orig_exc, RecursionError):
            raise ExpressionSyntaxError("expression too deeply nested") from exc
        raise ExpressionSyntaxError(f"cannot parse {text!r}: {exc}") from exc
    except LarkError as exc:
        raise ExpressionSyntaxError(f"cannot parse {text!r}: {exc}") from exc

    return CompiledExpression(text=text, root=root)

"""Tests for the scaling expression language (parser + evaluator)."""

import math

import pytest

from apps.policy_engine.dsl.model import BinaryOp, CompiledExpression, Literal, UnaryOp, Variable
from apps.policy_engine.dsl.parser import ExpressionSyntaxError, compile_expression
from apps.policy_engine.runtime.evaluator import ExpressionEvalError, evaluate


def run(text, result=0.0, **parameters):
    parameters.setdefault("result", result)
    return evaluate(compile_expression(text), parameters)


class TestCompile:
    def test_number_literal(self):
        expr = compile_expression("5")
        assert expr.root == Literal(value=5.0)
        assert str(expr) == "5"

    def test_comparison_tree(self):
        expr = compile_expression("result > 10")
        assert expr.root == BinaryOp(op="gt", left=Variable(name="result"), right=Literal(value=10.0))

    @pytest.mark.parametrize(
        "text",
        [
            "result > 100",
            "result <= 0.5 && result >= 0.1",
            "!(result == 3) || false",
            "result > 10 ? result / 10 : 1",
            "-result ** 2 + 3 % 2",
            "1e3 * .5",
        ],
    )
    def test_valid_expressions_compile(self, text):
        compile_expression(text)

    @pytest.mark.parametrize("text", ["", "   ", "result >", "(1 + 2", "1 +* 2", "result $ 3", "1 < 2 < 3"])
    def test_invalid_expressions_raise(self, text):
        with pytest.raises(ExpressionSyntaxError):
            compile_expression(text)

    def test_deep_nesting_is_a_syntax_error(self):
        with pytest.raises(ExpressionSyntaxError, match="too deeply nested"):
            compile_expression("1" + "+1" * 5000)

    def test_unknown_variable_compiles(self):
        # unbound names are only detected at evaluation time
        compile_expression("queue_depth > 10")


class TestEvaluate:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1 + 2 * 3", 7.0),
            ("(1 + 2) * 3", 9.0),
            ("10 - 4 - 3", 3.0),
            ("2 ** 3 ** 2", 512.0),
            ("-2 ** 2", -4.0),
            ("7 % 3", 1.0),
            ("-7 % 3", -1.0),
            ("9 / 2", 4.5),
            ("result * 2", 21.0),
        ],
    )
    def test_arithmetic(self, text, expected):
        assert run(text, result=10.5) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("result > 10", True),
            ("result < 10", False),
            ("result >= 12", True),
            ("result <= 11.9", False),
            ("result == 12", True),
            ("result != 12", False),
            ("true && !false", True),
            ("false || result > 100", False),
            ("true == true", True),
            ("true == 1", False),
            ("true != 1", True),
        ],
    )
    def test_boolean(self, text, expected):
        assert run(text, result=12) is expected

    def test_ternary(self):
        assert run("result > 10 ? 5 : 1", result=20) == 5.0
        assert run("result > 10 ? 5 : 1", result=2) == 1.0

    def test_nested_ternary_is_right_associative(self):
        text = "result > 10 ? 3 : result > 5 ? 2 : 1"
        assert run(text, result=7) == 2.0
        assert run(text, result=1) == 1.0

    def test_short_circuit_skips_right_side(self):
        # `missing` is unbound; it must never be looked up
        assert run("false && missing > 1") is False
        assert run("true || missing > 1") is True

    def test_results_are_floats(self):
        value = run("result + 1", result=1)
        assert isinstance(value, float)
        assert not isinstance(value, bool)

    def test_other_parameters_can_be_bound(self):
        assert run("result / replicas", result=30, replicas=3) == 10.0

    def test_nan_compares_false(self):
        assert run("result > 1", result=math.nan) is False
        assert run("result < 1", result=math.nan) is False


class TestEvaluateErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "missing > 1",
            "result + true",
            "!result",
            "-true",
            "result && true",
            "result ? 1 : 2",
            "true < false",
            "1 / 0",
            "1 % 0",
            "(-8) ** 0.5",
            "10 ** 1000",
        ],
    )
    def test_raises_expression_eval_error(self, text):
        with pytest.raises(ExpressionEvalError):
            run(text, result=1.0)

    def test_unsupported_parameter_type(self):
        with pytest.raises(ExpressionEvalError, match="unsupported type"):
            run("name == 1", name="web")

    def test_deeply_nested_tree(self):
        root = Variable(name="result")
        for _ in range(5000):
            root = UnaryOp(op="neg", operand=root)

        with pytest.raises(ExpressionEvalError, match="too deeply nested"):
            evaluate(CompiledExpression(text="-" * 5000 + "result", root=root), {"result": 1.0})

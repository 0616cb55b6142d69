"""Computed field expressions: arithmetic over the values of an export row."""

import ast
import operator
from typing import Any, Dict


class ExpressionError(ValueError):
    """Raised for computed-field expressions outside the allowed grammar."""


class SafeExpression:
    """Arithmetic over row values, parsed once and evaluated per row."""

    OPERATORS = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: operator.truediv,
        ast.FloorDiv: operator.floordiv,
        ast.Mod: operator.mod,
        ast.USub: operator.neg,
        ast.UAdd: operator.pos,
    }

    def __init__(self, expression: str):
        self.expression = expression
        try:
            self.tree = ast.parse(expression, mode="eval")
        except SyntaxError as e:
            raise ExpressionError(f"Invalid expression '{expression}': {e.msg}") from e
        for node in ast.walk(self.tree):
            allowed = isinstance(
                node, (ast.Expression, ast.BinOp, ast.UnaryOp, ast.Name, ast.Load, ast.Constant)
            ) or type(node) in self.OPERATORS
            if not allowed:
                raise ExpressionError(
                    f"Unsupported syntax in expression '{expression}': {type(node).__name__}"
                )
            if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
                raise ExpressionError(f"Only numeric constants are allowed in '{expression}'")

    def evaluate(self, names: Dict[str, Any]) -> Any:
        """Evaluate against a row. Missing operands and division by zero give None."""
        try:
            return self._eval(self.tree.body, names)
        except (ZeroDivisionError, TypeError):
            return None

    def _eval(self, node: ast.AST, names: Dict[str, Any]) -> Any:
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            return names.get(node.id)
        if isinstance(node, ast.UnaryOp):
            return self.OPERATORS[type(node.op)](self._eval(node.operand, names))
        if isinstance(node, ast.BinOp):
            op = self.OPERATORS.get(type(node.op))
            if op is None:
                raise ExpressionError(f"Unsupported operator in '{self.expression}'")
            return op(self._eval(node.left, names), self._eval(node.right, names))
        raise ExpressionError(f"Unsupported syntax in expression '{self.expression}'")

import logging
import math
import sys
from dataclasses import dataclass
from typing import Callable, Optional

from linecalc.builtins import new_symbol_table
from linecalc.parser import Assignment, BinaryOperation, BinaryOperator, Identifier, Node, Number, Root, parse
from linecalc.tokenizer import tokenize
from linecalc.utils import Location

logger = logging.getLogger(__name__)


class CalcRuntimeError(Exception):
    pass


@dataclass
class SymbolNotFound(CalcRuntimeError):
    name: str
    location: Location

    def __str__(self) -> str:
        return f"Symbol {self.name!r} not found at {self.location}"


def _divide(a: float, b: float) -> float:
    # IEEE 754 semantics instead of ZeroDivisionError
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _approx_equal(a: float, b: float) -> bool:
    return abs(a - b) < sys.float_info.epsilon


BinaryOperationImpl = Callable[[float, float], float]

binary_impls: dict[BinaryOperator, BinaryOperationImpl] = {
    BinaryOperator.SUM: lambda a, b: a + b,
    BinaryOperator.SUB: lambda a, b: a - b,
    BinaryOperator.MUL: lambda a, b: a * b,
    BinaryOperator.DIV: _divide,
    BinaryOperator.GT: lambda a, b: float(a > b),
    BinaryOperator.GE: lambda a, b: float(a >= b),
    BinaryOperator.LT: lambda a, b: float(a < b),
    BinaryOperator.LE: lambda a, b: float(a <= b),
    BinaryOperator.EQ: lambda a, b: float(_approx_equal(a, b)),
}


def evaluate(root: Root, variables: dict[str, float]) -> list[float]:
    """Evaluates top-level statements in order, one result per statement.

    The first failing statement aborts the run: assignments made by earlier
    statements stay in ``variables``, later statements are not evaluated.
    """
    results: list[float] = []
    for statement in root.statements:
        results.append(evaluate_expression(statement, variables))
    return results


def evaluate_expression(expression: Node, variables: dict[str, float]) -> float:
    """Post-order walk on an explicit stack, left operands before right ones"""
    values: list[float] = []
    # (node, children already evaluated)
    stack: list[tuple[Node, bool]] = [(expression, False)]
    while stack:
        node, children_done = stack.pop()
        if isinstance(node, Number):
            values.append(node.value)
        elif isinstance(node, Identifier):
            if node.name in variables:
                values.append(variables[node.name])
            else:
                raise SymbolNotFound(name=node.name, location=node.location)
        elif isinstance(node, BinaryOperation):
            if children_done:
                right_res = values.pop()
                left_res = values.pop()
                values.append(binary_impls[node.operator](left_res, right_res))
            else:
                stack.append((node, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
        elif isinstance(node, Assignment):
            if children_done:
                logger.debug("%s = %r", node.name, values[-1])
                variables[node.name] = values[-1]
            else:
                stack.append((node, True))
                stack.append((node.value, False))
        else:
            raise TypeError(f"Unexpected expression type: {node!r}")
    return values.pop()


class Session:
    """Owns one symbol table for the lifetime of a calculator session"""

    def __init__(self) -> None:
        self.variables = new_symbol_table()
        self.value: Optional[float] = None

    def run(self, code: str) -> list[float]:
        results = evaluate(parse(tokenize(code)), self.variables)
        self.value = results[-1] if results else None
        logger.debug("Evaluated %d statement(s)", len(results))
        return results

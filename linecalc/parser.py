import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Optional

from linecalc.tokenizer import Token, TokenType
from linecalc.utils import Location, PrintableEnum

logger = logging.getLogger(__name__)


class ParserError(Exception):
    pass


@dataclass
class UnexpectedToken(ParserError):
    text: str
    location: Location

    def __str__(self) -> str:
        return f"Unexpected token {self.text!r} at {self.location}"


@dataclass
class UnexpectedEndOfLine(ParserError):
    location: Location

    def __str__(self) -> str:
        return f"Unexpected end of line at {self.location}"


@dataclass
class ExpectedCloseParen(ParserError):
    found: str
    location: Location

    def __str__(self) -> str:
        return f"Expected close parenthesis at {self.location}, got {self.found}"


@dataclass
class AggregatedParseError(ParserError):
    """One entry per failed line, in source order"""

    errors: list[ParserError]

    def __str__(self) -> str:
        return "\n".join(f"Parser error: {e}" for e in self.errors)


class BinaryOperator(PrintableEnum):
    SUM = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    GT = enum.auto()
    GE = enum.auto()
    LT = enum.auto()
    LE = enum.auto()
    EQ = enum.auto()


@dataclass
class Number:
    value: float
    location: Location


@dataclass
class Identifier:
    name: str
    location: Location


@dataclass
class BinaryOperation:
    operator: BinaryOperator
    left: "Node"
    right: "Node"
    location: Location


@dataclass
class Assignment:
    name: str
    value: "Node"
    location: Location


Node = Number | Identifier | BinaryOperation | Assignment


@dataclass
class Root:
    statements: list[Node]
    location: Location

    def __str__(self) -> str:
        return format_tree(self)


def format_tree(node: Node | Root, indent: int = 0) -> str:
    lines: list[str] = []
    stack: list[tuple[Node | Root, int]] = [(node, indent)]
    while stack:
        node, depth = stack.pop()
        pad = "  " * depth
        children: list[Node]
        if isinstance(node, Root):
            lines.append(f"{pad}Root {node.location}")
            children = node.statements
        elif isinstance(node, Number):
            lines.append(f"{pad}Number {node.value} {node.location}")
            children = []
        elif isinstance(node, Identifier):
            lines.append(f"{pad}Identifier {node.name} {node.location}")
            children = []
        elif isinstance(node, BinaryOperation):
            lines.append(f"{pad}BinaryOperation {node.operator} {node.location}")
            children = [node.left, node.right]
        elif isinstance(node, Assignment):
            lines.append(f"{pad}Assignment {node.name} {node.location}")
            children = [node.value]
        else:
            raise TypeError(f"Unexpected node type: {node!r}")
        stack.extend((child, depth + 1) for child in reversed(children))
    return "\n".join(lines)


BINARY_OPERATORS = {
    TokenType.PLUS: BinaryOperator.SUM,
    TokenType.MINUS: BinaryOperator.SUB,
    TokenType.TIMES: BinaryOperator.MUL,
    TokenType.DIV: BinaryOperator.DIV,
    TokenType.GREATER_THAN: BinaryOperator.GT,
    TokenType.GREATER_THAN_OR_EQUAL: BinaryOperator.GE,
    TokenType.LESS_THAN: BinaryOperator.LT,
    TokenType.LESS_THAN_OR_EQUAL: BinaryOperator.LE,
    TokenType.EQUAL: BinaryOperator.EQ,
}

# loosest binding first
PRECEDENCE_LEVELS: list[set[BinaryOperator]] = [
    {BinaryOperator.GT, BinaryOperator.GE, BinaryOperator.LT, BinaryOperator.LE, BinaryOperator.EQ},
    {BinaryOperator.SUM, BinaryOperator.SUB},
    {BinaryOperator.MUL, BinaryOperator.DIV},
]


def get_op_precedence(op: BinaryOperator) -> int:
    for precedence, level in enumerate(PRECEDENCE_LEVELS):
        if op in level:
            return precedence
    raise ValueError(f"Operator without precedence: {op}")


def is_chainable_op(op: BinaryOperator) -> bool:
    return get_op_precedence(op) != 0


def parse(tokens: list[Token]) -> Root:
    statements: list[Node] = []
    errors: list[ParserError] = []
    for line, line_tokens in itertools.groupby(tokens, key=lambda t: t.line):
        try:
            statements.append(_parse_line(list(line_tokens)))
        except ParserError as e:
            logger.debug("Skipping line %d: %s", line, e)
            errors.append(e)

    if errors:
        raise AggregatedParseError(errors)

    location = statements[0].location if statements else Location(0, 0)
    return Root(statements=statements, location=location)


def _parse_line(tokens: list[Token]) -> Node:
    expr, i = _consume_expression(tokens, 0)
    if i < len(tokens):
        raise _unexpected(tokens, i)
    return expr


def _consume_expression(tokens: list[Token], i: int) -> tuple[Node, int]:
    if (
        i + 1 < len(tokens)
        and tokens[i].type is TokenType.IDENTIFIER
        and tokens[i + 1].type is TokenType.ASSIGN
    ):
        value, j = _consume_right_expression(tokens, i + 2)
        return Assignment(name=tokens[i].lexeme, value=value, location=tokens[i + 1].location), j
    return _consume_right_expression(tokens, i)


def _consume_right_expression(tokens: list[Token], i: int) -> tuple[Node, int]:
    """Operator precedence parsing on explicit stacks, nesting depth is not bound by the call stack"""
    operands: list[Node] = []
    operators: list[Token] = []  # binary operators and open parens
    # per open group: whether it already holds a non-chainable operator
    groups: list[bool] = [False]
    expect_operand = True
    while True:
        token = _token_at(tokens, i)
        if expect_operand:
            if token is not None and token.type is TokenType.LEFT_PAREN:
                operators.append(token)
                groups.append(False)
            else:
                operands.append(_consume_operand(tokens, i))
                expect_operand = False
            i += 1
            continue

        operator = BINARY_OPERATORS.get(token.type) if token is not None else None
        if operator is not None and (is_chainable_op(operator) or not groups[-1]):
            _reduce(operands, operators, min_precedence=get_op_precedence(operator))
            if not is_chainable_op(operator):
                groups[-1] = True
            operators.append(token)
            expect_operand = True
            i += 1
        elif len(groups) > 1 and token is not None and token.type is TokenType.RIGHT_PAREN:
            _reduce(operands, operators, min_precedence=0)
            operators.pop()
            groups.pop()
            i += 1
        elif len(groups) > 1:
            if token is None:
                raise ExpectedCloseParen(found="EOL", location=tokens[-1].end_location)
            raise ExpectedCloseParen(found=token.lexeme, location=token.location)
        else:
            _reduce(operands, operators, min_precedence=0)
            return operands.pop(), i


def _reduce(operands: list[Node], operators: list[Token], min_precedence: int) -> None:
    """Folds stacked operators binding at least as tight as min_precedence, stopping at an open paren"""
    while operators and operators[-1].type is not TokenType.LEFT_PAREN:
        operator = BINARY_OPERATORS[operators[-1].type]
        if get_op_precedence(operator) < min_precedence:
            break
        operator_token = operators.pop()
        right = operands.pop()
        left = operands.pop()
        operands.append(BinaryOperation(operator=operator, left=left, right=right, location=operator_token.location))


def _consume_operand(tokens: list[Token], i: int) -> Node:
    token = _token_at(tokens, i)
    if token is not None and token.type is TokenType.NUMBER:
        return Number(value=float(token.lexeme), location=token.location)
    elif token is not None and token.type is TokenType.IDENTIFIER:
        return Identifier(name=token.lexeme, location=token.location)
    else:
        raise _unexpected(tokens, i)


def _token_at(tokens: list[Token], i: int) -> Optional[Token]:
    return tokens[i] if i < len(tokens) else None


def _unexpected(tokens: list[Token], i: int) -> ParserError:
    token = _token_at(tokens, i)
    if token is None:
        return UnexpectedEndOfLine(location=tokens[i - 1].end_location)
    return UnexpectedToken(text=token.lexeme, location=token.location)

import operator

import pytest
from hypothesis import given
from hypothesis import strategies as st

from linecalc.parser import AggregatedParseError, parse
from linecalc.runtime import Session
from linecalc.tokenizer import tokenize


@st.composite
def number_literal(draw) -> str:
    """Decimal literal the tokenizer accepts, e.g. '12.034'"""
    integral = draw(st.integers(min_value=0, max_value=10**6))
    fractional = draw(st.integers(min_value=0, max_value=999))
    return f"{integral}.{fractional:03d}"


ARITHMETIC_OPS = {"+": operator.add, "-": operator.sub, "*": operator.mul}
COMPARISON_OPS = {">": operator.gt, ">=": operator.ge, "<": operator.lt, "<=": operator.le}


@given(literal=number_literal(), depth=st.integers(min_value=0, max_value=500))
def test_parenthesization_is_a_no_op(literal: str, depth: int) -> None:
    code = "(" * depth + literal + ")" * depth
    assert Session().run(code) == [float(literal)]


@given(a=number_literal(), b=number_literal(), op=st.sampled_from(sorted(ARITHMETIC_OPS)))
def test_literal_arithmetic_matches_python(a: str, b: str, op: str) -> None:
    assert Session().run(f"{a} {op} {b}") == [ARITHMETIC_OPS[op](float(a), float(b))]


@given(a=number_literal(), b=number_literal().filter(lambda s: float(s) != 0.0))
def test_literal_division_matches_python(a: str, b: str) -> None:
    assert Session().run(f"{a} / {b}") == [float(a) / float(b)]


@given(a=number_literal(), b=number_literal(), op=st.sampled_from(sorted(COMPARISON_OPS)))
def test_comparisons_yield_one_or_zero(a: str, b: str, op: str) -> None:
    [result] = Session().run(f"{a} {op} {b}")
    assert result in (0.0, 1.0)
    assert result == float(COMPARISON_OPS[op](float(a), float(b)))


@given(literal=number_literal())
def test_equality_is_reflexive(literal: str) -> None:
    assert Session().run(f"{literal} == {literal}") == [1.0]


@given(broken_lines=st.lists(st.sampled_from(["1 +", "(2", "3 4", "x =", ")"]), min_size=1, max_size=10))
def test_every_failing_line_is_reported(broken_lines: list[str]) -> None:
    code = "\n".join(line for broken in broken_lines for line in ("ok = 1", broken))
    with pytest.raises(AggregatedParseError) as exc_info:
        parse(tokenize(code))
    errors = exc_info.value.errors
    assert len(errors) == len(broken_lines)
    assert [e.location.line for e in errors] == [2 * i + 1 for i in range(len(broken_lines))]

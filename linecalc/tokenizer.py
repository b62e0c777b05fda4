import enum
import re
from dataclasses import dataclass

from linecalc.utils import Location, PrintableEnum


@dataclass
class TokenizerError(Exception):
    errmsg: str
    code: str
    location: Location

    def __str__(self) -> str:
        line = self.code.split("\n")[self.location.line]
        column = self.location.column
        print_start_idx = max(0, column - 10)
        print_ellipsis_pre = print_start_idx > 0
        print_end_idx = min(len(line), column + 10)
        print_ellipsis_post = print_end_idx < len(line)
        return "\n".join(
            [
                f"[Tokenizer error] {self.errmsg} at {self.location}",
                (
                    ("..." if print_ellipsis_pre else "")
                    + f"{line[print_start_idx:print_end_idx]}"
                    + ("..." if print_ellipsis_post else "")
                ),
                " " * (column - print_start_idx + (3 if print_ellipsis_pre else 0)) + "^",
            ]
        )


class TokenType(PrintableEnum):
    NUMBER = enum.auto()
    IDENTIFIER = enum.auto()
    PLUS = enum.auto()
    MINUS = enum.auto()
    TIMES = enum.auto()
    DIV = enum.auto()
    GREATER_THAN = enum.auto()
    GREATER_THAN_OR_EQUAL = enum.auto()
    LESS_THAN = enum.auto()
    LESS_THAN_OR_EQUAL = enum.auto()
    EQUAL = enum.auto()
    ASSIGN = enum.auto()
    LEFT_PAREN = enum.auto()
    RIGHT_PAREN = enum.auto()


@dataclass(frozen=True)
class Token:
    type: TokenType
    lexeme: str
    line: int
    column: int

    @property
    def location(self) -> Location:
        return Location(self.line, self.column)

    @property
    def end_location(self) -> Location:
        """Location of the last character of the token"""
        return Location(self.line, self.column + len(self.lexeme) - 1)

    def __str__(self) -> str:
        return f"<{self.type}>{self.lexeme}"


NUMBER_RE = re.compile(r"\d+\.?\d*|\.\d+")


def _is_valid_in_number(s: str) -> bool:
    return s.isdecimal() or s == "."


def _is_valid_in_identifier(s: str) -> bool:
    return s.isalnum() or s == "_"


TWO_CHAR_TOKENS = {
    ">=": TokenType.GREATER_THAN_OR_EQUAL,
    "<=": TokenType.LESS_THAN_OR_EQUAL,
    "==": TokenType.EQUAL,
}

SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.TIMES,
    "/": TokenType.DIV,
    ">": TokenType.GREATER_THAN,
    "<": TokenType.LESS_THAN,
    "=": TokenType.ASSIGN,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
}


def tokenize(code: str) -> list[Token]:
    i = 0
    line = 0
    line_start_idx = 0
    tokens: list[Token] = []
    while i < len(code):
        column = i - line_start_idx
        if _is_valid_in_number(code[i]):
            number_end_idx = i + 1
            while number_end_idx < len(code) and _is_valid_in_number(code[number_end_idx]):
                number_end_idx += 1
            lexeme = code[i:number_end_idx]
            if not NUMBER_RE.fullmatch(lexeme):
                raise TokenizerError(f"Malformed number: {lexeme!r}", code=code, location=Location(line, column))
            tokens.append(Token(type=TokenType.NUMBER, lexeme=lexeme, line=line, column=column))
            i = number_end_idx
            continue
        elif code[i].isalpha():
            ident_end_idx = i + 1
            while ident_end_idx < len(code) and _is_valid_in_identifier(code[ident_end_idx]):
                ident_end_idx += 1
            tokens.append(Token(type=TokenType.IDENTIFIER, lexeme=code[i:ident_end_idx], line=line, column=column))
            i = ident_end_idx
            continue
        elif code[i : i + 2] in TWO_CHAR_TOKENS:
            tokens.append(Token(type=TWO_CHAR_TOKENS[code[i : i + 2]], lexeme=code[i : i + 2], line=line, column=column))
            i += 2
            continue
        elif code[i] in SINGLE_CHAR_TOKENS:
            tokens.append(Token(type=SINGLE_CHAR_TOKENS[code[i]], lexeme=code[i], line=line, column=column))
        elif code[i] == "\n":
            line += 1
            line_start_idx = i + 1
        elif code[i].isspace():
            pass
        else:
            raise TokenizerError(
                f"Unexpected character: {code[i]!r}", code=code, location=Location(line, column)
            )
        i += 1

    return tokens

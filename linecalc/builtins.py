import math

BUILTIN_CONSTANTS: dict[str, float] = dict()


def register_constant(name: str, value: float) -> None:
    if name in BUILTIN_CONSTANTS:
        raise ValueError(f"Built-in constant {name!r} is already registered")
    BUILTIN_CONSTANTS[name] = value


def new_symbol_table() -> dict[str, float]:
    """Fresh symbol table seeded with the built-in constants, owned by the caller"""
    return dict(BUILTIN_CONSTANTS)


register_constant("PI", math.pi)
register_constant("E", math.e)

"""
Constraint expressions for wrpc validation.

Provides evaluation against a decoded value, the set of properties an
expression reads, and the S-expression rendering used in error reports.

Usage:
    from wrpc.constraints import access, eq, length, evaluate

    check = eq(length(access("zipcode")), 5)
    evaluate(check, address)  # True / False
"""

from __future__ import annotations

import operator
from functools import reduce
from typing import Any, Callable

from .schema import Constraint

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

_SYMBOLS = {
    "and": "and",
    "or": "or",
    "xor": "xor",
    "not": "not",
    "eq": "=",
    "lt": "<",
    "le": "<=",
    "gt": ">",
    "ge": ">=",
    "len": "len",
    "blank": "blank",
}


def evaluate(constraint: Constraint, value: Any) -> Any:
    """
    Evaluate ``constraint`` with ``access`` reading attributes of ``value``.

    Comparisons are chained pairwise, so (< a b c) means a < b and b < c;
    with fewer than two operands they hold trivially.

    Raises:
        Whatever the underlying operation raises (e.g. TypeError comparing
        a string to a number). Callers treat that as a failed constraint.
    """
    op = constraint.op
    args = constraint.args

    if op == "access":
        return getattr(value, constraint.name)
    if op in ("number", "string", "boolean"):
        return constraint.value
    if op == "and":
        return all(evaluate(arg, value) for arg in args)
    if op == "or":
        return any(evaluate(arg, value) for arg in args)
    if op == "xor":
        return reduce(operator.xor, (bool(evaluate(arg, value)) for arg in args), False)
    if op == "not":
        return not evaluate(args[0], value)
    if op == "len":
        return len(evaluate(args[0], value))
    if op == "blank":
        return not str(evaluate(args[0], value)).strip()
    if op in _COMPARISONS:
        compare = _COMPARISONS[op]
        operands = [evaluate(arg, value) for arg in args]
        return all(compare(a, b) for a, b in zip(operands, operands[1:]))

    raise ValueError(f"Unknown constraint operator: {op}")


def references(constraint: Constraint) -> set[str]:
    """Names of all properties the constraint reads."""
    if constraint.op == "access":
        return {constraint.name}
    names: set[str] = set()
    for arg in constraint.args:
        names |= references(arg)
    return names


def render(constraint: Constraint) -> str:
    """Render as an S-expression, e.g. ``(= (len .zipcode) 5)``."""
    match constraint.op:
        case "access":
            return f".{constraint.name}"
        case "string":
            return f'"{constraint.value}"'
        case "boolean":
            return "true" if constraint.value else "false"
        case "number":
            number = constraint.value
            if isinstance(number, float) and number.is_integer():
                return str(int(number))
            return str(number)
    parts = [_SYMBOLS[constraint.op], *(render(arg) for arg in constraint.args)]
    return f"({' '.join(parts)})"


# Builders


def _arg(value: Any) -> Constraint:
    if isinstance(value, Constraint):
        return value
    if isinstance(value, bool):
        return Constraint(op="boolean", value=value)
    if isinstance(value, (int, float)):
        return Constraint(op="number", value=value)
    if isinstance(value, str):
        return Constraint(op="string", value=value)
    raise TypeError(f"Cannot convert {type(value).__name__} to constraint")


def _nary(op: str) -> Callable[..., Constraint]:
    def build(*args: Any) -> Constraint:
        return Constraint(op=op, args=[_arg(arg) for arg in args])

    build.__name__ = op
    return build


def access(name: str) -> Constraint:
    return Constraint(op="access", name=name)


def length(arg: Any) -> Constraint:
    return Constraint(op="len", args=[_arg(arg)])


def blank(arg: Any) -> Constraint:
    return Constraint(op="blank", args=[_arg(arg)])


def not_(arg: Any) -> Constraint:
    return Constraint(op="not", args=[_arg(arg)])


and_ = _nary("and")
or_ = _nary("or")
xor = _nary("xor")
eq = _nary("eq")
lt = _nary("lt")
le = _nary("le")
gt = _nary("gt")
ge = _nary("ge")

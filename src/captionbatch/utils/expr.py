"""
A small typed model of ffmpeg's expression language.

Nodes render to the text ffmpeg parses (`if(lt(t,2),0,1)`) and can also be
evaluated in Python for given variable values, so time curves can be checked
without running ffmpeg.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, Union

Number = Union[int, float]
Env = Mapping[str, float]


def format_number(value: Number) -> str:
    """Shortest text that reads back as the same float, so rendered and evaluated curves agree."""
    if isinstance(value, bool):
        value = int(value)
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def lift(value: "Expr | Number") -> "Expr":
    if isinstance(value, Expr):
        return value
    return Num(value)


class Expr:
    def render(self) -> str:
        raise NotImplementedError

    def evaluate(self, env: Env) -> float:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()

    def __add__(self, other: "Expr | Number") -> "Expr":
        return BinOp("+", self, lift(other))

    def __radd__(self, other: Number) -> "Expr":
        return BinOp("+", lift(other), self)

    def __sub__(self, other: "Expr | Number") -> "Expr":
        return BinOp("-", self, lift(other))

    def __rsub__(self, other: Number) -> "Expr":
        return BinOp("-", lift(other), self)

    def __mul__(self, other: "Expr | Number") -> "Expr":
        return BinOp("*", self, lift(other))

    def __truediv__(self, other: "Expr | Number") -> "Expr":
        return BinOp("/", self, lift(other))

    def __neg__(self) -> "Expr":
        return Neg(self)


@dataclass(frozen=True)
class Num(Expr):
    value: Number

    def render(self) -> str:
        return format_number(self.value)

    def evaluate(self, env: Env) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Var(Expr):
    name: str

    def render(self) -> str:
        return self.name

    def evaluate(self, env: Env) -> float:
        try:
            return float(env[self.name])
        except KeyError:
            raise KeyError(f"Expression variable '{self.name}' has no value") from None


_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}


@dataclass(frozen=True)
class BinOp(Expr):
    op: str
    left: Expr
    right: Expr

    def _wrap(self, child: Expr, *, right: bool) -> str:
        text = child.render()
        if isinstance(child, Neg) and right:
            return f"({text})"
        if not isinstance(child, BinOp):
            return text
        mine = _PRECEDENCE[self.op]
        theirs = _PRECEDENCE[child.op]
        if theirs < mine or (right and theirs == mine and self.op in "-/"):
            return f"({text})"
        return text

    def render(self) -> str:
        return f"{self._wrap(self.left, right=False)}{self.op}{self._wrap(self.right, right=True)}"

    def evaluate(self, env: Env) -> float:
        a = self.left.evaluate(env)
        b = self.right.evaluate(env)
        if self.op == "+":
            return a + b
        if self.op == "-":
            return a - b
        if self.op == "*":
            return a * b
        return a / b


@dataclass(frozen=True)
class Neg(Expr):
    operand: Expr

    def render(self) -> str:
        text = self.operand.render()
        if isinstance(self.operand, BinOp):
            return f"-({text})"
        return f"-{text}"

    def evaluate(self, env: Env) -> float:
        return -self.operand.evaluate(env)


@dataclass(frozen=True)
class Call(Expr):
    name: str
    args: tuple[Expr, ...]

    def render(self) -> str:
        return f"{self.name}({','.join(arg.render() for arg in self.args)})"

    def evaluate(self, env: Env) -> float:
        if self.name == "if":
            cond, then, other = self.args
            return then.evaluate(env) if cond.evaluate(env) != 0 else other.evaluate(env)
        values = [arg.evaluate(env) for arg in self.args]
        if self.name == "lt":
            return 1.0 if values[0] < values[1] else 0.0
        if self.name == "between":
            return 1.0 if values[1] <= values[0] <= values[2] else 0.0
        raise ValueError(f"Unsupported expression function '{self.name}'")


def call(name: str, *args: "Expr | Number") -> Call:
    return Call(name, tuple(lift(a) for a in args))


def if_(cond: Expr, then: "Expr | Number", other: "Expr | Number") -> Call:
    return call("if", cond, then, other)


def lt(a: "Expr | Number", b: "Expr | Number") -> Call:
    return call("lt", a, b)


def between(x: "Expr | Number", lo: "Expr | Number", hi: "Expr | Number") -> Call:
    return call("between", x, lo, hi)


T = Var("t")
W = Var("w")
TEXT_W = Var("text_w")


def piecewise(
    var: Expr,
    pieces: Sequence[tuple[Number, "Expr | Number"]],
    otherwise: "Expr | Number",
) -> Expr:
    """
    `var < b1 -> e1, var < b2 -> e2, ..., else otherwise`, as nested ifs.

    The first matching bound wins, so a piece whose bound is not above the
    previous one never applies.
    """
    expr = lift(otherwise)
    for bound, value in reversed(pieces):
        expr = if_(lt(var, bound), value, expr)
    return expr

import ast
import operator as op
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

_ALLOWED_OPS = {
    ast.Add: op.add,
    ast.Sub: op.sub,
    ast.Mult: op.mul,
    ast.Div: op.truediv,
    ast.USub: op.neg,
    ast.UAdd: op.pos,
}


def parse_amount(expr) -> float:
    """
    Parse a currency cell safely.
    Allowed: numbers, + - * /, parentheses, unary +/-, thousands commas, a leading "$"
    Examples: "150", "1,500", "$45.50", "300/2"
    """
    if expr is None:
        raise ValueError("Amount is empty")
    if isinstance(expr, bool):
        raise ValueError("Amount must be numeric")
    if isinstance(expr, (int, float, Decimal)):
        return float(expr)

    s = str(expr).strip().replace(",", "").replace("$", "")
    if not s:
        raise ValueError("Amount is empty")

    try:
        node = ast.parse(s, mode="eval").body
    except SyntaxError as exc:
        raise ValueError(f"Unsupported amount: {expr!r}") from exc

    def _eval(n):
        if isinstance(n, ast.Constant) and isinstance(n.value, (int, float)) and not isinstance(n.value, bool):
            return float(n.value)
        if isinstance(n, ast.UnaryOp) and type(n.op) in _ALLOWED_OPS:
            return _ALLOWED_OPS[type(n.op)](_eval(n.operand))
        if isinstance(n, ast.BinOp) and type(n.op) in _ALLOWED_OPS:
            return _ALLOWED_OPS[type(n.op)](_eval(n.left), _eval(n.right))
        raise ValueError(f"Unsupported amount: {expr!r}")

    try:
        val = _eval(node)
    except ZeroDivisionError as exc:
        raise ValueError(f"Division by zero in amount: {expr!r}") from exc
    if not (val == val) or val in (float("inf"), float("-inf")):
        raise ValueError("Invalid numeric result")
    return val


def parse_amount_or(expr, default: float | None = 0.0) -> float | None:
    """Like parse_amount, but blank or unreadable cells give ``default``."""
    try:
        return parse_amount(expr)
    except ValueError:
        return default


def to_decimal(value) -> Decimal:
    # str() keeps the shortest repr, so 14.999999999999998 stays that and 0.1 stays 0.1
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> float:
    """Round half-up (ties away from zero) to the cent."""
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def format_currency(value, symbol: str = "$") -> str:
    amount = round2(value or 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"

"""Arithmetic formula evaluation for cabinet parts.

Cabinet parts carry short formula strings such as
``(((height/1000*width/1000)*qty)*mat_rate_per_sqm)`` that are evaluated
against the configured cabinet.  The accepted grammar is deliberately small::

    expr   := term (("+" | "-") term)*
    term   := factor (("*" | "/") factor)*
    factor := ("+" | "-") factor | NUMBER | NAME | "(" expr ")"

Formulas are parsed with :mod:`ast` and every node is checked against that
grammar before anything is evaluated, so calls, attribute access, powers and
comparisons are rejected up front.  Variable names are case-insensitive.
"""
from __future__ import annotations

import ast
import enum
import functools
import logging
import math
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_SIDE_THICKNESS_MM = 18.0

DIMENSION_VARIABLES = frozenset(
    {
        "width",
        "height",
        "depth",
        "left_width",
        "right_width",
        "left_depth",
        "right_depth",
        "left_side",
        "right_side",
        "qty",
    }
)
COST_VARIABLES = frozenset({"mat_rate_per_sqm", "door_cost", "color_cost", "finish_cost"})
ALIASES: Mapping[str, str] = {"w": "width", "h": "height", "d": "depth"}
KNOWN_VARIABLES = DIMENSION_VARIABLES | COST_VARIABLES

_BINARY_OPS: dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}
_UNARY_OPS: dict[type, Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


class FormulaError(ValueError):
    """Base class for formula parsing and evaluation failures."""


class FormulaSyntaxError(FormulaError):
    """Raised when a formula does not match the arithmetic grammar."""


class UnknownVariableError(FormulaError):
    """Raised when a formula references a name missing from the namespace."""

    def __init__(self, name: str, formula: str) -> None:
        super().__init__(f"Unknown variable {name!r} in formula {formula!r}")
        self.name = name
        self.formula = formula


class FormulaEvaluationError(FormulaError):
    """Raised when a well-formed formula cannot produce a finite number."""


class FormulaKind(str, enum.Enum):
    """Whether a formula yields a dimension (mm) or a cost (currency)."""

    DIMENSION = "dimension"
    COST = "cost"


def canonical_name(name: str) -> str:
    lowered = name.lower()
    return ALIASES.get(lowered, lowered)


def _collect_names(node: ast.AST, formula: str) -> set[str]:
    """Validate ``node`` against the grammar and return the referenced names."""

    if isinstance(node, ast.Expression):
        return _collect_names(node.body, formula)
    if isinstance(node, ast.BinOp):
        if type(node.op) not in _BINARY_OPS:
            raise FormulaSyntaxError(
                f"Operator {type(node.op).__name__} is not allowed in formula {formula!r}"
            )
        return _collect_names(node.left, formula) | _collect_names(node.right, formula)
    if isinstance(node, ast.UnaryOp):
        if type(node.op) not in _UNARY_OPS:
            raise FormulaSyntaxError(
                f"Operator {type(node.op).__name__} is not allowed in formula {formula!r}"
            )
        return _collect_names(node.operand, formula)
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaSyntaxError(f"Only numeric literals are allowed in formula {formula!r}")
        return set()
    if isinstance(node, ast.Name):
        return {canonical_name(node.id)}
    raise FormulaSyntaxError(f"Unsupported expression {type(node).__name__} in formula {formula!r}")


@dataclass(frozen=True)
class Formula:
    """A parsed, validated formula ready for repeated evaluation."""

    text: str
    variables: frozenset[str]
    _tree: ast.Expression = field(repr=False, compare=False)

    @property
    def kind(self) -> FormulaKind:
        if self.variables & COST_VARIABLES:
            return FormulaKind.COST
        return FormulaKind.DIMENSION

    def evaluate(self, namespace: "Mapping[str, float] | FormulaVariables") -> float:
        """Return the formula value for ``namespace``."""

        if isinstance(namespace, FormulaVariables):
            values: Mapping[str, float] = namespace.as_namespace()
        else:
            values = {canonical_name(str(key)): value for key, value in namespace.items()}

        try:
            result = self._eval(self._tree.body, values)
        except ZeroDivisionError as exc:
            raise FormulaEvaluationError(f"Division by zero in formula {self.text!r}") from exc
        except OverflowError as exc:
            raise FormulaEvaluationError(f"Overflow in formula {self.text!r}") from exc

        if not math.isfinite(result):
            raise FormulaEvaluationError(f"Formula {self.text!r} produced a non-finite value")
        return result

    def _eval(self, node: ast.AST, values: Mapping[str, float]) -> float:
        if isinstance(node, ast.BinOp):
            op = _BINARY_OPS[type(node.op)]
            return op(self._eval(node.left, values), self._eval(node.right, values))
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand, values))
        if isinstance(node, ast.Constant):
            return float(node.value)
        if isinstance(node, ast.Name):
            name = canonical_name(node.id)
            if name not in values or values[name] is None:
                raise UnknownVariableError(name, self.text)
            return float(values[name])
        # compile_formula has already rejected every other node type
        raise FormulaSyntaxError(f"Unsupported expression in formula {self.text!r}")


@functools.lru_cache(maxsize=512)
def compile_formula(text: str) -> Formula:
    """Parse ``text`` into a :class:`Formula`, raising :class:`FormulaSyntaxError`."""

    source = str(text).strip().lower()
    if not source:
        raise FormulaSyntaxError("Formula is empty")

    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise FormulaSyntaxError(f"Malformed formula {text!r}: {exc.msg}") from exc
    except (RecursionError, ValueError) as exc:
        raise FormulaSyntaxError(f"Malformed formula {text!r}") from exc

    names = _collect_names(tree, text)
    return Formula(text=source, variables=frozenset(names), _tree=tree)


def formula_kind(text: str | None) -> FormulaKind | None:
    """Classify ``text`` or return ``None`` when it is blank or malformed."""

    if not text or not str(text).strip():
        return None
    try:
        return compile_formula(str(text)).kind
    except FormulaError:
        return None


@dataclass
class FormulaVariables:
    """Values bound to the formula namespace for one cabinet configuration."""

    width: float
    height: float
    depth: float
    qty: float = 1
    mat_rate_per_sqm: float = 0.0
    door_cost: float = 0.0
    color_cost: float = 0.0
    finish_cost: float = 0.0
    left_width: float | None = None
    right_width: float | None = None
    left_depth: float | None = None
    right_depth: float | None = None
    left_side: float | None = None
    right_side: float | None = None
    side_thickness_mm: float = DEFAULT_SIDE_THICKNESS_MM

    def as_namespace(self) -> dict[str, float]:
        """Return the canonical namespace with corner and side fallbacks applied."""

        def _or(value: float | None, fallback: float) -> float:
            return float(value) if value else float(fallback)

        return {
            "width": float(self.width),
            "height": float(self.height),
            "depth": float(self.depth),
            "qty": float(self.qty),
            "mat_rate_per_sqm": float(self.mat_rate_per_sqm),
            "door_cost": float(self.door_cost),
            "color_cost": float(self.color_cost),
            "finish_cost": float(self.finish_cost),
            "left_width": _or(self.left_width, self.width),
            "right_width": _or(self.right_width, self.width),
            "left_depth": _or(self.left_depth, self.depth),
            "right_depth": _or(self.right_depth, self.depth),
            "left_side": _or(self.left_side, self.side_thickness_mm),
            "right_side": _or(self.right_side, self.side_thickness_mm),
        }


def evaluate_formula(
    text: str | None,
    variables: "FormulaVariables | Mapping[str, Any]",
    *,
    strict: bool = False,
) -> float:
    """Evaluate ``text`` against ``variables``.

    Blank formulas evaluate to ``0``.  With ``strict`` unset, malformed formulas
    and unknown variables are logged and also evaluate to ``0`` so a single bad
    catalog row does not break a whole quote.
    """

    if text is None or not str(text).strip():
        return 0.0

    try:
        return compile_formula(str(text)).evaluate(variables)
    except FormulaError as exc:
        if strict:
            raise
        logger.warning("Error evaluating formula %r: %s", text, exc)
        return 0.0


__all__ = [
    "ALIASES",
    "COST_VARIABLES",
    "DEFAULT_SIDE_THICKNESS_MM",
    "DIMENSION_VARIABLES",
    "Formula",
    "FormulaError",
    "FormulaEvaluationError",
    "FormulaKind",
    "FormulaSyntaxError",
    "FormulaVariables",
    "KNOWN_VARIABLES",
    "UnknownVariableError",
    "canonical_name",
    "compile_formula",
    "evaluate_formula",
    "formula_kind",
]

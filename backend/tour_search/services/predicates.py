"""
Predicate tree for package filtering.

Filters are built as an explicit tree of tagged nodes instead of a flat list:

    AllOf(children)       conjunction
    AnyOf(children)       disjunction
    Not(child)            negation
    Condition(field, op, value)   leaf

Condition.field is a dotted ORM attribute path relative to TouristPackage,
e.g. "representative_city.region.name" or "locations.city_id". The tree is
store-agnostic; db.repositories compiles it into a SQLAlchemy clause.

Independent "any-of" criteria (destination match, free-text search, age
bounds) each keep their own AnyOf group and are conjoined with all_of().
An AnyOf is never merged into another AnyOf.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

OPERATORS = frozenset({
    "eq", "ne", "gt", "gte", "lt", "lte", "between",
    "icontains", "iequals", "is_null",
})


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    value: Any = None

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")


@dataclass(frozen=True)
class AllOf:
    children: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class AnyOf:
    children: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class Not:
    child: "Node"


Node = Union[Condition, AllOf, AnyOf, Not]


def all_of(*nodes: Optional[Node]) -> AllOf:
    """Conjoin nodes, dropping None. Nested AllOf children are inlined."""
    children = []
    for node in nodes:
        if node is None:
            continue
        if isinstance(node, AllOf):
            children.extend(node.children)
        else:
            children.append(node)
    return AllOf(tuple(children))


def any_of(*nodes: Optional[Node]) -> Optional[AnyOf]:
    """Group nodes into one disjunction. Returns None when nothing is left."""
    children = tuple(node for node in nodes if node is not None)
    if not children:
        return None
    return AnyOf(children)


def eq(field: str, value: Any) -> Condition:
    return Condition(field, "eq", value)


def is_null(field: str) -> Condition:
    return Condition(field, "is_null", True)


def describe(node: Node) -> str:
    """Readable infix rendering, used for debug logging and test assertions."""
    if isinstance(node, Condition):
        if node.op == "is_null":
            return f"{node.field} IS {'' if node.value else 'NOT '}NULL"
        return f"{node.field} {node.op} {node.value!r}"
    if isinstance(node, Not):
        return f"NOT ({describe(node.child)})"
    if isinstance(node, AllOf):
        if not node.children:
            return "TRUE"
        return " AND ".join(_wrap(child) for child in node.children)
    if isinstance(node, AnyOf):
        if not node.children:
            return "FALSE"
        return " OR ".join(_wrap(child) for child in node.children)
    raise TypeError(f"Not a predicate node: {node!r}")


def _wrap(node: Node) -> str:
    text = describe(node)
    if isinstance(node, (AllOf, AnyOf)) and len(node.children) > 1:
        return f"({text})"
    return text


def iter_conditions(node: Node):
    """Yield every leaf Condition in the tree (depth first)."""
    if isinstance(node, Condition):
        yield node
    elif isinstance(node, Not):
        yield from iter_conditions(node.child)
    else:
        for child in node.children:
            yield from iter_conditions(child)

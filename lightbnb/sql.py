# Parameterized SQL assembly.
# Values are bound through positional-indexed placeholders (:p1, :p2, ...); the
# index of a placeholder is always the 1-based position of its value in Query.params.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

PLACEHOLDER = ":p{index}"
# Slot marker inside clause templates, replaced by the rendered placeholder
SLOT = "{}"


def placeholder(index: int) -> str:
    return PLACEHOLDER.format(index=index)


def bindings(params: Sequence[Any]) -> Dict[str, Any]:
    """Zip an ordered parameter list into the name -> value mapping text() expects."""
    return {f"p{i}": value for i, value in enumerate(params, start=1)}


@dataclass(frozen=True)
class Query:
    sql: str
    params: Tuple[Any, ...] = ()

    def bindings(self) -> Dict[str, Any]:
        return bindings(self.params)


def statement(sql: str, *params: Any) -> Query:
    """Query whose text already carries :p1..:pN for the given values."""
    return Query(sql=sql, params=tuple(params))


@dataclass
class SelectBuilder:
    """
    Incremental builder for a single SELECT with optional WHERE/HAVING filters.

    Each filter is a (template, value) pair where the template holds exactly one
    ``{}`` slot. Pairs are rendered in clause order (WHERE, HAVING, LIMIT) and the
    placeholder index is taken from the parameter list at the moment the value is
    appended, so text and parameters cannot drift apart.

        q = (
            SelectBuilder("SELECT * FROM properties")
            .where("properties.city LIKE {}", "%van%")
            .order_by("properties.cost_per_night ASC")
            .limit(10)
            .build()
        )
        # q.sql ends with "WHERE properties.city LIKE :p1 ... LIMIT :p2"
    """

    select: str
    _where: List[Tuple[str, Any]] = field(default_factory=list)
    _having: List[Tuple[str, Any]] = field(default_factory=list)
    _group_by: Optional[str] = None
    _order_by: Optional[str] = None
    _limit: Optional[Tuple[Any]] = None

    def where(self, template: str, value: Any) -> "SelectBuilder":
        self._where.append((_check_template(template), value))
        return self

    def group_by(self, expression: str) -> "SelectBuilder":
        self._group_by = expression
        return self

    def having(self, template: str, value: Any) -> "SelectBuilder":
        self._having.append((_check_template(template), value))
        return self

    def order_by(self, expression: str) -> "SelectBuilder":
        self._order_by = expression
        return self

    def limit(self, value: Any) -> "SelectBuilder":
        self._limit = (value,)
        return self

    def build(self) -> Query:
        params: List[Any] = []

        def bind(template: str, value: Any) -> str:
            params.append(value)
            return template.replace(SLOT, placeholder(len(params)))

        clauses = [self.select.strip()]
        if self._where:
            clauses.append("WHERE " + " AND ".join(bind(t, v) for t, v in self._where))
        if self._group_by:
            clauses.append(f"GROUP BY {self._group_by}")
        if self._having:
            clauses.append("HAVING " + " AND ".join(bind(t, v) for t, v in self._having))
        if self._order_by:
            clauses.append(f"ORDER BY {self._order_by}")
        if self._limit is not None:
            clauses.append(bind("LIMIT {}", self._limit[0]))
        return Query(sql="\n".join(clauses), params=tuple(params))


def _check_template(template: str) -> str:
    if template.count(SLOT) != 1:
        raise ValueError(f"clause template must contain exactly one '{SLOT}' slot: {template!r}")
    return template

"""Coarse query planning.

The document store answers only simple queries: equality clauses on indexed
fields, a limited number of `in` clauses, and at most one range clause. It has
no radius operator. The planner pushes down whatever the store can run and
leaves the rest to the in-memory filter pipeline.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Optional, Tuple

from nearby_search.core.config import settings
from nearby_search.filtering.filters import SearchFilters
from nearby_search.filtering.predicates import Boolean, Eq, In, Range
from nearby_search.geo.distance import calculate_bounding_box

logger = logging.getLogger(__name__)

# Logical name of the ordered latitude field used for bounding-box ranges.
LATITUDE_FIELD = "lat"

DEFAULT_INDEXED_FIELDS = frozenset(
    {
        "status",
        "category",
        "region",
        "reported",
        "seller_id",
        "buyer_id",
        "price",
        "area",
        "price_hourly",
        "price_daily",
        "price_monthly",
        "price_drop_in",
    }
)


@dataclass(frozen=True)
class QueryCapability:
    max_range_clauses: int = 1
    max_in_clauses: int = 1
    max_in_values: int = 10
    indexed_fields: FrozenSet[str] = DEFAULT_INDEXED_FIELDS

    @classmethod
    def from_settings(cls) -> "QueryCapability":
        return cls(
            max_range_clauses=settings.STORE_MAX_RANGE_CLAUSES,
            max_in_clauses=settings.STORE_MAX_IN_CLAUSES,
            max_in_values=settings.STORE_MAX_IN_VALUES,
        )


@dataclass(frozen=True)
class EqClause:
    field: str
    value: Any


@dataclass(frozen=True)
class InClause:
    field: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class RangeClause:
    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None


@dataclass(frozen=True)
class CoarseQuery:
    kind: str
    equals: Tuple[EqClause, ...] = ()
    ins: Tuple[InClause, ...] = ()
    ranges: Tuple[RangeClause, ...] = ()
    limit: Optional[int] = None


@dataclass(frozen=True)
class QueryPlan:
    queries: Tuple[CoarseQuery, ...]
    residual: Tuple = field(default_factory=tuple)


class QueryPlanner:
    def __init__(self, capability: QueryCapability = None):
        self.capability = capability or QueryCapability.from_settings()

    def plan(
        self,
        kind: str,
        filters: SearchFilters,
        base: Tuple[EqClause, ...] = (),
        union_on: Tuple[EqClause, ...] = (),
        limit: int = None,
    ) -> QueryPlan:
        """Split `filters` into native clauses and in-memory residual predicates.

        `base` clauses are always pushed down. Each clause in `union_on` yields
        a separate coarse query; the fetcher merges their results. `limit` caps
        each coarse query only when given; by default the store returns every
        match.
        """
        cap = self.capability
        equals: List[EqClause] = list(base)
        ins: List[InClause] = []
        ranges: List[RangeClause] = []
        residual = []

        if filters.has_radius and cap.max_range_clauses > 0:
            box = calculate_bounding_box(filters.center, filters.radius_km)
            ranges.append(
                RangeClause(LATITUDE_FIELD, box.southwest.lat, box.northeast.lat)
            )

        for predicate in filters.predicates():
            indexed = getattr(predicate, "field", None) in cap.indexed_fields

            if indexed and isinstance(predicate, Eq):
                equals.append(EqClause(predicate.field, predicate.value))
            elif indexed and isinstance(predicate, Boolean) and predicate.value is not None:
                equals.append(EqClause(predicate.field, predicate.value))
            elif indexed and isinstance(predicate, In) and len(predicate.values) == 1:
                equals.append(EqClause(predicate.field, predicate.values[0]))
            elif (
                indexed
                and isinstance(predicate, In)
                and len(predicate.values) <= cap.max_in_values
                and len(ins) < cap.max_in_clauses
            ):
                ins.append(InClause(predicate.field, tuple(predicate.values)))
            elif (
                indexed
                and isinstance(predicate, Range)
                and len(ranges) < cap.max_range_clauses
            ):
                ranges.append(RangeClause(predicate.field, predicate.lower, predicate.upper))
            else:
                residual.append(predicate)

        if residual:
            logger.debug(f"Deferred to memory for {kind}: {residual}")

        template = CoarseQuery(
            kind=kind,
            equals=tuple(equals),
            ins=tuple(ins),
            ranges=tuple(ranges),
            limit=limit,
        )
        if not union_on:
            return QueryPlan(queries=(template,), residual=tuple(residual))

        queries = tuple(
            CoarseQuery(
                kind=kind,
                equals=template.equals + (clause,),
                ins=template.ins,
                ranges=template.ranges,
                limit=limit,
            )
            for clause in union_on
        )
        return QueryPlan(queries=queries, residual=tuple(residual))

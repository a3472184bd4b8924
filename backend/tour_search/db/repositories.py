"""
Repository pattern for data access.
Compiles predicate trees into SQLAlchemy clauses and runs package queries.
"""

from typing import List, Optional
import logging

from sqlalchemy import and_, case, false, func, not_, or_, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import RelationshipProperty, Session, joinedload, selectinload

from tour_search.core.exceptions import StoreUnavailableError
from tour_search.db.models import City, DifficultyLevel, Media, PricingOption, TouristPackage
from tour_search.schemas import SortKey, SortOrder
from tour_search.services.predicate_builder import Include, QueryPlan, Sort
from tour_search.services.predicates import AllOf, AnyOf, Condition, Node, Not

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Predicate compilation
# ---------------------------------------------------------------------------

def _apply_operator(column, op: str, value):
    if op == "eq":
        return column.is_(None) if value is None else column == value
    if op == "ne":
        return column.is_not(None) if value is None else column != value
    if op == "gt":
        return column > value
    if op == "gte":
        return column >= value
    if op == "lt":
        return column < value
    if op == "lte":
        return column <= value
    if op == "between":
        low, high = value
        return column.between(low, high)
    if op == "icontains":
        return column.icontains(value, autoescape=True)
    if op == "iequals":
        return func.lower(column) == str(value).lower()
    if op == "is_null":
        return column.is_(None) if value else column.is_not(None)
    raise ValueError(f"Unsupported operator: {op}")


def _compile_path(model, path: str, op: str, value):
    """
    Walk a dotted attribute path. Relationship segments become EXISTS clauses:
    .any() for collections, .has() for scalar relations.
    """
    head, _, rest = path.partition(".")
    attr = getattr(model, head, None)
    if attr is None or not hasattr(attr, "property"):
        raise ValueError(f"Unknown field '{head}' on {model.__name__}")

    prop = attr.property
    if isinstance(prop, RelationshipProperty):
        target = prop.mapper.class_
        inner = _compile_path(target, rest, op, value) if rest else None
        if prop.uselist:
            return attr.any(inner) if inner is not None else attr.any()
        return attr.has(inner) if inner is not None else attr.has()

    if rest:
        raise ValueError(f"'{head}' on {model.__name__} is a column, cannot traverse '{rest}'")
    return _apply_operator(attr, op, value)


def compile_predicate(node: Node, model=TouristPackage):
    """Translate a predicate tree into a SQLAlchemy boolean clause."""
    if isinstance(node, Condition):
        return _compile_path(model, node.field, node.op, node.value)
    if isinstance(node, Not):
        return not_(compile_predicate(node.child, model))
    if isinstance(node, AllOf):
        if not node.children:
            return true()
        return and_(*(compile_predicate(child, model) for child in node.children))
    if isinstance(node, AnyOf):
        if not node.children:
            return false()
        return or_(*(compile_predicate(child, model) for child in node.children))
    raise TypeError(f"Not a predicate node: {node!r}")


# ---------------------------------------------------------------------------
# Loading and ordering
# ---------------------------------------------------------------------------

_SORT_COLUMNS = {
    SortKey.CREATED_AT: TouristPackage.created_at,
    SortKey.UPDATED_AT: TouristPackage.updated_at,
    SortKey.NAME: TouristPackage.name,
    SortKey.RATING: TouristPackage.rating,
    SortKey.DURATION: TouristPackage.duration,
    # easiest first
    SortKey.DIFFICULTY: case(
        {
            DifficultyLevel.EASY: 1,
            DifficultyLevel.MODERATE: 2,
            DifficultyLevel.CHALLENGING: 3,
            DifficultyLevel.HARD: 4,
        },
        value=TouristPackage.difficulty,
    ),
}


def lowest_active_price():
    """Correlated scalar subquery: minimum active pricing amount of the package."""
    return (
        select(func.min(PricingOption.amount))
        .where(
            PricingOption.package_id == TouristPackage.id,
            PricingOption.is_active.is_(True),
        )
        .correlate(TouristPackage)
        .scalar_subquery()
    )


def order_clauses(sort: Optional[Sort]) -> list:
    if sort is None:
        return [TouristPackage.id.asc()]
    descending = sort.order == SortOrder.DESC
    if sort.key == SortKey.LOWEST_PRICE:
        expr = lowest_active_price()
        primary = (expr.desc() if descending else expr.asc()).nulls_last()
    else:
        column = _SORT_COLUMNS[sort.key]
        primary = column.desc() if descending else column.asc()
    tie_breaker = TouristPackage.id.desc() if descending else TouristPackage.id.asc()
    return [primary, tie_breaker]


def loader_options(includes) -> list:
    options = []
    if Include.COMPANY in includes:
        options.append(joinedload(TouristPackage.company))
    if Include.CHEAPEST_PRICING in includes or Include.ALL_ACTIVE_PRICING in includes:
        options.append(
            selectinload(TouristPackage.pricing_options.and_(PricingOption.is_active.is_(True)))
        )
    if Include.PRIMARY_MEDIA in includes:
        options.append(selectinload(TouristPackage.media.and_(Media.is_primary.is_(True))))
    if Include.CITY_WITH_REGION in includes:
        options.append(joinedload(TouristPackage.representative_city).joinedload(City.region))
    return options


class TouristPackageRepository:
    """
    Repository for TouristPackage data access.
    Store errors are logged and re-raised as StoreUnavailableError; they are
    never converted into empty results.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(
        self,
        plan: QueryPlan,
        skip: Optional[int] = None,
        take: Optional[int] = None,
    ) -> List[TouristPackage]:
        """Run the plan. Without skip/take the full matching set is returned."""
        stmt = (
            select(TouristPackage)
            .where(compile_predicate(plan.predicate))
            .options(*loader_options(plan.includes))
            .order_by(*order_clauses(plan.sort))
        )
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)
        try:
            packages = list(self.db.execute(stmt).unique().scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Package query failed: {str(e)}")
            raise StoreUnavailableError("Package query failed") from e
        logger.debug(f"Package query returned {len(packages)} packages")
        return packages

    def count(self, plan: QueryPlan) -> int:
        stmt = select(func.count(TouristPackage.id)).where(compile_predicate(plan.predicate))
        try:
            return self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Package count failed: {str(e)}")
            raise StoreUnavailableError("Package count failed") from e

    def count_all(self) -> int:
        try:
            return self.db.execute(select(func.count(TouristPackage.id))).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Count error: {str(e)}")
            raise StoreUnavailableError("Package count failed") from e

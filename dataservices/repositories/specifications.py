"""
Specification Pattern for repository queries.

A specification bundles a filter expression with query shaping: eager
loading options (includes), ordering and paging. Specifications compose
with logical operators (&, |, ~).

Usage:
    from dataservices.repositories.specifications import Specification

    class PriceRangeSpec(Specification):
        def __init__(self, min_price: int, max_price: int):
            super().__init__(order_by=[Widget.price])
            self.min_price = min_price
            self.max_price = max_price

        def to_expression(self):
            return Widget.price.between(self.min_price, self.max_price)

    # Inline criteria
    cheap = Specification(Widget.price < 100, take=10)

    # Composition
    result = await service.get_by_spec(ActiveSpecification(Widget) & PriceRangeSpec(10, 50))

    # Projection: the repository selects only WidgetSummary's columns
    summaries = await service.get_by_spec(ProjectedSpecification(WidgetSummary, Widget.price > 5))
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import and_, not_, or_
from sqlalchemy.sql import Select


class Specification:
    """
    Base class for query specifications.

    Pass ``criteria`` inline or subclass and override ``to_expression()``.
    A specification without criteria matches every row.
    """

    def __init__(
        self,
        criteria: Any = None,
        *,
        includes: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        skip: int | None = None,
        take: int | None = None,
    ):
        self._criteria = criteria
        self.includes = list(includes)
        self.order_by = list(order_by)
        self.skip = skip
        self.take = take

    def to_expression(self) -> Any:
        """Convert specification to SQLAlchemy expression (None matches all)."""
        return self._criteria

    def apply(self, query: Select, *, paging: bool = True, loading: bool = True) -> Select:
        """
        Apply filter, includes, ordering and paging to a query.

        ``loading=False`` skips the includes; column-only (projected)
        selects cannot carry loader options.
        """
        expression = self.to_expression()
        if expression is not None:
            query = query.where(expression)
        if loading and self.includes:
            query = query.options(*self.includes)
        if self.order_by:
            query = query.order_by(*self.order_by)
        if paging:
            if self.skip is not None:
                query = query.offset(self.skip)
            if self.take is not None:
                query = query.limit(self.take)
        return query

    def apply_filter(self, query: Select) -> Select:
        """Apply only the filter expression (used for counts and existence checks)."""
        expression = self.to_expression()
        if expression is not None:
            query = query.where(expression)
        return query

    def __and__(self, other: "Specification") -> "AndSpecification":
        """Combine with AND."""
        return AndSpecification(self, other)

    def __or__(self, other: "Specification") -> "OrSpecification":
        """Combine with OR."""
        return OrSpecification(self, other)

    def __invert__(self) -> "NotSpecification":
        """Negate specification."""
        return NotSpecification(self)


class _CompositeSpecification(Specification):
    """Shared shaping for combined specifications: includes merge, left wins on order/paging."""

    def __init__(self, left: Specification, right: Specification):
        super().__init__(
            includes=[*left.includes, *right.includes],
            order_by=left.order_by or right.order_by,
            skip=left.skip if left.skip is not None else right.skip,
            take=left.take if left.take is not None else right.take,
        )
        self._left = left
        self._right = right

    def _parts(self) -> list[Any]:
        return [e for e in (self._left.to_expression(), self._right.to_expression()) if e is not None]


class AndSpecification(_CompositeSpecification):
    """AND combination of two specifications."""

    def to_expression(self) -> Any:
        parts = self._parts()
        if not parts:
            return None
        return parts[0] if len(parts) == 1 else and_(*parts)


class OrSpecification(_CompositeSpecification):
    """OR combination of two specifications."""

    def to_expression(self) -> Any:
        parts = self._parts()
        if len(parts) < 2:
            # A side without criteria matches everything
            return None
        return or_(*parts)


class NotSpecification(Specification):
    """Negation of a specification."""

    def __init__(self, spec: Specification):
        super().__init__(
            includes=spec.includes,
            order_by=spec.order_by,
            skip=spec.skip,
            take=spec.take,
        )
        self._spec = spec

    def to_expression(self) -> Any:
        expression = self._spec.to_expression()
        if expression is None:
            raise ValueError("Cannot negate a specification without criteria")
        return not_(expression)


class ActiveSpecification(Specification):
    """Rows whose soft delete flag is set (``is_active`` is true)."""

    def __init__(self, model: type, **shaping: Any):
        super().__init__(**shaping)
        self.model = model

    def to_expression(self) -> Any:
        return self.model.is_active.is_(True)


class ProjectedSpecification(Specification):
    """
    Specification whose results are projected to ``output_type`` in the query.

    Only mapped columns whose names match the output's fields are selected;
    eager loading options are ignored because no entity is loaded.
    """

    def __init__(self, output_type: type, criteria: Any = None, **shaping: Any):
        super().__init__(criteria, **shaping)
        self.output_type = output_type

    @classmethod
    def of(cls, output_type: type, spec: Specification) -> "ProjectedSpecification":
        """Project the results of an existing specification."""
        projected = cls(
            output_type,
            order_by=spec.order_by,
            skip=spec.skip,
            take=spec.take,
        )
        projected.to_expression = spec.to_expression  # type: ignore[method-assign]
        return projected

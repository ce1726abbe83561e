"""ProductFilterPolicy — restricts bulk-operation candidates by line items."""

from __future__ import annotations

from dataclasses import dataclass, field

from dispatch_engine.domain.entities.order import Order, OrderItem
from dispatch_engine.domain.value_objects.enums import FilterLogic


@dataclass(frozen=True)
class ProductSpec:
    title: str | None = None
    sku: str | None = None

    def is_empty(self) -> bool:
        return not (self.title and self.title.strip()) and not (self.sku and self.sku.strip())

    def matches(self, item: OrderItem) -> bool:
        """Match on SKU when both sides have one, otherwise on title.

        Comparison is case-insensitive and ignores surrounding whitespace.
        """
        if self.sku and item.sku:
            return _norm(self.sku) == _norm(item.sku)
        if self.title and item.title:
            return _norm(self.title) == _norm(item.title)
        return False


@dataclass(frozen=True)
class ProductFilter:
    enabled: bool = False
    products: tuple[ProductSpec, ...] = field(default_factory=tuple)
    logic: FilterLogic = FilterLogic.ANY

    def is_active(self) -> bool:
        return self.enabled and any(not p.is_empty() for p in self.products)

    def accepts(self, order: Order) -> bool:
        """ALL: every listed product appears in the order. ANY: at least one does.

        An inactive filter accepts everything.
        """
        if not self.is_active():
            return True

        wanted = [p for p in self.products if not p.is_empty()]
        present = [any(p.matches(item) for item in order.items) for p in wanted]
        if self.logic == FilterLogic.ALL:
            return all(present)
        return any(present)


def _norm(value: str) -> str:
    return value.strip().lower()

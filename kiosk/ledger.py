from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import InvalidMenuItem
from .menus import MenuItem

logger = logging.getLogger(__name__)


@dataclass
class OrderLine:
    item: MenuItem
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.item.price * self.quantity

    def to_api(self) -> Dict[str, object]:
        return {
            "id": self.item.id,
            "name": self.item.name,
            "price": self.item.price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }


class OrderLedger:
    """The customer's in-progress order: one line per distinct menu id."""

    def __init__(self) -> None:
        self._lines: List[OrderLine] = []

    # ------------------------------------------------------------------
    def add(self, menu_item: Optional[MenuItem], quantity: int = 1) -> None:
        try:
            self._validate(menu_item)
        except InvalidMenuItem as exc:
            logger.error("Attempted to add invalid menu item: %s", exc)
            return
        if quantity <= 0:
            logger.warning("Ignoring non-positive quantity %s for %s", quantity, menu_item.name)
            return

        line = self._line_for(menu_item.id)
        if line:
            line.quantity += quantity
        else:
            self._lines.append(OrderLine(item=menu_item, quantity=quantity))

    @staticmethod
    def _validate(menu_item: Optional[MenuItem]) -> None:
        if menu_item is None:
            raise InvalidMenuItem("menu item is missing")
        if not isinstance(getattr(menu_item, "id", None), int):
            raise InvalidMenuItem(repr(menu_item))

    def _line_for(self, menu_id: int) -> Optional[OrderLine]:
        for line in self._lines:
            if line.item.id == menu_id:
                return line
        return None

    def clear(self) -> None:
        self._lines = []

    def total(self) -> int:
        return sum(line.subtotal for line in self._lines)

    # ------------------------------------------------------------------
    @property
    def lines(self) -> Tuple[OrderLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def summary(self) -> str:
        return "\n".join(f"{line.item.name} {line.quantity}개" for line in self._lines)

    def as_api(self) -> Dict[str, object]:
        return {
            "items": [line.to_api() for line in self._lines],
            "total": self.total(),
        }


__all__ = ["OrderLedger", "OrderLine"]

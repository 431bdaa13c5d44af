from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


# 메뉴 이름 -> 이미지 파일 (키오스크 정적 자산)
DEFAULT_IMAGE_MAP: Dict[str, str] = {
    "돼지국밥": "돼지국밥.png",
    "순대국밥": "순대국밥.png",
    "내장국밥": "섞어국밥.png",
    "섞어국밥": "섞어국밥.png",
    "수육 반접시": "수육.jpg",
    "수육 한접시": "수육.jpg",
}


@dataclass(frozen=True)
class MenuItem:
    """Represents a single menu tile."""

    id: int
    name: str
    price: int = 0
    image: Optional[str] = None

    def to_api(self) -> Dict[str, object]:
        return asdict(self)


class MenuCatalog:
    """In-memory catalogue loaded once from the interpreter's ``/menu`` payload."""

    def __init__(self, image_map: Optional[Mapping[str, str]] = None, image_base: str = "") -> None:
        self._items: List[MenuItem] = []
        self._image_map = dict(DEFAULT_IMAGE_MAP if image_map is None else image_map)
        self._image_base = image_base.rstrip("/")

    # ------------------------------------------------------------------
    def load(self, menu_items: Mapping[str, object]) -> List[MenuItem]:
        """Build tiles from ``{name: price}``; ids follow the payload order."""
        items: List[MenuItem] = []
        for name, price in menu_items.items():
            name = str(name).strip()
            if not name:
                continue
            try:
                price = int(price or 0)
            except (TypeError, ValueError):
                logger.warning("Skipping menu item %r with invalid price %r", name, price)
                continue
            items.append(
                MenuItem(
                    id=len(items) + 1,
                    name=name,
                    price=max(0, price),
                    image=self._image_for(name),
                )
            )
        self._items = items
        return list(items)

    def _image_for(self, name: str) -> Optional[str]:
        filename = self._image_map.get(name)
        if not filename:
            return None
        return f"{self._image_base}/{filename}" if self._image_base else filename

    # ------------------------------------------------------------------
    def list(self) -> List[MenuItem]:
        return list(self._items)

    def get(self, menu_id: int) -> Optional[MenuItem]:
        for item in self._items:
            if item.id == menu_id:
                return item
        return None

    def find(self, name: str) -> Optional[MenuItem]:
        # 음성 주문은 정확히 같은 이름만 인정
        for item in self._items:
            if item.name == name:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["MenuCatalog", "MenuItem", "DEFAULT_IMAGE_MAP"]

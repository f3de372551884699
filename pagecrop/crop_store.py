"""Per-page crop rectangle storage (at most one box per page)."""
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from pagecrop.models import CropBox


class CropBoxStore:
    """Maps zero-based page index → committed :class:`CropBox`."""

    def __init__(self):
        self._boxes: Dict[int, CropBox] = {}

    def set(self, page_index: int, box: CropBox) -> None:
        """Store *box* for *page_index*, replacing any existing one."""
        self._boxes[page_index] = box

    def get(self, page_index: int) -> Optional[CropBox]:
        return self._boxes.get(page_index)

    def clear(self, page_index: int) -> None:
        self._boxes.pop(page_index, None)

    def clear_all(self) -> None:
        self._boxes.clear()

    def size(self) -> int:
        return len(self._boxes)

    def __len__(self) -> int:
        return len(self._boxes)

    def __contains__(self, page_index: int) -> bool:
        return page_index in self._boxes

    def snapshot(self) -> Mapping[int, CropBox]:
        """Read-only copy of the current mapping, ordered by page."""
        return MappingProxyType(dict(sorted(self._boxes.items())))

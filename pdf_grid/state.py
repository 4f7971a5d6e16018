"""
Shared types for the extraction pipeline.
"""

from dataclasses import dataclass

# One visual table row per inner list, one string per visual cell.
PageGrid = list[list[str]]

# Page key ("1", "2", ... or a fallback label) -> grid.
PageDataMap = dict[str, PageGrid]


@dataclass(frozen=True)
class BatchWindow:
    start: int   # 0-indexed, inclusive
    end: int     # 0-indexed, exclusive

    @property
    def first_page(self) -> int:
        return self.start + 1

    @property
    def last_page(self) -> int:
        return self.end

    @property
    def label(self) -> str:
        return f"{self.first_page}-{self.last_page}"

    @property
    def indices(self) -> range:
        return range(self.start, self.end)

    def __len__(self) -> int:
        return self.end - self.start

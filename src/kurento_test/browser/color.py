"""RGB colors and similarity used by video color assertions."""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence


class Color(NamedTuple):
    red: int
    green: int
    blue: int

    @classmethod
    def from_sequence(cls, values: Sequence[int]) -> Color:
        """Build from [r, g, b] or [r, g, b, a] as returned by the page."""
        if len(values) < 3:
            raise ValueError(f"Expected at least 3 components, got {list(values)}")
        return cls(int(values[0]), int(values[1]), int(values[2]))

    def distance(self, other: Color) -> float:
        """Euclidean distance in RGB space."""
        return math.sqrt(
            (self.red - other.red) ** 2
            + (self.green - other.green) ** 2
            + (self.blue - other.blue) ** 2
        )

    def is_similar(self, other: Color, max_distance: float) -> bool:
        return self.distance(other) <= max_distance

    def __str__(self) -> str:
        return f"rgb({self.red}, {self.green}, {self.blue})"


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)
RED = Color(255, 0, 0)
GREEN = Color(0, 255, 0)
BLUE = Color(0, 0, 255)
CHOCOLATE = Color(210, 105, 30)

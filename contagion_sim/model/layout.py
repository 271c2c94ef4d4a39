"""Region layout for the contagion simulation."""

from dataclasses import dataclass
from typing import List

# Canvas and grid constants
CANVAS_WIDTH = 800
CANVAS_HEIGHT = 740
REGION_PADDING = 40
GRID_ROWS = 3
GRID_COLS = 3

NORMAL_REGIONS = GRID_ROWS * GRID_COLS - 1   # home-capable regions 0..7
QUARANTINE_REGION = 8                        # bottom-right cell
TOTAL_REGIONS = GRID_ROWS * GRID_COLS

REGION_WIDTH = (CANVAS_WIDTH - REGION_PADDING * (GRID_COLS + 1)) / GRID_COLS
REGION_HEIGHT = (CANVAS_HEIGHT - REGION_PADDING * (GRID_ROWS + 1)) / GRID_ROWS

# Radius of the meeting point drawn at the middle of each normal region
CENTER_RADIUS = 15.0


@dataclass(frozen=True)
class RegionBounds:
    """Axis-aligned rectangle of one region plus its center point."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    center_x: float
    center_y: float

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


def _cell_bounds(row: int, col: int) -> RegionBounds:
    min_x = REGION_PADDING + col * (REGION_WIDTH + REGION_PADDING)
    min_y = REGION_PADDING + row * (REGION_HEIGHT + REGION_PADDING)
    max_x = min_x + REGION_WIDTH
    max_y = min_y + REGION_HEIGHT
    return RegionBounds(
        min_x=min_x,
        max_x=max_x,
        min_y=min_y,
        max_y=max_y,
        center_x=(min_x + max_x) / 2,
        center_y=(min_y + max_y) / 2
    )


def _build_table() -> List[RegionBounds]:
    table = [_cell_bounds(idx // GRID_COLS, idx % GRID_COLS)
             for idx in range(NORMAL_REGIONS)]
    # Quarantine hugs the bottom-right corner of the canvas
    min_x = CANVAS_WIDTH - REGION_PADDING - REGION_WIDTH
    min_y = CANVAS_HEIGHT - REGION_PADDING - REGION_HEIGHT
    table.append(RegionBounds(
        min_x=min_x,
        max_x=CANVAS_WIDTH - REGION_PADDING,
        min_y=min_y,
        max_y=CANVAS_HEIGHT - REGION_PADDING,
        center_x=min_x + REGION_WIDTH / 2,
        center_y=min_y + REGION_HEIGHT / 2
    ))
    return table


_BOUNDS = _build_table()


def region_bounds(region_index: int) -> RegionBounds:
    """
    Return the fixed rectangle and center of a region.

    Indices 0..7 are the normal regions laid out row-major in the 3x3 grid;
    index 8 is the reserved quarantine region. Anything else is a
    programming error and raises IndexError.
    """
    if isinstance(region_index, bool) or not 0 <= region_index < TOTAL_REGIONS:
        raise IndexError(f"Region index out of range: {region_index!r}")
    return _BOUNDS[region_index]


def is_quarantine(region_index: int) -> bool:
    return region_index == QUARANTINE_REGION

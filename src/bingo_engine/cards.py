from __future__ import annotations

import math
from typing import List, Set, Tuple

from .models import (
    DEFAULT_MAX_NUMBER,
    FREE_COL,
    FREE_NUMBER,
    FREE_ROW,
    GRID_SIZE,
    Card,
    Cell,
)
from .rng import RandomSource

CARD_COLORS = [
    "red",
    "blue",
    "green",
    "yellow",
    "purple",
]


def band_width(max_number: int = DEFAULT_MAX_NUMBER) -> int:
    """Width of one column band: ``ceil(max_number / 5)``, never below 5.

    75 gives the classic 15-number bands.
    """
    return max(GRID_SIZE, math.ceil(max_number / GRID_SIZE))


def band_range(col: int, max_number: int = DEFAULT_MAX_NUMBER) -> Tuple[int, int]:
    """Inclusive bounds of column ``col``'s band.

    Bands are cut at ``max_number`` but always hold at least 5 numbers, so on
    very small ranges the upper bands lie past ``max_number``.
    """
    width = band_width(max_number)
    low = col * width + 1
    high = max(min(low + width - 1, max_number), low + GRID_SIZE - 1)
    return low, high


def color_for_index(index: int) -> str:
    return CARD_COLORS[index % len(CARD_COLORS)]


def card_id_for_index(index: int) -> str:
    return f"card-{index}"


def _column_numbers(col: int, max_number: int, rng: RandomSource) -> List[int]:
    low, high = band_range(col, max_number)
    numbers: Set[int] = set()
    while len(numbers) < GRID_SIZE:
        numbers.add(rng.randint(low, high))
    return sorted(numbers)


def generate_card(
    card_id: str,
    color: str,
    rng: RandomSource,
    max_number: int = DEFAULT_MAX_NUMBER,
) -> Card:
    """Build a 5x5 card with sorted, unique numbers per column band.

    Columns are sampled one at a time and transposed into row-major storage.
    The centre slot's sampled value is discarded in favour of the free cell.
    """
    columns = [_column_numbers(col, max_number, rng) for col in range(GRID_SIZE)]
    cells: List[List[Cell]] = []
    for row in range(GRID_SIZE):
        row_cells: List[Cell] = []
        for col in range(GRID_SIZE):
            if row == FREE_ROW and col == FREE_COL:
                row_cells.append(Cell(number=FREE_NUMBER, marked=True))
            else:
                row_cells.append(Cell(number=columns[col][row]))
        cells.append(row_cells)
    return Card(id=card_id, cells=cells, color=color)


def generate_card_for_index(
    index: int, rng: RandomSource, max_number: int = DEFAULT_MAX_NUMBER
) -> Card:
    return generate_card(card_id_for_index(index), color_for_index(index), rng, max_number)


def build_cards(
    count: int, rng: RandomSource, max_number: int = DEFAULT_MAX_NUMBER
) -> List[Card]:
    return [generate_card_for_index(i, rng, max_number) for i in range(count)]

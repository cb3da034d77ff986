"""Bingo and reach detection over a card's marked cells."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .models import GRID_SIZE, Card

Line = List[Tuple[int, int]]


@dataclass(frozen=True)
class WinStatus:
    has_bingo: bool
    has_reach: bool


def lines(size: int = GRID_SIZE) -> List[Line]:
    """All rows, all columns, then both main diagonals."""
    rows = [[(r, c) for c in range(size)] for r in range(size)]
    cols = [[(r, c) for r in range(size)] for c in range(size)]
    diagonals = [
        [(i, i) for i in range(size)],
        [(i, size - 1 - i) for i in range(size)],
    ]
    return rows + cols + diagonals


def marked_counts(marked: Sequence[Sequence[bool]]) -> List[int]:
    return [sum(1 for r, c in line if marked[r][c]) for line in lines(len(marked))]


def evaluate_grid(marked: Sequence[Sequence[bool]]) -> WinStatus:
    size = len(marked)
    counts = marked_counts(marked)
    has_bingo = any(n == size for n in counts)
    # bingo supersedes reach
    has_reach = not has_bingo and any(n == size - 1 for n in counts)
    return WinStatus(has_bingo=has_bingo, has_reach=has_reach)


def evaluate(card: Card) -> WinStatus:
    return evaluate_grid(card.marked_grid())

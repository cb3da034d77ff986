from __future__ import annotations

from collections import Counter
from typing import Dict, List

from .cards import band_range, card_id_for_index
from .models import (
    FREE_COL,
    FREE_NUMBER,
    FREE_ROW,
    GRID_SIZE,
    MAX_CARDS,
    MAX_MAX_NUMBER,
    MIN_MAX_NUMBER,
    Card,
    GameSnapshot,
)
from .win import evaluate


def _column_values(card: Card, col: int) -> List[int]:
    return [
        card.cells[row][col].number
        for row in range(GRID_SIZE)
        if not (row == FREE_ROW and col == FREE_COL)
    ]


def band_violations(card: Card, max_number: int) -> List[str]:
    problems: List[str] = []
    for col in range(GRID_SIZE):
        low, high = band_range(col, max_number)
        out_of_band = [x for x in _column_values(card, col) if x != FREE_NUMBER and not low <= x <= high]
        if out_of_band:
            problems.append(f"{card.id}: column {col} values {out_of_band} outside {low}-{high}")
    return problems


def card_violations(card: Card, max_number: int) -> List[str]:
    """Check shape, free cell, column bands and win flags of one card.

    Cards are not redealt when the max number changes, so bands from any
    supported max number are accepted when the current ones do not fit.
    """
    if len(card.cells) != GRID_SIZE or any(len(row) != GRID_SIZE for row in card.cells):
        return [f"{card.id}: grid is not {GRID_SIZE}x{GRID_SIZE}"]

    problems: List[str] = []
    free = card.cells[FREE_ROW][FREE_COL]
    if free.number != FREE_NUMBER or not free.marked:
        problems.append(f"{card.id}: centre cell is not the marked free space")

    for col in range(GRID_SIZE):
        values = _column_values(card, col)
        if FREE_NUMBER in values:
            problems.append(f"{card.id}: column {col} holds a second free cell")
        if len(set(values)) != len(values):
            problems.append(f"{card.id}: column {col} repeats a number")

    out_of_band = band_violations(card, max_number)
    if out_of_band and all(
        band_violations(card, m) for m in range(MIN_MAX_NUMBER, MAX_MAX_NUMBER + 1)
    ):
        problems.extend(out_of_band)

    status = evaluate(card)
    if (card.has_bingo, card.has_reach) != (status.has_bingo, status.has_reach):
        problems.append(f"{card.id}: stored bingo/reach flags do not match marks")
    return problems


def drawn_violations(drawn: List[int], max_number: int) -> List[str]:
    problems: List[str] = []
    dupes = sorted(x for x, n in Counter(drawn).items() if n > 1)
    if dupes:
        problems.append(f"drawn numbers repeat: {dupes}")
    stale = sorted(x for x in drawn if not 1 <= x <= max_number)
    if stale:
        problems.append(f"drawn numbers outside 1-{max_number}: {stale}")
    return problems


def verify(snapshot: GameSnapshot) -> Dict[str, object]:
    card_problems: Dict[str, List[str]] = {}
    for card in snapshot.cards:
        found = card_violations(card, snapshot.max_number)
        if found:
            card_problems[card.id] = found

    expected_ids = [card_id_for_index(i) for i in range(snapshot.card_count)]
    actual_ids = [card.id for card in snapshot.cards]
    drawn_problems = drawn_violations(snapshot.drawn_numbers, snapshot.max_number)
    ok_ids = actual_ids == expected_ids and 0 <= snapshot.card_count <= MAX_CARDS
    ok_current = snapshot.current_number is None or snapshot.current_number in snapshot.drawn_numbers
    return {
        "drawn": {
            "count": len(snapshot.drawn_numbers),
            "max_number": snapshot.max_number,
            "problems": drawn_problems,
        },
        "cards": card_problems,
        "ok_card_ids": ok_ids,
        "ok_current_number": ok_current,
        "ok": not drawn_problems and not card_problems and ok_ids and ok_current,
    }

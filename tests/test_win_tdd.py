from __future__ import annotations

from bingo_engine.cards import generate_card
from bingo_engine.rng import create_rng
from bingo_engine.win import evaluate, lines


def fresh_card(seed: int = 11):
    return generate_card("card-0", "red", create_rng("py_random", seed))


def mark(card, *cells):
    for r, c in cells:
        card.cells[r][c].marked = True
    return card


def test_twelve_lines():
    assert len(lines()) == 12


def test_fresh_card_has_nothing():
    status = evaluate(fresh_card())
    assert not status.has_bingo and not status.has_reach


def test_full_row_is_bingo_not_reach():
    card = mark(fresh_card(), *[(0, c) for c in range(5)])
    status = evaluate(card)
    assert status.has_bingo is True
    assert status.has_reach is False


def test_four_in_row_is_reach():
    card = mark(fresh_card(), *[(0, c) for c in range(4)])
    status = evaluate(card)
    assert status.has_bingo is False
    assert status.has_reach is True


def test_diagonal_through_free_cell_is_bingo():
    card = mark(fresh_card(), (0, 0), (1, 1), (3, 3), (4, 4))
    assert evaluate(card).has_bingo


def test_anti_diagonal_one_short_is_reach():
    card = mark(fresh_card(), (0, 4), (1, 3), (3, 1))
    status = evaluate(card)
    assert status.has_reach and not status.has_bingo


def test_column_through_free_cell():
    card = mark(fresh_card(), (0, 2), (1, 2), (3, 2))
    assert evaluate(card).has_reach
    mark(card, (4, 2))
    assert evaluate(card).has_bingo

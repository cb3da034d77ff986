from __future__ import annotations

from hypothesis import given, strategies as st

from bingo_engine.cards import CARD_COLORS, band_range, band_width, build_cards, generate_card
from bingo_engine.rng import create_rng


@given(seed=st.integers(min_value=0, max_value=2**31))
def test_column_bands_unique_and_in_range(seed):
    card = generate_card("card-0", "red", create_rng("py_random", seed))
    assert len(card.cells) == 5 and all(len(row) == 5 for row in card.cells)
    for col in range(5):
        values = [card.cells[row][col].number for row in range(5) if (row, col) != (2, 2)]
        assert len(set(values)) == len(values)
        assert all(15 * col + 1 <= x <= 15 * col + 15 for x in values)
        assert values == sorted(values)
    free = card.cells[2][2]
    assert free.number == 0 and free.marked
    zeros = [(r, c) for r in range(5) for c in range(5) if card.cells[r][c].number == 0]
    assert zeros == [(2, 2)]


def test_fresh_card_flags_and_marks():
    card = generate_card("card-3", "yellow", create_rng("py_random", 9))
    assert card.id == "card-3"
    assert not card.has_bingo and not card.has_reach and not card.is_expanded
    assert card.position is None
    marked = [(r, c) for r in range(5) for c in range(5) if card.cells[r][c].marked]
    assert marked == [(2, 2)]


def test_band_width_scales_with_max_number():
    assert band_width(75) == 15
    assert band_width(99) == 20
    assert band_width(50) == 10
    assert band_width(10) == 5
    assert band_range(0, 75) == (1, 15)
    assert band_range(4, 75) == (61, 75)
    assert band_range(4, 99) == (81, 99)
    assert band_range(2, 10) == (11, 15)


def test_wide_range_cards_respect_scaled_bands():
    card = generate_card("card-0", "red", create_rng("py_random", 4), max_number=99)
    for col in range(5):
        low, high = band_range(col, 99)
        for row in range(5):
            if (row, col) != (2, 2):
                assert low <= card.cells[row][col].number <= high


def test_build_cards_ids_and_palette():
    cards = build_cards(5, create_rng("py_random", 1))
    assert [c.id for c in cards] == [f"card-{i}" for i in range(5)]
    assert [c.color for c in cards] == CARD_COLORS

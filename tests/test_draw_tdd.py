from __future__ import annotations

from hypothesis import given, settings, strategies as st

from bingo_engine.draw import draw_number, is_exhausted, remaining_numbers
from bingo_engine.rng import PyRandomSource, create_rng


class NoRejectionSource(PyRandomSource):
    """Fails loudly if rejection sampling is attempted."""

    def randint(self, a: int, b: int) -> int:
        raise AssertionError("rejection sampling used")


@settings(max_examples=40)
@given(max_number=st.integers(min_value=10, max_value=99), seed=st.integers(min_value=0, max_value=10**6))
def test_draws_cover_range_without_repeats(max_number, seed):
    rng = create_rng("py_random", seed)
    drawn: list[int] = []
    while True:
        n = draw_number(max_number, drawn, rng)
        if n is None:
            break
        assert 1 <= n <= max_number
        assert n not in drawn
        drawn.append(n)
    assert sorted(drawn) == list(range(1, max_number + 1))


def test_exhausted_range_returns_none():
    rng = create_rng("py_random", 1)
    assert draw_number(10, list(range(1, 11)), rng) is None
    assert is_exhausted(10, range(1, 11))


def test_small_remainder_picks_from_complement():
    drawn = [x for x in range(1, 100) if x not in (17, 64)]
    rng = NoRejectionSource(3)
    rng.choice = lambda seq: list(seq)[-1]  # type: ignore[assignment]
    assert draw_number(99, drawn, rng) == 64


def test_out_of_range_history_is_ignored():
    rng = create_rng("py_random", 5)
    drawn = [50, 51] + list(range(1, 9))
    assert not is_exhausted(10, drawn)
    assert draw_number(10, drawn, rng) in (9, 10)
    assert remaining_numbers(10, drawn) == [9, 10]

from __future__ import annotations

from typing import Iterable, List, Optional

from .rng import RandomSource

# Below this share of the range still undrawn, pick from the complement directly.
COMPLEMENT_THRESHOLD = 0.05


def drawn_in_range(max_number: int, drawn: Iterable[int]) -> set[int]:
    return {x for x in drawn if 1 <= x <= max_number}


def remaining_numbers(max_number: int, drawn: Iterable[int]) -> List[int]:
    taken = set(drawn)
    return [x for x in range(1, max_number + 1) if x not in taken]


def is_exhausted(max_number: int, drawn: Iterable[int]) -> bool:
    return len(drawn_in_range(max_number, drawn)) >= max_number


def draw_number(max_number: int, drawn: Iterable[int], rng: RandomSource) -> Optional[int]:
    """Pick a number in ``[1, max_number]`` that is not in ``drawn``.

    Uniform rejection sampling; once fewer than 5% of the range is left the
    choice is made from the complement set instead. Returns ``None`` when the
    range is exhausted. Values in ``drawn`` outside the range are ignored.
    """
    taken = drawn_in_range(max_number, drawn)
    left = max_number - len(taken)
    if left <= 0:
        return None

    if left < max_number * COMPLEMENT_THRESHOLD:
        return rng.choice(remaining_numbers(max_number, taken))

    while True:
        candidate = rng.randint(1, max_number)
        if candidate not in taken:
            return candidate

"""Game state container and the player actions that mutate it."""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Callable, List, Optional

from . import draw
from .cards import build_cards, generate_card_for_index
from .models import (
    DEFAULT_MAX_NUMBER,
    FREE_COL,
    FREE_ROW,
    GRID_SIZE,
    MAX_CARDS,
    Card,
    GameSnapshot,
    Position,
)
from .persistence import PersistenceGateway
from .rng import RandomSource
from .win import evaluate

logger = logging.getLogger(__name__)


class StateEvent(Enum):
    STATE_REPLACED = "state_replaced"
    CHANGED = "changed"


# listener(event, state, detail); detail is the load phase or the action name
Listener = Callable[[StateEvent, "GameState", str], None]


def clamp_card_count(count: int) -> int:
    return max(0, min(MAX_CARDS, count))


def _has_full_grid(card: Card) -> bool:
    return len(card.cells) == GRID_SIZE and all(len(row) == GRID_SIZE for row in card.cells)


class GameState:
    """Owns drawn numbers, configured bounds and the active cards.

    In-memory updates are synchronous and visible immediately; persistence is
    delegated to the gateway. ``draw_number`` and ``reset_game`` wait for the
    durable write, the other persisted actions fire it in the background.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        rng: RandomSource,
        *,
        max_number: int = DEFAULT_MAX_NUMBER,
        card_count: int = 0,
    ):
        self._gateway = gateway
        self._rng = rng
        self._listeners: List[Listener] = []
        self.drawn_numbers: List[int] = []
        self.current_number: Optional[int] = None
        self.is_drawing = False
        self.max_number = max_number
        self.card_count = clamp_card_count(card_count)
        self.cards: List[Card] = build_cards(self.card_count, rng, max_number)

    # --- observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: StateEvent, detail: str) -> None:
        for listener in list(self._listeners):
            listener(event, self, detail)

    # --- snapshots & loading ---

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            drawn_numbers=list(self.drawn_numbers),
            current_number=self.current_number,
            max_number=self.max_number,
            cards=copy.deepcopy(self.cards),
            card_count=self.card_count,
        )

    def apply_snapshot(self, snapshot: GameSnapshot, phase: str) -> None:
        """Overwrite in-memory state with ``snapshot`` and notify listeners."""
        self.drawn_numbers = list(snapshot.drawn_numbers)
        self.current_number = snapshot.current_number
        self.max_number = snapshot.max_number
        self.is_drawing = False
        self.card_count = clamp_card_count(snapshot.card_count)
        self.cards = copy.deepcopy(snapshot.cards)
        if len(self.cards) != self.card_count:
            logger.warning(
                "Loaded %d cards for card count %d from %s store; repairing",
                len(self.cards),
                self.card_count,
                phase,
            )
            self._resize_cards(self.card_count)
        self._emit(StateEvent.STATE_REPLACED, phase)

    def load_local(self) -> bool:
        snapshot = self._gateway.load_local()
        if snapshot is None:
            return False
        self.apply_snapshot(snapshot, phase="local")
        return True

    async def load_durable(self) -> bool:
        snapshot = await self._gateway.load_durable()
        if snapshot is None:
            return False
        self.apply_snapshot(snapshot, phase="durable")
        return True

    async def rehydrate(self) -> bool:
        """Fast local snapshot first, then the durable record, which wins.

        Returns True when either tier supplied a snapshot.
        """
        loaded_local = self.load_local()
        loaded_durable = await self.load_durable()
        return loaded_local or loaded_durable

    @property
    def load_failed(self) -> bool:
        """True when a storage tier raised while loading, rather than being empty."""
        return self._gateway.load_failed

    async def persist(self) -> None:
        await self._gateway.save(self.snapshot())

    async def close(self) -> None:
        await self._gateway.close()

    # --- actions ---

    def _find_card(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def _resize_cards(self, count: int) -> None:
        del self.cards[count:]
        while len(self.cards) < count:
            self.cards.append(generate_card_for_index(len(self.cards), self._rng, self.max_number))

    def _persist_in_background(self, action: str) -> None:
        self._emit(StateEvent.CHANGED, action)
        self._gateway.save_in_background(self.snapshot())

    async def draw_number(self) -> Optional[int]:
        """Draw the next number; ``None`` when busy or the range is exhausted."""
        if self.is_drawing or draw.is_exhausted(self.max_number, self.drawn_numbers):
            return None

        self.is_drawing = True
        try:
            number = draw.draw_number(self.max_number, self.drawn_numbers, self._rng)
        finally:
            self.is_drawing = False
        if number is None:
            return None

        self.drawn_numbers.append(number)
        self.current_number = number
        logger.info("Drew %d (%d/%d)", number, len(self.drawn_numbers), self.max_number)
        self._emit(StateEvent.CHANGED, "draw_number")
        await self._gateway.save(self.snapshot())
        return number

    async def reset_game(self) -> None:
        self.drawn_numbers = []
        self.current_number = None
        self.is_drawing = False
        self.cards = build_cards(self.card_count, self._rng, self.max_number)
        logger.info("Game reset with %d fresh cards", self.card_count)
        self._emit(StateEvent.CHANGED, "reset_game")
        await self._gateway.save(self.snapshot())

    def set_max_number(self, max_number: int) -> None:
        # range checks are the caller's job; drawn numbers are left as they are
        self.max_number = max_number
        self._persist_in_background("set_max_number")

    def set_card_count(self, count: int) -> None:
        self.card_count = clamp_card_count(count)
        self._resize_cards(self.card_count)
        self._persist_in_background("set_card_count")

    def toggle_card_mark(self, card_id: str, row: int, col: int) -> bool:
        card = self._find_card(card_id)
        if card is None:
            return False
        if not _has_full_grid(card) or not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
            return False
        if row == FREE_ROW and col == FREE_COL:
            return False

        cell = card.cells[row][col]
        cell.marked = not cell.marked
        status = evaluate(card)
        card.has_bingo = status.has_bingo
        card.has_reach = status.has_reach
        self._persist_in_background("toggle_card_mark")
        return True

    def toggle_card_expanded(self, card_id: str) -> bool:
        target = self._find_card(card_id)
        if target is None:
            return False
        for card in self.cards:
            card.is_expanded = (not card.is_expanded) if card is target else False
        self._emit(StateEvent.CHANGED, "toggle_card_expanded")
        self._gateway.save_local(self.snapshot())
        return True

    def update_card_position(self, card_id: str, position: Position) -> bool:
        card = self._find_card(card_id)
        if card is None:
            return False
        card.position = position
        self._emit(StateEvent.CHANGED, "update_card_position")
        self._gateway.save_local(self.snapshot())
        return True

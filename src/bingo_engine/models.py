"""Game data model and its persisted (camelCase) representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

GRID_SIZE = 5
FREE_ROW = 2
FREE_COL = 2
FREE_NUMBER = 0
MAX_CARDS = 5
DEFAULT_MAX_NUMBER = 75
MIN_MAX_NUMBER = 10
MAX_MAX_NUMBER = 99


@dataclass
class Cell:
    number: int
    marked: bool = False

    @property
    def is_free(self) -> bool:
        return self.number == FREE_NUMBER

    def to_dict(self) -> Dict[str, Any]:
        return {"number": self.number, "marked": self.marked}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Cell":
        number = int(data.get("number", FREE_NUMBER))
        # the free space is marked regardless of what was stored
        marked = True if number == FREE_NUMBER else bool(data.get("marked", False))
        return cls(number=number, marked=marked)


@dataclass
class Position:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Position":
        return cls(x=data["x"], y=data["y"])


@dataclass
class Card:
    id: str
    cells: List[List[Cell]]
    color: str
    position: Optional[Position] = None
    is_expanded: bool = False
    has_reach: bool = False
    has_bingo: bool = False

    def numbers(self) -> List[List[int]]:
        return [[cell.number for cell in row] for row in self.cells]

    def marked_grid(self) -> List[List[bool]]:
        return [[cell.marked for cell in row] for row in self.cells]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "cells": [[cell.to_dict() for cell in row] for row in self.cells],
            "color": self.color,
            "isExpanded": self.is_expanded,
            "hasReach": self.has_reach,
            "hasBingo": self.has_bingo,
        }
        if self.position is not None:
            data["position"] = self.position.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Card":
        raw_position = data.get("position")
        return cls(
            id=str(data["id"]),
            cells=[[Cell.from_dict(c) for c in row] for row in data.get("cells", [])],
            color=str(data.get("color", "")),
            position=Position.from_dict(raw_position) if raw_position else None,
            is_expanded=bool(data.get("isExpanded", False)),
            has_reach=bool(data.get("hasReach", False)),
            has_bingo=bool(data.get("hasBingo", False)),
        )


@dataclass
class GameSnapshot:
    """Serializable mirror of the game state; ``is_drawing`` is never stored."""

    drawn_numbers: List[int] = field(default_factory=list)
    current_number: Optional[int] = None
    max_number: int = DEFAULT_MAX_NUMBER
    cards: List[Card] = field(default_factory=list)
    card_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drawnNumbers": list(self.drawn_numbers),
            "currentNumber": self.current_number,
            "maxNumber": self.max_number,
            "bingoCards": [card.to_dict() for card in self.cards],
            "cardCount": self.card_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameSnapshot":
        # missing or empty fields fall back to defaults
        current = data.get("currentNumber")
        return cls(
            drawn_numbers=[int(x) for x in data.get("drawnNumbers") or []],
            current_number=int(current) if current else None,
            max_number=int(data.get("maxNumber") or DEFAULT_MAX_NUMBER),
            cards=[Card.from_dict(c) for c in data.get("bingoCards") or []],
            card_count=int(data.get("cardCount") or 0),
        )

"""Board models for Korean Janggi.

The board is 9 files wide and 10 ranks tall. BLUE (Cho) starts on ranks 0-3
and moves first; RED (Han) starts on ranks 6-9.

Example:
    >>> from janggibot.models.board import BoardState, Formation, Move
    >>> board = BoardState.initial(Formation.MASANG_SANGMA)
    >>> after = board.apply_move(Move.parse("a3a4"))
    >>> [d.square.algebraic for d in board.differences(after)]
    ['a3', 'a4']
"""

from __future__ import annotations

import hashlib
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field

BOARD_WIDTH = 9
BOARD_HEIGHT = 10
FILE_LETTERS = "abcdefghi"


class PlayerSide(StrEnum):
    """The two players."""

    BLUE = "blue"
    RED = "red"

    def opponent(self) -> PlayerSide:
        """Return the other side."""
        return PlayerSide.RED if self is PlayerSide.BLUE else PlayerSide.BLUE


class PieceKind(StrEnum):
    """Piece kinds."""

    GENERAL = "general"
    GUARD = "guard"
    ELEPHANT = "elephant"
    HORSE = "horse"
    CHARIOT = "chariot"
    CANNON = "cannon"
    SOLDIER = "soldier"


class Formation(StrEnum):
    """Starting formations of the horse/elephant files.

    Values are the Korean identifiers shown in the game's formation dialog,
    read from the owning player's left (마 = horse, 상 = elephant).
    """

    MASANG_MASANG = "마상마상"
    SANGMA_SANGMA = "상마상마"
    MASANG_SANGMA = "마상상마"
    SANGMA_MASANG = "상마마상"

    @classmethod
    def parse(cls, value: str | Formation) -> Formation:
        """Resolve a formation from its Korean identifier or enum name."""
        if isinstance(value, Formation):
            return value
        text = value.strip()
        for formation in cls:
            if text == formation.value or text.upper() == formation.name:
                return formation
        raise ValueError(f"Unknown formation: {value!r}")

    @property
    def pattern(self) -> tuple[PieceKind, PieceKind, PieceKind, PieceKind]:
        """Pieces on the owner's files 1, 2, 6 and 7 (left to right)."""
        lookup = {"마": PieceKind.HORSE, "상": PieceKind.ELEPHANT}
        a, b, c, d = (lookup[ch] for ch in self.value)
        return (a, b, c, d)


class Square(BaseModel):
    """A board coordinate (0-indexed)."""

    file: Annotated[int, Field(ge=0, lt=BOARD_WIDTH)]
    rank: Annotated[int, Field(ge=0, lt=BOARD_HEIGHT)]

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, text: str) -> Square:
        """Parse algebraic notation such as ``e1``."""
        text = text.strip().lower()
        if len(text) != 2 or text[0] not in FILE_LETTERS or not text[1].isdigit():
            raise ValueError(f"Invalid square: {text!r}")
        return cls(file=FILE_LETTERS.index(text[0]), rank=int(text[1]))

    @property
    def algebraic(self) -> str:
        """Algebraic notation of this square."""
        return f"{FILE_LETTERS[self.file]}{self.rank}"

    def offset(self, df: int, dr: int) -> Square | None:
        """Return the square shifted by (df, dr), or None when off-board."""
        file, rank = self.file + df, self.rank + dr
        if 0 <= file < BOARD_WIDTH and 0 <= rank < BOARD_HEIGHT:
            return Square(file=file, rank=rank)
        return None

    def __str__(self) -> str:
        return self.algebraic


class Piece(BaseModel):
    """A piece and its owner."""

    owner: PlayerSide
    kind: PieceKind

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.owner.value}_{self.kind.value}"


class Move(BaseModel):
    """A move from one square to another."""

    from_square: Square
    to_square: Square

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, text: str) -> Move:
        """Parse a move such as ``a3a4``."""
        text = text.strip()
        if len(text) != 4:
            raise ValueError(f"Invalid move: {text!r}")
        return cls(from_square=Square.parse(text[:2]), to_square=Square.parse(text[2:]))

    def __str__(self) -> str:
        return f"{self.from_square}{self.to_square}"


class BoardDiff(BaseModel):
    """A single square whose contents differ between two boards."""

    square: Square
    before: Piece | None = None
    after: Piece | None = None

    model_config = {"frozen": True}


class IllegalBoardOperation(ValueError):
    """Raised when a move cannot be applied to a board."""


def _index(square: Square) -> int:
    return square.rank * BOARD_WIDTH + square.file


class BoardState(BaseModel):
    """Immutable board placement plus side to move."""

    pieces: tuple[Piece | None, ...] = Field(
        default_factory=lambda: (None,) * (BOARD_WIDTH * BOARD_HEIGHT),
        description="Row-major placement, rank 0 first",
    )
    side_to_move: PlayerSide = Field(default=PlayerSide.BLUE)

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> BoardState:
        """Create an empty board."""
        return cls()

    @classmethod
    def initial(
        cls,
        blue_formation: Formation = Formation.MASANG_MASANG,
        red_formation: Formation = Formation.MASANG_MASANG,
    ) -> BoardState:
        """Create the starting position for the given formations."""
        slots: list[Piece | None] = [None] * (BOARD_WIDTH * BOARD_HEIGHT)

        def put(side: PlayerSide, file: int, rank: int, kind: PieceKind) -> None:
            slots[rank * BOARD_WIDTH + file] = Piece(owner=side, kind=kind)

        for side, home, step, formation in (
            (PlayerSide.BLUE, 0, 1, blue_formation),
            (PlayerSide.RED, BOARD_HEIGHT - 1, -1, red_formation),
        ):
            put(side, 0, home, PieceKind.CHARIOT)
            put(side, 8, home, PieceKind.CHARIOT)
            put(side, 3, home, PieceKind.GUARD)
            put(side, 5, home, PieceKind.GUARD)
            put(side, 4, home + step, PieceKind.GENERAL)
            # RED reads its formation from its own left, which is file 8.
            files = (1, 2, 6, 7) if side is PlayerSide.BLUE else (7, 6, 2, 1)
            for file, kind in zip(files, formation.pattern, strict=True):
                put(side, file, home, kind)
            for file in (1, 7):
                put(side, file, home + 2 * step, PieceKind.CANNON)
            for file in (0, 2, 4, 6, 8):
                put(side, file, home + 3 * step, PieceKind.SOLDIER)

        return cls(pieces=tuple(slots), side_to_move=PlayerSide.BLUE)

    def piece_at(self, square: Square) -> Piece | None:
        """Get the piece on a square."""
        return self.pieces[_index(square)]

    def is_empty(self, square: Square) -> bool:
        """Check if a square is empty."""
        return self.piece_at(square) is None

    def with_side_to_move(self, side: PlayerSide) -> BoardState:
        """Return a copy with a different side to move."""
        return self.model_copy(update={"side_to_move": side})

    def apply_move(self, move: Move) -> BoardState:
        """Return the board after playing ``move``; the side to move swaps.

        Raises:
            IllegalBoardOperation: If the origin square is empty or the move
                does not change squares.
        """
        moving = self.piece_at(move.from_square)
        if moving is None:
            raise IllegalBoardOperation(f"No piece on origin square {move.from_square}")
        if move.from_square == move.to_square:
            raise IllegalBoardOperation(f"Move does not change squares: {move}")
        slots = list(self.pieces)
        slots[_index(move.to_square)] = moving
        slots[_index(move.from_square)] = None
        return BoardState(pieces=tuple(slots), side_to_move=self.side_to_move.opponent())

    def differences(self, other: BoardState) -> list[BoardDiff]:
        """List squares whose contents differ from ``other``."""
        diffs = []
        for idx, (before, after) in enumerate(zip(self.pieces, other.pieces, strict=True)):
            if before != after:
                square = Square(file=idx % BOARD_WIDTH, rank=idx // BOARD_WIDTH)
                diffs.append(BoardDiff(square=square, before=before, after=after))
        return diffs

    def same_placement(self, other: BoardState) -> bool:
        """Compare placements, ignoring side to move."""
        return self.pieces == other.pieces

    @property
    def fingerprint(self) -> str:
        """Stable hash of the placement."""
        encoded = ",".join("-" if p is None else str(p) for p in self.pieces)
        return hashlib.sha1(encoded.encode("utf-8")).hexdigest()

    @staticmethod
    def infer_move(diffs: list[BoardDiff]) -> Move | None:
        """Infer a single move from a set of differences, if unambiguous."""
        from_square = None
        to_square = None
        for diff in diffs:
            if diff.before is not None and diff.after is None:
                if from_square is not None:
                    return None
                from_square = diff.square
            elif diff.after is not None:
                if to_square is not None:
                    return None
                to_square = diff.square
        if from_square is None or to_square is None:
            return None
        return Move(from_square=from_square, to_square=to_square)

"""Tests for board models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from janggibot.models.board import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    BoardState,
    Formation,
    IllegalBoardOperation,
    Move,
    Piece,
    PieceKind,
    PlayerSide,
    Square,
)


def _piece(board: BoardState, text: str) -> Piece | None:
    return board.piece_at(Square.parse(text))


class TestSquare:
    """Tests for Square."""

    def test_parse_and_algebraic(self) -> None:
        square = Square.parse("e1")
        assert square.file == 4
        assert square.rank == 1
        assert square.algebraic == "e1"
        assert str(square) == "e1"

    @pytest.mark.parametrize("text", ["", "j1", "a", "aa", "e10"])
    def test_parse_rejects_invalid(self, text: str) -> None:
        with pytest.raises(ValueError):
            Square.parse(text)

    def test_bounds_are_validated(self) -> None:
        with pytest.raises(ValidationError):
            Square(file=BOARD_WIDTH, rank=0)
        with pytest.raises(ValidationError):
            Square(file=0, rank=BOARD_HEIGHT)

    def test_offset(self) -> None:
        assert Square.parse("a0").offset(1, 1) == Square.parse("b1")
        assert Square.parse("a0").offset(-1, 0) is None

    def test_frozen(self) -> None:
        square = Square.parse("a0")
        with pytest.raises(ValidationError):
            square.file = 3  # type: ignore[misc]


class TestMove:
    """Tests for Move."""

    def test_parse(self) -> None:
        move = Move.parse("a3a4")
        assert move.from_square == Square.parse("a3")
        assert move.to_square == Square.parse("a4")
        assert str(move) == "a3a4"

    def test_parse_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            Move.parse("a3a")


class TestFormation:
    """Tests for Formation."""

    def test_parse_korean_and_name(self) -> None:
        assert Formation.parse("마상상마") == Formation.MASANG_SANGMA
        assert Formation.parse("sangma_masang") == Formation.SANGMA_MASANG
        assert Formation.parse(Formation.MASANG_MASANG) == Formation.MASANG_MASANG

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown formation"):
            Formation.parse("마마상상")

    def test_pattern(self) -> None:
        assert Formation.MASANG_SANGMA.pattern == (
            PieceKind.HORSE,
            PieceKind.ELEPHANT,
            PieceKind.ELEPHANT,
            PieceKind.HORSE,
        )


class TestInitialBoard:
    """Tests for BoardState.initial."""

    def test_piece_count(self) -> None:
        board = BoardState.initial()
        assert sum(1 for p in board.pieces if p is not None) == 32

    def test_generals_sit_in_palace_centre(self) -> None:
        board = BoardState.initial()
        assert _piece(board, "e1") == Piece(owner=PlayerSide.BLUE, kind=PieceKind.GENERAL)
        assert _piece(board, "e8") == Piece(owner=PlayerSide.RED, kind=PieceKind.GENERAL)

    def test_blue_formation_files(self) -> None:
        board = BoardState.initial(blue_formation=Formation.MASANG_SANGMA)
        kinds = [_piece(board, f"{f}0").kind for f in "bcgh"]  # type: ignore[union-attr]
        assert kinds == [PieceKind.HORSE, PieceKind.ELEPHANT, PieceKind.ELEPHANT, PieceKind.HORSE]

    def test_red_formation_read_from_its_own_left(self) -> None:
        board = BoardState.initial(red_formation=Formation.SANGMA_MASANG)
        kinds = [_piece(board, f"{f}9").kind for f in "hgcb"]  # type: ignore[union-attr]
        assert kinds == [PieceKind.ELEPHANT, PieceKind.HORSE, PieceKind.HORSE, PieceKind.ELEPHANT]

    def test_blue_moves_first(self) -> None:
        assert BoardState.initial().side_to_move == PlayerSide.BLUE


class TestApplyMove:
    """Tests for BoardState.apply_move and comparisons."""

    def test_apply_move_moves_piece_and_swaps_side(self) -> None:
        board = BoardState.initial()
        after = board.apply_move(Move.parse("a3a4"))

        assert after.piece_at(Square.parse("a3")) is None
        assert _piece(after, "a4") == Piece(owner=PlayerSide.BLUE, kind=PieceKind.SOLDIER)
        assert after.side_to_move == PlayerSide.RED
        assert board.piece_at(Square.parse("a4")) is None

    def test_apply_move_from_empty_square(self) -> None:
        with pytest.raises(IllegalBoardOperation, match="No piece"):
            BoardState.initial().apply_move(Move.parse("a4a5"))

    def test_apply_move_to_same_square(self) -> None:
        with pytest.raises(IllegalBoardOperation, match="does not change"):
            BoardState.initial().apply_move(Move.parse("a3a3"))

    def test_differences_and_infer_move(self) -> None:
        board = BoardState.initial()
        after = board.apply_move(Move.parse("c3c4"))
        diffs = board.differences(after)

        assert [d.square.algebraic for d in diffs] == ["c3", "c4"]
        assert BoardState.infer_move(diffs) == Move.parse("c3c4")

    def test_infer_move_ambiguous(self) -> None:
        board = BoardState.initial()
        after = board.apply_move(Move.parse("a3a4")).apply_move(Move.parse("c6c5"))
        assert BoardState.infer_move(board.differences(after)) is None

    def test_same_placement_ignores_side(self) -> None:
        board = BoardState.initial()
        assert board.same_placement(board.with_side_to_move(PlayerSide.RED))
        assert board != board.with_side_to_move(PlayerSide.RED)

    def test_fingerprint_tracks_placement(self) -> None:
        board = BoardState.initial()
        after = board.apply_move(Move.parse("a3a4"))
        assert board.fingerprint == BoardState.initial().fingerprint
        assert board.fingerprint == board.with_side_to_move(PlayerSide.RED).fingerprint
        assert board.fingerprint != after.fingerprint

    def test_empty_board(self) -> None:
        board = BoardState.empty()
        assert all(p is None for p in board.pieces)
        assert len(board.pieces) == BOARD_WIDTH * BOARD_HEIGHT

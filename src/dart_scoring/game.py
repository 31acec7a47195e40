from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Callable

from .checkout import suggest_checkout
from .errors import GameStateError
from .models import GameMode, ImagePoint, Player, PlayerStanding, ScoreResult, Throw

logger = logging.getLogger(__name__)

MIN_PLAYERS = 1
MAX_PLAYERS = 6
THROWS_PER_TURN = 3

_throw_seq = itertools.count(1)


def _default_player(index: int) -> Player:
    return Player(id=str(index + 1), name=f"Player {index + 1}")


def _new_throw_id() -> str:
    return f"{time.time_ns()}-{next(_throw_seq)}"


class GameSession:
    """Players, turn order and throw history for one game.

    Every mutation holds ``_lock`` so a detection callback and a manual entry
    cannot interleave.
    """

    def __init__(self, player_count: int = 2, game_mode: GameMode | str = GameMode.X501) -> None:
        self._lock = threading.Lock()
        self._players: list[Player] = []
        self._current = 0
        self._mode = GameMode(game_mode)
        self._active = False
        self._on_start: list[Callable[[], None]] = []
        self.set_player_count(player_count)

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._active

    @property
    def game_mode(self) -> GameMode:
        with self._lock:
            return self._mode

    @property
    def current_player_index(self) -> int:
        with self._lock:
            return self._current

    @property
    def players(self) -> list[Player]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._players]

    @property
    def current_player(self) -> Player:
        with self._lock:
            return self._players[self._current].model_copy(deep=True)

    @property
    def throw_in_turn(self) -> int:
        """1-based position of the next dart within the current player's turn."""
        with self._lock:
            return len(self._players[self._current].throws) % THROWS_PER_TURN + 1

    def add_start_hook(self, hook: Callable[[], None]) -> None:
        self._on_start.append(hook)

    def _require_idle(self, action: str) -> None:
        if self._active:
            raise GameStateError(f"cannot {action} while a game is in progress")

    def set_player_count(self, count: int) -> None:
        if not MIN_PLAYERS <= count <= MAX_PLAYERS:
            raise ValueError(f"player count must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
        with self._lock:
            self._require_idle("change players")
            kept = self._players[:count]
            self._players = kept + [_default_player(i) for i in range(len(kept), count)]
            self._current = min(self._current, count - 1)

    def rename_player(self, index: int, name: str) -> None:
        if not name.strip():
            raise ValueError("player name must not be empty")
        with self._lock:
            if not 0 <= index < len(self._players):
                raise IndexError(f"no player at index {index}")
            self._players[index].name = name

    def set_game_mode(self, mode: GameMode | str) -> None:
        mode = GameMode(mode)
        with self._lock:
            self._require_idle("change game mode")
            self._mode = mode
        logger.info("game mode set to %s", mode.value)

    def start(self) -> None:
        with self._lock:
            for player in self._players:
                player.score = 0
                player.throws = []
            self._current = 0
            self._active = True
            count = len(self._players)
            mode = self._mode
        logger.info("game started: %s with %d player(s)", mode.value, count)
        for hook in self._on_start:
            hook()

    def end(self) -> None:
        with self._lock:
            self._active = False
        logger.info("game ended")

    def register_throw(self, score: int, multiplier: int = 1, position: ImagePoint | None = None) -> Throw | None:
        """Append a throw for the current player; ignored while no game is running."""
        with self._lock:
            if not self._active:
                logger.debug("ignoring throw %sx%s: no game in progress", score, multiplier)
                return None

            result = ScoreResult(value=score, multiplier=multiplier)
            player = self._players[self._current]
            throw = Throw(
                id=_new_throw_id(),
                score=result.value,
                multiplier=result.multiplier,
                timestamp=time.time_ns() // 1_000_000,
                position=position,
            )
            player.throws.append(throw)
            player.score += result.total

            if len(player.throws) % THROWS_PER_TURN == 0:
                self._current = (self._current + 1) % len(self._players)
            return throw

    def _display_score(self, player: Player) -> int:
        starting = self._mode.starting_score
        if starting is not None:
            return starting - sum(t.total for t in player.throws)
        return player.score

    def display_score(self, index: int) -> int:
        with self._lock:
            return self._display_score(self._players[index])

    def standings(self) -> list[PlayerStanding]:
        with self._lock:
            rows = []
            for index, player in enumerate(self._players):
                score = self._display_score(player)
                checkouts: list[list[str]] = []
                if self._mode.starting_score is not None:
                    darts_left = THROWS_PER_TURN
                    if index == self._current and self._active:
                        darts_left -= len(player.throws) % THROWS_PER_TURN
                    checkouts = [list(c) for c in suggest_checkout(score, darts_left)]
                rows.append(
                    PlayerStanding(
                        index=index,
                        player_id=player.id,
                        name=player.name,
                        score=score,
                        is_current=index == self._current,
                        last_throws=[t.label for t in player.throws[-THROWS_PER_TURN:]],
                        total_darts=len(player.throws),
                        checkouts=checkouts,
                    )
                )
            return rows

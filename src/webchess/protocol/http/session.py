from __future__ import annotations

import threading
import uuid
from typing import Dict, Optional

from ...engine.game import Game


class InMemorySessionStore:
    """Thread-safe in-memory store of live games keyed by ``game_id``.

    Search endpoints run in the server's worker threads, so each game also
    gets its own lock; callers hold it while mutating or searching a game.
    """

    def __init__(self, search_depth: int = 3) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self._game_locks: Dict[str, threading.Lock] = {}
        self.search_depth = search_depth

    def create(self, game: Optional[Game] = None) -> str:
        """Create a new game session and return its `game_id`."""
        gid = str(uuid.uuid4())
        if game is None:
            game = Game.new(search_depth=self.search_depth)
        with self._lock:
            self._games[gid] = game
            self._game_locks[gid] = threading.Lock()
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def lock_for(self, game_id: str) -> threading.Lock:
        with self._lock:
            return self._game_locks.setdefault(game_id, threading.Lock())

    def delete(self, game_id: str) -> bool:
        with self._lock:
            self._game_locks.pop(game_id, None)
            return self._games.pop(game_id, None) is not None

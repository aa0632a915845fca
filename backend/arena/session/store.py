from arena.logic.spawn import random_spawn_point
from arena.messaging.types import PlayerState
from arena.session.models import Player


class PlayerStore:
    """In-memory store of joined players, keyed by player identifier.

    This is the single source of truth for gameplay state. A player id is
    present exactly while its connection is joined; nothing is persisted.
    """

    def __init__(self) -> None:
        self._players: dict[str, Player] = {}  # player_id -> Player

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def create(self, player_id: str, name: str) -> Player:
        """Create a player at a random spawn point with full health. Return the player."""
        if player_id in self._players:
            raise ValueError(f"player {player_id} already exists")
        x, y, z = random_spawn_point()
        player = Player(id=player_id, name=name, x=x, y=y, z=z)
        self._players[player_id] = player
        return player

    def get(self, player_id: str) -> Player | None:
        return self._players.get(player_id)

    def remove(self, player_id: str) -> Player | None:
        return self._players.pop(player_id, None)

    def players(self) -> list[Player]:
        return list(self._players.values())

    def snapshot(self, exclude_player_id: str | None = None) -> list[PlayerState]:
        """Public state of every player, optionally leaving one out."""
        return [PlayerState.from_player(p) for p in self._players.values() if p.id != exclude_player_id]

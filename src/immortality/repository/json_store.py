"""JSON-based repository for Immortality games."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from immortality.domain import models as dm


class JsonGameRepository:
    """Persist games as JSON snapshots on disk."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter: TypeAdapter[dm.GameState] = TypeAdapter(dm.GameState)

    def _path_for(self, game_id: dm.GameID) -> Path:
        return self.base_path / f"game_{int(game_id)}.json"

    def _write(self, path: Path, payload: bytes) -> Path:
        # Each writer gets its own temp file; os.replace swaps in the whole snapshot.
        with tempfile.NamedTemporaryFile(
            dir=self.base_path, prefix=f".{path.stem}.", suffix=".tmp", delete=False
        ) as handle:
            handle.write(payload)
        try:
            os.replace(handle.name, path)
        except OSError:
            Path(handle.name).unlink(missing_ok=True)
            raise
        return path

    def save(self, game: dm.GameState) -> Path:
        """Serialize a game to disk and return the snapshot path."""

        return self._write(self._path_for(game.id), self._adapter.dump_json(game, indent=2))

    def save_snapshot(self, game_id: dm.GameID, snapshot: dict[str, Any]) -> Path:
        """Write an already detached snapshot (see :func:`immortality.savegame.snapshot`)."""

        game = self._adapter.validate_python(snapshot)
        return self._write(self._path_for(game_id), self._adapter.dump_json(game, indent=2))

    def load(self, game_id: dm.GameID) -> dm.GameState:
        """Load a previously saved game snapshot."""

        path = self._path_for(game_id)
        data = path.read_bytes()
        return self._adapter.validate_json(data)

    def list_games(self) -> list[dm.GameID]:
        """Return all game ids currently persisted in the repository."""

        ids: list[dm.GameID] = []
        prefix = "game_"
        suffix = ".json"
        for path in self.base_path.glob("game_*.json"):
            stem = path.name
            if stem.startswith(prefix) and stem.endswith(suffix):
                raw = stem[len(prefix) : -len(suffix)]
                try:
                    ids.append(dm.GameID(int(raw)))
                except ValueError:  # pragma: no cover - ignored malformed file
                    continue
        return sorted(ids, key=int)

    def delete(self, game_id: dm.GameID) -> None:
        """Remove a game snapshot if it exists."""

        path = self._path_for(game_id)
        if path.exists():
            path.unlink()

"""Snapshots and portable save archives for Immortality games.

:func:`snapshot` and :func:`restore` are the in-process persistence contract: a
snapshot is a detached, JSON-compatible ``dict`` that shares no objects with the
live game, so it can be handed to a background writer while ticks continue.
Archives (``.immortality`` zip files) wrap a snapshot with metadata for export
and import.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4
from zipfile import ZIP_DEFLATED, ZipFile

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from immortality.domain import models as dm

GAME_ADAPTER: TypeAdapter[dm.GameState] = TypeAdapter(dm.GameState)


def snapshot(game: dm.GameState) -> dict[str, Any]:
    """Return a detached JSON-compatible copy of ``game``."""

    return GAME_ADAPTER.dump_python(game, mode="json")


def restore(payload: dict[str, Any]) -> dm.GameState:
    """Rebuild a game from :func:`snapshot` output."""

    return GAME_ADAPTER.validate_python(payload)


class SaveKind(StrEnum):
    """Distinguish between starting templates and full running saves."""

    TEMPLATE = "template"
    SAVE = "save"


class SaveMetadata(BaseModel):
    """High-level information about the packaged save."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    rules_version: str = "1.0"
    game_version: str = "0.1.0"


class SaveManifest(BaseModel):
    """Top-level manifest stored in a `.immortality` archive."""

    format_version: int = 1
    kind: SaveKind
    metadata: SaveMetadata
    game: dm.GameState

    @model_validator(mode="before")
    @classmethod
    def _convert_game(cls, values: dict[str, Any]) -> dict[str, Any]:
        raw = values.get("game")
        if raw is not None and not isinstance(raw, dm.GameState):
            values["game"] = GAME_ADAPTER.validate_python(raw)
        return values

    def model_dump(self, *args: Any, **kwargs: Any) -> dict[str, Any]:
        data = super().model_dump(*args, **kwargs)
        data["game"] = GAME_ADAPTER.dump_python(self.game, mode="json")
        return data


MANIFEST_PATH = "immortality/manifest.json"


def load_manifest(path: Path | str) -> SaveManifest:
    """Load a savegame manifest from a `.immortality` archive."""

    zip_path = Path(path)
    with ZipFile(zip_path, "r") as archive:
        try:
            with archive.open(MANIFEST_PATH) as manifest_file:
                payload = json.load(manifest_file)
        except KeyError as exc:  # pragma: no cover - invalid archive
            raise FileNotFoundError("manifest.json not found in archive") from exc
    return SaveManifest.model_validate(payload)


def save_manifest(manifest: SaveManifest, path: Path | str) -> Path:
    """Write a manifest to a `.immortality` archive."""

    payload = json.dumps(
        manifest.model_dump(mode="json", by_alias=True),
        indent=2,
        sort_keys=True,
    ).encode("utf-8")
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with ZipFile(target, "w", ZIP_DEFLATED) as archive:
        archive.writestr(MANIFEST_PATH, payload)
    return target


def export_game(
    game: dm.GameState,
    *,
    kind: SaveKind = SaveKind.SAVE,
    metadata: SaveMetadata | None = None,
) -> SaveManifest:
    """Wrap a detached copy of ``game`` in a manifest."""

    meta = metadata or SaveMetadata(name=game.name)
    return SaveManifest(kind=kind, metadata=meta, game=restore(snapshot(game)))


def import_game_from_manifest(
    manifest: SaveManifest,
    *,
    assign_new_id: bool = False,
    next_id: int | None = None,
) -> dm.GameState:
    """Return a game instance derived from a saved manifest.

    The returned game never aliases the manifest's copy.  Templates always
    start paused on tick zero.
    """

    game = restore(snapshot(manifest.game))
    if assign_new_id:
        if next_id is None:
            raise ValueError("next_id is required when assign_new_id is True")
        game.id = dm.GameID(next_id)
    if manifest.kind == SaveKind.TEMPLATE:
        game.clock.tick_count = 0
        game.clock.paused = True
        game.clock.banked_ms = 0.0
    return game

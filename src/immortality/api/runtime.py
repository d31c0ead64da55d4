"""Runtime primitives backing the Immortality HTTP API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, replace
from pathlib import Path
from typing import TypeVar

from immortality import savegame
from immortality.config import Settings, get_settings
from immortality.domain import batches, effects
from immortality.domain import clock as clock_rules
from immortality.domain import models as dm
from immortality.domain.enums import NumberMode
from immortality.domain.numbers import format_days, format_number
from immortality.domain.rules_config import DEFAULT_RULES, RulesConfig
from immortality.domain.tick import TickReport, run_daily_tick
from immortality.repository import JsonGameRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def rules_from_settings(settings: Settings, base: RulesConfig = DEFAULT_RULES) -> RulesConfig:
    """Overlay the tunables exposed through :class:`Settings` onto ``base``."""

    return replace(
        base,
        farm=replace(base.farm, detail_limit=settings.field_detail_limit),
        clock=replace(base.clock, max_catchup_ticks=settings.max_catchup_ticks),
    )


class GameService:
    """Keeps loaded games in memory and converts them for API responses.

    Mutations go through :meth:`MainLoop.command` so they never interleave a
    tick; this class only owns the set of loaded games and their persistence.
    """

    def __init__(
        self,
        repository: JsonGameRepository,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        tick_interval_ms: float = 25.0,
        default_speed_divider: int = 40,
        number_mode: NumberMode = NumberMode.STANDARD,
    ) -> None:
        self._repository = repository
        self._rules = rules
        self._tick_interval_ms = tick_interval_ms
        starting_tiers = clock_rules.unlocked_dividers(dm.SpeedUnlocks(), rules)
        if default_speed_divider not in starting_tiers:
            logger.warning(
                "speed divider %s is not available to new games; using %s",
                default_speed_divider,
                starting_tiers[0],
            )
            default_speed_divider = starting_tiers[0]
        self._default_speed_divider = default_speed_divider
        self._number_mode = number_mode
        self._games: dict[dm.GameID, dm.GameState] = {}

    def loaded_games(self) -> list[dm.GameState]:
        return [self._games[game_id] for game_id in sorted(self._games, key=int)]

    def is_loaded(self, game_id: dm.GameID) -> bool:
        return game_id in self._games

    def list_games(self) -> list[dm.GameState]:
        """Return every known game, preferring the live copy of loaded ones."""

        ids = set(self._repository.list_games()) | set(self._games)
        games: list[dm.GameState] = []
        for game_id in sorted(ids, key=int):
            live = self._games.get(game_id)
            if live is not None:
                games.append(live)
                continue
            try:
                games.append(self._repository.load(game_id))
            except FileNotFoundError:  # pragma: no cover - deleted between list and load
                continue
        return games

    def get_game(self, game_id: dm.GameID) -> dm.GameState:
        """Return the live game, loading it from disk on first use.

        Raises ``FileNotFoundError`` for unknown ids.
        """

        game = self._games.get(game_id)
        if game is None:
            game = self._repository.load(game_id)
            self._games[game_id] = game
            logger.info("loaded game %s (%s)", int(game_id), game.name)
        return game

    def unload(self, game_id: dm.GameID) -> dm.GameState | None:
        return self._games.pop(game_id, None)

    def create_game(self, name: str) -> dm.GameState:
        """Create, load and persist a fresh game."""

        farm_rules = self._rules.farm
        game = dm.GameState(
            id=self._next_identifier(),
            name=name,
            clock=dm.SimClock(
                tick_interval_ms=self._tick_interval_ms,
                speed_divider=self._default_speed_divider,
            ),
            home=dm.Home(
                land_price=farm_rules.initial_land_price,
                crop_id=farm_rules.default_crop,
                fields=dm.FieldCollection(detail_limit=farm_rules.detail_limit),
            ),
            number_mode=self._number_mode,
        )
        self._games[game.id] = game
        self._repository.save(game)
        logger.info("created game %s (%s)", int(game.id), name)
        return game

    def save_game(self, game: dm.GameState) -> Path:
        return self._repository.save(game)

    def _next_identifier(self) -> dm.GameID:
        existing = set(self._repository.list_games()) | set(self._games)
        if not existing:
            return dm.GameID(1)
        return dm.GameID(max(int(game_id) for game_id in existing) + 1)

    def export_game(
        self,
        game_id: dm.GameID,
        *,
        kind: savegame.SaveKind = savegame.SaveKind.SAVE,
        metadata: savegame.SaveMetadata | None = None,
    ) -> savegame.SaveManifest:
        """Produce a save manifest for the requested game."""

        return savegame.export_game(self.get_game(game_id), kind=kind, metadata=metadata)

    def import_from_manifest(
        self,
        manifest: savegame.SaveManifest,
        *,
        assign_new_id: bool = True,
    ) -> dm.GameState:
        """Load and persist the game described by a savegame manifest."""

        next_id = int(self._next_identifier()) if assign_new_id else None
        game = savegame.import_game_from_manifest(
            manifest, assign_new_id=assign_new_id, next_id=next_id
        )
        self._games[game.id] = game
        self._repository.save(game)
        return game

    def import_from_file(
        self, manifest_path: Path | str, *, assign_new_id: bool = True
    ) -> dm.GameState:
        """Load a `.immortality` archive and persist the contained game."""

        manifest = savegame.load_manifest(manifest_path)
        return self.import_from_manifest(manifest, assign_new_id=assign_new_id)

    @staticmethod
    def to_summary_dict(game: dm.GameState) -> dict[str, object]:
        """Return a JSON-friendly overview of a game."""

        return {
            "id": int(game.id),
            "name": game.name,
            "tick_count": game.clock.tick_count,
            "age_days": game.character.age_days,
            "money": game.character.money,
            "money_label": format_number(game.character.money, game.number_mode),
            "state": str(clock_rules.state_of(game.clock)),
            "land": game.home.land,
            "field_count": batches.total_units(game.home.fields),
            "number_mode": str(game.number_mode),
        }

    @staticmethod
    def to_farm_dict(game: dm.GameState, rules: RulesConfig = DEFAULT_RULES) -> dict[str, object]:
        home = game.home
        mode = game.number_mode
        return {
            "land": home.land,
            "land_price": home.land_price,
            "land_price_label": effects.land_price_label(home, 1, mode, rules),
            "half_affordable_label": effects.half_affordable_land_label(
                home, game.character.money, mode, rules
            ),
            "crop_id": home.crop_id,
            "money": game.character.money,
            "field_count": batches.total_units(home.fields),
            "batches": [asdict(record) for record in batches.aggregate(home.fields)],
            "crops": dict(game.inventory.crops),
        }

    @staticmethod
    def to_character_dict(
        game: dm.GameState, rules: RulesConfig = DEFAULT_RULES
    ) -> dict[str, object]:
        character = game.character
        summary = effects.empowerment_summary(character.empowerment_factor, rules)
        return {
            "age_days": character.age_days,
            "alchemy_lifespan": character.alchemy_lifespan,
            "alchemy_lifespan_label": format_days(
                character.alchemy_lifespan, rules.lifespan.days_per_year
            ),
            "empowerment_pills": summary.pills,
            "empowerment_multiplier": summary.multiplier,
            "empowerment_explanation": effects.empowerment_explanation(summary, game.number_mode),
        }

    @staticmethod
    def to_clock_dict(game: dm.GameState, rules: RulesConfig = DEFAULT_RULES) -> dict[str, object]:
        clock = game.clock
        return {
            "state": str(clock_rules.state_of(clock)),
            "tick_count": clock.tick_count,
            "speed_divider": clock.speed_divider,
            "tick_interval_ms": clock.tick_interval_ms,
            "effective_interval_ms": clock_rules.effective_interval_ms(clock),
            "unlocked_dividers": list(clock_rules.unlocked_dividers(game.unlocks, rules)),
            "can_single_step": clock_rules.can_single_step(clock),
        }

    @staticmethod
    def to_equipment_dict(item: dm.Equipment) -> dict[str, object]:
        return {
            "id": int(item.id),
            "name": item.name,
            "kind": str(item.kind),
            "slot": item.slot,
            "value": item.value,
            "durability": item.durability,
            "material": item.material,
            "effect": item.effect,
            "base_damage": item.base_damage,
            "defense": item.defense,
        }


class MainLoop:
    """Background scheduler that ticks every loaded game in real time.

    One asyncio task accrues elapsed monotonic time per game and runs the due
    ticks while holding ``lock``.  Commands take the same lock, so a command
    always observes the state between two whole ticks.
    """

    MIN_POLL_SECONDS = 0.005

    def __init__(
        self,
        games: GameService,
        repository: JsonGameRepository,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        poll_interval_seconds: float = 0.025,
        autosave_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._games = games
        self._repository = repository
        self._rules = rules
        self._poll_interval = max(poll_interval_seconds, self.MIN_POLL_SECONDS)
        self._autosave_interval = autosave_interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._lock = asyncio.Lock()

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @property
    def poll_interval_seconds(self) -> float:
        return self._poll_interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.is_running:
            self._stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_loop(), name="immortality-main-loop")

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._stop_event.set()
        await task
        self._task = None

    async def command(self, game_id: dm.GameID, action: Callable[[dm.GameState], T]) -> T:
        """Run ``action`` against a live game between ticks."""

        async with self._lock:
            game = self._games.get_game(game_id)
            return action(game)

    async def pause(self, game_id: dm.GameID) -> dm.GameState:
        def _pause(game: dm.GameState) -> dm.GameState:
            clock_rules.pause(game.clock)
            return game

        return await self.command(game_id, _pause)

    async def resume(self, game_id: dm.GameID, speed_divider: int) -> bool:
        return await self.command(
            game_id,
            lambda game: clock_rules.resume(game.clock, speed_divider, game.unlocks, self._rules),
        )

    async def single_step(self, game_id: dm.GameID) -> TickReport | None:
        """Run exactly one tick of a paused game; running games are left alone."""

        def _step(game: dm.GameState) -> TickReport | None:
            if not clock_rules.can_single_step(game.clock):
                return None
            return run_daily_tick(game, rules=self._rules)

        return await self.command(game_id, _step)

    async def run_cycle(self, elapsed_ms: float) -> dict[dm.GameID, int]:
        """Bank ``elapsed_ms`` for every loaded game and run whatever is due."""

        advanced: dict[dm.GameID, int] = {}
        cap = self._rules.clock.max_catchup_ticks
        async with self._lock:
            for game in self._games.loaded_games():
                owed = clock_rules.ticks_due(game.clock, elapsed_ms)
                due = clock_rules.accrue(game.clock, elapsed_ms, self._rules)
                if not due:
                    continue
                if owed > cap:
                    logger.warning(
                        "game %s fell behind; ran %s catch-up ticks and dropped %s",
                        int(game.id),
                        due,
                        owed - due,
                    )
                try:
                    for _ in range(due):
                        run_daily_tick(game, rules=self._rules)
                except Exception:
                    logger.exception("tick failed for game %s; unloading it", int(game.id))
                    self._games.unload(game.id)
                    continue
                advanced[game.id] = due
        return advanced

    async def save(self, game_id: dm.GameID) -> Path:
        """Snapshot a game between ticks and write it without holding the lock."""

        async with self._lock:
            payload = savegame.snapshot(self._games.get_game(game_id))
        return await asyncio.to_thread(self._repository.save_snapshot, game_id, payload)

    async def save_all(self) -> list[Path]:
        async with self._lock:
            payloads = [
                (game.id, savegame.snapshot(game)) for game in self._games.loaded_games()
            ]
        paths: list[Path] = []
        for game_id, payload in payloads:
            paths.append(
                await asyncio.to_thread(self._repository.save_snapshot, game_id, payload)
            )
        return paths

    async def _run_loop(self) -> None:
        last = self._clock()
        since_save = 0.0
        try:
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
                    break
                except TimeoutError:
                    pass
                now = self._clock()
                elapsed = now - last
                last = now
                await self.run_cycle(elapsed * 1000.0)

                since_save += elapsed
                if since_save >= self._autosave_interval:
                    since_save = 0.0
                    try:
                        saved = await self.save_all()
                    except OSError:
                        logger.exception("autosave failed")
                    else:
                        logger.debug("autosaved %s game(s)", len(saved))
        finally:
            self._task = None


class ApiState:
    """Aggregated services shared by the FastAPI layer."""

    def __init__(
        self, *, settings: Settings | None = None, rules: RulesConfig | None = None
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = rules or rules_from_settings(self.settings)
        self.repository = JsonGameRepository(self.settings.data_dir)
        self.games = GameService(
            self.repository,
            rules=self.rules,
            tick_interval_ms=self.settings.tick_interval_ms,
            default_speed_divider=self.settings.default_speed_divider,
            number_mode=(
                NumberMode.SCIENTIFIC
                if self.settings.scientific_notation
                else NumberMode.STANDARD
            ),
        )
        self.loop = MainLoop(
            self.games,
            self.repository,
            rules=self.rules,
            poll_interval_seconds=self.settings.tick_interval_ms / 1000.0,
            autosave_interval_seconds=self.settings.autosave_interval_seconds,
        )

    def start(self) -> None:
        self.loop.start()

    async def shutdown(self) -> None:
        await self.loop.stop()
        await self.loop.save_all()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()

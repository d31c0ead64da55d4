"""HTTP routes for the Immortality API."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from immortality.api.runtime import ApiState
from immortality.domain import character, effects, equipment, farm
from immortality.domain import models as dm
from immortality.domain.enums import NumberMode
from immortality.domain.numbers import format_number
from immortality.domain.quantity import BulkResult
from immortality.domain.rules_config import RulesConfig

router = APIRouter()

FarmCommand = Callable[[dm.GameState, int, RulesConfig], BulkResult]


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


def _game_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="game not found")


def _load_game(state: ApiState, game_id: int) -> dm.GameState:
    try:
        return state.games.get_game(dm.GameID(game_id))
    except FileNotFoundError as exc:
        raise _game_not_found() from exc


class GameSummary(BaseModel):
    id: int
    name: str
    tick_count: int
    age_days: int
    money: float
    money_label: str
    state: str
    land: int
    field_count: int
    number_mode: str


class CreateGameRequest(BaseModel):
    name: str = Field(min_length=1)


class SaveResponse(BaseModel):
    id: int
    path: str


class DisplayBatchModel(BaseModel):
    count: int
    crop_id: str
    yield_per_harvest: float
    days_to_harvest: int


class FarmStatus(BaseModel):
    land: int
    land_price: float
    land_price_label: str
    half_affordable_label: str
    crop_id: str
    money: float
    field_count: int
    batches: list[DisplayBatchModel]
    crops: dict[str, float]


class QuantityRequest(BaseModel):
    quantity: int = Field(default=1, description="A positive count, or -1 for as many as possible")


class CropRequest(BaseModel):
    crop_id: str = Field(min_length=1)


class BulkResponse(BaseModel):
    requested: int
    applied: int
    clamped: bool
    farm: FarmStatus


class ClockStatus(BaseModel):
    state: str
    tick_count: int
    speed_divider: int
    tick_interval_ms: float
    effective_interval_ms: float
    unlocked_dividers: list[int]
    can_single_step: bool


class ResumeRequest(BaseModel):
    speed_divider: int


class ResumeResponse(ClockStatus):
    accepted: bool


class StepResponse(BaseModel):
    stepped: bool
    tick_count: int
    harvested: list[DisplayBatchModel]


class MergeRequest(BaseModel):
    first_id: int
    second_id: int


class EquipmentSummary(BaseModel):
    id: int
    name: str
    kind: str
    slot: str
    value: float
    durability: float
    material: str
    effect: str | None
    base_damage: float
    defense: float


class TooltipResponse(BaseModel):
    id: int
    tooltip: str


class CharacterStatus(BaseModel):
    age_days: int
    alchemy_lifespan: int
    alchemy_lifespan_label: str
    empowerment_pills: int
    empowerment_multiplier: float
    empowerment_explanation: str


class LongevityRequest(BaseModel):
    power: int = Field(ge=1)


class LongevityResponse(BaseModel):
    gained: int
    character: CharacterStatus


class EmpowermentRequest(BaseModel):
    pills: int = Field(default=1, ge=1)


class FormatResponse(BaseModel):
    mode: NumberMode
    text: str


def _farm_status(state: ApiState, game: dm.GameState) -> FarmStatus:
    return FarmStatus.model_validate(state.games.to_farm_dict(game, state.rules))


def _clock_status(state: ApiState, game: dm.GameState) -> ClockStatus:
    return ClockStatus.model_validate(state.games.to_clock_dict(game, state.rules))


def _character_status(state: ApiState, game: dm.GameState) -> CharacterStatus:
    return CharacterStatus.model_validate(state.games.to_character_dict(game, state.rules))


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "rules_version": state.settings.rules_version,
        "tick_interval_ms": state.settings.tick_interval_ms,
        "loaded_games": len(state.games.loaded_games()),
        "main_loop_running": state.loop.is_running,
    }


@router.get("/format", response_model=FormatResponse)
async def format_value(
    value: float,
    mode: Annotated[NumberMode, Query()] = NumberMode.STANDARD,
) -> FormatResponse:
    return FormatResponse(mode=mode, text=format_number(value, mode))


@router.get("/games", response_model=list[GameSummary])
async def list_games(state: ApiStateDep) -> list[GameSummary]:
    games = state.games.list_games()
    return [GameSummary.model_validate(state.games.to_summary_dict(g)) for g in games]


@router.post("/games", response_model=GameSummary, status_code=status.HTTP_201_CREATED)
async def create_game(request: CreateGameRequest, state: ApiStateDep) -> GameSummary:
    async with state.loop.lock:
        game = state.games.create_game(request.name)
    return GameSummary.model_validate(state.games.to_summary_dict(game))


@router.get("/games/{game_id}", response_model=GameSummary)
async def get_game(game_id: int, state: ApiStateDep) -> GameSummary:
    game = _load_game(state, game_id)
    return GameSummary.model_validate(state.games.to_summary_dict(game))


@router.post("/games/{game_id}/save", response_model=SaveResponse)
async def save_game(game_id: int, state: ApiStateDep) -> SaveResponse:
    try:
        path = await state.loop.save(dm.GameID(game_id))
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    return SaveResponse(id=game_id, path=str(path))


# ---------------------------------------------------------------------------
# Farm


@router.get("/games/{game_id}/farm", response_model=FarmStatus)
async def get_farm(game_id: int, state: ApiStateDep) -> FarmStatus:
    return _farm_status(state, _load_game(state, game_id))


async def _bulk(
    state: ApiState, game_id: int, command: FarmCommand, quantity: int
) -> BulkResponse:
    def _apply(game: dm.GameState) -> tuple[BulkResult, FarmStatus]:
        result = command(game, quantity, state.rules)
        return result, _farm_status(state, game)

    try:
        result, farm_status = await state.loop.command(dm.GameID(game_id), _apply)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return BulkResponse(
        requested=result.requested,
        applied=result.applied,
        clamped=result.clamped,
        farm=farm_status,
    )


@router.post("/games/{game_id}/farm/buy-land", response_model=BulkResponse)
async def buy_land(game_id: int, request: QuantityRequest, state: ApiStateDep) -> BulkResponse:
    return await _bulk(state, game_id, farm.buy_land, request.quantity)


@router.post("/games/{game_id}/farm/plow", response_model=BulkResponse)
async def plow(game_id: int, request: QuantityRequest, state: ApiStateDep) -> BulkResponse:
    return await _bulk(state, game_id, farm.plow, request.quantity)


@router.post("/games/{game_id}/farm/clear", response_model=BulkResponse)
async def clear_fields(
    game_id: int, request: QuantityRequest, state: ApiStateDep
) -> BulkResponse:
    return await _bulk(state, game_id, farm.clear_fields, request.quantity)


@router.post("/games/{game_id}/farm/reset", response_model=BulkResponse)
async def reset_fields(game_id: int, state: ApiStateDep) -> BulkResponse:
    return await _bulk(
        state, game_id, lambda game, _quantity, rules: farm.reset_fields(game, rules), -1
    )


@router.post("/games/{game_id}/farm/crop", response_model=FarmStatus)
async def select_crop(game_id: int, request: CropRequest, state: ApiStateDep) -> FarmStatus:
    def _select(game: dm.GameState) -> FarmStatus:
        farm.select_crop(game, request.crop_id, state.rules)
        return _farm_status(state, game)

    try:
        return await state.loop.command(dm.GameID(game_id), _select)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"unknown crop '{request.crop_id}'"
        ) from exc


# ---------------------------------------------------------------------------
# Character


@router.get("/games/{game_id}/character", response_model=CharacterStatus)
async def get_character(game_id: int, state: ApiStateDep) -> CharacterStatus:
    return _character_status(state, _load_game(state, game_id))


@router.post("/games/{game_id}/character/longevity", response_model=LongevityResponse)
async def take_longevity_pill(
    game_id: int, request: LongevityRequest, state: ApiStateDep
) -> LongevityResponse:
    def _take(game: dm.GameState) -> LongevityResponse:
        gained = character.apply_longevity(game.character, request.power, state.rules)
        return LongevityResponse(gained=gained, character=_character_status(state, game))

    try:
        return await state.loop.command(dm.GameID(game_id), _take)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc


@router.post("/games/{game_id}/character/empowerment", response_model=CharacterStatus)
async def take_empowerment_pills(
    game_id: int, request: EmpowermentRequest, state: ApiStateDep
) -> CharacterStatus:
    def _take(game: dm.GameState) -> CharacterStatus:
        character.apply_empowerment(game.character, request.pills, state.rules)
        return _character_status(state, game)

    try:
        return await state.loop.command(dm.GameID(game_id), _take)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc


# ---------------------------------------------------------------------------
# Clock


@router.get("/games/{game_id}/clock", response_model=ClockStatus)
async def get_clock(game_id: int, state: ApiStateDep) -> ClockStatus:
    return _clock_status(state, _load_game(state, game_id))


@router.post("/games/{game_id}/clock/pause", response_model=ClockStatus)
async def pause_clock(game_id: int, state: ApiStateDep) -> ClockStatus:
    try:
        game = await state.loop.pause(dm.GameID(game_id))
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    return _clock_status(state, game)


@router.post("/games/{game_id}/clock/resume", response_model=ResumeResponse)
async def resume_clock(
    game_id: int, request: ResumeRequest, state: ApiStateDep
) -> ResumeResponse:
    game_key = dm.GameID(game_id)
    try:
        accepted = await state.loop.resume(game_key, request.speed_divider)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    payload = state.games.to_clock_dict(state.games.get_game(game_key), state.rules)
    return ResumeResponse(accepted=accepted, **payload)


@router.post("/games/{game_id}/clock/step", response_model=StepResponse)
async def step_clock(game_id: int, state: ApiStateDep) -> StepResponse:
    game_key = dm.GameID(game_id)
    try:
        report = await state.loop.single_step(game_key)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    game = state.games.get_game(game_key)
    harvested = report.harvested if report is not None else []
    return StepResponse(
        stepped=report is not None,
        tick_count=game.clock.tick_count,
        harvested=[
            DisplayBatchModel.model_validate(record, from_attributes=True) for record in harvested
        ],
    )


# ---------------------------------------------------------------------------
# Equipment


@router.get("/games/{game_id}/equipment", response_model=list[EquipmentSummary])
async def list_equipment(game_id: int, state: ApiStateDep) -> list[EquipmentSummary]:
    game = _load_game(state, game_id)
    items = sorted(game.inventory.equipment.values(), key=lambda item: int(item.id))
    return [EquipmentSummary.model_validate(state.games.to_equipment_dict(i)) for i in items]


@router.post(
    "/games/{game_id}/equipment/merge",
    response_model=EquipmentSummary,
    status_code=status.HTTP_201_CREATED,
)
async def merge_equipment(
    game_id: int, request: MergeRequest, state: ApiStateDep
) -> EquipmentSummary:
    def _merge(game: dm.GameState) -> dm.Equipment:
        return equipment.merge_equipment(
            game,
            dm.EquipmentID(request.first_id),
            dm.EquipmentID(request.second_id),
            state.rules,
        )

    try:
        merged = await state.loop.command(dm.GameID(game_id), _merge)
    except FileNotFoundError as exc:
        raise _game_not_found() from exc
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="equipment not found"
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return EquipmentSummary.model_validate(state.games.to_equipment_dict(merged))


@router.get("/games/{game_id}/equipment/{equipment_id}/tooltip", response_model=TooltipResponse)
async def equipment_tooltip(
    game_id: int, equipment_id: int, state: ApiStateDep
) -> TooltipResponse:
    game = _load_game(state, game_id)
    item = game.inventory.equipment.get(dm.EquipmentID(equipment_id))
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="equipment not found")
    return TooltipResponse(
        id=equipment_id, tooltip=effects.equipment_tooltip(item, game.number_mode)
    )

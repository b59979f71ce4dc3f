from fastapi import APIRouter, Depends
import logging

from auth_dependency import get_current_user
from routers.http_errors import http_error
from schemas.strategies import ChecklistProgressRequest, StrategyCreateRequest, StrategyUpdateRequest
from services import checklist
from services import strategies_store
from services.errors import JournalError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/strategies",
    tags=["Strategies"]
)


@router.get("/")
async def get_my_strategies(current_user: dict = Depends(get_current_user)):
    try:
        strategies = strategies_store.list_strategies(current_user["user_id"])
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": strategies, "count": len(strategies)}


@router.post("/", status_code=201)
async def create_strategy(
    request: StrategyCreateRequest,
    current_user: dict = Depends(get_current_user),
):
    try:
        strategy = strategies_store.create_strategy(
            current_user["user_id"],
            request.name,
            request.description,
            request.checklist,
        )
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "strategy_id": strategy["strategy_id"], "data": strategy}


@router.post("/defaults")
async def create_default_strategy(current_user: dict = Depends(get_current_user)):
    try:
        strategy = strategies_store.ensure_default_strategy(current_user["user_id"])
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": strategy}


@router.put("/{strategy_id}")
async def update_strategy(
    strategy_id: str,
    request: StrategyUpdateRequest,
    current_user: dict = Depends(get_current_user),
):
    try:
        strategy = strategies_store.update_strategy(
            current_user["user_id"],
            strategy_id,
            request.name,
            request.description,
            request.checklist,
        )
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": strategy}


@router.delete("/{strategy_id}")
async def delete_strategy(
    strategy_id: str,
    current_user: dict = Depends(get_current_user),
):
    try:
        strategies_store.delete_strategy(current_user["user_id"], strategy_id)
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "strategy_id": strategy_id}


# ─── Checklist ────────────────────────────────────────────────────────────────

@router.post("/{strategy_id}/checklist")
async def start_checklist(
    strategy_id: str,
    current_user: dict = Depends(get_current_user),
):
    try:
        strategy = strategies_store.get_strategy(current_user["user_id"], strategy_id)
    except JournalError as e:
        raise http_error(e)

    instance = checklist.start(strategy)
    return {
        "status": "success",
        "data": instance,
        "progress": checklist.progress(instance),
        "complete": checklist.is_complete(instance),
    }


@router.post("/{strategy_id}/checklist/progress")
async def checklist_progress(
    strategy_id: str,
    request: ChecklistProgressRequest,
    current_user: dict = Depends(get_current_user),
):
    try:
        strategy = strategies_store.get_strategy(current_user["user_id"], strategy_id)
    except JournalError as e:
        raise http_error(e)

    instance = checklist.apply_states(
        checklist.start(strategy),
        [item.model_dump() for item in request.checklist],
    )
    return {
        "status": "success",
        "data": instance,
        "progress": checklist.progress(instance),
        "complete": checklist.is_complete(instance),
    }

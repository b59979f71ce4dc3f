from fastapi import APIRouter, Depends

from auth_dependency import get_current_user
from routers.http_errors import http_error
from services import strategies_store, trades_store
from services.errors import JournalError


router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"]
)


@router.get("/summary")
async def get_dashboard_summary(
    current_user: dict = Depends(get_current_user)
):

    user_id = current_user["user_id"]

    try:
        strategies = strategies_store.list_strategies(user_id)
        trades = trades_store.list_trades(user_id)
    except JournalError as e:
        raise http_error(e)

    open_trades = len([t for t in trades if t["is_open"]])

    return {
        "status": "success",
        "data": {
            "strategies": len(strategies),
            "completed_trades": sum(s["completed_trades"] for s in strategies),
            "open_trades": open_trades,
            "closed_trades": len(trades) - open_trades,
        }
    }

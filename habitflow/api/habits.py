import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..domain.habits import GoalType
from ..services.user_session import UserSession
from .deps import require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/habits", tags=["habits"])


# Request models
class HabitCreateRequest(BaseModel):
    title: str = ""
    goal_type: GoalType = GoalType.DAILY
    description: Optional[str] = None
    color: Optional[str] = None
    start_date: Optional[str] = None
    target_time: Optional[str] = None
    target_day_of_week: Optional[int] = None
    target_day_of_month: Optional[int] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_habit(
    body: HabitCreateRequest, user_session: UserSession = Depends(require_session)
) -> Dict[str, Any]:
    habit = await user_session.workspace.create_habit(
        body.title,
        body.goal_type,
        description=body.description,
        color=body.color,
        start_date=body.start_date,
        target_time=body.target_time,
        target_day_of_week=body.target_day_of_week,
        target_day_of_month=body.target_day_of_month,
    )
    logger.info(f"Habit {habit.id} created via API")
    return {"habit": habit.to_dict()}


@router.patch("/{habit_id}")
async def update_habit(
    habit_id: str,
    changes: Dict[str, Any] = Body(...),
    user_session: UserSession = Depends(require_session),
) -> Dict[str, Any]:
    workspace = user_session.workspace
    await workspace.ensure_habit(habit_id)
    habit = await workspace.update_habit(habit_id, changes)
    return {"habit": habit.to_dict()}


@router.delete("/{habit_id}")
async def delete_habit(
    habit_id: str, user_session: UserSession = Depends(require_session)
) -> Dict[str, Any]:
    await user_session.workspace.delete_habit(habit_id)
    return {"deleted": habit_id}


@router.post("/{habit_id}/entries/{date}/toggle")
async def toggle_entry(
    habit_id: str, date: str, user_session: UserSession = Depends(require_session)
):
    workspace = user_session.workspace
    await workspace.ensure_habit(habit_id)
    outcome = await workspace.toggle(habit_id, date)
    content = {
        "habit_id": outcome.habit_id,
        "date": outcome.date,
        "status": outcome.status.value if outcome.status else None,
        "ok": outcome.ok,
        "message": outcome.message,
    }
    if outcome.ok:
        return content
    status_code = (
        status.HTTP_401_UNAUTHORIZED
        if outcome.auth_required
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(content, status_code=status_code)

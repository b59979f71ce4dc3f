from typing import List
from pydantic import BaseModel, Field


class StrategyCreateRequest(BaseModel):
    name: str
    description: str | None = None
    checklist: List[str] = Field(default_factory=list)


class StrategyUpdateRequest(StrategyCreateRequest):
    pass


class ChecklistItemState(BaseModel):
    id: str
    completed: bool = False


class ChecklistProgressRequest(BaseModel):
    checklist: List[ChecklistItemState] = Field(default_factory=list)

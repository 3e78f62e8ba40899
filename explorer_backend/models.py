"""
Pydantic request models for the explorer API.
"""
from typing import Optional

from pydantic import BaseModel, Field


class LoadSchemaRequest(BaseModel):
    """Request to (re)load schema text into an explorer."""
    schema_text: str = Field(alias="schema")

    model_config = {"populate_by_name": True}


class DepthRequest(BaseModel):
    """Request to change the focus depth by a relative amount."""
    delta: int = 1


class SearchRequest(BaseModel):
    query: str = ""


class DragRequest(BaseModel):
    """Pointer event for a node drag."""
    node_id: str
    x: float = 0
    y: float = 0


class DragEndRequest(BaseModel):
    node_id: str


class StepRequest(BaseModel):
    """Request to advance the layout synchronously."""
    ticks: int = Field(default=1, ge=1, le=5000)


class ViewportRequest(BaseModel):
    """Request to update the viewport (partial update)."""
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    zoom: Optional[float] = Field(default=None, gt=0)
    pan_x: Optional[float] = None
    pan_y: Optional[float] = None

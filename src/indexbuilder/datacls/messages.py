from typing import List, Optional
from pydantic import BaseModel, Field

from ..datacls.artifacts import PipelineResult

#
#
# Pipeline Run Models
#
#

class PipelineStartResponse(BaseModel):
    """
        Response model for a started pipeline run.
    """
    run_id: str


class PipelineStatusResponse(BaseModel):
    """
        Response model for the status of a pipeline run.
    """
    run_id: str
    repo: str
    status: str
    start_time: float
    end_time: Optional[float] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    result: Optional[PipelineResult] = None


class PipelineLogsResponse(BaseModel):
    """
        Response model for incremental pipeline logs.
    """
    logs: List[str] = Field(default_factory=list)
    last_index: int = 0


class ErrorResponse(BaseModel):
    error: str
    message: str

from fastapi import APIRouter, HTTPException, Depends
from ..services.pipeline_service import PipelineService
from ...config import PipelineConfig
from ...datacls.messages import PipelineStartResponse, PipelineStatusResponse, PipelineLogsResponse
from ..deps import get_pipeline_service
from ...exceptions import MissingCredentialsError

router = APIRouter()


@router.post("/pipelines", response_model=PipelineStartResponse, status_code=202)
def start_pipeline(config: PipelineConfig, service: PipelineService = Depends(get_pipeline_service)):
    if config.require_publish and not config.publish.is_complete():
        raise MissingCredentialsError(
            f"Registry credentials or image details missing: {', '.join(config.publish.missing())}"
        )
    run_id = service.start_run(config)
    return {"run_id": run_id}


@router.get("/pipelines/{run_id}", response_model=PipelineStatusResponse)
def get_pipeline_status(run_id: str, service: PipelineService = Depends(get_pipeline_service)):
    status = service.get_run_status(run_id)
    if not status:
        raise HTTPException(status_code=404, detail="Pipeline run not found")
    return status


@router.get("/pipelines/{run_id}/logs", response_model=PipelineLogsResponse)
def get_pipeline_logs(run_id: str, since: int = 0, service: PipelineService = Depends(get_pipeline_service)):
    logs = service.get_run_logs(run_id, since)
    if logs is None:
        raise HTTPException(status_code=404, detail="Pipeline run not found")
    return logs

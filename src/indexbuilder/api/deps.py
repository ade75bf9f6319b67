from .services.pipeline_service import PipelineService

pipeline_service: PipelineService | None = None


def register_service(service: PipelineService) -> PipelineService:
    global pipeline_service
    pipeline_service = service
    return pipeline_service


def get_pipeline_service() -> PipelineService:
    global pipeline_service
    if pipeline_service is None:
        pipeline_service = PipelineService()
    return pipeline_service

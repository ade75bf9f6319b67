"""
Index Builder Builder Module

- Pipeline: Full fetch, build, report, image and publish run
- steps: The individual pipeline steps
- report: Project info upload

Usage:
    from indexbuilder.builder import Pipeline
    from indexbuilder.config import Config

    config = Config("pipeline.yml")
    result = await Pipeline(config.model).run()
"""

from .pipeline import Pipeline, run_pipeline
from .steps import (
    prepare_environment,
    build,
    generate_and_send,
    build_image,
    publish,
)
from .report import send_project_info

__all__ = [
    'Pipeline',
    'run_pipeline',
    'prepare_environment',
    'build',
    'generate_and_send',
    'build_image',
    'publish',
    'send_project_info',
]

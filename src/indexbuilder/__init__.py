"""
Index Builder

Builds indexer projects from a git repository inside containers, relays the
generated project info to an HTTP endpoint and publishes a runtime image.

Main modules:
- io: Source fetching and searching
- engine: Container engine adapter (Docker)
- builder: Pipeline steps and orchestration
- config: Configuration loading and validation
- datacls: Immutable values passed between steps
- api: HTTP API to start and follow pipeline runs
- utils: Logging and helpers

Quick start example:
```python
import asyncio
from indexbuilder import Config, Pipeline

config = Config(overrides={"source": {"repo": "github.com/org/indexer"}})
result = asyncio.run(Pipeline(config.model).run())
print(result.project_info)
```
"""

__version__ = "0.1.0"

from .config import Config, PipelineConfig, PublishTarget
from .builder import Pipeline, run_pipeline
from .datacls import SourceTree, BuildEnvironment, Image, ImageDescription, PipelineResult
from .engine import DockerEngine
from .io import GitSourceFetcher, fetch_source
from .exceptions import (
    IndexBuilderError,
    ConfigurationError,
    PipelineError,
    FetchError,
    BuildError,
    ReadError,
    ReportError,
    ImageBuildError,
    MissingCredentialsError,
    PublishError,
    SourcePathError,
    SearchPatternError,
)

__all__ = [
    '__version__',
    'Config',
    'PipelineConfig',
    'PublishTarget',
    'Pipeline',
    'run_pipeline',
    'SourceTree',
    'BuildEnvironment',
    'Image',
    'ImageDescription',
    'PipelineResult',
    'DockerEngine',
    'GitSourceFetcher',
    'fetch_source',
    'IndexBuilderError',
    'ConfigurationError',
    'PipelineError',
    'FetchError',
    'BuildError',
    'ReadError',
    'ReportError',
    'ImageBuildError',
    'MissingCredentialsError',
    'PublishError',
    'SourcePathError',
    'SearchPatternError',
]

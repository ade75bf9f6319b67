import logging
from importlib import resources
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .. import constants

logger = logging.getLogger(__name__)

# Fixed multi-stage recipe for the indexer runtime image
INDEXER_IMAGE_TEMPLATE = resources.files('indexbuilder').joinpath(
    'resources', 'images', constants.IMAGE_TEMPLATE
).read_text(encoding='utf-8')


class ImageDescription(BaseModel):
    """
        Class represents the recipe used to build an image from a build context.
    """
    model_config = ConfigDict(frozen=True)

    template: str
    context: Path
    filename: str = constants.GENERATED_DOCKERFILE_NAME

    @classmethod
    def indexer(cls, context: Path) -> "ImageDescription":
        return cls(template=INDEXER_IMAGE_TEMPLATE, context=context)

    def materialize(self, directory: Path) -> Path:
        """Write the recipe into `directory` under the generated filename."""
        dockerfile_path = directory / self.filename
        dockerfile_path.write_text(self.template, encoding='utf-8')
        logger.debug(f"Image description written to {dockerfile_path}")
        return dockerfile_path


class Image(BaseModel):
    """
        Class represents an image produced by the container engine.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    tag: str
    context: Path


class PipelineResult(BaseModel):
    """
        Class represents the outcome of a full pipeline run.
    """
    model_config = ConfigDict(frozen=True)

    image: Image
    project_info: str
    published_address: Optional[str] = None

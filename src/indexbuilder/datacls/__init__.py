"""
Index Builder Data Classes

- contexts: SourceTree and BuildEnvironment, the layered values of a run
- artifacts: ImageDescription, Image and PipelineResult
- messages: Request and response models of the HTTP API
"""

from .contexts import SourceTree, BuildEnvironment
from .artifacts import Image, ImageDescription, PipelineResult, INDEXER_IMAGE_TEMPLATE

__all__ = [
    'SourceTree',
    'BuildEnvironment',
    'Image',
    'ImageDescription',
    'PipelineResult',
    'INDEXER_IMAGE_TEMPLATE',
]

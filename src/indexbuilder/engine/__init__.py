"""
Index Builder Engine Module

- DockerEngine: ContainerEngine implementation on top of python-on-whales
"""

from .docker import DockerEngine

__all__ = [
    'DockerEngine',
]

"""Web application services."""

from .processor import PipelineProcessor

__all__ = ["PipelineProcessor"]

"""Content processing providers."""

from notebook_ingest.providers.processing.edge_function_processor import (
    EdgeFunctionContentProcessor,
)
from notebook_ingest.providers.processing.local_processor import LocalContentProcessor

__all__ = ["EdgeFunctionContentProcessor", "LocalContentProcessor"]

"""Notebook metadata generator providers."""

from notebook_ingest.providers.metadata.simple_generator import SimpleMetadataGenerator
from notebook_ingest.providers.metadata.web_service_generator import WebServiceMetadataGenerator

__all__ = ["SimpleMetadataGenerator", "WebServiceMetadataGenerator"]

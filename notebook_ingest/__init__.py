"""notebook-ingest: the source ingestion pipeline of an AI study notebook.

Validates user-submitted sources (files, website links, YouTube links,
pasted text), records them, uploads their bytes, dispatches content
processing, tracks each source's status, and derives notebook metadata
from the first completed source.
"""

__version__ = "0.1.0"

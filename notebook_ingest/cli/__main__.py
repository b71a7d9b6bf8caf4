"""Allow ``python -m notebook_ingest.cli`` execution."""

from notebook_ingest.cli.ingest import main

main()

# =============================================================================
# notebook_ingest/cli/__init__.py -- CLI package
# =============================================================================
#
# Command-line access to the ingestion pipeline:
#     python -m notebook_ingest.cli <subcommand>
#
# See ingest.py for the subcommands.
# =============================================================================

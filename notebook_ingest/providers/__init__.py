"""Concrete implementations of the notebook_ingest interfaces.

    providers/store/       ISourceStore + INotebookStore
    providers/storage/     IBlobStorage
    providers/processing/  IContentProcessor
    providers/metadata/    IMetadataGenerator
"""

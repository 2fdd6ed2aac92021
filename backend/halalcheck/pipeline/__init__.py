from .handoff import build_batch_entries, build_entry
from .store import HttpPipelineStore, InMemoryPipelineStore, PipelineStore, get_pipeline_store

__all__ = [
    "build_batch_entries",
    "build_entry",
    "HttpPipelineStore",
    "InMemoryPipelineStore",
    "PipelineStore",
    "get_pipeline_store",
]

"""Council area profile generation.

This package runs the two fan-out stages of the pipeline: content
generation into transient artifacts, then rendering of one HTML profile
per council area. A consumer (CLI, notebook, test) should normally only
need :class:`ProfilePipeline` or :func:`run_pipeline`; the lower layers
are exported for reuse and testing.
"""

from .artifact_store import ArtifactStore
from .orchestrator import PipelineResult, ProfilePipeline, run_pipeline
from .settings import PipelineSettings
from .stage_runner import RunReport, StageOutcome, gate, run_stage
from .worker_pool import TaskFailure, WorkerContext, WorkerPool

__all__ = [
    "ArtifactStore",
    "PipelineResult",
    "PipelineSettings",
    "ProfilePipeline",
    "RunReport",
    "StageOutcome",
    "TaskFailure",
    "WorkerContext",
    "WorkerPool",
    "gate",
    "run_pipeline",
    "run_stage",
]

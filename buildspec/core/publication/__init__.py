from .models import PlannedArtifact, PublicationPlan
from .planner import resolve_artifact_id, to_publication_plan
from .pom import render_pom

__all__ = [
    "PlannedArtifact",
    "PublicationPlan",
    "render_pom",
    "resolve_artifact_id",
    "to_publication_plan",
]

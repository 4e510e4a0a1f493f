from __future__ import annotations

import logging
from typing import Optional

from buildspec.core.descriptor.models import ModuleDescriptor
from buildspec.core.errors import MalformedDescriptorError, NoPublicationDefinedError

from .models import PlannedArtifact, PublicationPlan

log = logging.getLogger("buildspec.publication")


def resolve_artifact_id(descriptor: ModuleDescriptor, artifact_id: Optional[str] = None) -> str:
    # explicit > publication.artifactId > descriptor name > last group segment
    pub = descriptor.publication
    for candidate in (artifact_id, pub.artifact_id if pub else None, descriptor.name):
        if candidate and candidate.strip():
            return candidate.strip()
    return descriptor.group.rsplit(".", 1)[-1]


def to_publication_plan(
    descriptor: ModuleDescriptor,
    *,
    artifact_id: Optional[str] = None,
) -> PublicationPlan:
    pub = descriptor.publication
    if pub is None:
        raise NoPublicationDefinedError(
            f"{descriptor.group}:{descriptor.version} declares no publication"
        )

    # the published jar is always built from main
    if pub.component != "main":
        raise MalformedDescriptorError(
            "publication.component",
            f"only the main source set is published, got {pub.component!r}",
            stage="plan",
        )
    root = descriptor.source_root("main")
    if root is None:
        raise MalformedDescriptorError(
            "publication.component",
            "references undeclared source set 'main'",
            stage="plan",
        )

    plan = PublicationPlan(
        publication_name=pub.name,
        group=descriptor.group,
        artifact_id=resolve_artifact_id(descriptor, artifact_id),
        version=descriptor.version,
        artifacts=(PlannedArtifact(source_set="main", source_root=root),),
        runtime_dependencies=tuple(str(c) for c in descriptor.dependencies_for("compile")),
        descriptor_hash=descriptor.deterministic_hash(),
    )
    log.debug("publication plan %s id=%s", plan.coordinate, plan.compute_plan_id())
    return plan

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from buildspec.core.descriptor.loader import LoaderConfig, load
from buildspec.core.descriptor.models import ModuleDescriptor
from buildspec.core.errors import BuildSpecError
from buildspec.core.observability.metrics import record_load
from buildspec.core.publication.planner import to_publication_plan

log = logging.getLogger("buildspec.api.descriptors")

router = APIRouter(prefix="/api/v2/descriptors", tags=["descriptors"])


class LoadRequest(BaseModel):
    fragments: List[Dict[str, Any]] = Field(min_length=1)
    strict: bool = False


class PlanRequest(LoadRequest):
    artifact_id: Optional[str] = None


def _load(req: LoadRequest) -> ModuleDescriptor:
    try:
        descriptor = load(req.fragments, config=LoaderConfig(strict_source_sets=req.strict))
    except BuildSpecError:
        record_load(False)
        raise
    record_load(True)
    return descriptor


@router.post("/load")
def load_descriptor(req: LoadRequest):
    descriptor = _load(req)
    return {
        "descriptor_hash": descriptor.deterministic_hash(),
        "descriptor": descriptor.model_dump(mode="json"),
        "source_roots": descriptor.source_roots,
    }


@router.post("/plan")
def plan_publication(req: PlanRequest):
    plan = to_publication_plan(_load(req), artifact_id=req.artifact_id)
    log.debug("planned %s", plan.coordinate)
    return plan.to_dict()

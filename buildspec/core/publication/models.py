from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class PlannedArtifact:
    source_set: str
    source_root: str
    extension: str = "jar"
    classifier: str = ""


@dataclass(frozen=True)
class PublicationPlan:
    publication_name: str
    group: str
    artifact_id: str
    version: str
    artifacts: Tuple[PlannedArtifact, ...] = ()
    runtime_dependencies: Tuple[str, ...] = ()
    descriptor_hash: str = ""

    @property
    def coordinate(self) -> str:
        return f"{self.group}:{self.artifact_id}:{self.version}"

    def file_name(self, artifact: PlannedArtifact) -> str:
        suffix = f"-{artifact.classifier}" if artifact.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{artifact.extension}"

    def repository_path(self) -> str:
        """Relative directory of this coordinate inside a Maven-layout repository."""
        return "/".join(self.group.split(".") + [self.artifact_id, self.version])

    def compute_plan_id(self) -> str:
        payload = {
            "publication_name": self.publication_name,
            "coordinate": self.coordinate,
            "artifacts": [
                {
                    "source_set": a.source_set,
                    "source_root": a.source_root,
                    "extension": a.extension,
                    "classifier": a.classifier,
                }
                for a in self.artifacts
            ],
            "runtime_dependencies": list(self.runtime_dependencies),
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan_id": self.compute_plan_id(),
            "publication": self.publication_name,
            "coordinate": self.coordinate,
            "artifacts": [
                {
                    "file": self.file_name(a),
                    "source_set": a.source_set,
                    "source_root": a.source_root,
                }
                for a in self.artifacts
            ],
            "runtime_dependencies": list(self.runtime_dependencies),
            "descriptor_hash": self.descriptor_hash,
        }

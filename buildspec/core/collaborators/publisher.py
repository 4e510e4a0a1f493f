from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import List

from buildspec.core.errors import PublishError
from buildspec.core.publication.models import PublicationPlan
from buildspec.core.publication.pom import render_pom

from .base import Artifact, PublishResult, Publisher

log = logging.getLogger("buildspec.publisher")


def _write_if_changed(path: Path, data: bytes) -> bool:
    if path.is_file() and path.read_bytes() == data:
        return False
    path.write_bytes(data)
    return True


class LocalRepositoryPublisher(Publisher):
    """Installs a jar and its POM into a Maven-layout directory (e.g. ~/.m2/repository).

    Each file gets a `.sha256` sidecar. Re-publishing identical content
    leaves the files untouched.
    """

    name = "local"

    def publish(self, plan: PublicationPlan, artifact: Artifact, target: Path) -> PublishResult:
        if len(plan.artifacts) != 1:
            raise PublishError(f"{plan.coordinate}: expected one artifact, plan has {len(plan.artifacts)}")

        dest = Path(target) / plan.repository_path()
        jar_name = plan.file_name(plan.artifacts[0])
        pom_name = f"{plan.artifact_id}-{plan.version}.pom"
        written: List[Path] = []

        try:
            jar_bytes = Path(artifact.path).read_bytes()
            if hashlib.sha256(jar_bytes).hexdigest() != artifact.sha256:
                raise PublishError(f"{artifact.path} changed since it was built")

            dest.mkdir(parents=True, exist_ok=True)
            for file_name, data in (
                (jar_name, jar_bytes),
                (pom_name, render_pom(plan).encode("utf-8")),
            ):
                path = dest / file_name
                changed = _write_if_changed(path, data)
                digest = hashlib.sha256(data).hexdigest().encode("ascii")
                _write_if_changed(dest / f"{file_name}.sha256", digest)
                written += [path, dest / f"{file_name}.sha256"]
                log.debug("%s %s", "wrote" if changed else "unchanged", path)
        except OSError as exc:
            raise PublishError(f"cannot install {plan.coordinate} into {target}: {exc}") from exc

        log.info("published %s to %s", plan.coordinate, target)
        return PublishResult(coordinate=plan.coordinate, target=Path(target), files=tuple(written))

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import requests

from buildspec.core.descriptor.models import Coordinate, RepositoryRef
from buildspec.core.errors import DependencyNotFoundError
from buildspec.core.settings import Settings

from .base import DependencyResolver

log = logging.getLogger("buildspec.resolver")


def maven_path(coordinate: Coordinate, extension: str = "jar") -> str:
    parts = coordinate.group.split(".") + [coordinate.artifact, coordinate.version]
    return "/".join(parts + [f"{coordinate.artifact}-{coordinate.version}.{extension}"])


def _store(path: Path, content: bytes) -> None:
    # readers only ever see a complete file; a failed download leaves nothing behind
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _file_url_path(url: str) -> Path:
    if url.startswith("file://"):
        return Path(url[len("file://"):])
    if url.startswith("file:"):
        return Path(url[len("file:"):])
    return Path(url).expanduser()


class MavenLayoutResolver(DependencyResolver):
    """Looks a coordinate up in Maven-layout repositories, in declaration order.

    File repositories (mavenLocal, file: URLs, plain paths) are read in place.
    HTTP repositories are downloaded once into `cache_dir`; offline mode
    only consults the cache.
    """

    name = "maven-layout"

    def __init__(
        self,
        *,
        local_repository: Path,
        cache_dir: Path,
        offline: bool = False,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.local_repository = Path(local_repository)
        self.cache_dir = Path(cache_dir)
        self.offline = offline
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, *, session: Optional[requests.Session] = None) -> "MavenLayoutResolver":
        return cls(
            local_repository=settings.local_repository,
            cache_dir=settings.cache_dir,
            offline=settings.offline,
            timeout=settings.http_timeout,
            session=session,
        )

    def _local_base(self, repo: RepositoryRef) -> Path:
        if repo.name == "mavenLocal" and not repo.url:
            return self.local_repository
        return _file_url_path(repo.url or "")

    def _download(self, repo: RepositoryRef, rel: str) -> Optional[Path]:
        cached = self.cache_dir / repo.name.replace("/", "_").replace(":", "_") / rel
        if cached.is_file():
            return cached
        if self.offline:
            log.debug("offline: skipping %s for %s", repo.name, rel)
            return None

        url = (repo.url or "").rstrip("/") + "/" + rel
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("repository %s unreachable for %s: %s", repo.name, rel, exc)
            return None

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            log.warning("repository %s returned HTTP %s for %s", repo.name, resp.status_code, rel)
            return None

        _store(cached, resp.content)
        log.info("downloaded %s from %s", rel, repo.name)
        return cached

    def resolve(self, coordinate: Coordinate, repositories: Sequence[RepositoryRef]) -> Path:
        rel = maven_path(coordinate)
        searched = []
        for repo in repositories:
            searched.append(repo.name)
            if repo.is_local:
                candidate = self._local_base(repo) / rel
                if candidate.is_file():
                    return candidate
            elif repo.url:
                try:
                    found = self._download(repo, rel)
                except OSError as exc:
                    raise DependencyNotFoundError(
                        str(coordinate), searched, reason=f"cache {self.cache_dir}: {exc}"
                    ) from exc
                if found is not None:
                    return found
            else:
                log.warning("repository %s has no location; skipped", repo.name)
        raise DependencyNotFoundError(str(coordinate), searched)

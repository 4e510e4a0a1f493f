from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, List, Optional

from buildspec.core.collaborators.base import (
    Artifact,
    Compiler,
    DependencyResolver,
    PublishResult,
    Publisher,
    TestReport,
    TestRunner,
)
from buildspec.core.collaborators.javac import JavacCompiler
from buildspec.core.collaborators.junit import JUnitRunner
from buildspec.core.collaborators.publisher import LocalRepositoryPublisher
from buildspec.core.collaborators.resolver import MavenLayoutResolver
from buildspec.core.descriptor.models import ModuleDescriptor
from buildspec.core.errors import BuildSpecError, CompileError, TestFailureError
from buildspec.core.observability.metrics import inc_named, record_stage_failure
from buildspec.core.publication.models import PublicationPlan
from buildspec.core.publication.planner import to_publication_plan
from buildspec.core.settings import Settings

log = logging.getLogger("buildspec.pipeline")

STAGES = ("load", "plan", "resolve", "compile", "test", "publish")


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Attach `name` to any BuildSpecError leaving the block, then re-raise it unchanged."""
    log.debug("stage %s: start", name)
    try:
        yield
    except BuildSpecError as exc:
        exc.stage = name
        record_stage_failure(exc.stage)
        log.error("stage %s failed: %s", exc.stage, exc.message)
        raise
    inc_named(f"stage_ok_{name}")
    log.debug("stage %s: done", name)


@dataclass(frozen=True)
class BuildOutput:
    artifact: Artifact
    classpath: List[Path]


class BuildPipeline:
    """Sequences resolve -> compile -> test -> publish over an already-loaded descriptor.

    Each step is a collaborator call; failures carry the stage they came
    from and are never retried.
    """

    def __init__(
        self,
        *,
        project_dir: Path,
        compiler: Compiler,
        resolver: DependencyResolver,
        test_runner: TestRunner,
        publisher: Publisher,
        local_repository: Path,
    ):
        self.project_dir = Path(project_dir)
        self.compiler = compiler
        self.resolver = resolver
        self.test_runner = test_runner
        self.publisher = publisher
        self.local_repository = Path(local_repository)

    @classmethod
    def from_settings(cls, settings: Settings, *, project_dir: Path) -> "BuildPipeline":
        project_dir = Path(project_dir)
        build_dir = project_dir / settings.build_dir
        if not settings.cache_dir.is_absolute():
            settings = replace(settings, cache_dir=project_dir / settings.cache_dir)
        return cls(
            project_dir=project_dir,
            compiler=JavacCompiler(build_dir),
            resolver=MavenLayoutResolver.from_settings(settings),
            test_runner=JUnitRunner(build_dir),
            publisher=LocalRepositoryPublisher(),
            local_repository=settings.local_repository,
        )

    def _root(self, descriptor: ModuleDescriptor, source_set: str) -> Path:
        rel = descriptor.source_root(source_set)
        if rel is None:
            raise CompileError(f"no {source_set!r} source set declared")
        return self.project_dir / rel

    def build(self, descriptor: ModuleDescriptor) -> BuildOutput:
        with stage("resolve"):
            classpath = self.resolver.resolve_all(
                descriptor.dependencies_for("compile"), descriptor.repositories
            )
        with stage("compile"):
            artifact = self.compiler.compile(self._root(descriptor, "main"), classpath)
        log.info("built %s:%s -> %s", descriptor.group, descriptor.version, artifact.path)
        return BuildOutput(artifact=artifact, classpath=classpath)

    def test(self, descriptor: ModuleDescriptor, *, built: Optional[BuildOutput] = None) -> TestReport:
        built = built or self.build(descriptor)
        with stage("resolve"):
            test_cp = self.resolver.resolve_all(
                descriptor.dependencies_for("test"), descriptor.repositories
            )
        with stage("test"):
            test_root = descriptor.source_root("test")
            if test_root is None:
                log.info("no test source set; nothing to run")
                return TestReport(passed=0, failed=0)
            report = self.test_runner.run(
                self.project_dir / test_root, built.artifact, [*built.classpath, *test_cp]
            )
            if not report.ok:
                raise TestFailureError(
                    f"{report.failed} test(s) failed, {report.passed} passed", report=report
                )
        log.info("tests passed: %d", report.passed)
        return report

    def publish_local(
        self,
        descriptor: ModuleDescriptor,
        *,
        artifact_id: Optional[str] = None,
        built: Optional[BuildOutput] = None,
    ) -> PublishResult:
        with stage("plan"):
            plan: PublicationPlan = to_publication_plan(descriptor, artifact_id=artifact_id)
        built = built or self.build(descriptor)
        with stage("publish"):
            return self.publisher.publish(plan, built.artifact, self.local_repository)

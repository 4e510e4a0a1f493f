from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple

from buildspec.core.descriptor.models import Coordinate, RepositoryRef
from buildspec.core.publication.models import PublicationPlan


@dataclass(frozen=True)
class Artifact:
    path: Path
    sha256: str
    size: int


@dataclass(frozen=True)
class TestReport:
    __test__ = False  # not a pytest test class

    passed: int
    failed: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class PublishResult:
    coordinate: str
    target: Path
    files: Tuple[Path, ...] = field(default_factory=tuple)


class Compiler(ABC):
    name: str

    @abstractmethod
    def compile(self, source_dir: Path, classpath: Sequence[Path]) -> Artifact:
        """Compile `source_dir` against `classpath`. Raises CompileError."""


class DependencyResolver(ABC):
    name: str

    @abstractmethod
    def resolve(self, coordinate: Coordinate, repositories: Sequence[RepositoryRef]) -> Path:
        """Local path of the artifact, searching repositories in order.

        Raises DependencyNotFoundError.
        """

    def resolve_all(
        self,
        coordinates: Sequence[Coordinate],
        repositories: Sequence[RepositoryRef],
    ) -> List[Path]:
        return [self.resolve(c, repositories) for c in coordinates]


class TestRunner(ABC):
    __test__ = False
    name: str

    @abstractmethod
    def run(self, test_dir: Path, main_artifact: Artifact, classpath: Sequence[Path]) -> TestReport:
        """Execute the tests under `test_dir` and report pass/fail counts."""


class Publisher(ABC):
    name: str

    @abstractmethod
    def publish(self, plan: PublicationPlan, artifact: Artifact, target: Path) -> PublishResult:
        """Install `artifact` under `plan`'s coordinate in `target`. Raises PublishError."""

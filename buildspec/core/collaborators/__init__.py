from .base import Artifact, Compiler, DependencyResolver, PublishResult, Publisher, TestReport, TestRunner
from .javac import JavacCompiler
from .junit import JUnitRunner
from .publisher import LocalRepositoryPublisher
from .resolver import MavenLayoutResolver

__all__ = [
    "Artifact",
    "Compiler",
    "DependencyResolver",
    "JUnitRunner",
    "JavacCompiler",
    "LocalRepositoryPublisher",
    "MavenLayoutResolver",
    "PublishResult",
    "Publisher",
    "TestReport",
    "TestRunner",
]

from __future__ import annotations

from typing import Any, Optional


class BuildSpecError(Exception):
    """Base for every failure the build tool reports.

    `stage` names the step that failed (load, plan, resolve, compile, test,
    publish). Collaborators may leave it unset; the pipeline fills it in
    before re-raising.
    """

    default_stage: Optional[str] = None

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "stage": self.stage, "detail": self.message}


class MalformedDescriptorError(BuildSpecError):
    default_stage = "load"

    def __init__(self, field: str, message: str, *, stage: Optional[str] = None):
        super().__init__(f"{field}: {message}", stage=stage)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class DuplicateSourceSetError(BuildSpecError):
    default_stage = "load"

    def __init__(self, name: str, existing: str, incoming: str):
        super().__init__(
            f"source set {name!r} declared with conflicting roots {existing!r} and {incoming!r}"
        )
        self.name = name
        self.existing = existing
        self.incoming = incoming


class NoPublicationDefinedError(BuildSpecError):
    default_stage = "plan"


class DependencyNotFoundError(BuildSpecError):
    default_stage = "resolve"

    def __init__(self, coordinate: str, searched: list[str] | None = None, *, reason: str | None = None):
        searched = list(searched or [])
        where = ", ".join(searched) if searched else "no repositories"
        message = f"{coordinate} not found in {where}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.coordinate = coordinate
        self.searched = searched


class CompileError(BuildSpecError):
    default_stage = "compile"


class TestFailureError(BuildSpecError):
    default_stage = "test"
    __test__ = False  # not a pytest test class

    def __init__(self, message: str, report: Any = None):
        super().__init__(message)
        self.report = report


class PublishError(BuildSpecError):
    default_stage = "publish"

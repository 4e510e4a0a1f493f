from __future__ import annotations

import json
import re
from hashlib import sha256
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


Scope = Literal["compile", "test"]

# Gradle configuration names accepted in place of a scope.
SCOPE_ALIASES: Dict[str, str] = {
    "compile": "compile",
    "implementation": "compile",
    "api": "compile",
    "compileOnly": "compile",
    "runtimeOnly": "compile",
    "test": "test",
    "testImplementation": "test",
    "testCompileOnly": "test",
    "testRuntimeOnly": "test",
}

COMPONENT_ALIASES: Dict[str, str] = {"java": "main"}

WELL_KNOWN_REPOSITORIES: Dict[str, Optional[str]] = {
    "mavenCentral": "https://repo.maven.apache.org/maven2/",
    "mavenLocal": None,  # resolved from Settings.local_repository
    "google": "https://dl.google.com/dl/android/maven2/",
}

GROUP_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*$")


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    group: str = Field(min_length=1)
    artifact: str = Field(min_length=1)
    version: str = Field(min_length=1)

    @classmethod
    def parse(cls, value: Any) -> "Coordinate":
        if isinstance(value, Coordinate):
            return value
        if isinstance(value, str):
            parts = [p.strip() for p in value.split(":")]
            if len(parts) != 3 or not all(parts):
                raise ValueError(f"expected 'group:artifact:version', got {value!r}")
            return cls(group=parts[0], artifact=parts[1], version=parts[2])
        if isinstance(value, dict):
            return cls(
                group=value.get("group") or value.get("groupId") or "",
                artifact=value.get("artifact") or value.get("artifactId") or value.get("name") or "",
                version=value.get("version") or "",
            )
        raise ValueError(f"unsupported coordinate {value!r}")

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"


class Dependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    scope: Scope
    coordinate: Coordinate

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.scope, self.coordinate.group, self.coordinate.artifact)


class RepositoryRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url: Optional[str] = None

    @property
    def is_local(self) -> bool:
        if self.name == "mavenLocal":
            return True
        return bool(self.url) and not self.url.startswith(("http://", "https://"))


class SourceSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    path: str = Field(min_length=1)


class Publication(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = "maven"
    component: str = "main"
    artifact_id: Optional[str] = Field(default=None, alias="artifactId")

    @field_validator("component", mode="before")
    @classmethod
    def _component_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            return COMPONENT_ALIASES.get(v, v)
        return v


class ModuleDescriptor(BaseModel):
    """The merged, validated module declaration for one build invocation."""

    model_config = ConfigDict(frozen=True)

    group: str
    version: str
    name: Optional[str] = None
    repositories: Tuple[RepositoryRef, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    source_sets: Tuple[SourceSet, ...] = ()
    publication: Optional[Publication] = None

    @property
    def source_roots(self) -> Dict[str, str]:
        return {s.name: s.path for s in self.source_sets}

    def source_root(self, name: str) -> Optional[str]:
        for s in self.source_sets:
            if s.name == name:
                return s.path
        return None

    def dependencies_for(self, scope: str) -> List[Coordinate]:
        return [d.coordinate for d in self.dependencies if d.scope == scope]

    def deterministic_hash(self) -> str:
        raw = json.dumps(
            self.model_dump(mode="json"),
            sort_keys=True,
            separators=(",", ":"),
        )
        return sha256(raw.encode()).hexdigest()


class DescriptorFragment(BaseModel):
    """One partial declaration, as read from a file or request body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    group: Optional[str] = None
    version: Optional[str] = None
    name: Optional[str] = None
    repositories: List[RepositoryRef] = Field(default_factory=list)
    dependencies: List[Dependency] = Field(default_factory=list)
    source_roots: Dict[str, str] = Field(default_factory=dict, alias="sourceRoots")
    publication: Optional[Publication] = None

    @field_validator("group", "version", "name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            # YAML reads `version: 1.2` as a float
            return str(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("repositories", mode="before")
    @classmethod
    def _repositories(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("repositories must be a list")
        out = []
        for item in v:
            if isinstance(item, str):
                out.append({"name": item, "url": WELL_KNOWN_REPOSITORIES.get(item)})
            elif isinstance(item, dict):
                name = item.get("name") or item.get("url")
                url = item.get("url", WELL_KNOWN_REPOSITORIES.get(name or ""))
                out.append({"name": name, "url": url})
            else:
                out.append(item)
        return out

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dependencies(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("dependencies must be a list")
        out = []
        for item in v:
            if not isinstance(item, dict):
                out.append(item)
                continue
            raw_scope = item.get("scope") or item.get("configuration") or "compile"
            scope = SCOPE_ALIASES.get(str(raw_scope))
            if scope is None:
                raise ValueError(f"unknown dependency scope {raw_scope!r}")
            coord_raw = item.get("coordinate")
            if coord_raw is None:
                coord_raw = {k: item.get(k) for k in ("group", "artifact", "version")}
            out.append({"scope": scope, "coordinate": Coordinate.parse(coord_raw)})
        return out

    @field_validator("source_roots", mode="before")
    @classmethod
    def _source_roots(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("sourceRoots must be a mapping of source-set name to directory")
        out = {}
        for name, path in v.items():
            if isinstance(path, list):
                # one root per source set
                if len(path) != 1:
                    raise ValueError(f"source set {name!r} must declare exactly one root")
                path = path[0]
            if not isinstance(path, str) or not path.strip():
                raise ValueError(f"source set {name!r} has an empty root")
            out[str(name)] = path.strip()
        return out

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar, Union

from pydantic import ValidationError

from buildspec.core.errors import DuplicateSourceSetError, MalformedDescriptorError
from buildspec.core.settings import Settings

from .models import (
    GROUP_PATTERN,
    DescriptorFragment,
    ModuleDescriptor,
    Publication,
    SourceSet,
)

log = logging.getLogger("buildspec.loader")

T = TypeVar("T")

RawFragment = Union[DescriptorFragment, Dict[str, Any]]


@dataclass(frozen=True)
class LoaderConfig:
    # strict: two fragments mapping one source set to different roots is an error
    strict_source_sets: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "LoaderConfig":
        return cls(strict_source_sets=settings.strict_source_sets)


def _field_path(loc: Sequence[Any]) -> str:
    parts: List[str] = []
    for p in loc:
        if isinstance(p, int) and parts:
            parts[-1] = f"{parts[-1]}[{p}]"
        else:
            parts.append(str(p))
    return ".".join(parts) or "fragment"


def parse_fragment(raw: RawFragment, *, index: int = 0) -> DescriptorFragment:
    if isinstance(raw, DescriptorFragment):
        return raw
    if not isinstance(raw, dict):
        raise MalformedDescriptorError(
            f"fragments[{index}]", f"expected a mapping, got {type(raw).__name__}"
        )
    try:
        return DescriptorFragment.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = f"fragments[{index}].{_field_path(first.get('loc', ()))}"
        raise MalformedDescriptorError(field, first.get("msg", "invalid value")) from exc


def _last_non_empty(values: Iterable[Optional[str]]) -> Optional[str]:
    out: Optional[str] = None
    for v in values:
        if v:
            out = v
    return out


def _dedupe_last_wins(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Keep one entry per key: first occurrence's position, last occurrence's value."""
    merged: Dict[Hashable, T] = {}
    for item in items:
        merged[key(item)] = item
    return list(merged.values())


def _merge_source_roots(fragments: Sequence[DescriptorFragment], *, strict: bool) -> List[SourceSet]:
    roots: Dict[str, str] = {}
    for frag in fragments:
        for name, path in frag.source_roots.items():
            existing = roots.get(name)
            if strict and existing is not None and existing != path:
                raise DuplicateSourceSetError(name, existing, path)
            roots[name] = path
    return [SourceSet(name=n, path=p) for n, p in roots.items()]


def _merge_publication(fragments: Sequence[DescriptorFragment]) -> Optional[Publication]:
    pub: Optional[Publication] = None
    for frag in fragments:
        if frag.publication is not None:
            pub = frag.publication
    return pub


def load(
    fragments: Sequence[RawFragment],
    *,
    config: Optional[LoaderConfig] = None,
) -> ModuleDescriptor:
    """Merge ordered fragments into one validated, immutable descriptor.

    Scalars: last non-empty value wins.
    Repositories / dependencies: concatenated then de-duplicated by key
    (repository name; scope + group + artifact), keeping the last value.
    Source roots: later fragment overwrites the same source-set name
    unless `config.strict_source_sets` is set.

    Raises MalformedDescriptorError / DuplicateSourceSetError. Never returns
    a partial descriptor.
    """
    cfg = config or LoaderConfig()
    parsed = [parse_fragment(raw, index=i) for i, raw in enumerate(fragments)]

    group = _last_non_empty(f.group for f in parsed)
    version = _last_non_empty(f.version for f in parsed)
    name = _last_non_empty(f.name for f in parsed)

    if not group:
        raise MalformedDescriptorError("group", "must be non-empty")
    if not GROUP_PATTERN.match(group):
        raise MalformedDescriptorError("group", f"{group!r} is not a dot-separated identifier")
    if not version:
        raise MalformedDescriptorError("version", "must be non-empty")

    repositories = _dedupe_last_wins(
        (r for f in parsed for r in f.repositories),
        key=lambda r: r.name,
    )
    dependencies = _dedupe_last_wins(
        (d for f in parsed for d in f.dependencies),
        key=lambda d: d.key,
    )
    source_sets = _merge_source_roots(parsed, strict=cfg.strict_source_sets)
    publication = _merge_publication(parsed)

    if publication is not None:
        if publication.component != "main":
            raise MalformedDescriptorError(
                "publication.component",
                f"only the main source set is published, got {publication.component!r}",
            )
        declared = {s.name for s in source_sets}
        if publication.component not in declared:
            raise MalformedDescriptorError(
                "publication.component",
                f"references undeclared source set {publication.component!r}",
            )

    descriptor = ModuleDescriptor(
        group=group,
        version=version,
        name=name,
        repositories=tuple(repositories),
        dependencies=tuple(dependencies),
        source_sets=tuple(source_sets),
        publication=publication,
    )
    log.debug(
        "descriptor loaded group=%s version=%s fragments=%d deps=%d",
        group,
        version,
        len(parsed),
        len(dependencies),
    )
    return descriptor

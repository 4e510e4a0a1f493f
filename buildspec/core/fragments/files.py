from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import yaml

from buildspec.core.descriptor.loader import LoaderConfig, load
from buildspec.core.descriptor.models import ModuleDescriptor
from buildspec.core.errors import MalformedDescriptorError

from .bob import parse_bob_builder
from .gradle_kts import parse_gradle_kts

_log = logging.getLogger("buildspec.fragments")

PathLike = Union[str, Path]


def _parse_mapping(path: Path, raw_text: str) -> Dict[str, Any]:
    # JSON first; YAML otherwise
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise MalformedDescriptorError(str(path), f"not valid JSON or YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedDescriptorError(
            str(path), f"fragment must be a mapping, got {type(data).__name__}"
        )
    return data


def read_fragment_file(path: PathLike) -> Dict[str, Any]:
    p = Path(path)
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedDescriptorError(str(p), f"cannot read fragment: {exc}") from exc

    if p.name.endswith(".gradle.kts") or p.suffix == ".kts":
        fragment = parse_gradle_kts(raw_text)
    elif p.suffix == ".java":
        fragment = parse_bob_builder(raw_text)
    else:
        fragment = _parse_mapping(p, raw_text)

    _log.debug("read fragment %s keys=%s", p, sorted(fragment.keys()))
    return fragment


def load_files(
    paths: Sequence[PathLike],
    *,
    config: Optional[LoaderConfig] = None,
) -> ModuleDescriptor:
    if not paths:
        raise MalformedDescriptorError("fragments", "at least one fragment file is required")
    fragments = [read_fragment_file(p) for p in paths]
    _log.info("loading descriptor from %d fragment(s)", len(fragments))
    return load(fragments, config=config)

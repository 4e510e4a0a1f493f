from __future__ import annotations

import hashlib
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .base import Artifact

# Fixed entry timestamp so identical inputs give byte-identical jars.
ZIP_EPOCH = (1980, 2, 1, 0, 0, 0)

MANIFEST_PATH = "META-INF/MANIFEST.MF"


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def artifact_for(path: Path) -> Artifact:
    return Artifact(path=path, sha256=sha256_file(path), size=path.stat().st_size)


def iter_files(root: Path) -> List[Path]:
    return sorted(
        (p for p in root.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(root).as_posix(),
    )


def render_manifest(attributes: Dict[str, str]) -> str:
    lines = ["Manifest-Version: 1.0"]
    for k in sorted(attributes):
        lines.append(f"{k}: {attributes[k]}")
    return "\r\n".join(lines) + "\r\n\r\n"


def _write_entry(zf: zipfile.ZipFile, name: str, data: bytes) -> None:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, data)


def write_jar(
    jar_path: Path,
    roots: Iterable[Path],
    *,
    manifest: Dict[str, str] | None = None,
    exclude_suffixes: Tuple[str, ...] = (),
) -> Artifact:
    """Reproducible jar of every file under `roots` (later roots win on clashes)."""
    entries: Dict[str, Path] = {}
    for root in roots:
        if not root.exists():
            continue
        for f in iter_files(root):
            rel = f.relative_to(root).as_posix()
            if rel == MANIFEST_PATH or f.suffix in exclude_suffixes:
                continue
            entries[rel] = f

    jar_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(jar_path, "w") as zf:
        _write_entry(zf, MANIFEST_PATH, render_manifest(manifest or {}).encode("utf-8"))
        for rel in sorted(entries):
            _write_entry(zf, rel, entries[rel].read_bytes())

    return artifact_for(jar_path)

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from buildspec.core.errors import CompileError

from .archive import write_jar
from .base import Artifact, Compiler

log = logging.getLogger("buildspec.compiler")


def java_sources(root: Path) -> List[Path]:
    return sorted(p for p in root.rglob("*.java") if p.is_file())


def classpath_arg(entries: Sequence[Path]) -> str:
    return os.pathsep.join(str(p) for p in entries)


def run_javac(
    javac: str,
    sources: Sequence[Path],
    out_dir: Path,
    classpath: Sequence[Path],
    *,
    release: Optional[str] = None,
    stage: str = "compile",
) -> None:
    try:
        if out_dir.exists():
            shutil.rmtree(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CompileError(f"cannot prepare {out_dir}: {exc}", stage=stage) from exc

    cmd = [javac, "-d", str(out_dir), "-encoding", "UTF-8"]
    if release:
        cmd += ["--release", str(release)]
    if classpath:
        cmd += ["-cp", classpath_arg(classpath)]
    cmd += [str(s) for s in sources]

    try:
        r = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise CompileError(f"{javac} not found: {exc}", stage=stage) from exc
    except OSError as exc:
        raise CompileError(f"cannot run {javac}: {exc}", stage=stage) from exc

    if r.returncode != 0:
        detail = (r.stderr or r.stdout or "").strip()
        raise CompileError(
            f"javac failed with exit code {r.returncode}: {detail[-2000:]}",
            stage=stage,
        )


class JavacCompiler(Compiler):
    """javac into build/classes/<set>, then a reproducible jar in build/libs.

    Non-Java files under the source root are packaged as resources.
    """

    name = "javac"

    def __init__(self, build_dir: Path, *, javac: str = "javac", release: Optional[str] = None):
        self.build_dir = Path(build_dir)
        self.javac = javac
        self.release = release

    def compile(self, source_dir: Path, classpath: Sequence[Path]) -> Artifact:
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise CompileError(f"source root {source_dir} does not exist")

        set_name = source_dir.name or "main"
        classes_dir = self.build_dir / "classes" / set_name
        sources = java_sources(source_dir)
        log.info("compiling %d source file(s) from %s", len(sources), source_dir)

        if sources:
            run_javac(self.javac, sources, classes_dir, classpath, release=self.release)

        try:
            classes_dir.mkdir(parents=True, exist_ok=True)
            jar = write_jar(
                self.build_dir / "libs" / f"{set_name}.jar",
                [source_dir, classes_dir],
                manifest={"Created-By": "buildspec"},
                exclude_suffixes=(".java",),
            )
        except OSError as exc:
            raise CompileError(f"cannot write {set_name}.jar: {exc}") from exc
        log.debug("wrote %s sha256=%s", jar.path, jar.sha256)
        return jar

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Sequence

from buildspec.core.errors import TestFailureError

from .base import Artifact, TestReport, TestRunner
from .javac import classpath_arg, java_sources, run_javac

log = logging.getLogger("buildspec.tests")

_OK = re.compile(r"^OK \((\d+) tests?\)", re.MULTILINE)
_FAILURES = re.compile(r"^Tests run: (\d+),\s+Failures: (\d+)", re.MULTILINE)


def parse_junit_output(output: str) -> TestReport:
    m = _OK.search(output)
    if m:
        return TestReport(passed=int(m.group(1)), failed=0, output=output)
    m = _FAILURES.search(output)
    if m:
        run, failed = int(m.group(1)), int(m.group(2))
        return TestReport(passed=run - failed, failed=failed, output=output)
    raise TestFailureError("could not read a JUnit summary from the test output")


def junit_class_names(test_dir: Path, sources: Sequence[Path]) -> List[str]:
    names = []
    for s in sources:
        if not s.stem.endswith("Test"):
            continue
        rel = s.relative_to(test_dir).with_suffix("")
        names.append(".".join(rel.parts))
    return names


class JUnitRunner(TestRunner):
    """Compiles the test source set and runs it through JUnit 4's JUnitCore."""

    name = "junit4"

    def __init__(
        self,
        build_dir: Path,
        *,
        javac: str = "javac",
        java: str = "java",
        main_class: str = "org.junit.runner.JUnitCore",
    ):
        self.build_dir = Path(build_dir)
        self.javac = javac
        self.java = java
        self.main_class = main_class

    def run(self, test_dir: Path, main_artifact: Artifact, classpath: Sequence[Path]) -> TestReport:
        test_dir = Path(test_dir)
        sources = java_sources(test_dir) if test_dir.is_dir() else []
        classes = junit_class_names(test_dir, sources)
        if not classes:
            log.info("no test classes under %s", test_dir)
            return TestReport(passed=0, failed=0, output="")

        out_dir = self.build_dir / "classes" / "test"
        cp = [main_artifact.path, *classpath]
        run_javac(self.javac, sources, out_dir, cp, stage="test")

        cmd = [self.java, "-cp", classpath_arg([out_dir, *cp]), self.main_class, *classes]
        log.info("running %d test class(es)", len(classes))
        try:
            r = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise TestFailureError(f"{self.java} not found: {exc}") from exc
        except OSError as exc:
            raise TestFailureError(f"cannot run {self.java}: {exc}") from exc

        return parse_junit_output((r.stdout or "") + (r.stderr or ""))

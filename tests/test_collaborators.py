import hashlib
import subprocess
import zipfile
from pathlib import Path

import pytest
import requests

from buildspec.core.collaborators import (
    JavacCompiler,
    JUnitRunner,
    LocalRepositoryPublisher,
    MavenLayoutResolver,
)
from buildspec.core.collaborators.archive import MANIFEST_PATH, write_jar
from buildspec.core.collaborators.base import Artifact
from buildspec.core.collaborators.junit import parse_junit_output
from buildspec.core.collaborators.resolver import maven_path
from buildspec.core.descriptor import Coordinate, RepositoryRef, load
from buildspec.core.errors import (
    CompileError,
    DependencyNotFoundError,
    PublishError,
    TestFailureError,
)
from buildspec.core.publication import to_publication_plan

UTILS = Coordinate(group="com.winterwell", artifact="utils", version="1.3.2")


def _source_tree(root: Path) -> Path:
    src = root / "src"
    (src / "com" / "winterwell" / "gson").mkdir(parents=True)
    (src / "com" / "winterwell" / "gson" / "Gson.java").write_text("class Gson {}", encoding="utf-8")
    (src / "com" / "winterwell" / "gson" / "defaults.json").write_text("{}", encoding="utf-8")
    return src


def _fake_javac(calls):
    def run(cmd, capture_output=True, text=True):
        calls.append(cmd)
        out = Path(cmd[cmd.index("-d") + 1])
        (out / "com" / "winterwell" / "gson").mkdir(parents=True, exist_ok=True)
        (out / "com" / "winterwell" / "gson" / "Gson.class").write_bytes(b"\xca\xfe\xba\xbe")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    return run


# ---------------------------------------------------------------------------
# archive
# ---------------------------------------------------------------------------

def test_write_jar_is_reproducible(tmp_path):
    src = _source_tree(tmp_path)
    a = write_jar(tmp_path / "a.jar", [src], exclude_suffixes=(".java",))
    b = write_jar(tmp_path / "b.jar", [src], exclude_suffixes=(".java",))

    assert a.sha256 == b.sha256
    assert a.size == b.size
    with zipfile.ZipFile(a.path) as zf:
        names = zf.namelist()
    assert names[0] == MANIFEST_PATH
    assert "com/winterwell/gson/defaults.json" in names
    assert not any(n.endswith(".java") for n in names)


# ---------------------------------------------------------------------------
# javac
# ---------------------------------------------------------------------------

def test_javac_compiler_packages_classes_and_resources(tmp_path, monkeypatch):
    src = _source_tree(tmp_path)
    calls = []
    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", _fake_javac(calls))

    lib = tmp_path / "utils-1.3.2.jar"
    artifact = JavacCompiler(tmp_path / "build").compile(src, [lib])

    assert artifact.path == tmp_path / "build" / "libs" / "src.jar"
    assert calls[0][0] == "javac"
    assert str(lib) in calls[0]
    with zipfile.ZipFile(artifact.path) as zf:
        names = set(zf.namelist())
    assert {"com/winterwell/gson/Gson.class", "com/winterwell/gson/defaults.json"} <= names
    assert "com/winterwell/gson/Gson.java" not in names


def test_javac_failure_is_compile_error(tmp_path, monkeypatch):
    src = _source_tree(tmp_path)

    def failing(cmd, capture_output=True, text=True):
        return subprocess.CompletedProcess(cmd, 1, "", "Gson.java:1: error: ';' expected")

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", failing)
    with pytest.raises(CompileError) as ei:
        JavacCompiler(tmp_path / "build").compile(src, [])
    assert "exit code 1" in str(ei.value)
    assert ei.value.stage == "compile"


def test_missing_javac_is_compile_error(tmp_path, monkeypatch):
    src = _source_tree(tmp_path)

    def missing(cmd, capture_output=True, text=True):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", missing)
    with pytest.raises(CompileError):
        JavacCompiler(tmp_path / "build").compile(src, [])


def test_unrunnable_javac_is_compile_error(tmp_path, monkeypatch):
    src = _source_tree(tmp_path)

    def denied(cmd, capture_output=True, text=True):
        raise PermissionError(13, "Permission denied", cmd[0])

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", denied)
    with pytest.raises(CompileError) as ei:
        JavacCompiler(tmp_path / "build").compile(src, [])
    assert ei.value.stage == "compile"
    assert "Permission denied" in ei.value.message


def test_unwritable_build_dir_is_compile_error(tmp_path, monkeypatch):
    src = _source_tree(tmp_path)
    build = tmp_path / "build"
    build.write_text("not a directory", encoding="utf-8")

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", _fake_javac([]))
    with pytest.raises(CompileError):
        JavacCompiler(build).compile(src, [])


def test_missing_source_root_is_compile_error(tmp_path):
    with pytest.raises(CompileError):
        JavacCompiler(tmp_path / "build").compile(tmp_path / "nope", [])


# ---------------------------------------------------------------------------
# junit
# ---------------------------------------------------------------------------

def test_parse_junit_output():
    ok = parse_junit_output("JUnit version 4.13.2\n...\nTime: 0.01\n\nOK (3 tests)\n")
    assert (ok.passed, ok.failed, ok.ok) == (3, 0, True)

    bad = parse_junit_output("There was 1 failure:\n...\nFAILURES!!!\nTests run: 4,  Failures: 1\n")
    assert (bad.passed, bad.failed, bad.ok) == (3, 1, False)

    with pytest.raises(TestFailureError):
        parse_junit_output("Exception in thread main")


def test_junit_runner_without_tests(tmp_path):
    main = Artifact(path=tmp_path / "main.jar", sha256="0", size=0)
    report = JUnitRunner(tmp_path / "build").run(tmp_path / "test", main, [])
    assert (report.passed, report.failed) == (0, 0)


def test_junit_runner_runs_test_classes(tmp_path, monkeypatch):
    test_dir = tmp_path / "test" / "com" / "winterwell" / "gson"
    test_dir.mkdir(parents=True)
    (test_dir / "RegexFirstAdapterTest.java").write_text("class RegexFirstAdapterTest {}", encoding="utf-8")
    (test_dir / "Helper.java").write_text("class Helper {}", encoding="utf-8")

    calls = []

    def fake_run(cmd, capture_output=True, text=True):
        calls.append(cmd)
        if cmd[0] == "javac":
            Path(cmd[cmd.index("-d") + 1]).mkdir(parents=True, exist_ok=True)
            return subprocess.CompletedProcess(cmd, 0, "", "")
        return subprocess.CompletedProcess(cmd, 0, "OK (2 tests)\n", "")

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", fake_run)
    monkeypatch.setattr("buildspec.core.collaborators.junit.subprocess.run", fake_run)

    main = Artifact(path=tmp_path / "main.jar", sha256="0", size=0)
    report = JUnitRunner(tmp_path / "build").run(tmp_path / "test", main, [tmp_path / "junit.jar"])

    assert report.passed == 2
    java_cmd = calls[-1]
    assert java_cmd[0] == "java"
    assert "org.junit.runner.JUnitCore" in java_cmd
    assert java_cmd[-1] == "com.winterwell.gson.RegexFirstAdapterTest"


def test_test_compile_failure_is_attributed_to_test_stage(tmp_path, monkeypatch):
    test_dir = tmp_path / "test"
    test_dir.mkdir()
    (test_dir / "GsonTest.java").write_text("broken", encoding="utf-8")

    def failing(cmd, capture_output=True, text=True):
        return subprocess.CompletedProcess(cmd, 1, "", "error")

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", failing)
    main = Artifact(path=tmp_path / "main.jar", sha256="0", size=0)
    with pytest.raises(CompileError) as ei:
        JUnitRunner(tmp_path / "build").run(test_dir, main, [])
    assert ei.value.stage == "test"


def test_unrunnable_java_is_test_failure(tmp_path, monkeypatch):
    test_dir = tmp_path / "test"
    test_dir.mkdir()
    (test_dir / "GsonTest.java").write_text("class GsonTest {}", encoding="utf-8")

    def fake_run(cmd, capture_output=True, text=True):
        if cmd[0] == "javac":
            return subprocess.CompletedProcess(cmd, 0, "", "")
        raise PermissionError(13, "Permission denied", cmd[0])

    monkeypatch.setattr("buildspec.core.collaborators.javac.subprocess.run", fake_run)
    monkeypatch.setattr("buildspec.core.collaborators.junit.subprocess.run", fake_run)
    main = Artifact(path=tmp_path / "main.jar", sha256="0", size=0)
    with pytest.raises(TestFailureError) as ei:
        JUnitRunner(tmp_path / "build").run(test_dir, main, [])
    assert ei.value.stage == "test"
    assert isinstance(ei.value.__cause__, PermissionError)


# ---------------------------------------------------------------------------
# resolver
# ---------------------------------------------------------------------------

class _Resp:
    def __init__(self, status_code, content=b""):
        self.status_code = status_code
        self.content = content


class _FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def _resolver(tmp_path, session, offline=False):
    return MavenLayoutResolver(
        local_repository=tmp_path / "m2",
        cache_dir=tmp_path / "cache",
        offline=offline,
        session=session,
    )


def test_maven_path():
    assert maven_path(UTILS) == "com/winterwell/utils/1.3.2/utils-1.3.2.jar"


def test_resolver_searches_repositories_in_order(tmp_path):
    local = tmp_path / "m2" / maven_path(UTILS)
    local.parent.mkdir(parents=True)
    local.write_bytes(b"jar")

    session = _FakeSession([_Resp(404)])
    repos = load([{"group": "g", "version": "1", "repositories": ["mavenCentral", "mavenLocal"]}]).repositories

    assert _resolver(tmp_path, session).resolve(UTILS, repos) == local
    assert session.urls == ["https://repo.maven.apache.org/maven2/" + maven_path(UTILS)]


def test_resolver_downloads_once_into_cache(tmp_path):
    session = _FakeSession([_Resp(200, b"jar-bytes")])
    repos = [RepositoryRef(name="central", url="https://repo.example/m2/")]
    r = _resolver(tmp_path, session)

    first = r.resolve(UTILS, repos)
    second = r.resolve(UTILS, repos)

    assert first == second
    assert first.read_bytes() == b"jar-bytes"
    assert len(session.urls) == 1


def test_resolver_skips_unreachable_repository(tmp_path):
    session = _FakeSession([requests.ConnectionError("down"), _Resp(200, b"ok")])
    repos = [
        RepositoryRef(name="down", url="https://down.example/m2/"),
        RepositoryRef(name="up", url="https://up.example/m2/"),
    ]
    assert _resolver(tmp_path, session).resolve(UTILS, repos).read_bytes() == b"ok"


def test_offline_resolver_never_calls_the_network(tmp_path):
    session = _FakeSession([])
    repos = [RepositoryRef(name="mavenCentral", url="https://repo.maven.apache.org/maven2/")]
    with pytest.raises(DependencyNotFoundError) as ei:
        _resolver(tmp_path, session, offline=True).resolve(UTILS, repos)
    assert ei.value.searched == ["mavenCentral"]
    assert ei.value.stage == "resolve"
    assert session.urls == []


def test_unusable_cache_dir_is_resolve_error(tmp_path):
    cache = tmp_path / "cache"
    cache.write_text("not a directory", encoding="utf-8")
    session = _FakeSession([_Resp(200, b"jar-bytes")])
    repos = [RepositoryRef(name="central", url="https://repo.example/m2/")]

    with pytest.raises(DependencyNotFoundError) as ei:
        _resolver(tmp_path, session).resolve(UTILS, repos)
    assert ei.value.stage == "resolve"
    assert ei.value.searched == ["central"]
    assert "cache" in ei.value.message
    assert isinstance(ei.value.__cause__, OSError)


def test_failed_cache_write_leaves_no_entry(tmp_path, monkeypatch):
    session = _FakeSession([_Resp(200, b"jar-bytes")])
    repos = [RepositoryRef(name="central", url="https://repo.example/m2/")]

    def interrupted(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("buildspec.core.collaborators.resolver.os.replace", interrupted)
    with pytest.raises(DependencyNotFoundError):
        _resolver(tmp_path, session).resolve(UTILS, repos)
    assert [p for p in (tmp_path / "cache").rglob("*") if p.is_file()] == []


def test_file_url_repository(tmp_path):
    repo_dir = tmp_path / "flat"
    target = repo_dir / maven_path(UTILS)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"jar")
    repos = [RepositoryRef(name="flat", url=f"file://{repo_dir}")]
    assert _resolver(tmp_path, _FakeSession([])).resolve(UTILS, repos) == target


# ---------------------------------------------------------------------------
# publisher
# ---------------------------------------------------------------------------

def test_publisher_installs_jar_pom_and_checksums(tmp_path, fragment):
    artifact = write_jar(tmp_path / "build" / "main.jar", [_source_tree(tmp_path)])
    plan = to_publication_plan(load([fragment]), artifact_id="flexi-gson")
    repo = tmp_path / "m2"

    result = LocalRepositoryPublisher().publish(plan, artifact, repo)

    dest = repo / "com" / "winterwell" / "flexi-gson" / "1.2.2"
    jar = dest / "flexi-gson-1.2.2.jar"
    pom = dest / "flexi-gson-1.2.2.pom"
    assert result.coordinate == "com.winterwell:flexi-gson:1.2.2"
    assert jar in result.files and pom in result.files
    assert jar.read_bytes() == artifact.path.read_bytes()
    assert "<artifactId>utils</artifactId>" in pom.read_text(encoding="utf-8")
    assert (dest / "flexi-gson-1.2.2.jar.sha256").read_text() == artifact.sha256


def test_republishing_is_idempotent(tmp_path, fragment):
    artifact = write_jar(tmp_path / "build" / "main.jar", [_source_tree(tmp_path)])
    plan = to_publication_plan(load([fragment]), artifact_id="flexi-gson")
    repo = tmp_path / "m2"

    first = LocalRepositoryPublisher().publish(plan, artifact, repo)
    before = {p: (p.read_bytes(), p.stat().st_mtime_ns) for p in first.files}
    second = LocalRepositoryPublisher().publish(plan, artifact, repo)
    after = {p: (p.read_bytes(), p.stat().st_mtime_ns) for p in second.files}

    assert before == after


def test_publisher_rejects_modified_artifact(tmp_path, fragment):
    jar = tmp_path / "main.jar"
    jar.write_bytes(b"changed")
    stale = Artifact(path=jar, sha256=hashlib.sha256(b"original").hexdigest(), size=8)
    plan = to_publication_plan(load([fragment]))
    with pytest.raises(PublishError) as ei:
        LocalRepositoryPublisher().publish(plan, stale, tmp_path / "m2")
    assert ei.value.stage == "publish"

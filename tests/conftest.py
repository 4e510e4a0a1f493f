import copy
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from buildspec.api.main import app
from buildspec.core.observability.metrics import reset_metrics

FIXTURES = Path(__file__).resolve().parent / "fixtures"

EXAMPLE_FRAGMENT = {
    "group": "com.winterwell",
    "version": "1.2.2",
    "repositories": ["mavenCentral", "mavenLocal"],
    "dependencies": [
        {"scope": "compile", "coordinate": "com.winterwell:utils:1.3.2"},
        {"scope": "test", "coordinate": "junit:junit:4.13.2"},
    ],
    "sourceRoots": {"main": "src", "test": "test"},
    "publication": {"name": "maven", "component": "main"},
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in (
        "BUILDSPEC_LOCAL_REPO",
        "BUILDSPEC_CACHE_DIR",
        "BUILDSPEC_BUILD_DIR",
        "BUILDSPEC_STRICT_SOURCE_SETS",
        "BUILDSPEC_OFFLINE",
        "BUILDSPEC_LOG_LEVEL",
        "BUILDSPEC_HTTP_TIMEOUT",
        "BUILDSPEC_HOST",
        "BUILDSPEC_PORT",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_metrics()


@pytest.fixture()
def fragment():
    return copy.deepcopy(EXAMPLE_FRAGMENT)


@pytest.fixture()
def gradle_script() -> Path:
    return FIXTURES / "build.gradle.kts"


@pytest.fixture()
def bob_script() -> Path:
    return FIXTURES / "BuildFlexiGson2.java"


@pytest.fixture()
def client():
    return TestClient(app)

"""
Reader for the declarative subset of a Gradle Kotlin DSL build script.

Only the statements that describe module metadata are understood:

    group = "com.winterwell"
    version = "1.2.2"
    repositories { mavenCentral(); mavenLocal(); maven("https://...") }
    dependencies { implementation("com.winterwell", "utils", "1.3.2") }
    java.sourceSets["main"].java { srcDir("src") }
    publishing { publications { create<MavenPublication>("maven") { from(components["java"]) } } }

Plugins, tasks and anything else are ignored. The result is a raw fragment
dict accepted by `buildspec.core.descriptor.load`.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from buildspec.core.errors import MalformedDescriptorError

_ASSIGN = re.compile(r'^\s*(rootProject\.name|group|version|name)\s*=\s*"([^"]*)"', re.MULTILINE)
_CALL = re.compile(r"\b([A-Za-z_]\w*)\s*\(([^()]*)\)")
_ARG = re.compile(r'(?:(\w+)\s*=\s*)?"([^"]*)"')
_SOURCE_SET = re.compile(
    r'sourceSets\s*(?:\[\s*"(?P<a>\w+)"\s*\]|\.getByName\(\s*"(?P<b>\w+)"\s*\)|\.(?P<c>\w+))'
    r"\s*(?:\.java)?\s*\{"
)
_SRC_DIR = re.compile(r'srcDirs?\(\s*"([^"]+)"')
_PUBLICATION = re.compile(r'create\s*<\s*MavenPublication\s*>\s*\(\s*"([^"]+)"\s*\)\s*\{')
_COMPONENT = re.compile(r'from\(\s*components\s*\[\s*"(\w+)"\s*\]\s*\)')
_ARTIFACT_ID = re.compile(r'artifactId\s*=\s*"([^"]+)"')
_MAVEN_URL = re.compile(r'url\s*=\s*uri\(\s*"([^"]+)"\s*\)|url\s*=\s*"([^"]+)"')

_SIMPLE_REPOSITORIES = ("mavenCentral", "mavenLocal", "google", "gradlePluginPortal")
_DEPENDENCY_CONFIGURATIONS = (
    "implementation",
    "api",
    "compileOnly",
    "runtimeOnly",
    "testImplementation",
    "testCompileOnly",
    "testRuntimeOnly",
)


def strip_comments(text: str) -> str:
    out: List[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _block_after(text: str, open_brace: int) -> str:
    """Body of the `{...}` block whose opening brace sits at `open_brace`."""
    depth = 0
    for i in range(open_brace, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[open_brace + 1 : i]
    raise MalformedDescriptorError("build.gradle.kts", "unbalanced braces")


def _depths(text: str) -> List[int]:
    """Brace depth in effect at each character of `text`."""
    out: List[int] = []
    depth = 0
    for ch in text:
        if ch == "}":
            depth = max(depth - 1, 0)
        out.append(depth)
        if ch == "{":
            depth += 1
    return out


def _top_level(text: str) -> str:
    """Text outside of any `{}` block, so nested assignments are not read as module fields."""
    return "".join(
        ch for ch, depth in zip(text, _depths(text)) if depth == 0 and ch not in "{}"
    )


def _named_block(text: str, keyword: str) -> Optional[str]:
    # top-level only: buildscript { repositories {...} } describes the build, not the module
    depths = _depths(text)
    bodies = [
        _block_after(text, m.end() - 1)
        for m in re.finditer(r"\b" + re.escape(keyword) + r"\s*\{", text)
        if depths[m.start()] == 0
    ]
    if not bodies:
        return None
    return "\n".join(bodies)


def _parse_repositories(body: str) -> List[Any]:
    repos: List[Any] = []
    for m in re.finditer(r"\b(\w+)\s*(\(|\{)", body):
        name = m.group(1)
        if name in _SIMPLE_REPOSITORIES:
            repos.append(name)
        elif name == "maven":
            if m.group(2) == "(":
                arg = _ARG.search(body, m.end())
                if arg:
                    repos.append({"name": arg.group(2), "url": arg.group(2)})
            else:
                url = _MAVEN_URL.search(_block_after(body, m.end() - 1))
                if url:
                    value = url.group(1) or url.group(2)
                    repos.append({"name": value, "url": value})
    return repos


def _parse_dependencies(body: str) -> List[Dict[str, Any]]:
    deps: List[Dict[str, Any]] = []
    for m in _CALL.finditer(body):
        configuration, args = m.group(1), m.group(2)
        if configuration not in _DEPENDENCY_CONFIGURATIONS:
            continue
        values = _ARG.findall(args)
        if len(values) == 1:
            coordinate: Any = values[0][1]
        elif len(values) == 3:
            named = {k: v for k, v in values if k}
            if named:
                coordinate = {
                    "group": named.get("group"),
                    "artifact": named.get("name"),
                    "version": named.get("version"),
                }
            else:
                coordinate = ":".join(v for _, v in values)
        else:
            raise MalformedDescriptorError(
                "dependencies", f"cannot read {configuration}({args.strip()})"
            )
        deps.append({"scope": configuration, "coordinate": coordinate})
    return deps


def _parse_source_roots(text: str) -> Dict[str, str]:
    roots: Dict[str, str] = {}
    for m in _SOURCE_SET.finditer(text):
        name = m.group("a") or m.group("b") or m.group("c")
        body = _block_after(text, m.end() - 1)
        src = _SRC_DIR.search(body)
        if src:
            roots[name] = src.group(1)
    return roots


def _parse_publication(text: str) -> Optional[Dict[str, Any]]:
    pub: Optional[Dict[str, Any]] = None
    for m in _PUBLICATION.finditer(text):
        body = _block_after(text, m.end() - 1)
        pub = {"name": m.group(1)}
        comp = _COMPONENT.search(body)
        if comp:
            pub["component"] = comp.group(1)
        aid = _ARTIFACT_ID.search(body)
        if aid:
            pub["artifactId"] = aid.group(1)
    return pub


def parse_gradle_kts(text: str) -> Dict[str, Any]:
    src = strip_comments(text)
    fragment: Dict[str, Any] = {}

    for key, value in _ASSIGN.findall(_top_level(src)):
        fragment["name" if key in ("rootProject.name", "name") else key] = value

    repos = _named_block(src, "repositories")
    if repos is not None:
        fragment["repositories"] = _parse_repositories(repos)

    deps = _named_block(src, "dependencies")
    if deps is not None:
        fragment["dependencies"] = _parse_dependencies(deps)

    roots = _parse_source_roots(src)
    if roots:
        fragment["sourceRoots"] = roots

    pub = _parse_publication(src)
    if pub is not None:
        fragment["publication"] = pub

    return fragment

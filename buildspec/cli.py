from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from buildspec import __version__
from buildspec.core.descriptor.loader import LoaderConfig
from buildspec.core.descriptor.models import ModuleDescriptor
from buildspec.core.errors import BuildSpecError
from buildspec.core.fragments.files import load_files
from buildspec.core.observability.metrics import record_load
from buildspec.core.pipeline.runner import BuildPipeline, stage
from buildspec.core.publication.planner import to_publication_plan
from buildspec.core.settings import Settings

log = logging.getLogger("buildspec.cli")

COMMANDS = ("validate", "plan", "build", "test", "publishLocal")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="buildspec",
        description="Load module descriptor fragments, then build, test or publish the module.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("command", choices=COMMANDS)
    ap.add_argument("fragments", nargs="+", help="Fragment files, merged in order (yaml, json, build.gradle.kts)")
    ap.add_argument("--project-dir", default=None, help="Root for source directories (default: first fragment's directory)")
    ap.add_argument("--artifact-id", default=None, help="Artifact id for the published coordinate")
    ap.add_argument("--strict", action="store_true", help="Reject fragments that remap a source set")
    ap.add_argument("--local-repo", default=None, help="Install target (default ~/.m2/repository)")
    ap.add_argument("--offline", action="store_true", help="Never contact remote repositories")
    ap.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING (default BUILDSPEC_LOG_LEVEL or INFO)")
    return ap


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.strict:
        settings = replace(settings, strict_source_sets=True)
    if args.offline:
        settings = replace(settings, offline=True)
    if args.local_repo:
        settings = replace(settings, local_repository=Path(args.local_repo).expanduser())
    if args.log_level:
        settings = replace(settings, log_level=args.log_level.upper())
    return settings


def _load(args: argparse.Namespace, settings: Settings) -> ModuleDescriptor:
    with stage("load"):
        try:
            descriptor = load_files(args.fragments, config=LoaderConfig.from_settings(settings))
        except BuildSpecError:
            record_load(False)
            raise
    record_load(True)
    return descriptor


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _settings_from_args(args)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    project_dir = Path(args.project_dir) if args.project_dir else Path(args.fragments[0]).resolve().parent

    try:
        descriptor = _load(args, settings)

        if args.command == "validate":
            out = descriptor.model_dump(mode="json")
            out["descriptor_hash"] = descriptor.deterministic_hash()
            print(json.dumps(out, indent=2, sort_keys=True))
            return 0

        if args.command == "plan":
            with stage("plan"):
                plan = to_publication_plan(descriptor, artifact_id=args.artifact_id)
            print(json.dumps(plan.to_dict(), indent=2, sort_keys=True))
            return 0

        pipeline = BuildPipeline.from_settings(settings, project_dir=project_dir)

        if args.command == "build":
            built = pipeline.build(descriptor)
            print(f"OK: built {built.artifact.path}")
        elif args.command == "test":
            report = pipeline.test(descriptor)
            print(f"OK: {report.passed} test(s) passed")
        else:
            result = pipeline.publish_local(descriptor, artifact_id=args.artifact_id)
            print(f"OK: published {result.coordinate} to {result.target}")
        return 0

    except BuildSpecError as exc:
        print(f"error[{exc.stage or 'unknown'}]: {exc.message}", file=sys.stderr)
        return 1


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()

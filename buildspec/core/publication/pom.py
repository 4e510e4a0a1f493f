from __future__ import annotations

import xml.etree.ElementTree as ET

from buildspec.core.descriptor.models import Coordinate

from .models import PublicationPlan

POM_NS = "http://maven.apache.org/POM/4.0.0"
POM_SCHEMA = "http://maven.apache.org/xsd/maven-4.0.0.xsd"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"


def _text(parent: ET.Element, tag: str, value: str) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = value
    return el


def render_pom(plan: PublicationPlan) -> str:
    """Minimal POM for a published plan. Compile deps are written with runtime scope."""
    project = ET.Element(
        "project",
        {
            "xmlns": POM_NS,
            "xmlns:xsi": XSI_NS,
            "xsi:schemaLocation": f"{POM_NS} {POM_SCHEMA}",
        },
    )
    _text(project, "modelVersion", "4.0.0")
    _text(project, "groupId", plan.group)
    _text(project, "artifactId", plan.artifact_id)
    _text(project, "version", plan.version)

    if plan.runtime_dependencies:
        deps = ET.SubElement(project, "dependencies")
        for raw in plan.runtime_dependencies:
            c = Coordinate.parse(raw)
            dep = ET.SubElement(deps, "dependency")
            _text(dep, "groupId", c.group)
            _text(dep, "artifactId", c.artifact)
            _text(dep, "version", c.version)
            _text(dep, "scope", "runtime")

    ET.indent(project, space="  ")
    body = ET.tostring(project, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"

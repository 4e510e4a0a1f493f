"""
Reader for Bob build scripts (`BuildWinterwellProject` subclasses).

A Bob builder carries the project name and version in its constructor:

    super("flexi-gson");
    setVersion("1.2.0");

Those two values become a fragment. Group, repositories and dependencies
are not declared in a Bob script and must come from another fragment.
"""
from __future__ import annotations

import re
from typing import Any, Dict

_SUPER = re.compile(r'\bsuper\s*\(\s*"([^"]+)"')
_SET_VERSION = re.compile(r'\bsetVersion\s*\(\s*"([^"]+)"')
_SET_GROUP = re.compile(r'\bsetGroup\s*\(\s*"([^"]+)"')


def parse_bob_builder(text: str) -> Dict[str, Any]:
    fragment: Dict[str, Any] = {}
    m = _SUPER.search(text)
    if m:
        fragment["name"] = m.group(1)
    m = _SET_VERSION.search(text)
    if m:
        fragment["version"] = m.group(1)
    m = _SET_GROUP.search(text)
    if m:
        fragment["group"] = m.group(1)
    return fragment

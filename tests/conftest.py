"""Pytest fixtures for json-schema-bundler tests.

Schema trees are written under tmp_path; nothing touches the network
(URL refs go through httpx.MockTransport).
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    d = tmp_path / "schemas"
    d.mkdir()
    return d


@pytest.fixture
def write_schema(schema_dir: Path) -> Callable[[str, Any], Path]:
    """
    Write a document below schema_dir.

    Returns:
        Function (relative_name, document) -> path; YAML for .yaml/.yml names, JSON otherwise
    """

    def _write(name: str, doc: Any) -> Path:
        path = schema_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix in (".yaml", ".yml"):
            path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
        else:
            path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        return path

    return _write


def _collect_refs(node: Any) -> list[str]:
    refs: list[str] = []
    if isinstance(node, dict):
        if isinstance(node.get("$ref"), str):
            refs.append(node["$ref"])
        for v in node.values():
            refs.extend(_collect_refs(v))
    elif isinstance(node, list):
        for v in node:
            refs.extend(_collect_refs(v))
    return refs


@pytest.fixture
def collect_refs() -> Callable[[Any], list[str]]:
    """Every $ref string in a document, depth-first."""
    return _collect_refs

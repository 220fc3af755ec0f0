"""
Bundle a multi-file JSON Schema into a single self-contained document.

The entrypoint is crawled and every $ref is resolved relative to the document
that contains it:

  { "$ref": "../common/address.yaml#/$defs/Street" }
  { "$ref": "https://example.com/schemas/money.json" }

In the default "bundle" mode every external target is hoisted once into the
root's definitions area (`$defs` if the root already uses it, `definitions`
otherwise) and each usage is rewritten to an internal pointer:

  { "$ref": "#/definitions/address_Street" }

This keeps re-use across the schema and terminates reference cycles naturally.

In "inline" mode each external usage is replaced by a copy of its target. A
chain of external refs that cycles back on itself cannot be inlined, so the
target of the cycle is hoisted instead (or an error is raised with
on_cycle="error").

Refs that point into the root document are kept as they are, after checking
that they resolve. Internal refs written inside another file point into that
file and are handled like any other external ref.
"""

import hashlib
import logging
import re
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlparse

import httpx

from json_schema_bundler.errors import BundleError
from json_schema_bundler.loader import DEFAULT_HTTP_TIMEOUT, DocumentLoader, is_http_location, resolve_location
from json_schema_bundler.pointers import Json, encode_pointer_token, pointer_tokens, resolve_fragment, split_ref

logger = logging.getLogger(__name__)

BUNDLE_MODES = ("bundle", "inline")
CYCLE_POLICIES = ("keep", "error")
# Each $ref hop costs several Python frames; keep well inside the default
# interpreter recursion limit (1000).
DEFAULT_MAX_DEPTH = 64

_DEFS_KEYS = ("$defs", "definitions")

# Keywords that make a subschema its own resource. Kept on a copied external
# target they would re-base the rewritten "#/..." pointers inside it.
_RESOURCE_KEYWORDS = ("$id", "$schema", "$anchor")
# Instance data, not schemas.
_DATA_KEYWORDS = ("enum", "const", "default", "examples")
# Keywords that can sit next to an inlined target without changing what it accepts.
_ANNOTATION_KEYWORDS = {"title", "description", "$comment", "deprecated", "readOnly", "writeOnly", "examples", "default"}


def _detach_resource(node: Json) -> Json:
    """Copy of an external target without $id/$schema/$anchor identity keywords."""
    if isinstance(node, dict):
        return {
            k: (deepcopy(v) if k in _DATA_KEYWORDS else _detach_resource(v))
            for k, v in node.items()
            if not (k in _RESOURCE_KEYWORDS and isinstance(v, str))
        }
    if isinstance(node, list):
        return [_detach_resource(v) for v in node]
    return node


def _combine_with_siblings(resolved: Json, siblings: dict[str, Any]) -> Json:
    """
    Attach the sibling keys of an inlined $ref to its target.

    Pure annotations are merged into an object target when no key collides;
    anything else keeps the target intact under allOf so both constrain the
    instance, e.g. { "allOf": [<target>], "required": ["b"] }.
    """
    if (
        isinstance(resolved, dict)
        and "$ref" not in resolved
        and set(siblings) <= _ANNOTATION_KEYWORDS
        and not set(siblings) & set(resolved)
    ):
        return {**resolved, **siblings}
    out: dict[str, Any] = {"allOf": [resolved]}
    for k, v in siblings.items():
        if k == "allOf" and isinstance(v, list):
            out["allOf"].extend(v)
        else:
            out[k] = v
    return out


def _sanitize_definition_name(name: str) -> str:
    name = re.sub(r"[^A-Za-z0-9_]+", "_", name)
    name = re.sub(r"_+", "_", name).strip("_")
    return name or "Ref"


def _make_definition_base_name(location: str, pointer: str) -> str:
    if is_http_location(location):
        stem = Path(urlparse(location).path).stem or urlparse(location).netloc
    else:
        stem = Path(location).stem
    # "$defs"/"definitions" segments carry no meaning in a name.
    tokens = [t for t in pointer_tokens(pointer) if t != "" and t not in _DEFS_KEYS]
    tokens = tokens[:8]
    return _sanitize_definition_name("_".join([stem, *tokens]))


@dataclass(frozen=True)
class RefKey:
    location: str
    pointer: str


class SchemaBundler:
    def __init__(
        self,
        *,
        mode: str = "bundle",
        on_cycle: str = "keep",
        max_depth: int = DEFAULT_MAX_DEPTH,
        defs_key: Optional[str] = None,
        loader: Optional[DocumentLoader] = None,
    ) -> None:
        if mode not in BUNDLE_MODES:
            raise ValueError(f"Unknown bundle mode {mode!r}; expected one of {', '.join(BUNDLE_MODES)}.")
        if on_cycle not in CYCLE_POLICIES:
            raise ValueError(f"Unknown cycle policy {on_cycle!r}; expected one of {', '.join(CYCLE_POLICIES)}.")
        self.mode = mode
        self.on_cycle = on_cycle
        self.max_depth = max_depth
        self.defs_key = defs_key
        self.loader = loader or DocumentLoader()
        self._reset()

    def _reset(self) -> None:
        self._root_location: Optional[str] = None
        self._active_defs_key: str = self.defs_key or "definitions"
        # RefKey -> definition name
        self._ref_map: dict[RefKey, str] = {}
        self._in_progress: set[RefKey] = set()
        self._hoisted: dict[str, Json] = {}
        self._reserved_names: set[str] = set()
        self._cycle_warnings_emitted: set[RefKey] = set()

    def _pick_defs_key(self, doc: Json) -> str:
        if self.defs_key:
            return self.defs_key
        if isinstance(doc, dict) and "$defs" in doc:
            return "$defs"
        return "definitions"

    def bundle(self, entrypoint: Union[str, Path]) -> Json:
        self._reset()
        root_location = resolve_location(None, str(entrypoint))
        self._root_location = root_location
        doc = self.loader.load(root_location)

        self._active_defs_key = self._pick_defs_key(doc)
        if isinstance(doc, dict) and isinstance(doc.get(self._active_defs_key), dict):
            self._reserved_names.update(doc[self._active_defs_key].keys())

        try:
            out = self._bundle_node(deepcopy(doc), base=root_location, stack=[], depth=0)
        except RecursionError as e:
            raise BundleError(
                f"Schema {root_location} is nested too deeply to bundle (lower --max-depth or flatten the $ref chain)."
            ) from e
        if not self._hoisted:
            return out

        if not isinstance(out, dict):
            raise BundleError(
                f"Root document {root_location} is not an object; cannot hoist external definitions into it."
            )
        defs = out.get(self._active_defs_key)
        if defs is None:
            defs = {}
            out[self._active_defs_key] = defs
        if not isinstance(defs, dict):
            raise BundleError(
                f"Top-level {self._active_defs_key!r} exists but is not an object; cannot bundle definitions."
            )
        for name, val in self._hoisted.items():
            if name in defs and defs[name] != val:
                raise BundleError(f"Bundled definition {name!r} conflicts with an existing definition.")
            defs[name] = val
        logger.debug("hoisted %d definition(s) into %s", len(self._hoisted), self._active_defs_key)
        return out

    def _internal_ref_for(self, name: str) -> str:
        return f"#/{encode_pointer_token(self._active_defs_key)}/{encode_pointer_token(name)}"

    def _resolve_target(self, key: RefKey, ref_value: str, *, base: str) -> Json:
        loaded = self.loader.load(key.location)
        try:
            return resolve_fragment(loaded, key.pointer, context=f"$ref '{ref_value}' from {base}")
        except (KeyError, ValueError) as e:
            raise BundleError(f"Failed to resolve $ref '{ref_value}' from {base}: {e}") from e

    def _unique_name(self, key: RefKey) -> str:
        base_name = _make_definition_base_name(key.location, key.pointer)
        taken = self._reserved_names | set(self._ref_map.values())
        if base_name not in taken:
            return base_name
        # Prefer readable names, fall back to a stable hash of the target identity.
        h = hashlib.sha1(f"{key.location}#{key.pointer}".encode("utf-8")).hexdigest()[:10]
        name = f"{base_name}__{h}"
        n = 2
        while name in taken:
            name = f"{base_name}__{h}__{n}"
            n += 1
        return name

    def _check_depth(self, ref_value: str, *, base: str, depth: int) -> None:
        if depth > self.max_depth:
            raise BundleError(f"Max depth exceeded ({self.max_depth}) while resolving $ref '{ref_value}' from {base}.")

    def _hoist(self, key: RefKey, ref_value: str, *, base: str, depth: int) -> str:
        if key in self._ref_map:
            if key in self._in_progress and self.on_cycle == "error":
                raise BundleError(f"Cycle detected while resolving $ref '{ref_value}' from {base}.")
            return self._internal_ref_for(self._ref_map[key])

        self._check_depth(ref_value, base=base, depth=depth)
        target = self._resolve_target(key, ref_value, base=base)

        name = self._unique_name(key)
        self._ref_map[key] = name
        self._in_progress.add(key)
        logger.debug("hoisting %s#%s as %s", key.location, key.pointer, name)

        # Reserve the slot so definitions keep the order they were first referenced in.
        self._hoisted[name] = None
        self._hoisted[name] = self._bundle_node(_detach_resource(target), base=key.location, stack=[key], depth=depth + 1)
        self._in_progress.remove(key)
        return self._internal_ref_for(name)

    def _inline(self, key: RefKey, ref_value: str, *, base: str, stack: list[RefKey], depth: int) -> Json:
        if key in stack:
            msg = f"Cycle detected while resolving $ref '{ref_value}' from {base}."
            if self.on_cycle == "error":
                raise BundleError(msg)
            if key not in self._cycle_warnings_emitted:
                self._cycle_warnings_emitted.add(key)
                logger.warning("%s Hoisting the target into %s.", msg, self._active_defs_key)
            return {"$ref": self._hoist(key, ref_value, base=base, depth=depth)}

        self._check_depth(ref_value, base=base, depth=depth)
        target = self._resolve_target(key, ref_value, base=base)
        # _detach_resource copies: the cached document must not be mutated across expansions.
        return self._bundle_node(_detach_resource(target), base=key.location, stack=stack + [key], depth=depth + 1)

    def _bundle_ref(self, node: dict[str, Any], *, base: str, stack: list[RefKey], depth: int) -> Json:
        ref_value: str = node["$ref"]
        location_part, frag = split_ref(ref_value)
        location = base if location_part == "" else resolve_location(base, location_part)
        key = RefKey(location, frag)

        if location == self._root_location:
            self._resolve_target(key, ref_value, base=base)
            new_ref = "#" + frag
        elif self.mode == "inline":
            resolved = self._inline(key, ref_value, base=base, stack=stack, depth=depth)
            siblings = {k: v for k, v in node.items() if k != "$ref"}
            if not siblings:
                return resolved
            # Siblings resolve against the containing document, not the referenced one.
            siblings_bundled = self._bundle_node(siblings, base=base, stack=stack, depth=depth)
            return _combine_with_siblings(resolved, siblings_bundled)
        else:
            new_ref = self._hoist(key, ref_value, base=base, depth=depth)

        out: dict[str, Any] = {}
        for k, v in node.items():
            if k == "$ref":
                out[k] = new_ref
            else:
                out[k] = self._bundle_node(v, base=base, stack=stack, depth=depth)
        return out

    def _bundle_node(self, node: Json, *, base: str, stack: list[RefKey], depth: int) -> Json:
        if isinstance(node, dict):
            if isinstance(node.get("$ref"), str):
                return self._bundle_ref(node, base=base, stack=stack, depth=depth)
            return {k: self._bundle_node(v, base=base, stack=stack, depth=depth) for k, v in node.items()}

        if isinstance(node, list):
            return [self._bundle_node(v, base=base, stack=stack, depth=depth) for v in node]

        return node


def bundle_schema(
    entrypoint: Union[str, Path],
    *,
    mode: str = "bundle",
    on_cycle: str = "keep",
    max_depth: int = DEFAULT_MAX_DEPTH,
    defs_key: Optional[str] = None,
    http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> Json:
    """
    Resolve every $ref reachable from entrypoint into one self-contained document.

    Raises BundleError when a document cannot be loaded or a reference cannot
    be resolved.
    """
    with DocumentLoader(http_timeout=http_timeout, client=client) as loader:
        bundler = SchemaBundler(
            mode=mode,
            on_cycle=on_cycle,
            max_depth=max_depth,
            defs_key=defs_key,
            loader=loader,
        )
        return bundler.bundle(entrypoint)

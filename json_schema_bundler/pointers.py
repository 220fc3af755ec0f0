"""
$ref and JSON Pointer (RFC 6901) helpers.
"""

from typing import Any, Optional, Union


Json = Union[dict[str, Any], list[Any], str, int, float, bool, None]


def looks_like_url(ref: str) -> bool:
    return "://" in ref


def split_ref(ref: str) -> tuple[str, str]:
    """
    Split a $ref into (location_part, fragment_part_without_hash).
    Examples:
      "foo.json#/a/b" -> ("foo.json", "/a/b")
      "foo.json"      -> ("foo.json", "")
      "#/a/b"         -> ("", "/a/b")
      "#"             -> ("", "")
    """
    if "#" not in ref:
        return ref, ""
    location, frag = ref.split("#", 1)
    return location, frag


def decode_pointer_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def encode_pointer_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def pointer_tokens(pointer: str) -> list[str]:
    if pointer in ("", None):
        return []
    return [decode_pointer_token(t) for t in pointer.lstrip("/").split("/")]


def json_pointer_get(doc: Json, pointer: str, *, context: str) -> Json:
    """
    Resolve a JSON Pointer against a loaded document.
    pointer is the fragment part without '#'. "" means the whole doc.
    """
    if pointer in ("", None):
        return doc
    if not pointer.startswith("/"):
        raise ValueError(f"Unsupported JSON pointer fragment '{pointer}' in {context} (expected '' or '/...').")

    cur: Json = doc
    for token in pointer_tokens(pointer):
        if isinstance(cur, list):
            try:
                idx = int(token)
            except ValueError as e:
                raise KeyError(f"Pointer token '{token}' is not a list index in {context}.") from e
            if idx < 0:
                raise KeyError(f"Negative list index '{idx}' while resolving pointer in {context}.")
            try:
                cur = cur[idx]
            except IndexError as e:
                raise KeyError(f"List index '{idx}' out of range while resolving pointer in {context}.") from e
        elif isinstance(cur, dict):
            if token not in cur:
                raise KeyError(f"Key '{token}' not found while resolving pointer in {context}.")
            cur = cur[token]
        else:
            raise KeyError(f"Cannot dereference through non-container while resolving pointer in {context}.")
    return cur


def _find_anchor(node: Json, name: str) -> Optional[Json]:
    if isinstance(node, dict):
        if node.get("$anchor") == name or node.get("$id") == f"#{name}":
            return node
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        found = _find_anchor(child, name)
        if found is not None:
            return found
    return None


def resolve_fragment(doc: Json, fragment: str, *, context: str) -> Json:
    """
    Resolve a $ref fragment: a JSON Pointer ("", "/a/b") or a plain-name
    anchor ("node" for `"$anchor": "node"`, or draft-07 `"$id": "#node"`).
    """
    if fragment in ("", None) or fragment.startswith("/"):
        return json_pointer_get(doc, fragment, context=context)
    found = _find_anchor(doc, fragment)
    if found is None:
        raise KeyError(f"Anchor '{fragment}' not found in {context}.")
    return found

import pytest

from json_schema_bundler.pointers import (
    decode_pointer_token,
    encode_pointer_token,
    json_pointer_get,
    looks_like_url,
    resolve_fragment,
    split_ref,
)

DOC = {
    "definitions": {
        "a/b": {"type": "string"},
        "m~n": {"type": "integer"},
    },
    "items": [{"const": 1}, {"const": 2}],
}


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("foo.json#/a/b", ("foo.json", "/a/b")),
        ("foo.json", ("foo.json", "")),
        ("#/a/b", ("", "/a/b")),
        ("#", ("", "")),
        ("https://example.com/s.json#/x", ("https://example.com/s.json", "/x")),
    ],
)
def test_split_ref(ref, expected):
    assert split_ref(ref) == expected


def test_pointer_token_escaping():
    assert decode_pointer_token("a~1b") == "a/b"
    assert decode_pointer_token("m~0n") == "m~n"
    assert encode_pointer_token("a/b") == "a~1b"
    assert encode_pointer_token("~/") == "~0~1"


def test_looks_like_url():
    assert looks_like_url("https://example.com/a.json")
    assert looks_like_url("file:///tmp/a.json")
    assert not looks_like_url("../a.json")


class TestJsonPointerGet:
    def test_empty_pointer_returns_whole_document(self):
        assert json_pointer_get(DOC, "", context="test") is DOC

    def test_escaped_tokens(self):
        assert json_pointer_get(DOC, "/definitions/a~1b", context="test") == {"type": "string"}
        assert json_pointer_get(DOC, "/definitions/m~0n", context="test") == {"type": "integer"}

    def test_list_index(self):
        assert json_pointer_get(DOC, "/items/1/const", context="test") == 2

    def test_missing_key_names_context(self):
        with pytest.raises(KeyError, match="root.json"):
            json_pointer_get(DOC, "/definitions/missing", context="root.json")

    @pytest.mark.parametrize("pointer", ["/items/5", "/items/x", "/items/-1", "/definitions/a~1b/type/deeper"])
    def test_bad_traversal(self, pointer):
        with pytest.raises(KeyError):
            json_pointer_get(DOC, pointer, context="test")

    def test_non_pointer_fragment_rejected(self):
        with pytest.raises(ValueError, match="Unsupported JSON pointer"):
            json_pointer_get(DOC, "definitions", context="test")


class TestResolveFragment:
    ANCHORED = {
        "$defs": {
            "Pos": {"$anchor": "pos", "type": "integer"},
            "Old": {"$id": "#old", "type": "string"},
        }
    }

    def test_pointer_fragment(self):
        assert resolve_fragment(self.ANCHORED, "/$defs/Pos/type", context="test") == "integer"

    def test_anchor(self):
        assert resolve_fragment(self.ANCHORED, "pos", context="test") == {"$anchor": "pos", "type": "integer"}

    def test_draft07_id_anchor(self):
        assert resolve_fragment(self.ANCHORED, "old", context="test")["type"] == "string"

    def test_unknown_anchor(self):
        with pytest.raises(KeyError, match="Anchor 'missing' not found in test"):
            resolve_fragment(self.ANCHORED, "missing", context="test")

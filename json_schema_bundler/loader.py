"""
Load schema documents from local files and HTTP(S) URLs.

Documents are parsed as JSON or YAML depending on their suffix; anything else
is tried as JSON first and YAML second. Every location is loaded at most once
per loader.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urljoin, urlparse
from urllib.request import url2pathname

import httpx
import yaml

from json_schema_bundler.errors import SchemaLoadError
from json_schema_bundler.pointers import Json, looks_like_url

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 30.0


def _suffix_of(name: str) -> str:
    if looks_like_url(name):
        name = urlparse(name).path
    return os.path.splitext(name)[1].lower()


def load_text(text: str, *, name: str) -> Json:
    suffix = _suffix_of(name)
    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
        # Unknown suffix: JSON first, YAML as a fallback.
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(name, f"parse error: {e}") from e


def is_http_location(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def _file_url_to_path(url: str) -> str:
    return str(Path(url2pathname(unquote(urlparse(url).path))).resolve())


def resolve_location(base: Optional[str], ref_location: str) -> str:
    """
    Turn the location part of a $ref into an absolute file path or URL.

    base is the location of the document containing the $ref (None for the
    entrypoint itself).
    """
    if looks_like_url(ref_location):
        if ref_location.startswith("file://"):
            return _file_url_to_path(ref_location)
        return ref_location
    if base is not None and is_http_location(base):
        return urljoin(base, ref_location)
    if os.path.isabs(ref_location) or base is None:
        return str(Path(ref_location).resolve())
    return str((Path(base).parent / ref_location).resolve())


class DocumentLoader:
    def __init__(
        self,
        *,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.http_timeout = http_timeout
        self._client = client
        self._owns_client = client is None
        self._doc_cache: dict[str, Json] = {}

    def __enter__(self) -> "DocumentLoader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _http_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.http_timeout, follow_redirects=True)
        return self._client

    def _fetch(self, url: str) -> str:
        try:
            response = self._http_client().get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SchemaLoadError(url, str(e)) from e
        return response.text

    def _read(self, path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SchemaLoadError(path, "no such file") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SchemaLoadError(path, str(e)) from e

    def load(self, location: str) -> Json:
        """Return the parsed document at an absolute location (cached)."""
        if location not in self._doc_cache:
            if is_http_location(location):
                text = self._fetch(location)
            else:
                text = self._read(location)
            logger.debug("loaded %s", location)
            self._doc_cache[location] = load_text(text, name=location)
        return self._doc_cache[location]

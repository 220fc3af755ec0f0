import asyncio
import datetime
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from json_schema_bundler.pointers import Json

PathLike = Union[str, Path]


def _json_default(value: object) -> str:
    # YAML documents may carry dates/timestamps that JSON cannot represent.
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_schema(doc: Json) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False, default=_json_default) + "\n"


@dataclass(frozen=True)
class WriteResult:
    path: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _write_one(path: str, content: str) -> WriteResult:
    # ValueError covers UnicodeEncodeError (lone surrogates survive json.loads).
    try:
        await asyncio.to_thread(Path(path).write_text, content, encoding="utf-8")
    except (OSError, ValueError) as e:
        return WriteResult(path, e)
    return WriteResult(path)


async def write_outputs(content: str, paths: Sequence[PathLike]) -> list[WriteResult]:
    """
    Write content to every path concurrently and wait for all writes to settle.

    A failed write never cancels the others. Results come back in the order the
    paths were given. Parent directories are not created.
    """
    async with asyncio.TaskGroup() as tg:
        tasks = [tg.create_task(_write_one(str(p), content)) for p in paths]
    return [t.result() for t in tasks]

from __future__ import annotations
import orjson
from typing import Any, Dict, Iterable

from pydantic import BaseModel


def to_document(record: BaseModel) -> Dict[str, Any]:
    """Plain key-value form of a record, safe to hand to any JSON client."""
    return record.model_dump(mode="json")


def dumps(record: BaseModel, pretty: bool = False) -> bytes:
    option = orjson.OPT_INDENT_2 if pretty else 0
    return orjson.dumps(to_document(record), option=option)


def loads(data: bytes | str) -> Dict[str, Any]:
    return orjson.loads(data)


def dumps_lines(records: Iterable[BaseModel]) -> bytes:
    return b"".join(orjson.dumps(to_document(r), option=orjson.OPT_APPEND_NEWLINE) for r in records)

# packages/jfk-ocr/jfk_ocr/annotations.py
from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping

from pydantic import ValidationError

from jfk_store.errors import InvalidInput

from .schema import WordAnnotation


def _pair(entry: Any) -> tuple:
    if isinstance(entry, Mapping):
        # 요청의 wordAnnotations 항목 ({"value": ..., "description": ...})
        try:
            entry = WordAnnotation.model_validate(entry)
        except ValidationError as e:
            raise InvalidInput(f"invalid word annotation {dict(entry)!r}: {e.error_count()} error(s)") from e
        return entry.value, entry.description
    if isinstance(entry, (tuple, list)) and len(entry) == 2:
        return entry[0], entry[1]
    # WordAnnotation 인스턴스
    if hasattr(entry, "value"):
        return entry.value, getattr(entry, "description", None)
    raise InvalidInput(f"annotation entry must be (token, description), got {entry!r}")


def merge_annotations(entries: Iterable[Any]) -> Dict[str, str]:
    """
    (token, description) 목록 → token 조회 테이블.

    같은 token이 여러 번 나오면 첫 번째 description만 남긴다 (first-write-wins).
    키 순서는 각 token이 처음 등장한 순서.
    """
    if entries is None:
        raise InvalidInput("annotation list is required")
    lookup: Dict[str, str] = {}
    for i, entry in enumerate(entries):
        token, description = _pair(entry)
        if not isinstance(token, str):
            raise InvalidInput(f"annotation #{i} has no token")
        if description is not None and not isinstance(description, str):
            raise InvalidInput(f"annotation #{i} description must be a string")
        if token not in lookup:
            lookup[token] = description or ""
    return lookup

# packages/jfk-store/jfk_store/runinfo.py
from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from .errors import InvalidInput

# strftime("%b")는 로케일을 타므로 직접 고정
_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun",
           "jul", "aug", "sep", "oct", "nov", "dec")


class KeyPolicy(str, Enum):
    """How same-day reruns of one (corpus, document, skill) are keyed."""

    COLLAPSE = "collapse"   # rerun → write-once no-op against the first run
    RETAIN = "retain"       # seq_id joins the key, reruns coexist


@dataclass(frozen=True)
class RunInfo:
    corpus: str
    document: str
    skill: str
    run_instant: datetime.datetime
    seq_id: int = 0

    def validate(self) -> "RunInfo":
        for field_name in ("corpus", "document", "skill"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput(f"RunInfo.{field_name} must be a non-empty string")
        if not isinstance(self.run_instant, datetime.datetime):
            raise InvalidInput("RunInfo.run_instant must be a datetime")
        if isinstance(self.seq_id, bool) or not isinstance(self.seq_id, int) or self.seq_id < 0:
            raise InvalidInput("RunInfo.seq_id must be a non-negative int")
        return self

    @property
    def day(self) -> str:
        return day_stamp(self.run_instant)

    def prefix(self) -> str:
        """`{day}/{corpus}/{document}/{skill}`: the provenance part of every key."""
        self.validate()
        parts = [self.day] + [_segment(getattr(self, f), f"RunInfo.{f}")
                              for f in ("corpus", "document", "skill")]
        return "/".join(parts)


def day_stamp(instant: datetime.date) -> str:
    # 2024-01-05 → "jan-05-2024"
    return f"{_MONTHS[instant.month - 1]}-{instant.day:02d}-{instant.year:04d}"


def _segment(value: str, label: str) -> str:
    # safe="" 이므로 "/"도 인코딩됨 → 한 세그먼트가 경로를 쪼개지 못함
    # "."은 인코딩되지 않음: ".", "..", ".DS_Store" 모두 키 세그먼트로 쓸 수 없음
    if value.startswith("."):
        raise InvalidInput(f"{label} must not start with '.': {value!r}")
    return quote(value, safe="")


def artifact_key(run_info: RunInfo, name: str, policy: KeyPolicy = KeyPolicy.COLLAPSE) -> str:
    """
    Derive the hierarchical storage key for one artifact.

    collapse: ``{day}/{corpus}/{document}/{skill}/{name}``
    retain:   ``{day}/{corpus}/{document}/{skill}/{seq_id}/{name}``

    Pure and deterministic; every segment is percent-encoded, so differing
    inputs never produce the same key.
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("artifact name must be a non-empty string")
    prefix = run_info.prefix()
    leaf = _segment(name, "artifact name")
    if KeyPolicy(policy) is KeyPolicy.RETAIN:
        return f"{prefix}/{run_info.seq_id}/{leaf}"
    return f"{prefix}/{leaf}"


def seq_of_day(instant: datetime.datetime) -> int:
    """Milliseconds since midnight, monotonic within one day stamp."""
    midnight = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    return int((instant - midnight).total_seconds() * 1000)

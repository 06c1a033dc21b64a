# packages/jfk-skills/jfk_skills/config.py
"""
환경변수 → SkillConfig. `.env`는 CLI 진입점에서만 로드한다 (라이브러리는 환경이
준비됐다고 가정).

컨테이너 이름 우선순위: 요청 헤더(BlobContainerName) → 설정 기본값.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from jfk_store.artifacts import ArtifactStore
from jfk_store.blob import BlobBackend, LocalBlobBackend
from jfk_store.errors import InvalidInput
from jfk_store.runinfo import KeyPolicy

CONTAINER_HEADER = "BlobContainerName"

BACKENDS = ("local", "postgres")


@dataclass(frozen=True)
class SkillConfig:
    corpus: str = "jfkdata"
    image_container: str = "imagestoreblob"
    annotation_container: str = "annotations"
    backend: str = "local"
    storage_dir: str = "storage"
    postgres_dsn: Optional[str] = None
    public_base_url: Optional[str] = None
    key_policy: KeyPolicy = KeyPolicy.COLLAPSE
    storage_timeout: float = 30.0
    cryptonyms_path: str = "cryptonyms.json"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SkillConfig":
        env = os.environ if environ is None else environ
        backend = env.get("ARTIFACT_BACKEND", "local").strip().lower()
        if backend not in BACKENDS:
            raise InvalidInput(f"ARTIFACT_BACKEND must be one of {BACKENDS}, got {backend!r}")
        try:
            policy = KeyPolicy(env.get("ARTIFACT_KEY_POLICY", "collapse").strip().lower())
        except ValueError as e:
            raise InvalidInput(f"invalid ARTIFACT_KEY_POLICY: {e}") from e
        try:
            timeout = float(env.get("ARTIFACT_STORAGE_TIMEOUT", "30"))
        except ValueError as e:
            raise InvalidInput(f"invalid ARTIFACT_STORAGE_TIMEOUT: {e}") from e
        if timeout <= 0:
            raise InvalidInput("ARTIFACT_STORAGE_TIMEOUT must be positive")

        return cls(
            corpus=env.get("CORPUS") or cls.corpus,
            image_container=env.get("IMAGE_STORE_CONTAINER") or cls.image_container,
            annotation_container=env.get("ANNOTATION_CONTAINER") or cls.annotation_container,
            backend=backend,
            storage_dir=env.get("STORAGE_DIR") or cls.storage_dir,
            postgres_dsn=env.get("POSTGRES_DSN") or None,
            public_base_url=env.get("ARTIFACT_PUBLIC_BASE_URL") or None,
            key_policy=policy,
            storage_timeout=timeout,
            cryptonyms_path=env.get("CRYPTONYMS_PATH") or cls.cryptonyms_path,
        )


def header_value(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    """HTTP 헤더처럼 대소문자 무시 조회; 빈 값은 없는 것으로 취급."""
    if not headers:
        return None
    wanted = name.lower()
    for k, v in headers.items():
        if k.lower() == wanted and v:
            return v
    return None


def resolve_container(headers: Optional[Mapping[str, str]], default: str) -> str:
    container = header_value(headers, CONTAINER_HEADER) or default
    if not container:
        raise InvalidInput("Information for the blob storage account is missing")
    return container


def open_backend(config: SkillConfig, container: str) -> BlobBackend:
    if config.backend == "postgres":
        # psycopg는 postgres 백엔드를 쓸 때만 import
        from jfk_store.pg import PgBlobBackend

        return PgBlobBackend(
            dsn=config.postgres_dsn or "",
            container=container,
            public_base_url=config.public_base_url or "",
            timeout=config.storage_timeout,
        )
    return LocalBlobBackend(config.storage_dir, container, public_base_url=config.public_base_url)


def open_artifact_store(config: SkillConfig, container: str) -> ArtifactStore:
    return ArtifactStore(open_backend(config, container))

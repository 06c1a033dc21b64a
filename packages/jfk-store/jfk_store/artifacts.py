# packages/jfk-store/jfk_store/artifacts.py
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from .blob import BlobBackend, validate_key
from .errors import InvalidInput
from .runinfo import KeyPolicy, RunInfo, artifact_key

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
IMAGE_CONTENT_TYPE = "image/jpg"
ANNOTATION_CONTENT_TYPE = "text/json"


@dataclass(frozen=True)
class ArtifactRef:
    key: str
    locator: str
    created: bool   # False → 이미 있던 객체(write-once no-op)


class ArtifactStore:
    """Write-once object store over one backend container. Append-only."""

    def __init__(self, backend: BlobBackend):
        self.backend = backend

    @property
    def container(self) -> str:
        return self.backend.container

    def put_artifact(self, payload: bytes, name: str,
                     content_type: str = DEFAULT_CONTENT_TYPE) -> ArtifactRef:
        """
        Store `payload` under `name` unless something is already there.

        An existing object is never overwritten; its locator is returned with
        ``created=False``.
        """
        validate_key(name)
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidInput(f"payload must be bytes, got {type(payload).__name__}")
        if not content_type:
            raise InvalidInput("content_type must be non-empty")

        created = self.backend.create_if_absent(name, bytes(payload), content_type)
        locator = self.backend.locator(name)
        if created:
            LOGGER.debug("stored %s/%s (%d bytes, %s)", self.container, name, len(payload), content_type)
        else:
            LOGGER.info("artifact %s/%s already exists, keeping the original", self.container, name)
        return ArtifactRef(key=name, locator=locator, created=created)

    def put(self, payload: bytes, name: str, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
        return self.put_artifact(payload, name, content_type).locator

    def put_base64(self, data: str, name: str, content_type: str = IMAGE_CONTENT_TYPE) -> str:
        if not isinstance(data, str) or not data:
            raise InvalidInput("base64 payload must be a non-empty string")
        try:
            payload = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInput(f"payload is not valid base64: {e}") from e
        return self.put(payload, name, content_type)

    def get(self, name: str) -> bytes:
        return self.backend.read(name)


class VersionedAnnotationStore:
    """Stores text documents under ``{day}/{corpus}/{document}/{skill}/...`` keys."""

    def __init__(self, store: ArtifactStore, policy: KeyPolicy = KeyPolicy.COLLAPSE):
        self.store = store
        self.policy = KeyPolicy(policy)

    def key_for(self, run_info: RunInfo, name: str) -> str:
        return artifact_key(run_info, name, self.policy)

    def save_artifact(self, payload: str, name: str, run_info: RunInfo,
                      content_type: str = ANNOTATION_CONTENT_TYPE) -> ArtifactRef:
        if not isinstance(payload, str):
            raise InvalidInput(f"annotation payload must be str, got {type(payload).__name__}")
        key = self.key_for(run_info, name)
        return self.store.put_artifact(payload.encode("utf-8"), key, content_type)

    def save(self, payload: str, name: str, run_info: RunInfo,
             content_type: str = ANNOTATION_CONTENT_TYPE) -> str:
        return self.save_artifact(payload, name, run_info, content_type).locator

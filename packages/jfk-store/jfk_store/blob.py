# packages/jfk-store/jfk_store/blob.py
from __future__ import annotations

import hashlib
import json
import os
import pathlib
import tempfile
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

from .errors import InvalidInput, StorageUnavailable

META_PREFIX = ".meta-"


# --- Low-level helpers ---
def sha256_bytes(b: bytes) -> str:
    h = hashlib.sha256()
    h.update(b)
    return h.hexdigest()


def validate_key(key: str) -> str:
    """컨테이너 상대 키 검증: 빈 세그먼트, '.'/'..', '.'으로 시작하는 세그먼트 금지."""
    if not isinstance(key, str) or not key.strip():
        raise InvalidInput("artifact name must be a non-empty string")
    if "\\" in key or "\x00" in key:
        raise InvalidInput(f"artifact name contains a forbidden character: {key!r}")
    for seg in key.split("/"):
        if not seg or seg.startswith("."):
            raise InvalidInput(f"artifact name has an invalid segment: {key!r}")
    return key


def build_locator(base_url: str, container: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/{quote(container, safe='')}/{quote(key, safe='/')}"


class BlobBackend(ABC):
    """A named container that can create an object only if it is absent."""

    container: str

    @abstractmethod
    def create_if_absent(self, key: str, payload: bytes, content_type: str) -> bool:
        """Atomically write `payload` at `key` unless an object is already there.

        Returns True when this call wrote the object, False when it existed.
        """

    @abstractmethod
    def read(self, key: str) -> bytes:
        ...

    @abstractmethod
    def content_type(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def locator(self, key: str) -> str:
        ...


class LocalBlobBackend(BlobBackend):
    """
    Filesystem container: ``<root>/<container>/<key>``.

    Objects are published with os.link from a fully written temp file, so the
    create is atomic and readers never see a partial payload. The content type
    sits next to the object in ``.meta-<basename>.json``; keys cannot have
    segments starting with ".", so the sidecar never collides with a key.
    """

    def __init__(self, root: str | os.PathLike[str], container: str,
                 public_base_url: Optional[str] = None):
        if not container or "/" in container or container.startswith("."):
            raise InvalidInput(f"invalid container name: {container!r}")
        self.container = container
        self.root = pathlib.Path(root).resolve()
        self.public_base_url = public_base_url
        self._dir = self.root / container

    def _path(self, key: str) -> pathlib.Path:
        return self._dir / validate_key(key)

    def _meta_path(self, key: str) -> pathlib.Path:
        target = self._path(key)
        return target.with_name(f"{META_PREFIX}{target.name}.json")

    def _check_namespace(self, key: str, target: pathlib.Path) -> None:
        # "a/b"가 있으면 "a"는 디렉터리, "a"가 있으면 "a/b"는 만들 수 없음
        if target.is_dir():
            raise InvalidInput(f"artifact name {key!r} is a prefix of existing artifacts")
        parent = target.parent
        while parent != self._dir:
            if parent.is_file():
                raise InvalidInput(f"artifact name {key!r} is nested under an existing artifact")
            parent = parent.parent

    def _write_temp(self, directory: pathlib.Path, data: bytes) -> str:
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".tmp-")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        return tmp

    def create_if_absent(self, key: str, payload: bytes, content_type: str) -> bool:
        target = self._path(key)
        meta = self._meta_path(key)
        self._check_namespace(key, target)
        try:
            if target.is_file():
                return False
            target.parent.mkdir(parents=True, exist_ok=True)
            meta_doc = json.dumps(
                {"content_type": content_type, "size_bytes": len(payload),
                 "sha256": sha256_bytes(payload)},
            ).encode("utf-8")
            tmp = tmp_meta = None
            try:
                tmp = self._write_temp(target.parent, payload)
                tmp_meta = self._write_temp(target.parent, meta_doc)
                try:
                    os.link(tmp, target)
                except FileExistsError:
                    self._check_namespace(key, target)
                    return False
                try:
                    os.replace(tmp_meta, meta)
                    tmp_meta = None
                except OSError:
                    # 메타 없이 객체만 남기지 않음
                    os.unlink(target)
                    raise
            finally:
                for leftover in (tmp, tmp_meta):
                    if leftover is not None:
                        os.unlink(leftover)
            return True
        except OSError as e:
            raise StorageUnavailable(f"local container {self.container!r} write failed: {e}") from e

    def read(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            raise KeyError(key) from None
        except OSError as e:
            raise StorageUnavailable(f"local container {self.container!r} read failed: {e}") from e

    def content_type(self, key: str) -> Optional[str]:
        try:
            with open(self._meta_path(key), encoding="utf-8") as f:
                return json.load(f).get("content_type")
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            raise StorageUnavailable(f"local container {self.container!r} meta read failed: {e}") from e

    def locator(self, key: str) -> str:
        if self.public_base_url:
            return build_locator(self.public_base_url, self.container, validate_key(key))
        return self._path(key).as_uri()

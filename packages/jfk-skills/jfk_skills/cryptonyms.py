from __future__ import annotations
import json
from pathlib import Path
from typing import Dict, Optional

from jfk_store.errors import InvalidInput


class CryptonymLinker:
    """Dictionary of CIA cryptonyms (``{"AMLASH": "description", ...}``)."""

    def __init__(self, cryptonyms: Dict[str, str]):
        self.cryptonyms = dict(cryptonyms)

    @classmethod
    def from_file(cls, path: str | Path) -> "CryptonymLinker":
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise InvalidInput(f"cryptonym dictionary not found: {p}") from e
        except ValueError as e:
            raise InvalidInput(f"cryptonym dictionary is not valid JSON: {p}") from e
        if not isinstance(data, dict):
            raise InvalidInput("cryptonym dictionary must be a JSON object")
        return cls({str(k): str(v) for k, v in data.items()})

    def lookup(self, word: str) -> Optional[str]:
        # 전부 대문자인 단어만 암호명 후보
        if not word or not word.isupper() or not word.isalpha():
            return None
        return self.cryptonyms.get(word)

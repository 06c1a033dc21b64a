from __future__ import annotations
import argparse, logging, sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from jfk_store.errors import InvalidInput, StorageUnavailable

from .config import SkillConfig, open_backend, resolve_container
from .envelope import dump_response
from .logging_utils import configure_logging
from .skills import SKILLS

LOGGER = logging.getLogger(__name__)


def _headers(pairs: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"--header는 K=V 형식이어야 합니다: {pair!r}")
        headers[key.strip()] = value.strip()
    return headers


def _read_body(src: str) -> str:
    if src == "-":
        return sys.stdin.read()
    path = Path(src)
    if not path.exists():
        raise SystemExit(f"파일 없음: {path}")
    return path.read_text(encoding="utf-8")


def _init_db(config: SkillConfig, headers: Dict[str, str]) -> int:
    if config.backend != "postgres":
        raise InvalidInput("init-db requires ARTIFACT_BACKEND=postgres")
    backend = open_backend(config, resolve_container(headers, config.annotation_container))
    backend.ensure_schema()
    print("✅ artifact_blob schema ready")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()  # CLI에서만 .env 로드

    parser = argparse.ArgumentParser(description="JFK Files - document enrichment skills")
    parser.add_argument("skill", choices=sorted(SKILLS) + ["init-db"], help="실행할 스킬")
    parser.add_argument("request", nargs="?", default="-", help="요청 JSON 경로 ('-' = stdin)")
    parser.add_argument("-H", "--header", action="append", default=[], help="요청 헤더 K=V (여러 번 가능)")
    parser.add_argument("-o", "--out", default=None, help="응답 JSON 저장 경로 (기본 stdout)")
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING (기본 LOG_LEVEL 또는 INFO)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    headers = _headers(args.header)

    try:
        config = SkillConfig.from_env()
        if args.skill == "init-db":
            return _init_db(config, headers)
        body = _read_body(args.request)
        response = SKILLS[args.skill](body, headers, config)
    except InvalidInput as e:
        LOGGER.error("%s - bad request: %s", args.skill, e)
        print(f"❌ {args.skill} - {e}", file=sys.stderr)
        return 2
    except StorageUnavailable as e:
        LOGGER.error("%s - storage unavailable: %s", args.skill, e)
        print(f"❌ {args.skill} - storage unavailable: {e}", file=sys.stderr)
        return 1

    text = dump_response(response)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
        print(f"✅ {args.skill} 완료 → {out}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())

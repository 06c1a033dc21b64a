# packages/jfk-skills/jfk_skills/skills.py
"""
Skill handlers. 각 핸들러는 요청 본문 하나를 받아 SkillResponse를 돌려준다.

요청 자체가 잘못되면 InvalidInput을 던지고(호출자가 400 처리),
레코드 단위 실패는 해당 레코드의 errors로만 남는다.
"""
from __future__ import annotations

import datetime
import json
import logging
import uuid
from typing import Any, Callable, Dict, Mapping, Optional, Union

from jfk_ocr.annotations import merge_annotations
from jfk_ocr.hocr import assemble_document
from jfk_store.artifacts import (
    ANNOTATION_CONTENT_TYPE,
    IMAGE_CONTENT_TYPE,
    ArtifactStore,
    VersionedAnnotationStore,
)
from jfk_store.errors import InvalidInput
from jfk_store.runinfo import RunInfo, seq_of_day

from .config import SkillConfig, open_artifact_store, resolve_container
from .cryptonyms import CryptonymLinker
from .envelope import (
    RequestRecord,
    ResponseRecord,
    SkillResponse,
    get_field,
    parse_request,
    process_records,
)

LOGGER = logging.getLogger(__name__)

IMAGE_STORE = "image-store"
ANNOTATION_WRITE = "annotation-write"
HOCR_GENERATOR = "hocr-generator"
LINK_CRYPTONYMS = "link-cryptonyms"

Body = Union[str, bytes, Mapping[str, Any]]
StoreFactory = Callable[[SkillConfig, str], ArtifactStore]


def _new_name() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _records(skill_name: str, body: Body):
    request = parse_request(body)
    if not request.values:
        raise InvalidInput(f"{skill_name} - Invalid request record array.")
    return request.values


def run_image_store(
    body: Body,
    headers: Optional[Mapping[str, str]],
    config: SkillConfig,
    *,
    store_factory: StoreFactory = open_artifact_store,
    name_factory: Callable[[], str] = _new_name,
) -> SkillResponse:
    records = _records(IMAGE_STORE, body)
    container = resolve_container(headers, config.image_container)
    store = store_factory(config, container)
    LOGGER.info("%s - %d record(s) → container %s", IMAGE_STORE, len(records), container)

    def handle(record: RequestRecord, out: ResponseRecord) -> ResponseRecord:
        image_data = get_field(record, "imageData")
        out.data["imageStoreUri"] = store.put_base64(image_data, name_factory(), IMAGE_CONTENT_TYPE)
        return out

    return process_records(IMAGE_STORE, records, handle)


def run_annotation_write(
    body: Body,
    headers: Optional[Mapping[str, str]],
    config: SkillConfig,
    *,
    store_factory: StoreFactory = open_artifact_store,
    name_factory: Callable[[], str] = _new_name,
    now: Callable[[], datetime.datetime] = _utcnow,
) -> SkillResponse:
    """요청 본문 전체를 레코드 문서별 버전 키 아래에 한 번만 저장."""
    if isinstance(body, Mapping):
        raw = json.dumps(body, ensure_ascii=False)
    elif isinstance(body, (bytes, bytearray)):
        try:
            raw = bytes(body).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInput(f"{ANNOTATION_WRITE} - request body is not UTF-8") from e
    else:
        raw = body
    records = _records(ANNOTATION_WRITE, raw)
    container = resolve_container(headers, config.annotation_container)
    annotations = VersionedAnnotationStore(store_factory(config, container), config.key_policy)
    LOGGER.info("%s - %d record(s) → container %s (key policy %s)",
                ANNOTATION_WRITE, len(records), container, annotations.policy.value)

    def handle(record: RequestRecord, out: ResponseRecord) -> ResponseRecord:
        instant = now()
        run_info = RunInfo(
            corpus=config.corpus,
            document=get_field(record, "fileName"),
            skill=ANNOTATION_WRITE,
            run_instant=instant,
            seq_id=seq_of_day(instant),
        ).validate()
        ref = annotations.save_artifact(raw, name_factory(), run_info, ANNOTATION_CONTENT_TYPE)
        out.data["annotationUri"] = ref.locator
        return out

    return process_records(ANNOTATION_WRITE, records, handle)


def run_hocr_generator(
    body: Body,
    headers: Optional[Mapping[str, str]],
    config: SkillConfig,
) -> SkillResponse:
    records = _records(HOCR_GENERATOR, body)

    def handle(record: RequestRecord, out: ResponseRecord) -> ResponseRecord:
        metadata_list = get_field(record, "ocrImageMetadataList", list)
        lookup = merge_annotations(record.data.get("wordAnnotations") or [])
        document = assemble_document(metadata_list, lookup)
        LOGGER.debug("%s - record %s: %d page(s), %d annotation(s)",
                     HOCR_GENERATOR, record.record_id, len(document.pages), len(lookup))
        out.data["hocrDocument"] = document.to_dict()
        return out

    return process_records(HOCR_GENERATOR, records, handle)


def run_link_cryptonyms(
    body: Body,
    headers: Optional[Mapping[str, str]],
    config: SkillConfig,
    *,
    linker: Optional[CryptonymLinker] = None,
) -> SkillResponse:
    records = _records(LINK_CRYPTONYMS, body)
    linker = linker or CryptonymLinker.from_file(config.cryptonyms_path)

    def handle(record: RequestRecord, out: ResponseRecord) -> ResponseRecord:
        word = get_field(record, "word")
        description = linker.lookup(word)
        if description is not None:
            out.data["cryptonym"] = {"value": word, "description": description}
        return out

    return process_records(LINK_CRYPTONYMS, records, handle)


SKILLS: Dict[str, Callable[..., SkillResponse]] = {
    IMAGE_STORE: run_image_store,
    ANNOTATION_WRITE: run_annotation_write,
    HOCR_GENERATOR: run_hocr_generator,
    LINK_CRYPTONYMS: run_link_cryptonyms,
}

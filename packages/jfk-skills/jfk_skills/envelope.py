# packages/jfk-skills/jfk_skills/envelope.py
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from jfk_store.errors import InvalidInput, SkillError

LOGGER = logging.getLogger(__name__)


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RequestRecord(_Envelope):
    record_id: str = Field(alias="recordId")
    data: Dict[str, Any] = Field(default_factory=dict)


class SkillRequest(_Envelope):
    values: List[RequestRecord] = Field(default_factory=list)


class RecordMessage(_Envelope):
    message: str


class ResponseRecord(_Envelope):
    record_id: str = Field(alias="recordId")
    data: Dict[str, Any] = Field(default_factory=dict)
    errors: List[RecordMessage] = Field(default_factory=list)
    warnings: List[RecordMessage] = Field(default_factory=list)


class SkillResponse(_Envelope):
    values: List[ResponseRecord] = Field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


RecordFn = Callable[[RequestRecord, ResponseRecord], ResponseRecord]


def parse_request(body: Union[str, bytes, Mapping[str, Any]]) -> SkillRequest:
    """요청 본문 → SkillRequest. 형식이 틀리면 InvalidInput."""
    try:
        if isinstance(body, (str, bytes, bytearray)):
            return SkillRequest.model_validate_json(body)
        return SkillRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidInput(f"Invalid request record array: {e.error_count()} error(s)") from e


def get_field(record: RequestRecord, name: str, kind: type = str) -> Any:
    value = record.data.get(name)
    if value is None:
        raise InvalidInput(f"record {record.record_id}: missing '{name}'")
    if not isinstance(value, kind):
        raise InvalidInput(f"record {record.record_id}: '{name}' must be {kind.__name__}")
    return value


def process_records(skill_name: str, records: List[RequestRecord], fn: RecordFn) -> SkillResponse:
    """
    레코드 단위로 fn 실행. SkillError는 해당 레코드의 errors로만 기록되고
    나머지 레코드 처리는 계속된다. 그 외 예외는 그대로 전파.
    """
    response = SkillResponse()
    for record in records:
        out = ResponseRecord(record_id=record.record_id)
        try:
            out = fn(record, out)
        except SkillError as e:
            LOGGER.warning("%s - record %s failed: %s", skill_name, record.record_id, e)
            out.data = {}
            out.errors.append(RecordMessage(message=f"{skill_name} - Error processing the request record: {e}"))
        response.values.append(out)
    return response


def dump_response(response: SkillResponse) -> str:
    return json.dumps(response.to_json(), ensure_ascii=False, indent=2)

import base64
import datetime
import json

import pytest

from jfk_skills.config import SkillConfig
from jfk_skills.cryptonyms import CryptonymLinker
from jfk_skills.skills import (
    run_annotation_write,
    run_hocr_generator,
    run_image_store,
    run_link_cryptonyms,
)
from jfk_store.errors import InvalidInput

FIXED_NOW = datetime.datetime(2024, 1, 5, 10, 0, 0)


@pytest.fixture
def config(tmp_path):
    return SkillConfig(storage_dir=str(tmp_path / "storage"),
                       public_base_url="https://files.example.org")


def _names(*names):
    it = iter(names)
    return lambda: next(it)


def _body(*records):
    return json.dumps({"values": [{"recordId": str(i), "data": d} for i, d in enumerate(records)]})


def test_annotation_write_end_to_end(config, tmp_path):
    body = _body({"fileName": "doc123"})
    response = run_annotation_write(body, {}, config, name_factory=_names("abc-def"), now=lambda: FIXED_NOW)

    record = response.to_json()["values"][0]
    assert record["recordId"] == "0"
    assert record["errors"] == []
    assert record["data"]["annotationUri"] == (
        "https://files.example.org/annotations/jan-05-2024/jfkdata/doc123/annotation-write/abc-def"
    )
    stored = tmp_path / "storage" / "annotations" / "jan-05-2024" / "jfkdata" / "doc123" / "annotation-write" / "abc-def"
    assert stored.read_text(encoding="utf-8") == body


def test_annotation_write_rerun_with_same_name_keeps_first_payload(config, tmp_path):
    first = run_annotation_write(_body({"fileName": "doc123"}), {}, config,
                                 name_factory=_names("abc-def"), now=lambda: FIXED_NOW)
    second_body = _body({"fileName": "doc123", "extra": "changed"})
    second = run_annotation_write(second_body, {}, config,
                                  name_factory=_names("abc-def"), now=lambda: FIXED_NOW.replace(hour=15))
    assert first.values[0].data == second.values[0].data
    stored = tmp_path / "storage" / "annotations" / "jan-05-2024" / "jfkdata" / "doc123" / "annotation-write" / "abc-def"
    assert "changed" not in stored.read_text(encoding="utf-8")


def test_annotation_write_retain_policy_adds_seq(tmp_path):
    cfg = SkillConfig(storage_dir=str(tmp_path), public_base_url="https://f", key_policy="retain")
    response = run_annotation_write(_body({"fileName": "doc123"}), {}, cfg,
                                    name_factory=_names("n"), now=lambda: FIXED_NOW)
    uri = response.values[0].data["annotationUri"]
    assert uri.endswith(f"/annotation-write/{10 * 3600 * 1000}/n")


def test_annotation_write_header_overrides_container(config):
    response = run_annotation_write(_body({"fileName": "doc123"}), {"BlobContainerName": "audit"}, config,
                                    name_factory=_names("n"), now=lambda: FIXED_NOW)
    assert "/audit/jan-05-2024/" in response.values[0].data["annotationUri"]


def test_annotation_write_isolates_failing_records(config):
    body = _body({"fileName": "doc1"}, {"noFileName": True}, {"fileName": "doc3"})
    response = run_annotation_write(body, {}, config, name_factory=_names("a", "b", "c"), now=lambda: FIXED_NOW)
    good1, bad, good3 = response.values
    assert good1.data["annotationUri"].endswith("/doc1/annotation-write/a")
    assert bad.data == {}
    assert "fileName" in bad.errors[0].message
    assert good3.data["annotationUri"].endswith("/doc3/annotation-write/b")


@pytest.mark.parametrize("body", ["not json", json.dumps({"values": []}), json.dumps({"values": [{"data": {}}]})])
def test_invalid_request_envelopes_are_rejected(config, body):
    with pytest.raises(InvalidInput):
        run_annotation_write(body, {}, config)


def test_image_store_uploads_decoded_image(config, tmp_path):
    image = b"\xff\xd8\xff\xe0 fake jpeg"
    body = _body({"imageData": base64.b64encode(image).decode()}, {"imageData": "%%%"})
    response = run_image_store(body, None, config, name_factory=_names("img-1", "img-2"))

    ok, bad = response.values
    assert ok.data["imageStoreUri"] == "https://files.example.org/imagestoreblob/img-1"
    assert (tmp_path / "storage" / "imagestoreblob" / "img-1").read_bytes() == image
    assert bad.errors and "base64" in bad.errors[0].message


def test_image_store_default_names_are_unique(config):
    data = base64.b64encode(b"x").decode()
    response = run_image_store(_body({"imageData": data}, {"imageData": data}), {}, config)
    uris = [r.data["imageStoreUri"] for r in response.values]
    assert len(set(uris)) == 2


def test_hocr_generator_builds_document(config):
    record = {
        "ocrImageMetadataList": [
            {"imageStoreUri": "https://img/0.jpg", "width": 100, "height": 100,
             "layoutText": {"words": [{"text": "OSWALD", "boundingBox": [1, 1, 20, 1, 20, 9, 1, 9]}]}},
            {"imageStoreUri": "https://img/1.jpg", "width": 100, "height": 100,
             "layoutText": {"words": [{"text": "RUBY", "boundingBox": [1, 1, 20, 9]}]}},
        ],
        "wordAnnotations": [
            {"value": "OSWALD", "description": "d1"},
            {"value": "OSWALD", "description": "d2"},
            {"value": "RUBY", "description": "d3"},
        ],
    }
    response = run_hocr_generator(_body(record), {}, config)
    doc = response.values[0].data["hocrDocument"]
    assert doc["pageCount"] == 2
    assert [p["index"] for p in doc["pages"]] == [0, 1]
    assert 'data-annotation="d1"' in doc["pages"][0]["hocr"]
    assert 'data-annotation="d3"' in doc["pages"][1]["hocr"]
    assert "d2" not in doc["text"]


def test_hocr_generator_without_annotations(config):
    response = run_hocr_generator(_body({"ocrImageMetadataList": []}), {}, config)
    assert response.values[0].data["hocrDocument"]["pageCount"] == 0


def test_hocr_generator_reports_bad_records(config):
    body = _body({"ocrImageMetadataList": "nope"}, {"ocrImageMetadataList": [], "wordAnnotations": [{"description": "x"}]})
    response = run_hocr_generator(body, {}, config)
    assert all(r.errors for r in response.values)


def test_hocr_generator_rejects_non_string_annotation_values(config):
    body = _body(
        {"ocrImageMetadataList": [], "wordAnnotations": [{"value": 7, "description": "x"}]},
        {"ocrImageMetadataList": [], "wordAnnotations": [{"value": "OSWALD"}]},
    )
    response = run_hocr_generator(body, {}, config)
    bad, good = response.values
    assert bad.errors and bad.data == {}
    assert not good.errors
    assert good.data["hocrDocument"]["pageCount"] == 0


def test_link_cryptonyms(config):
    linker = CryptonymLinker({"AMLASH": "Rolando Cubela Secades", "GPFLOOR": "Lee Harvey Oswald"})
    body = _body({"word": "AMLASH"}, {"word": "amlash"}, {"word": "CIA"})
    response = run_link_cryptonyms(body, {}, config, linker=linker)
    hit, lower, miss = response.values
    assert hit.data["cryptonym"] == {"value": "AMLASH", "description": "Rolando Cubela Secades"}
    assert lower.data == {}
    assert miss.data == {}


def test_cryptonym_dictionary_from_file(tmp_path, config):
    path = tmp_path / "cryptonyms.json"
    path.write_text(json.dumps({"ZRRIFLE": "executive action"}), encoding="utf-8")
    cfg = SkillConfig(cryptonyms_path=str(path))
    response = run_link_cryptonyms(_body({"word": "ZRRIFLE"}), {}, cfg)
    assert response.values[0].data["cryptonym"]["description"] == "executive action"

    with pytest.raises(InvalidInput):
        run_link_cryptonyms(_body({"word": "ZRRIFLE"}), {}, SkillConfig(cryptonyms_path=str(tmp_path / "missing.json")))

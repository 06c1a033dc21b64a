# packages/jfk-ocr/jfk_ocr/hocr.py
"""
페이지별 OCR 메타데이터 + 주석 조회 테이블 → hOCR 페이지/문서.

assemble_document는 순수 함수: 네트워크/저장소 접근 없음, 조회 테이블은
모든 페이지가 같은 인스턴스를 읽기 전용으로 공유한다.
"""
from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from jfk_store.errors import InvalidInput

from .schema import OcrImageMetadata, OcrLine, OcrWord

HOCR_HEAD = (
    "<!DOCTYPE html>\n<html>\n<head>\n"
    "<meta charset=\"utf-8\"/>\n"
    "<meta name=\"ocr-system\" content=\"jfk-skills\"/>\n"
    "<meta name=\"ocr-capabilities\" content=\"ocr_page ocr_line ocrx_word\"/>\n"
    "</head>\n<body>\n"
)
HOCR_TAIL = "</body>\n</html>\n"


def _attr(v: Any) -> str:
    return html.escape(str(v), quote=True)


def _bbox_title(box: Optional[Tuple[int, int, int, int]]) -> str:
    return "bbox {} {} {} {}".format(*box) if box else "bbox 0 0 0 0"


def _inside(point: Tuple[float, float], box: Tuple[int, int, int, int]) -> bool:
    x, y = point
    return box[0] <= x <= box[2] and box[1] <= y <= box[3]


def _wrap(rendered: List[str]) -> str:
    body = "".join(h + "\n" for h in rendered)
    return HOCR_HEAD + body + HOCR_TAIL


def _group_words(lines: List[OcrLine], words: List[OcrWord]) -> List[Tuple[Optional[OcrLine], List[OcrWord]]]:
    # 단어 중심점이 처음으로 들어가는 줄에 배정, 어느 줄에도 안 들어가면 마지막 익명 줄로
    groups: List[Tuple[Optional[OcrLine], List[OcrWord]]] = [(ln, []) for ln in lines]
    boxes = [ln.bbox() for ln in lines]
    orphans: List[OcrWord] = []
    for w in words:
        c = w.centre()
        for i, box in enumerate(boxes):
            if c is not None and box is not None and _inside(c, box):
                groups[i][1].append(w)
                break
        else:
            orphans.append(w)
    if orphans:
        groups.append((None, orphans))
    return groups


@dataclass(frozen=True)
class HocrPage:
    index: int
    metadata: Any
    annotations: Mapping[str, str] = field(repr=False, compare=False)

    def layout(self) -> OcrImageMetadata:
        if isinstance(self.metadata, OcrImageMetadata):
            return self.metadata
        if not isinstance(self.metadata, Mapping):
            raise InvalidInput(f"page {self.index}: OCR metadata must be an object")
        try:
            return OcrImageMetadata.model_validate(self.metadata)
        except ValidationError as e:
            raise InvalidInput(f"page {self.index}: malformed OCR metadata: {e}") from e

    def resolve(self, token: str) -> Optional[str]:
        return self.annotations.get(token)

    def to_hocr(self) -> str:
        meta = self.layout()
        i = self.index
        title = f'image "{meta.image_store_uri or ""}"; bbox 0 0 {meta.width or 0} {meta.height or 0}; ppageno {i}'
        out = [f"<div class=\"ocr_page\" id=\"page_{i}\" title=\"{_attr(title)}\">"]
        for j, (line, words) in enumerate(_group_words(meta.layout_text.lines, meta.layout_text.words)):
            line_box = line.bbox() if line is not None else None
            out.append(f"<span class=\"ocr_line\" id=\"line_{i}_{j}\" title=\"{_bbox_title(line_box)}\">")
            for w, word in enumerate(words):
                extra = ""
                description = self.resolve(word.text)
                if description is not None:
                    extra = f" data-annotation=\"{_attr(description)}\""
                out.append(
                    f"<span class=\"ocrx_word\" id=\"word_{i}_{j}_{w}\" "
                    f"title=\"{_bbox_title(word.bbox())}\"{extra}>{html.escape(word.text)}</span>"
                )
            out.append("</span>")
        out.append("</div>")
        return "\n".join(out)


@dataclass(frozen=True)
class HocrDocument:
    pages: Tuple[HocrPage, ...] = ()

    @property
    def text(self) -> str:
        return _wrap([p.to_hocr() for p in self.pages])

    def to_dict(self) -> Dict[str, Any]:
        rendered = [p.to_hocr() for p in self.pages]
        return {
            "pageCount": len(self.pages),
            "pages": [{"index": p.index, "hocr": h} for p, h in zip(self.pages, rendered)],
            "text": _wrap(rendered),
        }


def assemble_document(metadata_list: Sequence[Any], annotations: Mapping[str, str]) -> HocrDocument:
    """metadata_list[i] → HocrPage(index=i), 입력 순서 그대로."""
    if metadata_list is None:
        raise InvalidInput("OCR metadata list is required")
    if annotations is None:
        raise InvalidInput("annotation lookup is required")
    pages = []
    for i, metadata in enumerate(metadata_list):
        if metadata is None:
            raise InvalidInput(f"OCR metadata #{i} is null")
        pages.append(HocrPage(index=i, metadata=metadata, annotations=annotations))
    return HocrDocument(pages=tuple(pages))

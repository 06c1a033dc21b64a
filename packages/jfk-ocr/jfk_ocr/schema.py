from __future__ import annotations
from typing import List, Optional, Any, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Wire(BaseModel):
    # 인식기 출력은 camelCase, 모르는 필드도 그대로 보존
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class WordAnnotation(_Wire):
    value: str
    description: Optional[str] = None


class Point(BaseModel):
    x: float
    y: float


def _as_points(v: Any) -> List[Any]:
    """[{x,y}, ...] 또는 평탄한 [x0, y0, x1, y1, ...] 둘 다 허용."""
    if v is None:
        return []
    if isinstance(v, (list, tuple)) and v and all(isinstance(n, (int, float)) for n in v):
        if len(v) % 2:
            raise ValueError("flat bounding box needs an even number of coordinates")
        return [{"x": v[i], "y": v[i + 1]} for i in range(0, len(v), 2)]
    return list(v)


class _Boxed(_Wire):
    text: str = ""
    bounding_box: List[Point] = Field(default_factory=list, alias="boundingBox")

    @field_validator("bounding_box", mode="before")
    @classmethod
    def normalise_box(cls, v: Any) -> List[Any]:
        return _as_points(v)

    def bbox(self) -> Optional[Tuple[int, int, int, int]]:
        if not self.bounding_box:
            return None
        xs = [p.x for p in self.bounding_box]
        ys = [p.y for p in self.bounding_box]
        return int(min(xs)), int(min(ys)), int(max(xs)), int(max(ys))

    def centre(self) -> Optional[Tuple[float, float]]:
        box = self.bbox()
        if box is None:
            return None
        return (box[0] + box[2]) / 2, (box[1] + box[3]) / 2


class OcrWord(_Boxed):
    pass


class OcrLine(_Boxed):
    pass


class OcrLayoutText(_Wire):
    language: Optional[str] = None
    text: str = ""
    lines: List[OcrLine] = Field(default_factory=list)
    words: List[OcrWord] = Field(default_factory=list)


class OcrImageMetadata(_Wire):
    """한 페이지 분의 인식 결과 + 원본 이미지 위치"""
    layout_text: OcrLayoutText = Field(default_factory=OcrLayoutText, alias="layoutText")
    image_store_uri: Optional[str] = Field(default=None, alias="imageStoreUri")
    width: Optional[int] = None
    height: Optional[int] = None

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, overload

from shapely.geometry.base import BaseGeometry

from geojsonkit.geometry import Envelope
from geojsonkit.typing import Properties
from geojsonkit.utils import format_type_error

__all__ = ["ID_KEY", "Feature", "FeatureCollection"]

# 保留的属性名，对应 GeoJSON 的 id 成员
ID_KEY = "id"


@dataclass
class Feature:
    """
    GeoJSON 的 Feature

    id 保存在 attributes 的 "id" 键里，写出时会提到顶层。attributes 为 None 表示没有属性。
    """

    geometry: BaseGeometry | None = None
    attributes: Properties | None = None
    bbox: Envelope | None = None

    def __post_init__(self) -> None:
        if self.geometry is not None and not isinstance(self.geometry, BaseGeometry):
            raise TypeError(
                format_type_error("geometry", self.geometry, [BaseGeometry, "None"])
            )
        if self.attributes is not None and not isinstance(self.attributes, dict):
            self.attributes = dict(self.attributes)

    @property
    def id(self) -> Any:
        if self.attributes is None:
            return None
        return self.attributes.get(ID_KEY)

    def set_attribute(self, name: str, value: Any) -> None:
        if self.attributes is None:
            self.attributes = {}
        self.attributes[name] = value

    def envelope(self) -> Envelope | None:
        """显式设置的 bbox，没有时根据几何对象计算，但不会保存。"""
        if self.bbox is not None:
            return self.bbox
        return Envelope.from_geometry(self.geometry)


@dataclass
class FeatureCollection:
    """有序的一组 Feature，可以带一个总的 bbox。"""

    features: list[Feature] = field(default_factory=list)
    bbox: Envelope | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.features, list):
            self.features = list(self.features)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    @overload
    def __getitem__(self, index: int) -> Feature: ...

    @overload
    def __getitem__(self, index: slice) -> list[Feature]: ...

    def __getitem__(self, index: int | slice) -> Feature | list[Feature]:
        return self.features[index]

    def append(self, feature: Feature) -> None:
        if not isinstance(feature, Feature):
            raise TypeError(format_type_error("feature", feature, Feature))
        self.features.append(feature)

    def extend(self, features: Iterable[Feature]) -> None:
        for feature in features:
            self.append(feature)

    def compute_bbox(self) -> Envelope | None:
        """合并所有 Feature 几何对象的包围盒，需要遍历一遍。"""
        return Envelope.union(
            Envelope.from_geometry(feature.geometry) for feature in self.features
        )

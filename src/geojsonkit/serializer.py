from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import numpy as np
from loguru import logger
from shapely.geometry.base import BaseGeometry
from typing_extensions import Unpack

from geojsonkit.conf import PartialConfigDict, SerializerSettings
from geojsonkit.converters import (
    CoordinateConverter,
    EnvelopeConverter,
    FeatureCollectionConverter,
    FeatureConverter,
    GeometryArrayConverter,
    GeometryConverter,
)
from geojsonkit.errors import InvalidConfiguration, MalformedGeometry
from geojsonkit.feature import Feature, FeatureCollection
from geojsonkit.geometry import WGS84_FACTORY, Envelope, GeometryFactory, GeometryKind
from geojsonkit.stream import JsonReader, JsonWriter, TokenType
from geojsonkit.typing import ReadTarget
from geojsonkit.utils import format_literal_error, format_type_error

__all__ = [
    "GeoJsonReader",
    "GeoJsonSerializer",
    "GeoJsonWriter",
    "dumps",
    "loads",
]

_TARGET_NAMES = [
    *GeometryKind.names(),
    "Geometry",
    "Feature",
    "FeatureCollection",
    "geometries",
]


def _validate_dimension(dimension: int, measures: int) -> None:
    for name, value in [("dimension", dimension), ("measures", measures)]:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConfiguration(format_type_error(name, value, int))
        if value < 0:
            raise InvalidConfiguration(f"{name} 不能为负数，但传入的是 {value}")
    if dimension > 4:
        raise InvalidConfiguration(f"dimension 不能超过 4，但传入的是 {dimension}")
    if measures > 1:
        raise InvalidConfiguration(f"measures 不能超过 1，但传入的是 {measures}")
    if dimension - measures < 2:
        raise InvalidConfiguration(
            f"空间维度 dimension - measures 至少为 2，但传入的是 {dimension - measures}"
        )


def _resolve_target(target: ReadTarget) -> GeometryKind | str | None:
    """将读取目标统一成 GeometryKind、目标名或 None"""
    match target:
        case None:
            return None
        case str() if target in _TARGET_NAMES:
            if target in GeometryKind.names():
                return GeometryKind[target]
            return target
        case type() if issubclass(target, Feature):
            return "Feature"
        case type() if issubclass(target, FeatureCollection):
            return "FeatureCollection"
        case type() if target is BaseGeometry:
            return "Geometry"
        case type() if issubclass(target, BaseGeometry):
            for kind in GeometryKind:
                if target is kind.shapely_type:
                    return kind
            raise TypeError(format_type_error("target", target, BaseGeometry))
        case _:
            raise ValueError(format_literal_error("target", target, _TARGET_NAMES))


class GeoJsonSerializer:
    """
    GeoJSON 的序列化器，负责在 shapely 几何对象、Feature、FeatureCollection 和 GeoJSON 文本之间转换。

    Parameters
    ----------
    factory : GeometryFactory, default WGS84_FACTORY
        读取时用来构造几何对象的工厂，其精度模型同时作用于写出。

    dimension : int, default 2
        每个坐标的纵坐标数，包含 measures。最大为 4。

    measures : int, default 0
        每个坐标的测量值数，只能是 0 或 1。

    **options
        覆盖全局 config 的配置，见 geojsonkit.conf.Config。

    Notes
    -----
    构造时会把全局 config 和 options 合并成不可变的 settings，之后修改 config 不会影响这个实例。
    """

    def __init__(
        self,
        factory: GeometryFactory = WGS84_FACTORY,
        dimension: int = 2,
        measures: int = 0,
        **options: Unpack[PartialConfigDict],
    ) -> None:
        if not isinstance(factory, GeometryFactory):
            raise InvalidConfiguration(
                format_type_error("factory", factory, GeometryFactory)
            )
        _validate_dimension(dimension, measures)
        if factory.srid != 4326:
            logger.warning(
                f"GeoJSON 的坐标应该是 WGS84 经纬度，但 factory 的 srid 为 {factory.srid}"
            )

        self.factory = factory
        self.dimension = dimension
        self.measures = measures
        self.settings = SerializerSettings.from_config(**options)

        self.coordinate_converter = CoordinateConverter(factory, dimension, measures)
        self.envelope_converter = EnvelopeConverter(dimension - measures >= 3)
        self.geometry_converter = GeometryConverter(self)
        self.geometry_array_converter = GeometryArrayConverter(self)
        self.feature_converter = FeatureConverter(self)
        self.feature_collection_converter = FeatureCollectionConverter(self)

    def __repr__(self) -> str:
        return (
            f"GeoJsonSerializer(factory={self.factory!r}, dimension={self.dimension}, "
            f"measures={self.measures}, settings={self.settings!r})"
        )

    def _convert(self, obj: Any) -> Any:
        """递归地将带 GeoJSON type 的 dict 转换成对应的对象"""
        match obj:
            case dict():
                type_name = obj.get("type")
                if type_name == "Feature":
                    return self.feature_converter.read(JsonReader.from_object(obj))
                if type_name == "FeatureCollection":
                    return self.feature_collection_converter.read(
                        JsonReader.from_object(obj)
                    )
                if isinstance(type_name, str) and type_name.lower() in {
                    name.lower() for name in GeometryKind.names()
                }:
                    return self.geometry_converter.read(JsonReader.from_object(obj))
                return {name: self._convert(value) for name, value in obj.items()}
            case list():
                return [self._convert(value) for value in obj]
            case _:
                return obj

    def deserialize(self, reader: JsonReader, target: ReadTarget = None) -> Any:
        """
        从 token 流中读取一个值

        Parameters
        ----------
        reader : JsonReader
            停在值的第一个 token 上的读取器。

        target : str, type or None, default None
            读取目标，可以是：

            - 七种几何类型的名字或对应的 shapely 类：类型不符时抛出 MalformedGeometry。
            - 'Geometry' 或 BaseGeometry：任意几何对象。
            - 'Feature' 或 Feature
            - 'FeatureCollection' 或 FeatureCollection
            - 'geometries'：扁平的几何对象数组。
            - None：任意的 JSON 值，其中带 GeoJSON type 的对象会被转换。

        Returns
        -------
        value : Any
            读取的结果。几何对象缺少 type 或坐标时为 None。
        """
        match _resolve_target(target):
            case GeometryKind() as kind:
                geometry = self.geometry_converter.read(reader)
                if geometry is not None and GeometryKind.of(geometry) != kind:
                    raise MalformedGeometry(
                        f"期望读到 {kind.name}，但读到的是 {GeometryKind.of(geometry).name}"
                    )
                return geometry
            case "Geometry":
                return self.geometry_converter.read(reader)
            case "Feature":
                return self.feature_converter.read(reader)
            case "FeatureCollection":
                return self.feature_collection_converter.read(reader)
            case "geometries":
                return self.geometry_array_converter.read(reader)
            case None:
                return self._convert(reader.read_value())

    def read(self, text: str | bytes | bytearray, target: ReadTarget = None) -> Any:
        """解析 GeoJSON 文本，target 的含义同 deserialize。"""
        reader = JsonReader(text)
        value = self.deserialize(reader, target)
        reader.expect(TokenType.NONE, where="文本末尾")

        return value

    def _write_mapping(self, writer: JsonWriter, mapping: Mapping) -> None:
        writer.write_start_object()
        for name, value in mapping.items():
            if not isinstance(name, str):
                raise TypeError(format_type_error("name", name, str))
            writer.write_property_name(name)
            self.serialize(writer, value)
        writer.write_end_object()

    def serialize(self, writer: JsonWriter, value: Any) -> None:
        """将值写入 writer。几何对象的序列会写成几何对象数组。"""
        match value:
            case np.generic():
                self.serialize(writer, value.item())
            case None | bool() | int() | float() | str():
                writer.write_value(value)
            case BaseGeometry():
                self.geometry_converter.write(writer, value)
            case Feature():
                self.feature_converter.write(writer, value)
            case FeatureCollection():
                self.feature_collection_converter.write(writer, value)
            case Envelope():
                self.envelope_converter.write(writer, value)
            case datetime() | date():
                writer.write_value(value.isoformat())
            case np.ndarray():
                self.serialize(writer, value.tolist())
            case Mapping():
                self._write_mapping(writer, value)
            case list() | tuple() if len(value) > 0 and all(
                isinstance(item, BaseGeometry) for item in value
            ):
                self.geometry_array_converter.write(writer, value)
            case list() | tuple():
                writer.write_start_array()
                for item in value:
                    self.serialize(writer, item)
                writer.write_end_array()
            case _:
                raise TypeError(
                    format_type_error(
                        "value",
                        value,
                        [
                            BaseGeometry,
                            Feature,
                            FeatureCollection,
                            Envelope,
                            Mapping,
                            list,
                            tuple,
                            date,
                            np.ndarray,
                            str,
                            int,
                            float,
                            bool,
                            "None",
                        ],
                    )
                )

    def write(self, value: Any) -> str:
        """序列化成紧凑格式的 GeoJSON 文本"""
        writer = JsonWriter()
        self.serialize(writer, value)
        return writer.getvalue()


class GeoJsonReader:
    """读取 GeoJSON 文本的便捷类"""

    def __init__(
        self,
        factory: GeometryFactory = WGS84_FACTORY,
        dimension: int = 2,
        measures: int = 0,
        **options: Unpack[PartialConfigDict],
    ) -> None:
        self.serializer = GeoJsonSerializer(factory, dimension, measures, **options)

    def read(self, text: str | bytes | bytearray, target: ReadTarget = None) -> Any:
        return self.serializer.read(text, target)


class GeoJsonWriter:
    """写出 GeoJSON 文本的便捷类。默认省略缺失的成员。"""

    def __init__(
        self,
        factory: GeometryFactory = WGS84_FACTORY,
        dimension: int = 2,
        measures: int = 0,
        **options: Unpack[PartialConfigDict],
    ) -> None:
        options.setdefault("null_value_handling", "ignore")
        self.serializer = GeoJsonSerializer(factory, dimension, measures, **options)

    def write(self, value: Any) -> str:
        return self.serializer.write(value)


def loads(text: str | bytes | bytearray, target: ReadTarget = None, **kwargs: Any) -> Any:
    """
    解析 GeoJSON 文本

    kwargs 传给 GeoJsonReader，可以是 factory、dimension、measures 和各项配置。
    """
    return GeoJsonReader(**kwargs).read(text, target)


def dumps(value: Any, **kwargs: Any) -> str:
    """
    将几何对象、Feature、FeatureCollection 等序列化成 GeoJSON 文本

    kwargs 传给 GeoJsonWriter。坐标默认只写出 x 和 y，需要 z 时指定 dimension=3。
    """
    return GeoJsonWriter(**kwargs).write(value)

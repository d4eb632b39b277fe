from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import shapely
from loguru import logger
from shapely.geometry.base import BaseGeometry

from geojsonkit.errors import MalformedGeometry, UnexpectedToken
from geojsonkit.geometry import Envelope, GeometryKind, get_xyzm
from geojsonkit.stream import NUMBER_TOKENS, JsonReader, JsonWriter, TokenType
from geojsonkit.typing import PolygonCoordinates
from geojsonkit.utils import format_token_error

if TYPE_CHECKING:
    from geojsonkit.serializer import GeoJsonSerializer

__all__ = ["EnvelopeConverter", "GeometryConverter"]

# 各几何类型的坐标嵌套深度，Point 是单个坐标，用 -1 表示。
_DEPTHS = {
    GeometryKind.Point: -1,
    GeometryKind.LineString: 0,
    GeometryKind.MultiPoint: 0,
    GeometryKind.Polygon: 1,
    GeometryKind.MultiLineString: 1,
    GeometryKind.MultiPolygon: 2,
}

_MISSING: Any = object()


class EnvelopeConverter:
    """bbox 的编解码。include_z 为 True 时写出三维的 bbox。"""

    def __init__(self, include_z: bool = False) -> None:
        self.include_z = include_z

    def write(self, writer: JsonWriter, envelope: Envelope | None) -> None:
        if envelope is None:
            writer.write_null()
            return

        writer.write_start_array()
        for value in envelope.to_bounds(self.include_z):
            writer.write_value(float(value))
        writer.write_end_array()

    def read(self, reader: JsonReader) -> Envelope | None:
        if reader.token_type == TokenType.NULL:
            reader.read()
            return None
        if reader.token_type != TokenType.START_ARRAY:
            raise MalformedGeometry(
                format_token_error("数组或 null", reader.token_type, "bbox")
            )

        reader.read()
        values: list[float] = []
        while reader.token_type != TokenType.END_ARRAY:
            if reader.token_type not in NUMBER_TOKENS:
                raise MalformedGeometry(
                    format_token_error("数值", reader.token_type, "bbox")
                )
            values.append(float(reader.value))
            reader.read()
        reader.read()

        return Envelope.from_bounds(values)


def _polygon_rings(polygon: shapely.Polygon) -> PolygonCoordinates:
    # 空多边形写成 [[]]
    if polygon.is_empty:
        return [np.empty((0, 4))]
    return [get_xyzm(polygon.exterior), *map(get_xyzm, polygon.interiors)]


class GeometryConverter:
    """几何对象的编解码，按 GeometryKind 分派。"""

    def __init__(self, serializer: GeoJsonSerializer) -> None:
        self.serializer = serializer

    @property
    def factory(self):
        return self.serializer.factory

    @property
    def coordinate_converter(self):
        return self.serializer.coordinate_converter

    def _write_coordinates(
        self, writer: JsonWriter, coords: Any, depth: int, has_payload: bool
    ) -> None:
        if not has_payload and not self.serializer.settings.include_null:
            return

        writer.write_property_name("coordinates")
        if not has_payload and depth < 0:
            writer.write_null()
        elif depth < 0:
            self.coordinate_converter.write_coordinate(writer, coords)
        else:
            self.coordinate_converter.write_sequence(writer, coords, depth)

    def write(self, writer: JsonWriter, geometry: BaseGeometry | None) -> None:
        """写出几何对象，None 写成 null。"""
        if geometry is None:
            writer.write_null()
            return

        kind = GeometryKind.of(geometry)
        writer.write_start_object()
        writer.write_property_name("type")
        writer.write_value(kind.name)

        match kind:
            case GeometryKind.Point:
                coords = None if geometry.is_empty else get_xyzm(geometry)[0]
                self._write_coordinates(writer, coords, -1, coords is not None)
            case GeometryKind.LineString | GeometryKind.MultiPoint:
                self._write_coordinates(writer, get_xyzm(geometry), 0, True)
            case GeometryKind.Polygon:
                self._write_coordinates(writer, _polygon_rings(geometry), 1, True)
            case GeometryKind.MultiLineString:
                coords = list(map(get_xyzm, geometry.geoms))
                self._write_coordinates(writer, coords, 1, len(coords) > 0)
            case GeometryKind.MultiPolygon:
                coords = list(map(_polygon_rings, geometry.geoms))
                self._write_coordinates(writer, coords, 2, len(coords) > 0)
            case GeometryKind.GeometryCollection:
                writer.write_property_name("geometries")
                writer.write_start_array()
                for part in geometry.geoms:
                    self.write(writer, part)
                writer.write_end_array()

        writer.write_end_object()

    def _read_payload(self, reader: JsonReader, kind: GeometryKind) -> Any:
        depth = _DEPTHS[kind]
        if depth < 0:
            return self.coordinate_converter.read_coordinate(reader)
        return self.coordinate_converter.read_sequence(reader, depth)

    def _read_geometries(self, reader: JsonReader) -> list[BaseGeometry]:
        if reader.token_type != TokenType.START_ARRAY:
            raise MalformedGeometry(
                format_token_error("数组", reader.token_type, "geometries")
            )
        reader.read()

        geometries: list[BaseGeometry] = []
        while reader.token_type != TokenType.END_ARRAY:
            if reader.token_type == TokenType.NONE:
                raise UnexpectedToken(format_token_error("]", reader.token_type))
            geometry = self.read(reader)
            if geometry is not None:
                geometries.append(geometry)
        reader.read()

        return geometries

    def _create_polygon(self, rings: list[Any]) -> shapely.Polygon:
        if len(rings) == 0:
            raise MalformedGeometry("Polygon 至少需要一个环")
        return self.factory.create_polygon(rings[0], rings[1:])

    def _create(self, kind: GeometryKind, payload: Any) -> BaseGeometry:
        factory = self.factory
        match kind:
            case GeometryKind.Point:
                return factory.create_point(payload)
            case GeometryKind.LineString:
                return factory.create_line_string(payload)
            case GeometryKind.Polygon:
                return self._create_polygon(payload)
            case GeometryKind.MultiPoint:
                return factory.create_multi_point(payload)
            case GeometryKind.MultiLineString:
                return factory.create_multi_line_string(
                    map(factory.create_line_string, payload)
                )
            case GeometryKind.MultiPolygon:
                return factory.create_multi_polygon(map(self._create_polygon, payload))
            case GeometryKind.GeometryCollection:
                return factory.create_geometry_collection(payload)

    def read(self, reader: JsonReader) -> BaseGeometry | None:
        """
        读取几何对象

        成员顺序任意。缺少 type 或坐标时返回 None，null 也返回 None。
        bbox 和未知成员读取后丢弃。
        """
        if reader.token_type == TokenType.NULL:
            reader.read()
            return None
        if reader.token_type != TokenType.START_OBJECT:
            raise MalformedGeometry(
                format_token_error("对象或 null", reader.token_type, "geometry")
            )

        kind: GeometryKind | None = None
        # type 出现在 coordinates 之后时，先把坐标读成普通对象，之后再按深度解析。
        raw_coordinates: Any = _MISSING
        payload: Any = _MISSING
        geometries: list[BaseGeometry] | None = None

        for name in reader.iter_members("geometry"):
            match name:
                case "type":
                    value = reader.read_value()
                    if kind is None:
                        kind = GeometryKind.parse(value)
                case "coordinates":
                    if reader.token_type == TokenType.NULL:
                        reader.read()
                    elif kind is not None and kind != GeometryKind.GeometryCollection:
                        payload = self._read_payload(reader, kind)
                    else:
                        raw_coordinates = reader.read_value()
                case "geometries":
                    if reader.token_type == TokenType.NULL:
                        reader.read()
                    else:
                        geometries = self._read_geometries(reader)
                case "bbox":
                    reader.read_value()
                case _:
                    logger.debug(f"丢弃几何对象的未知成员：{name}")
                    reader.skip()

        if kind is None:
            return None
        if kind == GeometryKind.GeometryCollection:
            if geometries is None:
                return None
            return self._create(kind, geometries)

        if payload is _MISSING and raw_coordinates is not _MISSING:
            payload = self._read_payload(JsonReader.from_object(raw_coordinates), kind)
        if payload is _MISSING:
            return None

        return self._create(kind, payload)

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from shapely.geometry.base import BaseGeometry

from geojsonkit.errors import MalformedGeometry, NotSupported, UnexpectedToken
from geojsonkit.geometry import GeometryKind
from geojsonkit.stream import JsonReader, JsonWriter, TokenType
from geojsonkit.utils import format_token_error

if TYPE_CHECKING:
    from geojsonkit.serializer import GeoJsonSerializer

__all__ = ["GeometryArrayConverter"]


class GeometryArrayConverter:
    """
    扁平的几何对象数组的编解码

    数组元素都是带 type 和 coordinates 的几何对象，不支持嵌套的 GeometryCollection。
    """

    def __init__(self, serializer: GeoJsonSerializer) -> None:
        self.serializer = serializer

    def write(self, writer: JsonWriter, geometries: Iterable[BaseGeometry]) -> None:
        geometry_converter = self.serializer.geometry_converter
        writer.write_start_array()
        for geometry in geometries:
            geometry_converter.write(writer, geometry)
        writer.write_end_array()

    def read(self, reader: JsonReader) -> list[BaseGeometry]:
        if reader.token_type != TokenType.START_ARRAY:
            raise UnexpectedToken(
                format_token_error("数组", reader.token_type, "geometries")
            )
        reader.read()

        geometry_converter = self.serializer.geometry_converter
        geometries: list[BaseGeometry] = []
        while reader.token_type != TokenType.END_ARRAY:
            if reader.token_type != TokenType.START_OBJECT:
                raise MalformedGeometry(
                    format_token_error("几何对象", reader.token_type, "geometries")
                )

            obj = reader.read_value()
            kind = GeometryKind.parse(obj.get("type"))
            if kind == GeometryKind.GeometryCollection:
                raise NotSupported("几何对象数组中不支持嵌套的 GeometryCollection")

            geometry = geometry_converter.read(JsonReader.from_object(obj))
            if geometry is None:
                raise MalformedGeometry(f"{kind.name} 缺少 coordinates")
            geometries.append(geometry)
        reader.read()

        return geometries

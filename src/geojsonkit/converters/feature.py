from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from geojsonkit.errors import MalformedGeometry, UnexpectedFeatureType, UnexpectedToken
from geojsonkit.feature import ID_KEY, Feature
from geojsonkit.stream import JsonReader, JsonWriter, TokenType
from geojsonkit.utils import format_literal_error, format_token_error

if TYPE_CHECKING:
    from geojsonkit.serializer import GeoJsonSerializer

__all__ = ["FeatureConverter"]


def _set_id(feature: Feature, value: Any, source: str) -> None:
    # 顶层 id 和 properties 中的 id 后读到的覆盖先读到的
    if feature.attributes is not None and ID_KEY in feature.attributes:
        logger.debug(
            f"{source} 覆盖了已有的 id：{feature.attributes[ID_KEY]!r} -> {value!r}"
        )
    feature.set_attribute(ID_KEY, value)


class FeatureConverter:
    """
    Feature 的编解码

    写出时 id 从 "id" 属性中取出放到顶层，默认不再写进 properties；
    读取时顶层的 id 会写进 "id" 属性。两者始终保持一致。
    """

    def __init__(self, serializer: GeoJsonSerializer) -> None:
        self.serializer = serializer

    def write(self, writer: JsonWriter, feature: Feature) -> None:
        serializer = self.serializer
        settings = serializer.settings
        attributes = feature.attributes

        writer.write_start_object()
        writer.write_property_name("type")
        writer.write_value("Feature")

        if attributes is not None and ID_KEY in attributes:
            writer.write_property_name("id")
            serializer.serialize(writer, attributes[ID_KEY])

        # 没有显式的 bbox 时临时计算，不保存到 feature 上
        if settings.include_null or feature.bbox is not None:
            writer.write_property_name("bbox")
            serializer.envelope_converter.write(writer, feature.envelope())

        if settings.include_null or feature.geometry is not None:
            writer.write_property_name("geometry")
            serializer.geometry_converter.write(writer, feature.geometry)

        properties = attributes
        if (
            properties is not None
            and not settings.write_id_to_properties
            and ID_KEY in properties
        ):
            properties = {k: v for k, v in properties.items() if k != ID_KEY}
        if settings.include_null or properties:
            writer.write_property_name("properties")
            serializer.serialize(writer, properties)

        writer.write_end_object()

    def _read_properties(self, reader: JsonReader, feature: Feature) -> None:
        if reader.token_type == TokenType.NULL:
            # "properties": null 等价于没有 properties
            if self.serializer.settings.properties_null_as_missing:
                reader.read()
                return
            raise UnexpectedToken(
                format_token_error("对象", reader.token_type, "properties")
            )
        if reader.token_type != TokenType.START_OBJECT:
            raise UnexpectedToken(
                format_token_error("对象或 null", reader.token_type, "properties")
            )

        for name, value in reader.read_value().items():
            if name == ID_KEY:
                _set_id(feature, value, "properties.id")
            else:
                feature.set_attribute(name, value)

    def read(self, reader: JsonReader) -> Feature:
        """读取 Feature，成员顺序任意，未知成员读取后丢弃。"""
        if reader.token_type != TokenType.START_OBJECT:
            raise UnexpectedToken(
                format_token_error("对象", reader.token_type, "Feature")
            )

        feature = Feature()
        for name in reader.iter_members("Feature"):
            match name:
                case "type":
                    value = reader.read_value()
                    if value != "Feature":
                        raise UnexpectedFeatureType(
                            format_literal_error("type", value, "Feature")
                        )
                case "id":
                    _set_id(feature, reader.read_value(), "id")
                case "bbox":
                    feature.bbox = self.serializer.envelope_converter.read(reader)
                case "geometry":
                    if reader.token_type == TokenType.NULL:
                        reader.read()
                    elif reader.token_type == TokenType.START_OBJECT:
                        feature.geometry = self.serializer.geometry_converter.read(
                            reader
                        )
                    else:
                        raise MalformedGeometry(
                            format_token_error(
                                "对象或 null", reader.token_type, "geometry"
                            )
                        )
                case "properties":
                    self._read_properties(reader, feature)
                case _:
                    logger.debug(f"丢弃 Feature 的未知成员：{name}")
                    reader.skip()

        return feature

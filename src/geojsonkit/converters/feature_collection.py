from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from geojsonkit.errors import UnexpectedFeatureType, UnexpectedToken
from geojsonkit.feature import FeatureCollection
from geojsonkit.stream import JsonReader, JsonWriter, TokenType
from geojsonkit.utils import format_literal_error, format_token_error

if TYPE_CHECKING:
    from geojsonkit.serializer import GeoJsonSerializer

__all__ = ["FeatureCollectionConverter"]


class FeatureCollectionConverter:
    def __init__(self, serializer: GeoJsonSerializer) -> None:
        self.serializer = serializer

    def write(self, writer: JsonWriter, collection: FeatureCollection) -> None:
        """按 type、bbox、features 的顺序写出"""
        serializer = self.serializer
        writer.write_start_object()
        writer.write_property_name("type")
        writer.write_value("FeatureCollection")

        bbox = collection.bbox
        if bbox is None and serializer.settings.include_null:
            bbox = collection.compute_bbox()
        if bbox is not None or serializer.settings.include_null:
            writer.write_property_name("bbox")
            serializer.envelope_converter.write(writer, bbox)

        writer.write_property_name("features")
        writer.write_start_array()
        for feature in collection:
            serializer.feature_converter.write(writer, feature)
        writer.write_end_array()

        writer.write_end_object()

    def _read_features(self, reader: JsonReader, collection: FeatureCollection) -> None:
        if reader.token_type != TokenType.START_ARRAY:
            raise UnexpectedToken(
                format_token_error("数组", reader.token_type, "features")
            )
        reader.read()

        feature_converter = self.serializer.feature_converter
        while reader.token_type != TokenType.END_ARRAY:
            collection.append(feature_converter.read(reader))
        reader.read()

    def read(self, reader: JsonReader) -> FeatureCollection:
        """
        读取 FeatureCollection

        crs 和未知成员读取后丢弃。compute_bbox_when_missing 为 True 且没有 bbox 时，
        会遍历所有 Feature 计算 bbox。
        """
        if reader.token_type != TokenType.START_OBJECT:
            raise UnexpectedToken(
                format_token_error("对象", reader.token_type, "FeatureCollection")
            )

        collection = FeatureCollection()
        for name in reader.iter_members("FeatureCollection"):
            match name:
                case "type":
                    value = reader.read_value()
                    if value != "FeatureCollection":
                        raise UnexpectedFeatureType(
                            format_literal_error("type", value, "FeatureCollection")
                        )
                case "features":
                    self._read_features(reader, collection)
                case "bbox":
                    collection.bbox = self.serializer.envelope_converter.read(reader)
                case "crs":
                    logger.debug("丢弃 FeatureCollection 的 crs 成员")
                    reader.skip()
                case _:
                    logger.debug(f"丢弃 FeatureCollection 的未知成员：{name}")
                    reader.skip()

        if collection.bbox is None and self.serializer.settings.compute_bbox_when_missing:
            logger.debug("FeatureCollection 缺少 bbox，根据 Feature 计算")
            collection.bbox = collection.compute_bbox()

        return collection

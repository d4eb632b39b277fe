from __future__ import annotations

from loguru import logger

from geojsonkit.conf import config
from geojsonkit.feature import Feature, FeatureCollection
from geojsonkit.geometry import (
    WGS84_FACTORY,
    Envelope,
    GeometryFactory,
    GeometryKind,
    PrecisionModel,
)
from geojsonkit.serializer import (
    GeoJsonReader,
    GeoJsonSerializer,
    GeoJsonWriter,
    dumps,
    loads,
)

__version__ = "0.1.0"

__all__ = [
    "WGS84_FACTORY",
    "Envelope",
    "Feature",
    "FeatureCollection",
    "GeoJsonReader",
    "GeoJsonSerializer",
    "GeoJsonWriter",
    "GeometryFactory",
    "GeometryKind",
    "PrecisionModel",
    "config",
    "dumps",
    "loads",
]

# 库默认不输出日志，需要时调用 logger.enable("geojsonkit")
logger.disable("geojsonkit")

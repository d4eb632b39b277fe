from __future__ import annotations

__all__ = [
    "GeoJSONError",
    "InvalidConfiguration",
    "MalformedCoordinate",
    "MalformedGeometry",
    "NotSupported",
    "UnexpectedFeatureType",
    "UnexpectedToken",
    "UnknownGeometryKind",
]


class GeoJSONError(ValueError):
    """读写 GeoJSON 时所有错误的基类"""


class MalformedCoordinate(GeoJSONError):
    """坐标不是数组、元素少于两个，或者含有非数值的元素。"""


class MalformedGeometry(GeoJSONError):
    """geometry 不是对象，或者坐标嵌套结构与类型不符。"""


class UnknownGeometryKind(GeoJSONError):
    """type 不属于七种几何类型"""


class UnexpectedFeatureType(GeoJSONError):
    """type 不是期望的 Feature 或 FeatureCollection"""


class InvalidConfiguration(GeoJSONError):
    pass


class NotSupported(GeoJSONError):
    pass


class UnexpectedToken(GeoJSONError):
    """token 流的结构与期望不符"""

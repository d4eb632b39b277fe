from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal, TypeAlias, overload

import numpy as np
import shapely
from numpy.typing import ArrayLike, NDArray
from shapely.errors import GEOSException, ShapelyError
from shapely.geometry.base import BaseGeometry

from geojsonkit.errors import (
    InvalidConfiguration,
    MalformedGeometry,
    UnknownGeometryKind,
)
from geojsonkit.utils import format_literal_error, format_type_error

"""
- 坐标在内部统一用形如 (n, 4) 的 float 数组表示，四列依次是 x、y、z、m，缺失的纵坐标用 NaN 填充。
- 带 m 的几何对象需要 shapely >= 2.1，通过 WKT 构造。
- 精度模型只作用于 x 和 y。
"""

__all__ = [
    "WGS84_FACTORY",
    "Envelope",
    "GeometryFactory",
    "GeometryKind",
    "PrecisionModel",
    "PrecisionModelType",
    "get_xyzm",
]

PrecisionModelType: TypeAlias = Literal["floating", "floating_single", "fixed"]


class GeometryKind(IntEnum):
    """GeoJSON 允许的七种几何类型。成员名即 type 的值。"""

    Point = 0
    LineString = 1
    Polygon = 2
    MultiPoint = 3
    MultiLineString = 4
    MultiPolygon = 5
    GeometryCollection = 6

    @classmethod
    def parse(cls, name: str) -> GeometryKind:
        """用 type 的值查找几何类型，不区分大小写。"""
        if isinstance(name, str):
            for kind in cls:
                if kind.name.lower() == name.lower():
                    return kind
        raise UnknownGeometryKind(format_literal_error("type", name, cls.names()))

    @classmethod
    def names(cls) -> list[str]:
        return [kind.name for kind in cls]

    @classmethod
    def of(cls, geometry: BaseGeometry) -> GeometryKind:
        """几何对象对应的类型。LinearRing 视为 LineString。"""
        match geometry:
            case shapely.Point():
                return cls.Point
            case shapely.LineString():
                return cls.LineString
            case shapely.Polygon():
                return cls.Polygon
            case shapely.MultiPoint():
                return cls.MultiPoint
            case shapely.MultiLineString():
                return cls.MultiLineString
            case shapely.MultiPolygon():
                return cls.MultiPolygon
            case shapely.GeometryCollection():
                return cls.GeometryCollection
            case _:
                raise TypeError(format_type_error("geometry", geometry, BaseGeometry))

    @property
    def shapely_type(self) -> type[BaseGeometry]:
        return getattr(shapely, self.name)


@dataclass(frozen=True)
class PrecisionModel:
    """
    坐标的精度模型

    - floating：不做处理
    - floating_single：舍入到单精度浮点
    - fixed：按 scale 舍入，例如 scale=100 表示保留两位小数。
    """

    model_type: PrecisionModelType = "floating"
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.model_type not in {"floating", "floating_single", "fixed"}:
            raise InvalidConfiguration(
                format_literal_error(
                    "model_type",
                    self.model_type,
                    ["floating", "floating_single", "fixed"],
                )
            )
        if self.model_type == "fixed" and not (
            math.isfinite(self.scale) and self.scale > 0
        ):
            raise InvalidConfiguration(f"scale 必须是正数，但传入的是 {self.scale}")

    @classmethod
    def fixed(cls, scale: float) -> PrecisionModel:
        return cls("fixed", float(scale))

    @classmethod
    def from_decimals(cls, decimals: int) -> PrecisionModel:
        """保留 decimals 位小数的精度模型"""
        return cls.fixed(10.0**decimals)

    @overload
    def make_precise(self, value: float) -> float: ...

    @overload
    def make_precise(self, value: NDArray) -> NDArray: ...

    def make_precise(self, value: float | NDArray) -> float | NDArray:
        """按精度模型舍入。NaN 保持不变。"""
        match self.model_type:
            case "floating":
                return value
            case "floating_single":
                result = np.asarray(value, dtype=np.float32).astype(np.float64)
            case "fixed":
                result = np.round(np.asarray(value, dtype=np.float64) * self.scale)
                result = result / self.scale

        if np.ndim(result) == 0:
            return float(result)
        return result


def get_xyzm(geometry: BaseGeometry) -> NDArray[np.float64]:
    """获取几何对象的坐标，返回形如 (n, 4) 的数组，缺失的 z 和 m 用 NaN 填充。"""
    has_z = bool(shapely.has_z(geometry))
    has_m = bool(shapely.has_m(geometry))
    coords = shapely.get_coordinates(geometry, include_z=has_z, include_m=has_m)

    xyzm = np.full((coords.shape[0], 4), np.nan)
    xyzm[:, :2] = coords[:, :2]
    if has_z:
        xyzm[:, 2] = coords[:, 2]
    if has_m:
        xyzm[:, 3] = coords[:, -1]

    return xyzm


def _as_xyzm(coords: ArrayLike) -> NDArray[np.float64]:
    coords = np.asarray(coords, dtype=np.float64)
    if coords.size == 0:
        return np.empty((0, 4))
    if coords.ndim == 1:
        coords = coords[np.newaxis]
    if coords.ndim != 2 or not 2 <= coords.shape[1] <= 4:
        raise MalformedGeometry("要求 coords 是形如 (n, 2)、(n, 3) 或 (n, 4) 的二维数组")
    if coords.shape[1] < 4:
        pad = np.full((coords.shape[0], 4 - coords.shape[1]), np.nan)
        coords = np.hstack([coords, pad])

    return coords


def _has_ordinate(coords: NDArray, column: int) -> bool:
    return bool(coords.shape[0] > 0 and not np.isnan(coords[:, column]).all())


def _check_closed(ring: NDArray, kind: str) -> None:
    # 空环不检查
    if ring.shape[0] > 0 and not np.array_equal(ring[0], ring[-1], equal_nan=True):
        raise MalformedGeometry(f"{kind} 的环必须首尾相接")


def _format_ordinate(value: float) -> str:
    return "NaN" if math.isnan(value) else repr(float(value))


def _wkt_sequence(coords: NDArray, has_z: bool) -> str:
    columns = [0, 1, 2, 3] if has_z else [0, 1, 3]
    return (
        "("
        + ", ".join(
            " ".join(_format_ordinate(row[i]) for i in columns) for row in coords
        )
        + ")"
    )


class GeometryFactory:
    """
    用坐标数组构造 shapely 几何对象的工厂

    Parameters
    ----------
    precision_model : PrecisionModel or None, default None
        读写时用来舍入 x 和 y 的精度模型。默认为 None，表示不做舍入。

    srid : int, default 0
        赋给新建几何对象的空间参考 ID。0 表示不设置。
    """

    def __init__(
        self, precision_model: PrecisionModel | None = None, srid: int = 0
    ) -> None:
        if precision_model is None:
            precision_model = PrecisionModel()
        if not isinstance(precision_model, PrecisionModel):
            raise InvalidConfiguration(
                format_type_error("precision_model", precision_model, PrecisionModel)
            )
        if not isinstance(srid, int) or srid < 0:
            raise InvalidConfiguration(f"srid 必须是非负整数，但传入的是 {srid!r}")
        self.precision_model = precision_model
        self.srid = srid

    def __repr__(self) -> str:
        return f"GeometryFactory(precision_model={self.precision_model!r}, srid={self.srid})"

    def make_precise(self, value: float | NDArray) -> float | NDArray:
        return self.precision_model.make_precise(value)

    def _finish(self, geometry: BaseGeometry) -> BaseGeometry:
        if self.srid != 0:
            geometry = shapely.set_srid(geometry, self.srid)
        return geometry

    def _from_wkt(self, wkt: str) -> BaseGeometry:
        try:
            return shapely.from_wkt(wkt)
        except GEOSException as e:
            raise MalformedGeometry(str(e)) from e

    def create_point(self, coordinate: ArrayLike | None = None) -> shapely.Point:
        """用单个坐标构造点。coordinate 为 None 时返回空点。"""
        if coordinate is None:
            return self._finish(shapely.Point())
        coords = _as_xyzm(coordinate)
        if coords.shape[0] != 1:
            raise MalformedGeometry("点只能有一个坐标")
        has_z = _has_ordinate(coords, 2)
        if _has_ordinate(coords, 3):
            tag = "ZM" if has_z else "M"
            point = self._from_wkt(f"POINT {tag} {_wkt_sequence(coords, has_z)}")
        else:
            point = shapely.Point(coords[0, : 3 if has_z else 2])

        return self._finish(point)

    def _create_curve(
        self, coords: ArrayLike, kind: Literal["LINESTRING", "LINEARRING"]
    ) -> shapely.LineString:
        coords = _as_xyzm(coords)
        if kind == "LINEARRING":
            _check_closed(coords, "LinearRing")
        has_z = _has_ordinate(coords, 2)
        try:
            if _has_ordinate(coords, 3):
                tag = "ZM" if has_z else "M"
                return self._from_wkt(f"{kind} {tag} {_wkt_sequence(coords, has_z)}")
            if coords.shape[0] == 0:
                return shapely.LinearRing() if kind == "LINEARRING" else shapely.LineString()
            coords = coords[:, : 3 if has_z else 2]
            if kind == "LINEARRING":
                return shapely.LinearRing(coords)
            return shapely.LineString(coords)
        except (ValueError, ShapelyError) as e:
            raise MalformedGeometry(f"无法构造 {kind}：{e}") from e

    def create_line_string(self, coords: ArrayLike) -> shapely.LineString:
        return self._finish(self._create_curve(coords, "LINESTRING"))

    def create_linear_ring(self, coords: ArrayLike) -> shapely.LinearRing:
        """构造环。首尾不相接时抛出 MalformedGeometry。"""
        return self._finish(self._create_curve(coords, "LINEARRING"))

    def create_polygon(
        self, shell: ArrayLike, holes: Sequence[ArrayLike] | None = None
    ) -> shapely.Polygon:
        """用外环和若干内环的坐标构造多边形。每个环都必须首尾相接。"""
        rings = [_as_xyzm(shell)]
        if holes is not None:
            rings.extend(map(_as_xyzm, holes))
        for ring in rings:
            _check_closed(ring, "Polygon")
        has_z = any(_has_ordinate(ring, 2) for ring in rings)
        has_m = any(_has_ordinate(ring, 3) for ring in rings)

        if rings[0].shape[0] == 0:
            if any(ring.shape[0] > 0 for ring in rings[1:]):
                raise MalformedGeometry("外环为空时不能有内环")
            return self._finish(shapely.Polygon())

        try:
            if has_m:
                tag = "ZM" if has_z else "M"
                body = ", ".join(_wkt_sequence(ring, has_z) for ring in rings)
                polygon = self._from_wkt(f"POLYGON {tag} ({body})")
            else:
                stop = 3 if has_z else 2
                polygon = shapely.Polygon(
                    rings[0][:, :stop], [ring[:, :stop] for ring in rings[1:]]
                )
        except (ValueError, ShapelyError) as e:
            raise MalformedGeometry(f"无法构造 Polygon：{e}") from e

        return self._finish(polygon)

    def create_multi_point(
        self, points: Iterable[shapely.Point] | ArrayLike
    ) -> shapely.MultiPoint:
        """用一组点或坐标数组构造多点"""
        if not isinstance(points, np.ndarray):
            points = list(points)  # type: ignore[arg-type]
            if all(isinstance(point, shapely.Point) for point in points):
                try:
                    return self._finish(shapely.MultiPoint(points))
                except (ValueError, ShapelyError) as e:
                    raise MalformedGeometry(f"无法构造 MultiPoint：{e}") from e
        coords = _as_xyzm(points)
        return self._finish(shapely.MultiPoint([self.create_point(c) for c in coords]))

    def create_multi_line_string(
        self, line_strings: Iterable[shapely.LineString]
    ) -> shapely.MultiLineString:
        try:
            geometry = shapely.MultiLineString(list(line_strings))
        except (ValueError, ShapelyError) as e:
            raise MalformedGeometry(f"无法构造 MultiLineString：{e}") from e
        return self._finish(geometry)

    def create_multi_polygon(
        self, polygons: Iterable[shapely.Polygon]
    ) -> shapely.MultiPolygon:
        try:
            geometry = shapely.MultiPolygon(list(polygons))
        except (ValueError, ShapelyError) as e:
            raise MalformedGeometry(f"无法构造 MultiPolygon：{e}") from e
        return self._finish(geometry)

    def create_geometry_collection(
        self, geometries: Iterable[BaseGeometry]
    ) -> shapely.GeometryCollection:
        return self._finish(shapely.GeometryCollection(list(geometries)))


WGS84_FACTORY = GeometryFactory(PrecisionModel(), srid=4326)


@dataclass(frozen=True)
class Envelope:
    """
    坐标轴对齐的包围盒

    minz 和 maxz 为 None 时表示二维的包围盒。空几何对象没有包围盒，用 None 表示。
    """

    minx: float
    miny: float
    maxx: float
    maxy: float
    minz: float | None = None
    maxz: float | None = None

    def __post_init__(self) -> None:
        if (self.minz is None) != (self.maxz is None):
            raise MalformedGeometry("minz 和 maxz 必须同时给出")

    @classmethod
    def from_geometry(cls, geometry: BaseGeometry | None) -> Envelope | None:
        """计算几何对象的包围盒，空几何对象返回 None。"""
        if geometry is None or geometry.is_empty:
            return None

        coords = get_xyzm(geometry)
        xy = coords[:, :2]
        xy = xy[~np.isnan(xy).any(axis=1)]
        if xy.shape[0] == 0:
            return None
        minx, miny = xy.min(axis=0).tolist()
        maxx, maxy = xy.max(axis=0).tolist()

        z = coords[:, 2]
        z = z[~np.isnan(z)]
        if z.size > 0:
            return cls(minx, miny, maxx, maxy, float(z.min()), float(z.max()))
        return cls(minx, miny, maxx, maxy)

    @classmethod
    def from_bounds(cls, bounds: Sequence[float]) -> Envelope:
        """
        用 GeoJSON 的 bbox 数组构造包围盒

        二维为 [minx, miny, maxx, maxy]，三维为 [minx, miny, minz, maxx, maxy, maxz]。
        """
        values = [float(value) for value in bounds]
        match len(values):
            case 4:
                return cls(*values)
            case 6:
                minx, miny, minz, maxx, maxy, maxz = values
                return cls(minx, miny, maxx, maxy, minz, maxz)
            case _:
                raise MalformedGeometry(
                    f"bbox 需要 4 个或 6 个数值，但传入的是 {len(values)} 个"
                )

    def to_bounds(self, include_z: bool = True) -> list[float]:
        """转换为 GeoJSON 的 bbox 数组"""
        if include_z and self.minz is not None and self.maxz is not None:
            return [self.minx, self.miny, self.minz, self.maxx, self.maxy, self.maxz]
        return [self.minx, self.miny, self.maxx, self.maxy]

    def expand_to_include(self, other: Envelope | None) -> Envelope:
        """返回同时包含两个包围盒的新包围盒"""
        if other is None:
            return self

        minz = maxz = None
        z_values = [
            value
            for value in (self.minz, self.maxz, other.minz, other.maxz)
            if value is not None
        ]
        if z_values:
            minz, maxz = min(z_values), max(z_values)

        return Envelope(
            min(self.minx, other.minx),
            min(self.miny, other.miny),
            max(self.maxx, other.maxx),
            max(self.maxy, other.maxy),
            minz,
            maxz,
        )

    @classmethod
    def union(cls, envelopes: Iterable[Envelope | None]) -> Envelope | None:
        """合并一组包围盒，全部为 None 时返回 None。"""
        result: Envelope | None = None
        for envelope in envelopes:
            if envelope is None:
                continue
            result = envelope if result is None else result.expand_to_include(envelope)
        return result

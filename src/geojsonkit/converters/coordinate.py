from __future__ import annotations

import math
from typing import Any

import numpy as np
from numpy.typing import NDArray

from geojsonkit.errors import MalformedCoordinate, UnexpectedToken
from geojsonkit.geometry import GeometryFactory
from geojsonkit.stream import NUMBER_TOKENS, JsonReader, JsonWriter, TokenType
from geojsonkit.typing import CoordinateSequence
from geojsonkit.utils import format_token_error

__all__ = ["CoordinateConverter"]


class CoordinateConverter:
    """
    单个坐标和坐标序列的编解码

    Parameters
    ----------
    factory : GeometryFactory
        用其精度模型舍入 x 和 y

    dimension : int, default 2
        每个坐标的纵坐标数，包含 measures。

    measures : int, default 0
        每个坐标的测量值数，只能是 0 或 1。

    读写时第 3 个及之后的纵坐标按 dimension 和 measures 解释：
    (3, 0) 是 XYZ，(3, 1) 是 XYM，(4, 1) 是 XYZM。
    """

    def __init__(
        self, factory: GeometryFactory, dimension: int = 2, measures: int = 0
    ) -> None:
        self.factory = factory
        self.dimension = dimension
        self.measures = measures

        # 第 3 个及之后的纵坐标在 xyzm 数组中的列号
        self.extra_columns: list[int] = []
        if dimension - measures >= 3:
            self.extra_columns.append(2)
        if measures >= 1:
            self.extra_columns.append(3)

    def read_coordinate(self, reader: JsonReader) -> NDArray[np.float64] | None:
        """
        读取单个坐标，返回长度为 4 的 xyzm 数组。

        x 和 y 都是 null 时表示坐标缺失，返回 None。
        """
        if reader.token_type != TokenType.START_ARRAY:
            raise MalformedCoordinate(
                format_token_error("坐标数组", reader.token_type, "coordinates")
            )
        reader.read()

        values: list[float | None] = []
        while reader.token_type != TokenType.END_ARRAY:
            if reader.token_type in NUMBER_TOKENS:
                values.append(float(reader.value))
            elif reader.token_type == TokenType.NULL:
                values.append(None)
            else:
                raise MalformedCoordinate(
                    format_token_error("数值", reader.token_type, "coordinates")
                )
            reader.read()
        reader.read()

        if len(values) < 2:
            raise MalformedCoordinate(f"坐标至少需要两个数值，但只有 {len(values)} 个")
        if values[0] is None and values[1] is None:
            return None

        xyzm = np.full(4, np.nan)
        xyzm[:2] = self.factory.make_precise(
            np.array([values[0], values[1]], dtype=np.float64)
        )
        for column, value in zip(self.extra_columns, values[2 : self.dimension]):
            if value is not None:
                xyzm[column] = value

        return xyzm

    def read_sequence(self, reader: JsonReader, depth: int = 0) -> CoordinateSequence:
        """
        读取嵌套深度为 depth 的坐标序列

        - depth=0：LineString 和 MultiPoint，返回 (n, 4) 数组。
        - depth=1：Polygon 和 MultiLineString，返回数组的列表。
        - depth=2：MultiPolygon，返回列表的列表。

        读到数组的右括号即结束，缺失的坐标会被丢弃。
        """
        if reader.token_type != TokenType.START_ARRAY:
            raise MalformedCoordinate(
                format_token_error("坐标数组", reader.token_type, "coordinates")
            )
        reader.read()

        items: list[Any] = []
        while reader.token_type != TokenType.END_ARRAY:
            if reader.token_type == TokenType.NONE:
                raise UnexpectedToken(format_token_error("]", reader.token_type))
            if depth == 0:
                coordinate = self.read_coordinate(reader)
                if coordinate is not None:
                    items.append(coordinate)
            else:
                items.append(self.read_sequence(reader, depth - 1))
        reader.read()

        if depth == 0:
            return np.array(items).reshape(-1, 4)
        return items

    def _ordinates(self, xy: NDArray, xyzm: NDArray) -> list[float]:
        ordinates = [float(xy[0]), float(xy[1])]
        ordinates.extend(float(xyzm[column]) for column in self.extra_columns)
        # 末尾缺失的纵坐标不写出，中间缺失的写成 null
        while len(ordinates) > 2 and math.isnan(ordinates[-1]):
            ordinates.pop()

        return ordinates

    def write_coordinate(self, writer: JsonWriter, xyzm: NDArray) -> None:
        """写出单个坐标，x 和 y 按精度模型舍入，其余纵坐标原样写出。"""
        xy = self.factory.make_precise(np.asarray(xyzm[:2], dtype=np.float64))
        writer.write_start_array()
        for value in self._ordinates(xy, xyzm):
            writer.write_value(value)
        writer.write_end_array()

    def write_sequence(
        self, writer: JsonWriter, coords: CoordinateSequence, depth: int = 0
    ) -> None:
        """写出嵌套深度为 depth 的坐标序列，每层都显式闭合。"""
        writer.write_start_array()
        if depth == 0:
            coords = np.asarray(coords, dtype=np.float64).reshape(-1, 4)
            xy = self.factory.make_precise(coords[:, :2])
            for i in range(coords.shape[0]):
                writer.write_start_array()
                for value in self._ordinates(xy[i], coords[i]):
                    writer.write_value(value)
                writer.write_end_array()
        else:
            for item in coords:
                self.write_sequence(writer, item, depth - 1)
        writer.write_end_array()

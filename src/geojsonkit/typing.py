from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, TypeAlias

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

__all__ = [
    "CoordinateArray",
    "CoordinateSequence",
    "GeometryTypeName",
    "NullValueHandling",
    "PolygonCoordinates",
    "Properties",
    "ReadTarget",
]

# 形如 (n, 4) 的 xyzm 数组，赋值操作需要用前向引用
CoordinateArray: TypeAlias = "NDArray[np.float64]"
# 外环在前，内环在后
PolygonCoordinates: TypeAlias = "list[CoordinateArray]"
# 深度 0 是 CoordinateArray，每多一层嵌套多一层 list
CoordinateSequence: TypeAlias = Any

Properties: TypeAlias = dict[str, Any]

NullValueHandling: TypeAlias = Literal["ignore", "include"]

GeometryTypeName: TypeAlias = Literal[
    "Point",
    "LineString",
    "Polygon",
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
    "GeometryCollection",
]

# 读取目标既可以是类型名，也可以是类型本身
ReadTarget: TypeAlias = (
    "GeometryTypeName | Literal['Geometry', 'Feature', 'FeatureCollection', 'geometries'] | type | None"
)

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, fields
from typing import Any, TypedDict, cast

from typing_extensions import Unpack

from geojsonkit.errors import InvalidConfiguration
from geojsonkit.typing import NullValueHandling
from geojsonkit.utils import format_literal_error, format_type_error

__all__ = [
    "Config",
    "ConfigDict",
    "PartialConfigDict",
    "SerializerSettings",
    "config",
    "validate_option",
]

_BOOL_OPTIONS = frozenset(
    {
        "write_id_to_properties",
        "compute_bbox_when_missing",
        "properties_null_as_missing",
    }
)


def _validate_null_value_handling(value: Any) -> None:
    if value not in {"ignore", "include"}:
        raise InvalidConfiguration(
            format_literal_error("null_value_handling", value, ["ignore", "include"])
        )


def _validate_bool(name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise InvalidConfiguration(format_type_error(name, value, bool))


def _validate(name: str, value: Any) -> None:
    match name:
        case "null_value_handling":
            _validate_null_value_handling(value)
        case _ if name in _BOOL_OPTIONS:
            _validate_bool(name, value)


def validate_option(name: str, value: Any) -> None:
    """校验一条配置，名字不存在时抛出 InvalidConfiguration。"""
    if name != "null_value_handling" and name not in _BOOL_OPTIONS:
        raise InvalidConfiguration(f"不存在的配置：{name}")
    _validate(name, value)


class ConfigDict(TypedDict):
    null_value_handling: NullValueHandling
    write_id_to_properties: bool
    compute_bbox_when_missing: bool
    properties_null_as_missing: bool


class PartialConfigDict(TypedDict, total=False):
    null_value_handling: NullValueHandling
    write_id_to_properties: bool
    compute_bbox_when_missing: bool
    properties_null_as_missing: bool


@dataclass(frozen=True, kw_only=True)
class SerializerSettings:
    """
    单个 GeoJsonSerializer 使用的不可变配置

    构造 GeoJsonSerializer 时从全局 config 拷贝一份，之后修改 config 不会影响已有的实例。
    """

    null_value_handling: NullValueHandling = "ignore"
    write_id_to_properties: bool = False
    compute_bbox_when_missing: bool = False
    properties_null_as_missing: bool = True

    def __post_init__(self) -> None:
        for field in fields(self):
            validate_option(field.name, getattr(self, field.name))

    @property
    def include_null(self) -> bool:
        return self.null_value_handling == "include"

    @classmethod
    def from_config(
        cls, defaults: Config | None = None, **overrides: Unpack[PartialConfigDict]
    ) -> SerializerSettings:
        """用 defaults 作为默认值，再用 overrides 覆盖。defaults 默认为全局 config。"""
        if defaults is None:
            defaults = config
        options = cast(dict[str, Any], defaults.to_dict())
        for name, value in overrides.items():
            validate_option(name, value)
            options[name] = value

        return cls(**options)


# TODO: 线程安全
@dataclass(kw_only=True)
class Config:
    """
    表示全局默认配置的类

    只在构造 GeoJsonSerializer 时读取一次。其它线程正在构造序列化器时修改配置属于数据竞争，
    这里不加锁。已经构造好的序列化器不受影响。
    """

    null_value_handling: NullValueHandling = "ignore"
    write_id_to_properties: bool = False
    compute_bbox_when_missing: bool = False
    properties_null_as_missing: bool = True

    def __post_init__(self) -> None:
        self._field_names = {field.name for field in fields(self)}
        for name in self._field_names:
            validate_option(name, getattr(self, name))

    def assert_field(self, name: str) -> None:
        """断言名字是否属于配置字段"""
        if name not in self._field_names:
            raise InvalidConfiguration(f"不存在的配置：{name}")

    def validate(self, name: str, value: Any) -> None:
        """校验一条配置"""
        self.assert_field(name)
        validate_option(name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        # 允许设置非字段的属性
        _validate(name, value)
        super().__setattr__(name, value)

    def to_dict(self) -> ConfigDict:
        """将配置转换为字典"""
        return cast(ConfigDict, asdict(self))

    def update(self, **kwargs: Unpack[PartialConfigDict]) -> None:
        """更新配置"""
        # 校验完再更新，避免校验失败导致部分更新
        for name, value in kwargs.items():
            self.validate(name, value)
        for name, value in kwargs.items():
            super().__setattr__(name, value)

    @contextmanager
    def context(self, **kwargs: Unpack[PartialConfigDict]) -> Iterator[None]:
        """创建可以临时修改配置的上下文"""
        config_dict = self.to_dict()
        try:
            self.update(**kwargs)
            yield
        finally:
            self.update(**config_dict)


config = Config()

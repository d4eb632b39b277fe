from __future__ import annotations

from collections.abc import Iterable
from typing import Any

__all__ = [
    "format_literal_error",
    "format_token_error",
    "format_type_error",
    "join_with_cn_comma",
]


def join_with_cn_comma(strings: Iterable[str]) -> str:
    """用中文顿号和或字连接一组字符串"""
    return " 或 ".join("、".join(strings).rsplit("、", 1))


def _get_full_name(obj: Any) -> str:
    """获取 __module__.__qualname__ 的字符串"""
    assert hasattr(obj, "__module__") and hasattr(obj, "__qualname__")
    if obj.__module__ in {"__main__", "builtins"}:
        return obj.__qualname__
    else:
        return f"{obj.__module__}.{obj.__qualname__}"


def format_type_error(
    param_name: str, param_value: Any, expected_type: str | type | Iterable[str | type]
) -> str:
    """
    构造用于 TypeError 的消息字符串

    Parameters
    ----------
    param_name : str
        参数名

    param_value
        参数值。其类型会反应在消息里

    expected_type: str, type or iterable object of str and type
        期望参数值是什么类型，在消息中用来表示 param_value 的类型与期望不符。
        可以是字符串、类型，或一组字符串和类型。字符串用来表示一些不方便表示的类型。

    Returns
    -------
    msg : str
        消息字符串
    """
    if isinstance(expected_type, str) or not isinstance(expected_type, Iterable):
        expected_types = [expected_type]
    else:
        expected_types = expected_type

    names: list[str] = []
    for typ in expected_types:
        match typ:
            case str():
                names.append(typ)
            case type():
                names.append(_get_full_name(typ))
            case _:
                raise TypeError(format_type_error("expected_type", typ, [str, type]))

    if len(names) == 0:
        raise ValueError("expected_type 不能为空")

    expected_type_str = join_with_cn_comma(names)
    actual_type_str = _get_full_name(type(param_value))
    msg = f"{param_name} 必须是 {expected_type_str} 类型，但传入的是 {actual_type_str} 类型"

    return msg


def format_literal_error(
    param_name: str, param_value: Any, literal_value: Any | Iterable[Any]
) -> str:
    """
    构造用于字面值 ValueError 的消息字符串

    Parameters
    ----------
    param_name : str
        参数名

    param_value
        参数值

    literal_value
        要求的字面值。可以是一组字面值。

    Returns
    -------
    msg : str
        消息字符串
    """
    if isinstance(literal_value, str) or not isinstance(literal_value, Iterable):
        literal_values = [literal_value]
    else:
        literal_values = list(literal_value)
        if len(literal_values) == 0:
            raise ValueError("literal_value 不能为空")
        if len(literal_values) != len(set(literal_values)):
            raise ValueError("literal_value 不能包含重复的元素")

    param_value_str = repr(param_value)
    literal_value_str = "{" + ", ".join(map(repr, literal_values)) + "}"
    msg = f"{param_name} 只能是 {literal_value_str} 中的一项，但传入的是 {param_value_str}"

    return msg


def format_token_error(
    expected: str | Iterable[str], actual: Any, where: str | None = None
) -> str:
    """
    构造 token 结构不符时的消息字符串

    Parameters
    ----------
    expected : str or iterable object of str
        期望的 token 或 JSON 值的描述

    actual
        实际读到的 token。带 name 属性时用 name 表示。

    where : str or None, default None
        出错的位置，例如成员名。默认为 None，表示不提示位置。
    """
    if isinstance(expected, str):
        expected = [expected]
    expected_str = join_with_cn_comma(expected)
    actual_str = getattr(actual, "name", repr(actual))
    msg = f"期望读到 {expected_str}，但读到的是 {actual_str}"
    if where is not None:
        msg = f"{where}：{msg}"

    return msg

from __future__ import annotations

import json
import math
from collections.abc import Iterator
from enum import IntEnum
from typing import Any

from geojsonkit.errors import UnexpectedToken
from geojsonkit.utils import format_token_error, format_type_error

"""
- JsonReader 把 json.loads 的结果展开成 token 流，编解码器只依赖 token 的形状，不关心文本语法。
- 对象用成员列表保存，保留成员顺序和重复的成员名。
- 约定：read_* 函数被调用时停在值的第一个 token 上，返回时停在值之后的第一个 token 上。
"""

__all__ = ["JsonReader", "JsonWriter", "TokenType"]


class TokenType(IntEnum):
    NONE = 0
    START_OBJECT = 1
    END_OBJECT = 2
    START_ARRAY = 3
    END_ARRAY = 4
    PROPERTY_NAME = 5
    INTEGER = 6
    FLOAT = 7
    STRING = 8
    BOOLEAN = 9
    NULL = 10


SCALAR_TOKENS = frozenset(
    {
        TokenType.INTEGER,
        TokenType.FLOAT,
        TokenType.STRING,
        TokenType.BOOLEAN,
        TokenType.NULL,
    }
)
NUMBER_TOKENS = frozenset({TokenType.INTEGER, TokenType.FLOAT})


class _Members(list):
    """json.loads 的 object_pairs_hook，用来区分对象和数组。"""


def _tokenize(obj: Any) -> Iterator[tuple[TokenType, Any]]:
    match obj:
        case _Members():
            yield TokenType.START_OBJECT, None
            for name, value in obj:
                yield TokenType.PROPERTY_NAME, name
                yield from _tokenize(value)
            yield TokenType.END_OBJECT, None
        case dict():
            yield TokenType.START_OBJECT, None
            for name, value in obj.items():
                yield TokenType.PROPERTY_NAME, name
                yield from _tokenize(value)
            yield TokenType.END_OBJECT, None
        case list() | tuple():
            yield TokenType.START_ARRAY, None
            for value in obj:
                yield from _tokenize(value)
            yield TokenType.END_ARRAY, None
        case None:
            yield TokenType.NULL, None
        # bool 是 int 的子类，需要先判断
        case bool():
            yield TokenType.BOOLEAN, obj
        case int():
            yield TokenType.INTEGER, obj
        case float():
            yield TokenType.FLOAT, obj
        case str():
            yield TokenType.STRING, obj
        case _:
            raise TypeError(
                format_type_error(
                    "obj", obj, [dict, list, tuple, str, int, float, bool, "None"]
                )
            )


class JsonReader:
    """
    拉取式的 JSON token 读取器

    构造后停在第一个 token 上。read 前进一个 token，读到末尾后返回 False，
    此时 token_type 为 TokenType.NONE。
    """

    def __init__(self, text: str | bytes | bytearray) -> None:
        obj = json.loads(text, object_pairs_hook=_Members)
        self._init_tokens(obj)

    @classmethod
    def from_object(cls, obj: Any) -> JsonReader:
        """将已经解码的 Python 对象重新展开成 token 流"""
        reader = cls.__new__(cls)
        reader._init_tokens(obj)
        return reader

    def _init_tokens(self, obj: Any) -> None:
        self._tokens = _tokenize(obj)
        self.token_type = TokenType.NONE
        self.value: Any = None
        self.depth = 0
        self.read()

    def read(self) -> bool:
        """前进到下一个 token"""
        if self.token_type in {TokenType.START_OBJECT, TokenType.START_ARRAY}:
            self.depth += 1
        try:
            self.token_type, self.value = next(self._tokens)
        except StopIteration:
            self.token_type, self.value = TokenType.NONE, None
            return False
        if self.token_type in {TokenType.END_OBJECT, TokenType.END_ARRAY}:
            self.depth -= 1

        return True

    def expect(self, *token_types: TokenType, where: str | None = None) -> None:
        """断言当前 token 属于 token_types"""
        if self.token_type not in token_types:
            raise UnexpectedToken(
                format_token_error(
                    [token_type.name for token_type in token_types],
                    self.token_type,
                    where,
                )
            )

    def skip(self) -> None:
        """跳过当前的值，包括嵌套的内容。"""
        match self.token_type:
            case TokenType.START_OBJECT | TokenType.START_ARRAY:
                depth = self.depth
                self.read()
                while self.depth > depth:
                    self.read()
                self.read()
            case TokenType.PROPERTY_NAME:
                self.read()
                self.skip()
            case TokenType.NONE:
                raise UnexpectedToken(format_token_error("JSON 值", self.token_type))
            case _:
                if self.token_type not in SCALAR_TOKENS:
                    raise UnexpectedToken(
                        format_token_error("JSON 值", self.token_type)
                    )
                self.read()

    def read_value(self) -> Any:
        """将当前的值读成普通的 Python 对象，对象读成 dict。"""
        match self.token_type:
            case TokenType.START_OBJECT:
                obj: dict[str, Any] = {}
                self.read()
                while self.token_type == TokenType.PROPERTY_NAME:
                    name = self.value
                    self.read()
                    obj[name] = self.read_value()
                self.expect(TokenType.END_OBJECT)
                self.read()
                return obj
            case TokenType.START_ARRAY:
                array: list[Any] = []
                self.read()
                while self.token_type != TokenType.END_ARRAY:
                    array.append(self.read_value())
                self.read()
                return array
            case _ if self.token_type in SCALAR_TOKENS:
                value = self.value
                self.read()
                return value
            case _:
                raise UnexpectedToken(format_token_error("JSON 值", self.token_type))

    def read_number(self, where: str | None = None) -> float:
        """读取一个数值。null 读成 NaN。"""
        self.expect(*NUMBER_TOKENS, TokenType.NULL, where=where)
        value = math.nan if self.value is None else float(self.value)
        self.read()
        return value

    def iter_members(self, where: str | None = None) -> Iterator[str]:
        """
        逐个产出对象的成员名

        调用时停在 START_OBJECT 上。每次产出时停在成员的值上，调用方需要消费掉这个值。
        迭代结束后停在对象之后的 token 上。
        """
        self.expect(TokenType.START_OBJECT, where=where)
        self.read()
        while self.token_type == TokenType.PROPERTY_NAME:
            name = self.value
            self.read()
            yield name
        self.expect(TokenType.END_OBJECT, where=where)
        self.read()


def _format_scalar(value: Any) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        return "null"
    return json.dumps(value, ensure_ascii=False)


class JsonWriter:
    """推送式的 JSON 写入器，输出紧凑格式的文本。"""

    def __init__(self) -> None:
        self._parts: list[str] = []
        # 每层容器的 (是否为对象, 已写入的元素数)
        self._stack: list[list[Any]] = []
        self._after_name = False

    def _before_value(self) -> None:
        if self._after_name:
            self._after_name = False
            return
        if self._stack:
            is_object, count = self._stack[-1]
            if is_object:
                raise UnexpectedToken("对象中写入值之前需要先写入成员名")
            if count > 0:
                self._parts.append(",")
            self._stack[-1][1] += 1
        elif self._parts:
            raise UnexpectedToken("顶层只能写入一个值")

    def write_start_object(self) -> None:
        self._before_value()
        self._parts.append("{")
        self._stack.append([True, 0])

    def write_end_object(self) -> None:
        if not self._stack or not self._stack[-1][0] or self._after_name:
            raise UnexpectedToken("没有可以结束的对象")
        self._stack.pop()
        self._parts.append("}")

    def write_start_array(self) -> None:
        self._before_value()
        self._parts.append("[")
        self._stack.append([False, 0])

    def write_end_array(self) -> None:
        if not self._stack or self._stack[-1][0]:
            raise UnexpectedToken("没有可以结束的数组")
        self._stack.pop()
        self._parts.append("]")

    def write_property_name(self, name: str) -> None:
        if not self._stack or not self._stack[-1][0] or self._after_name:
            raise UnexpectedToken(f"成员名 {name!r} 只能写在对象里")
        if self._stack[-1][1] > 0:
            self._parts.append(",")
        self._stack[-1][1] += 1
        self._parts.append(json.dumps(name, ensure_ascii=False) + ":")
        self._after_name = True

    def write_value(self, value: str | int | float | bool | None) -> None:
        """写入一个标量。NaN 和无穷写成 null。"""
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise TypeError(
                format_type_error("value", value, [str, int, float, bool, "None"])
            )
        self._before_value()
        self._parts.append(_format_scalar(value))

    def write_null(self) -> None:
        self.write_value(None)

    def getvalue(self) -> str:
        if self._stack or self._after_name:
            raise UnexpectedToken("还有未结束的对象或数组")
        return "".join(self._parts)

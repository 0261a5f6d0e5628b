from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from pynamodb.attributes import Attribute
from pynamodb.constants import NUMBER, STRING


_E = TypeVar("_E", bound=Enum)


class DecimalAttribute(Attribute[Decimal]):
    """
    Exact decimal stored as a DynamoDB number.

    ``NumberAttribute`` round-trips through ``json`` and hands back floats;
    this attribute keeps the value a ``Decimal`` and optionally quantizes it
    to a fixed scale on write (like a NUMERIC(p, s) column).
    """

    attr_type = NUMBER

    def __init__(self, scale: Optional[Decimal] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.scale = scale

    def serialize(self, value: Decimal) -> str:
        value = Decimal(value)
        if self.scale is not None:
            value = value.quantize(self.scale, rounding=ROUND_HALF_UP)
        # fixed-point notation, never exponent form
        return format(value, "f")

    def deserialize(self, value: str) -> Decimal:
        return Decimal(value)


class EnumAttribute(Attribute[_E]):
    """Stores an Enum member by its value."""

    attr_type = STRING

    def __init__(self, enum_type: Type[_E], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.enum_type = enum_type

    def serialize(self, value: _E) -> str:
        return self.enum_type(value).value

    def deserialize(self, value: str) -> _E:
        return self.enum_type(value)

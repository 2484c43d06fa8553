"""
String proxy codecs for common standard library value types.
"""

from __future__ import annotations

import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from ..core import BaseCodecCore

__all__ = [
    "register_builtin_codecs",
]


def register_builtin_codecs(core: BaseCodecCore[Any, Any], /):
    """
    Register codecs encoding dates and times in ISO 8601 format, decimals and UUIDs
    as their canonical strings.
    """
    core.register_string_proxy_codec(
        datetime.date, datetime.date.isoformat, datetime.date.fromisoformat
    )
    core.register_string_proxy_codec(
        datetime.datetime,
        datetime.datetime.isoformat,
        datetime.datetime.fromisoformat,
    )
    core.register_string_proxy_codec(
        datetime.time, datetime.time.isoformat, datetime.time.fromisoformat
    )
    core.register_string_proxy_codec(Decimal, str, _parse_decimal)
    core.register_string_proxy_codec(UUID, str, UUID)


def _parse_decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as e:
        # not a ValueError subclass
        raise ValueError(f"Invalid decimal: {value!r}") from e

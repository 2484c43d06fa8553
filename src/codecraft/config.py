"""
Configuration for codec cores.
"""

from dataclasses import dataclass

__all__ = [
    "CodecConfig",
]


@dataclass(kw_only=True)
class CodecConfig:
    """
    Common config for all carriers, extended by each carrier's core.
    """

    use_builtin_codecs: bool = True
    """
    Whether to register string proxy codecs for `date`, `datetime`, `time`,
    `Decimal` and `UUID`.
    """

    use_default_type_proxies: bool = True
    """
    Whether to resolve the abstract collection types (`Sequence`, `Set`,
    `Mapping`, ...) as their builtin counterparts.
    """

    field_name_marker: str = "*"
    """
    Prefix repeatedly applied to a field name which collides with a field of the
    same name in a derived class.
    """

    map_key_name: str = "key"
    """
    Field name of the key in each encoded map entry.
    """

    map_value_name: str = "value"
    """
    Field name of the value in each encoded map entry.
    """

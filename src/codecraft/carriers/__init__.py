"""
Codec cores for the supported carriers.
"""

from .byteio import ByteCodecCore, ByteConfig, ByteIO, StreamByteIO
from .json import JsonCodecCore, JsonConfig
from .toml import TomlCodecCore, TomlConfig
from .xml import XmlCodecCore, XmlConfig

__all__ = [
    "ByteCodecCore",
    "ByteConfig",
    "ByteIO",
    "StreamByteIO",
    "JsonCodecCore",
    "JsonConfig",
    "TomlCodecCore",
    "TomlConfig",
    "XmlCodecCore",
    "XmlConfig",
    "byte_core",
    "json_core",
    "toml_core",
    "xml_core",
]


def xml_core(**kwargs) -> XmlCodecCore:
    """
    Create XML codec core, passing keyword arguments to `XmlConfig`.
    """
    return XmlCodecCore(XmlConfig(**kwargs))


def toml_core(**kwargs) -> TomlCodecCore:
    """
    Create TOML codec core, passing keyword arguments to `TomlConfig`.
    """
    return TomlCodecCore(TomlConfig(**kwargs))


def json_core(**kwargs) -> JsonCodecCore:
    """
    Create JSON codec core, passing keyword arguments to `JsonConfig`.
    """
    return JsonCodecCore(JsonConfig(**kwargs))


def byte_core(**kwargs) -> ByteCodecCore:
    """
    Create binary codec core, passing keyword arguments to `ByteConfig`.
    """
    return ByteCodecCore(ByteConfig(**kwargs))

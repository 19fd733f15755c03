"""Payment extensions and the typed extension registry."""

from .registry import (
    DecodedExtensions,
    ExtensionDecodeError,
    ExtensionRegistry,
    OpaqueExtension,
    default_extension_registry,
)

__all__ = [
    "DecodedExtensions",
    "ExtensionDecodeError",
    "ExtensionRegistry",
    "OpaqueExtension",
    "default_extension_registry",
]

"""Typed extension registry.

Each known extension key owns a decoder that validates and parses its data.
Keys without a decoder are kept as ``OpaqueExtension`` and never interpreted.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from typing_extensions import Self

T = TypeVar("T")

ExtensionDecoder = Callable[[Any], Any]


class ExtensionDecodeError(ValueError):
    """Extension data did not match the decoder's expected shape."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


@dataclass(frozen=True)
class OpaqueExtension:
    """Extension data for a key this facilitator does not understand."""

    key: str
    data: Any


@dataclass
class DecodedExtensions:
    """Result of running the registry over a payload's extensions."""

    known: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    opaque: dict[str, OpaqueExtension] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Decoded value for ``key``, or None if absent or invalid."""
        return self.known.get(key)

    def has(self, key: str) -> bool:
        """Whether the payload carried ``key`` at all, valid or not."""
        return key in self.known or key in self.errors or key in self.opaque


class ExtensionRegistry:
    """Maps extension keys to typed decoders."""

    def __init__(self) -> None:
        self._decoders: dict[str, ExtensionDecoder] = {}

    def register(self, key: str, decoder: ExtensionDecoder) -> Self:
        """Register a decoder for ``key``.

        The decoder receives the raw extension data and returns the typed
        value, raising ``ExtensionDecodeError`` (or ``ValueError``) when the
        data is malformed.
        """
        self._decoders[key] = decoder
        return self

    def keys(self) -> list[str]:
        return list(self._decoders)

    def decode(self, extensions: Mapping[str, Any] | None) -> DecodedExtensions:
        decoded = DecodedExtensions()
        if not extensions:
            return decoded

        for key, data in extensions.items():
            decoder = self._decoders.get(key)
            if decoder is None:
                decoded.opaque[key] = OpaqueExtension(key=key, data=data)
                continue
            try:
                decoded.known[key] = decoder(data)
            except ValueError as e:
                decoded.errors[key] = str(e)

        return decoded


def default_extension_registry() -> ExtensionRegistry:
    """Registry with every extension railbridge understands."""
    from .cross_chain import CROSS_CHAIN, decode_cross_chain_extension

    return ExtensionRegistry().register(CROSS_CHAIN, decode_cross_chain_extension)

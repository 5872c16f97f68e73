"""Name to decoder lookup, populated once at startup."""

from __future__ import annotations

import logging

from ..errors import DuplicateDecoderError
from .base import PayloadDecoder
from .dcl571 import DCL571Decoder
from .ldds75 import LDDS75Decoder

logger = logging.getLogger(__name__)


class DecoderRegistry:
    def __init__(self) -> None:
        self._decoders: dict[str, PayloadDecoder] = {}

    def register(self, name: str, decoder: PayloadDecoder) -> None:
        if name in self._decoders:
            raise DuplicateDecoderError(f"payload decoder with name {name!r} already exists")
        self._decoders[name] = decoder
        logger.debug("Registered payload decoder %s", name)

    def lookup(self, name: str) -> PayloadDecoder | None:
        return self._decoders.get(name)

    def names(self) -> list[str]:
        return sorted(self._decoders)

    def __contains__(self, name: object) -> bool:
        return name in self._decoders


def default_registry() -> DecoderRegistry:
    """Build the registry with every decoder shipped with the connector."""

    registry = DecoderRegistry()
    for decoder in (LDDS75Decoder(), DCL571Decoder()):
        registry.register(decoder.name, decoder)
    return registry

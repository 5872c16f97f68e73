class ConnectorError(Exception):
    """Base error for connector failures."""


class DecodeError(ConnectorError):
    """Raised when a payload is too short to hold its mandatory leading field."""


class DuplicateDecoderError(ConnectorError):
    """Raised when two decoders are registered under the same name."""


class StateNotFoundError(ConnectorError, KeyError):
    """Raised when no state entry exists for a (thing, key) pair."""

    def __init__(self, thing_id: str, key: str):
        super().__init__(f"no state {key!r} for thing {thing_id}")
        self.thing_id = thing_id
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class EnvelopeError(ConnectorError):
    """Raised when a network server callback body cannot be parsed."""


class UnknownEventError(ConnectorError):
    """Raised for callback event kinds other than ``up`` and ``error``."""


class PlatformError(ConnectorError):
    """Raised when the connctd platform rejects or fails a call."""


class IdentityResolutionError(ConnectorError):
    """Raised when a device EUI cannot be mapped to a Thing."""

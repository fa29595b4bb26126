"""Domain-specific errors for zclpoke."""


class ZclpokeError(Exception):
    """Base error for zclpoke."""


class InvalidFormatError(ZclpokeError):
    """Raised when operator input (id, range, write-spec, import text) is malformed."""


class UnknownTypeError(InvalidFormatError):
    """Raised when a write-spec names a data type that does not exist."""


class LimitExceededError(ZclpokeError):
    """Raised when a batch or range request is larger than its cap."""


class NoSnapshotError(ZclpokeError):
    """Raised when compare/export is requested with nothing captured."""


class EndpointNotFoundError(ZclpokeError):
    """Raised when the selected endpoint does not exist on the device."""


class TargetValidationError(ZclpokeError):
    """Raised when a target profile does not conform to schema or semantics."""


class TargetLoadError(ZclpokeError):
    """Raised when loading target profile sources fails."""


class TargetSelectionError(ZclpokeError):
    """Raised when no single target profile can be resolved for a device."""


class TransportError(ZclpokeError):
    """Base transport error."""


class UnsupportedAttributeError(TransportError):
    """Raised by transports when the device rejects an attribute."""


class TransportTimeoutError(TransportError):
    """Raised when the device does not answer in time."""


class DeviceFileError(ZclpokeError):
    """Raised when a simulated device file is unreadable or malformed."""

class RetrovizException(Exception):
    """Base exception for all errors raised by the retroviz package."""

    pass


class InvalidSmilesError(RetrovizException):
    """Raised when a SMILES string is malformed or cannot be processed."""

    pass


class AdapterLogicError(RetrovizException):
    """Raised when an adapter cannot map raw model output onto a route tree."""

    pass


class RouteTreeError(RetrovizException):
    """Raised when persisted route-node records cannot be assembled into a single tree."""

    pass


class RetrovizIOException(RetrovizException):
    """Raised when reading or writing a data file fails."""

    pass


class RetrovizSerializationError(RetrovizException):
    """Raised when data cannot be serialized to JSON."""

    pass

"""Exception types shared by the registry, tracker and route controller."""


class NotFoundError(KeyError):
    """Raised when a command references an unknown station or component."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier

    def __str__(self) -> str:
        return self.args[0]


class TopologyError(ValueError):
    """Raised when a station topology violates its structural invariants."""

    pass


class TransitError(ValueError):
    """Raised when a component move does not progress machine -> switch -> consumer."""

    pass


class CapacityError(RuntimeError):
    """Raised when the in-transit set is full and a spawn is rejected."""

    pass


class RouteError(ValueError):
    """Raised when a transport route names a consumer not bound to the switch."""

    pass

"""Exception types raised at the API boundary."""


class CircuitError(Exception):
    """Base class for pykirchhoff errors."""


class InvalidCircuitError(CircuitError, ValueError):
    """Circuit description rejected before solving (bad values, dangling terminals, ...)."""


class UnmeasurableError(CircuitError, ValueError):
    """A measurement that has no defined answer (unsolved graph or disjoint subgraphs)."""

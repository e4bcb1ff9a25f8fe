"""pyfemkit.errors
Exceptions raised by the assembly, interpolation and material layers.
"""

__all__ = [
    "FemError",
    "ConstructionError",
    "UnsupportedDimensionError",
    "AssemblyError",
    "MaterialDomainError",
    "QuadratureError",
]


class FemError(Exception):
    """Base exception for pyfemkit errors."""

    pass


class ConstructionError(FemError, ValueError):
    """Raised eagerly when an object is built from inconsistent inputs."""

    pass


class UnsupportedDimensionError(ConstructionError):
    """Raised when a dimension lies outside the supported set."""

    def __init__(self, dim, supported):
        self.dim = dim
        self.supported = tuple(supported)
        super().__init__(
            f"Unsupported dimension {dim}. Supported dimensions: {self.supported}"
        )


class AssemblyError(FemError, RuntimeError):
    """Numerical failure while assembling the contribution of one element."""

    def __init__(self, element_index: int, operation: str, reason: str):
        self.element_index = element_index
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed for element {element_index}: {reason}")


class MaterialDomainError(FemError, ArithmeticError):
    """A material model was evaluated outside its domain (e.g. det F <= 0)."""

    pass


class QuadratureError(FemError, ValueError):
    """Requested quadrature strength is not supported."""

    pass

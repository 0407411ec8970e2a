from liq.fundamental_types import Integral_kind


class ParseError(Exception):
    """A record of a LIQUiD file could not be turned into a Hamiltonian"""


class InconsistentIntegralError(ParseError):
    """The same integral appears twice in a record with different coefficients.

    The arguments are kept in `args` so the exception survives a pickle round
    trip (e.g. when sent from one MPI rank to another).
    """

    def __init__(
        self,
        kind: Integral_kind,
        indices,
        coefficient: float,
        recorded_indices,
        canonical_indices,
        recorded_coefficient: float,
    ):
        super().__init__(
            kind, indices, coefficient, recorded_indices, canonical_indices, recorded_coefficient
        )
        self.kind = kind
        self.indices = indices
        self.coefficient = coefficient
        self.recorded_indices = recorded_indices
        self.canonical_indices = canonical_indices
        self.recorded_coefficient = recorded_coefficient

    def __str__(self):
        return (
            f"Consistency check failed for {self.kind.value} integral {self.indices}: "
            f"coefficient {self.coefficient!r} does not match coefficient "
            f"{self.recorded_coefficient!r} recorded for {self.recorded_indices} "
            f"(canonical form {self.canonical_indices})"
        )


class DuplicateNuclearTermError(ParseError):
    """More than one `nuc=` term in a record, and strict checking was requested"""


class RecordError(ParseError):
    """Failure of one record inside a batch. The original exception is chained as __cause__"""

    def __init__(self, index: int, reason: str):
        super().__init__(index, reason)
        self.index = index
        self.reason = reason

    def __str__(self):
        return f"record {self.index}: {self.reason}"

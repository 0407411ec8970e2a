# For forward declaration in type hints
from __future__ import annotations

from enum import Enum
from typing import Tuple, Dict, NamedTuple, NewType

# Orbital index (0,1,2,...,n_orb-1)
OrbitalIdx = NewType("OrbitalIdx", int)
# Nuclear repulsion (identity term) and other constants
Energy = NewType("Energy", float)

# One-electron integral :
# $<i|h|k> = \int \phi_i(r) (-\frac{1}{2} \Delta + V_en ) \phi_k(r) dr$
One_electron_integral_index = Tuple[OrbitalIdx, OrbitalIdx]
One_electron_integral = Dict[One_electron_integral_index, float]

# Two-electron integral, Dirac convention :
# $<ij|kl> = \int \int \phi_i(r_1) \phi_j(r_2) \frac{1}{|r_1 - r_2|} \phi_k(r_1) \phi_l(r_2) dr_1 dr_2$
# In the Mulliken convention the same index tuple denotes (ij|kl) = <ik|jl>
Two_electron_integral_index = Tuple[OrbitalIdx, OrbitalIdx, OrbitalIdx, OrbitalIdx]
Two_electron_integral = Dict[Two_electron_integral_index, float]

# Raw text of one Hamiltonian, as produced by `split_records`
Raw_record = NewType("Raw_record", str)


#   _____     _
#  |_   _|__ | | _____ _ __
#    | |/ _ \| |/ / _ \ '_ \
#    | | (_) |   <  __/ | | |
#    |_|\___/|_|\_\___|_| |_|
#


class Integral_kind(Enum):
    """Class of an integral assignment found in a record"""

    NUCLEAR = "nuc"
    ONE_ELECTRON = "1e"
    TWO_ELECTRON = "2e"

    @property
    def n_indices(self) -> int:
        """
        >>> Integral_kind.NUCLEAR.n_indices
        0
        >>> Integral_kind.TWO_ELECTRON.n_indices
        4
        """
        return {"nuc": 0, "1e": 2, "2e": 4}[self.value]


class Integral_token(NamedTuple):
    """One integral assignment extracted from a record.
    The numeric literals are kept as text; they are converted on access so that
    tokens which are never looked at are never converted.

    >>> Integral_token(Integral_kind.ONE_ELECTRON, (2, 3), "3.0", "1").coefficient
    30.0
    >>> Integral_token(Integral_kind.NUCLEAR, (), "-5.25").coefficient
    -5.25
    >>> Integral_token(Integral_kind.ONE_ELECTRON, (0, 0), "-").coefficient
    Traceback (most recent call last):
        ...
    ValueError: could not convert string to float: '-'
    """

    kind: Integral_kind
    indices: Tuple[OrbitalIdx, ...]
    mantissa: str
    exponent: str = ""

    @property
    def coefficient(self) -> float:
        value = float(self.mantissa)
        if not self.exponent:
            return value
        return value * 10.0 ** int(self.exponent)


class Term(NamedTuple):
    """A term of a |Hamiltonian|: the identity term has no orbital index"""

    kind: Integral_kind
    indices: Tuple[OrbitalIdx, ...]
    coefficient: float

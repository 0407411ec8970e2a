import math
from typing import Tuple, List

from liq.fundamental_types import (
    OrbitalIdx,
    One_electron_integral_index,
    Two_electron_integral_index,
)

# Index conventions understood for the two-electron integrals
CONVENTIONS = ("dirac", "mulliken")

#   _____                                              _
#  /  __ \                                            | |
#  | /  \/ ___  _ __ ___  _ __   ___  _   _ _ __   __| |
#  | |    / _ \| '_ ` _ \| '_ \ / _ \| | | | '_ \ / _` |
#  | \__/\ (_) | | | | | | |_) | (_) | |_| | | | | (_| |
#   \____/\___/|_| |_| |_| .__/ \___/ \__,_|_| |_|\__,_|
#                        | |
#                        |_|


def compound_idx2(i: OrbitalIdx, j: OrbitalIdx) -> int:
    """Triangular compound index of the unordered pair (i,j)

    >>> compound_idx2(0, 0)
    0
    >>> compound_idx2(0, 1)
    1
    >>> compound_idx2(1, 0)
    1
    >>> compound_idx2(1, 1)
    2
    >>> compound_idx2(0, 2)
    3
    """
    p, q = min(i, j), max(i, j)
    return (q * (q + 1)) // 2 + p


def compound_idx2_reverse(ij: int) -> Tuple[OrbitalIdx, OrbitalIdx]:
    """Inverse of `compound_idx2`, with i <= j

    >>> compound_idx2_reverse(3)
    (0, 2)
    >>> [compound_idx2_reverse(ij) for ij in range(3)]
    [(0, 0), (0, 1), (1, 1)]
    """
    j = (math.isqrt(8 * ij + 1) - 1) // 2
    i = ij - (j * (j + 1)) // 2
    return i, j


def compound_idx4(i: OrbitalIdx, j: OrbitalIdx, k: OrbitalIdx, l: OrbitalIdx) -> int:
    """Compound index of the Dirac integral <ij|kl>.
    Electron 1 carries the pair (i,k), electron 2 the pair (j,l)

    >>> compound_idx4(0, 1, 2, 3) == compound_idx4(2, 3, 0, 1) == compound_idx4(1, 0, 3, 2)
    True
    >>> compound_idx4(0, 1, 2, 3) == compound_idx4(0, 2, 1, 3)
    False
    """
    return compound_idx2(compound_idx2(i, k), compound_idx2(j, l))


def compound_idx4_reverse(ijkl: int) -> Two_electron_integral_index:
    """Inverse of `compound_idx4`; the result is canonical (see `canonical_idx4`)

    >>> compound_idx4_reverse(compound_idx4(3, 2, 1, 0))
    (0, 1, 2, 3)
    """
    ik, jl = compound_idx2_reverse(ijkl)
    i, k = compound_idx2_reverse(ik)
    j, l = compound_idx2_reverse(jl)
    return i, j, k, l


def compound_idx4_reverse_all(ijkl: int) -> List[Two_electron_integral_index]:
    """All the Dirac index tuples sharing the compound index `ijkl`.
    Duplicates are kept when some indices coincide.

    >>> sorted(set(compound_idx4_reverse_all(compound_idx4(0, 0, 1, 1))))
    [(0, 0, 1, 1), (0, 1, 1, 0), (1, 0, 0, 1), (1, 1, 0, 0)]
    """
    i, j, k, l = compound_idx4_reverse(ijkl)
    return [
        (i, j, k, l),
        (i, l, k, j),
        (k, j, i, l),
        (k, l, i, j),
        (j, i, l, k),
        (j, k, l, i),
        (l, i, j, k),
        (l, k, j, i),
    ]


#   _____                       _           _
#  /  __ \                     (_)         | |
#  | /  \/ __ _ _ __   ___  _ __  _  ___ __ _| |
#  | |    / _` | '_ \ / _ \| '_ \| |/ __/ _` | |
#  | \__/\ (_| | | | | (_) | | | | | (_| (_| | |
#   \____/\__,_|_| |_|\___/|_| |_|_|\___\__,_|_|
#


def canonical_idx2(i: OrbitalIdx, j: OrbitalIdx) -> One_electron_integral_index:
    """<i|h|j> = <j|h|i> for real orbitals

    >>> canonical_idx2(1, 0)
    (0, 1)
    """
    return min(i, j), max(i, j)


def canonical_idx4(
    i: OrbitalIdx, j: OrbitalIdx, k: OrbitalIdx, l: OrbitalIdx
) -> Two_electron_integral_index:
    """Canonical representative of the Dirac integral <ij|kl>.
    Two-electron integrals have many permutation symmetries:
      Exchange r1 and r2 (indices i,k and j,l)
      Exchange i,k
      Exchange j,l

    >>> canonical_idx4(1, 0, 3, 2)
    (0, 1, 2, 3)
    >>> canonical_idx4(3, 0, 1, 2)
    (0, 1, 2, 3)
    >>> canonical_idx4(0, 2, 1, 3)
    (0, 2, 1, 3)
    """
    i, k = min(i, k), max(i, k)
    j, l = min(j, l), max(j, l)
    if compound_idx2(i, k) > compound_idx2(j, l):
        i, j, k, l = j, i, l, k
    return i, j, k, l


def canonical_idx4_mulliken(
    i: OrbitalIdx, j: OrbitalIdx, k: OrbitalIdx, l: OrbitalIdx
) -> Two_electron_integral_index:
    """Canonical representative of the Mulliken integral (ij|kl).
    Electron 1 carries the pair (i,j), electron 2 the pair (k,l)

    >>> canonical_idx4_mulliken(3, 2, 1, 0)
    (0, 1, 2, 3)
    >>> canonical_idx4_mulliken(1, 0, 3, 2)
    (0, 1, 2, 3)
    >>> canonical_idx4_mulliken(0, 2, 1, 3)
    (0, 2, 1, 3)
    """
    i, j = min(i, j), max(i, j)
    k, l = min(k, l), max(k, l)
    if compound_idx2(i, j) > compound_idx2(k, l):
        i, j, k, l = k, l, i, j
    return i, j, k, l


def mulliken_to_dirac(
    i: OrbitalIdx, j: OrbitalIdx, k: OrbitalIdx, l: OrbitalIdx
) -> Two_electron_integral_index:
    """(ij|kl) = <ik|jl>

    >>> mulliken_to_dirac(0, 1, 2, 3)
    (0, 2, 1, 3)
    """
    return i, k, j, l


def symmetry_equivalents(indices: Tuple[OrbitalIdx, ...], convention: str = "dirac"):
    """Set of the index tuples denoting the same integral as `indices`

    >>> sorted(symmetry_equivalents((0, 1)))
    [(0, 1), (1, 0)]
    >>> len(symmetry_equivalents((0, 1, 2, 3)))
    8
    >>> sorted(symmetry_equivalents((0, 0, 1, 1), "mulliken"))
    [(0, 0, 1, 1), (1, 1, 0, 0)]
    """
    if len(indices) == 0:
        return {()}
    if len(indices) == 2:
        i, j = indices
        return {(i, j), (j, i)}
    if len(indices) == 4:
        if convention == "dirac":
            return set(compound_idx4_reverse_all(compound_idx4(*indices)))
        if convention == "mulliken":
            # (ij|kl) = <ik|jl>, so go through the Dirac orbit and come back
            return {
                mulliken_to_dirac(*idx)
                for idx in symmetry_equivalents(mulliken_to_dirac(*indices), "dirac")
            }
        raise ValueError(f"Unknown convention {convention!r}, expected one of {CONVENTIONS}")
    raise ValueError(f"Integrals carry 0, 2 or 4 orbital indices, got {indices}")


def canonicalize(indices: Tuple[OrbitalIdx, ...], convention: str = "dirac") -> Tuple[OrbitalIdx, ...]:
    """Canonical key of an integral; the same for all the tuples of `symmetry_equivalents`

    >>> canonicalize((1, 0))
    (0, 1)
    >>> canonicalize((2, 3, 0, 1))
    (0, 1, 2, 3)
    >>> canonicalize(())
    ()
    >>> canonicalize((0, 1, 2))
    Traceback (most recent call last):
        ...
    ValueError: Integrals carry 0, 2 or 4 orbital indices, got (0, 1, 2)
    """
    if len(indices) == 0:
        return ()
    if len(indices) == 2:
        return canonical_idx2(*indices)
    if len(indices) == 4:
        if convention == "dirac":
            return canonical_idx4(*indices)
        if convention == "mulliken":
            return canonical_idx4_mulliken(*indices)
        raise ValueError(f"Unknown convention {convention!r}, expected one of {CONVENTIONS}")
    raise ValueError(f"Integrals carry 0, 2 or 4 orbital indices, got {indices}")

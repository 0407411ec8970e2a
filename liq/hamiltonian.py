from dataclasses import dataclass, field
from itertools import chain
from typing import Iterator, Optional, Tuple

import numpy as np

from liq.fundamental_types import (
    Energy,
    Integral_kind,
    One_electron_integral,
    One_electron_integral_index,
    Term,
    Two_electron_integral,
    Two_electron_integral_index,
)
from liq.integral_indexing_utils import (
    compound_idx4,
    mulliken_to_dirac,
    symmetry_equivalents,
)


@dataclass
class Hamiltonian(object):
    """Integrals of an electronic-structure Hamiltonian.

    Pure accumulation container: terms added twice are summed, nothing is
    validated here (see `liq.io.parse_record`).

    >>> h = Hamiltonian()
    >>> h.add_identity_term(0.5)
    >>> h.add_one_electron_term((0, 1), -1.0)
    >>> h.add_two_electron_term((0, 1, 0, 1), 0.25)
    >>> h.n_terms, h.N_orb
    (3, 2)
    >>> [t.coefficient for t in h.terms()]
    [0.5, -1.0, 0.25]
    """

    convention: str = "dirac"
    # None until an identity term is added
    E0: Optional[Energy] = None
    d_one_e_integral: One_electron_integral = field(default_factory=dict)
    d_two_e_integral: Two_electron_integral = field(default_factory=dict)

    # ~ ~ ~
    # Accumulation
    # ~ ~ ~
    def add_identity_term(self, value: float):
        self.E0 = value if self.E0 is None else self.E0 + value

    def add_one_electron_term(self, key: One_electron_integral_index, coefficient: float):
        self.d_one_e_integral[key] = self.d_one_e_integral.get(key, 0.0) + coefficient

    def add_two_electron_term(self, key: Two_electron_integral_index, coefficient: float):
        self.d_two_e_integral[key] = self.d_two_e_integral.get(key, 0.0) + coefficient

    # ~ ~ ~
    # Terms
    # ~ ~ ~
    def terms(self) -> Iterator[Term]:
        """Identity term first (if any), then one- and two-electron terms"""
        if self.E0 is not None:
            yield Term(Integral_kind.NUCLEAR, (), self.E0)
        for idx, v in self.d_one_e_integral.items():
            yield Term(Integral_kind.ONE_ELECTRON, idx, v)
        for idx, v in self.d_two_e_integral.items():
            yield Term(Integral_kind.TWO_ELECTRON, idx, v)

    @property
    def n_terms(self) -> int:
        return int(self.E0 is not None) + len(self.d_one_e_integral) + len(self.d_two_e_integral)

    @property
    def N_orb(self) -> int:
        """Number of orbitals spanned by the integrals (largest index + 1)"""
        return 1 + max(chain.from_iterable(chain(self.d_one_e_integral, self.d_two_e_integral)), default=-1)

    # ~ ~ ~
    # Dense representation
    # ~ ~ ~
    def one_e_array(self) -> np.ndarray:
        """Symmetric (N_orb, N_orb) matrix of the one-electron integrals

        >>> h = Hamiltonian(d_one_e_integral={(0, 1): 2.0})
        >>> h.one_e_array()
        array([[0., 2.],
               [2., 0.]])
        """
        n_orb = self.N_orb
        h1 = np.zeros((n_orb, n_orb), dtype="float")
        for (i, j), v in self.d_one_e_integral.items():
            h1[i, j] = h1[j, i] = v
        return h1

    def two_e_array(self) -> np.ndarray:
        """(N_orb, N_orb, N_orb, N_orb) tensor of the two-electron integrals,
        in the convention of the Hamiltonian, every symmetry-equivalent entry filled

        >>> h = Hamiltonian(d_two_e_integral={(0, 0, 1, 1): 0.5}, convention="mulliken")
        >>> g = h.two_e_array()
        >>> float(g[1, 1, 0, 0]), float(g[0, 1, 0, 1])
        (0.5, 0.0)
        """
        n_orb = self.N_orb
        h2 = np.zeros((n_orb,) * 4, dtype="float")
        for idx, v in self.d_two_e_integral.items():
            for i, j, k, l in symmetry_equivalents(idx, self.convention):
                h2[i, j, k, l] = v
        return h2

    # ~ ~ ~
    # Interoperability
    # ~ ~ ~
    def to_integrals(self) -> Tuple[Energy, One_electron_integral, Two_electron_integral]:
        """Return (E0, d_one_e_integral, d_two_e_integral) laid out like the FCIDUMP loader does:
        one-electron integrals stored for (i,k) and (k,i), two-electron integrals
        keyed by the compound index of their Dirac form.

        >>> h = Hamiltonian(E0=1.0, d_one_e_integral={(0, 1): 2.0}, d_two_e_integral={(0, 1, 0, 1): 3.0})
        >>> E0, d_one, d_two = h.to_integrals()
        >>> E0, sorted(d_one.items()), d_two[compound_idx4(1, 0, 1, 0)]
        (1.0, [((0, 1), 2.0), ((1, 0), 2.0)], 3.0)
        """
        d_one_e_integral = {}
        for (i, k), v in self.d_one_e_integral.items():
            d_one_e_integral[(i, k)] = v
            d_one_e_integral[(k, i)] = v

        d_two_e_integral = {}
        for idx, v in self.d_two_e_integral.items():
            if self.convention == "mulliken":
                idx = mulliken_to_dirac(*idx)
            d_two_e_integral[compound_idx4(*idx)] = v

        E0 = 0.0 if self.E0 is None else self.E0
        return E0, d_one_e_integral, d_two_e_integral

import logging
import time
from typing import Dict, List, Optional, Tuple

from liq.config import DEFAULT_CONFIG, Parser_config
from liq.exceptions import (
    DuplicateNuclearTermError,
    InconsistentIntegralError,
    ParseError,
    RecordError,
)
from liq.fundamental_types import Integral_kind, Integral_token, OrbitalIdx, Raw_record
from liq.hamiltonian import Hamiltonian
from liq.integral_indexing_utils import canonicalize
from liq.tokenizer import gen_tokens

logger = logging.getLogger(__name__)

# Literal separating two Hamiltonians in a LIQUiD file
RECORD_DELIMITER = "tst"

#   _____              _
#  |  __ \            | |
#  | |__) |___  __ _ __| |
#  |  _  // _ \/ _` / _` |
#  | | \ \  __/ (_| (_| |
#  |_|  \_\___|\__,_\__,_|
#


def read_text(path: str) -> str:
    """Read the whole file. `.gz` and `.bz2` files are decompressed on the fly.
    The format is plain ASCII; undecodable bytes are replaced, not fatal."""
    if path.split(".")[-1] == "gz":
        import gzip

        with gzip.open(path) as f:
            data = f.read()
    elif path.split(".")[-1] == "bz2":
        import bz2

        with bz2.open(path) as f:
            data = f.read()
    else:
        with open(path, "rb") as f:
            data = f.read()
    return data.decode("ascii", errors="replace")


def split_records(text: str, delimiter: str = RECORD_DELIMITER) -> List[Raw_record]:
    """Split a multi-Hamiltonian text into records. Empty records are dropped.

    >>> split_records("A tst B tst C")
    ['A ', ' B ', ' C']
    >>> split_records("tsttst")
    []
    >>> split_records("0,0=1.0")
    ['0,0=1.0']
    """
    return [Raw_record(r) for r in text.split(delimiter) if r]


#   ___                           _       _
#  / _ \                         | |     | |
# / /_\ \ ___ ___ _   _ _ __ ___ | |_   _| | __ _| |_ ___  _ __
# |  _  |/ __/ __| | | | '_ ` _ \| | | | | |/ _` | __/ _ \| '__|
# | | | | (_| (__| |_| | | | | | | | |_| | | (_| | || (_) | |
# \_| |_/\___\___|\__,_|_| |_| |_|_|\__,_|_|\__,_|\__\___/|_|
#


class Integral_accumulator(object):
    """Deduplicate the integrals of one kind (one- or two-electron) of a record.

    Integrals are keyed by their canonical form, so that all the symmetry
    equivalent index tuples land on the same entry. An entry seen again must
    carry exactly the same coefficient.

    >>> acc = Integral_accumulator(Integral_kind.ONE_ELECTRON)
    >>> acc.add((1, 0), 30.0), acc.add((0, 1), 30.0)
    (True, False)
    >>> acc.d_integral
    {(0, 1): 30.0}
    >>> acc.add((0, 1), 2.0)
    Traceback (most recent call last):
        ...
    liq.exceptions.InconsistentIntegralError: Consistency check failed for 1e integral (0, 1): coefficient 2.0 does not match coefficient 30.0 recorded for (1, 0) (canonical form (0, 1))
    """

    def __init__(self, kind: Integral_kind, convention: str = "dirac"):
        self.kind = kind
        self.convention = convention
        # Canonical key -> coefficient
        self.d_integral: Dict[Tuple[OrbitalIdx, ...], float] = {}
        # Canonical key -> indices as first encountered, for error reporting
        self.d_first_seen: Dict[Tuple[OrbitalIdx, ...], Tuple[OrbitalIdx, ...]] = {}

    def add(self, indices: Tuple[OrbitalIdx, ...], coefficient: float) -> bool:
        """Record an integral. Return True if it was new, False for a consistent duplicate"""
        key = canonicalize(indices, self.convention)
        try:
            recorded = self.d_integral[key]
        except KeyError:
            self.d_integral[key] = coefficient
            self.d_first_seen[key] = indices
            return True

        if recorded != coefficient:
            raise InconsistentIntegralError(
                self.kind, indices, coefficient, self.d_first_seen[key], key, recorded
            )
        return False

    def items(self):
        return self.d_integral.items()

    def __len__(self):
        return len(self.d_integral)


#  ______
#  | ___ \
#  | |_/ /_ _ _ __ ___  ___
#  |  __/ _` | '__/ __|/ _ \
#  | | | (_| | |  \__ \  __/
#  \_|  \__,_|_|  |___/\___|
#


def parse_record(line: str, config: Optional[Parser_config] = None) -> Hamiltonian:
    """Build the Hamiltonian described by one record.

    Only the first `nuc=` term is used, unless `config.strict_nuclear` is set
    in which case a second one is an error.
    Raise `InconsistentIntegralError` if the same integral appears twice with
    different coefficients, and `ValueError` for a number that cannot be read.
    The `nuc=` terms are handled first, then the one-electron terms, then the
    two-electron ones: of several faulty terms, the first in that order wins.

    >>> h = parse_record("nuc=-5.25")
    >>> list(h.terms())
    [Term(kind=<Integral_kind.NUCLEAR: 'nuc'>, indices=(), coefficient=-5.25)]
    >>> parse_record("1,0=3.0e1 0,1=3.0e1").d_one_e_integral
    {(0, 1): 30.0}
    """
    if config is None:
        config = DEFAULT_CONFIG

    hamiltonian = Hamiltonian(convention=config.convention)
    d_accumulator = {
        kind: Integral_accumulator(kind, config.convention)
        for kind in (Integral_kind.ONE_ELECTRON, Integral_kind.TWO_ELECTRON)
    }

    nuclear: Optional[Integral_token] = None
    for token in gen_tokens(line):
        if token.kind is not Integral_kind.NUCLEAR:
            d_accumulator[token.kind].add(token.indices, token.coefficient)
        elif nuclear is None:
            nuclear = token
            hamiltonian.add_identity_term(token.coefficient)
        elif config.strict_nuclear:
            raise DuplicateNuclearTermError(
                f"nuc={token.mantissa} found after nuc={nuclear.mantissa}"
            )
        else:
            logger.warning(
                "Ignoring nuc=%s, the record already set nuc=%s", token.mantissa, nuclear.mantissa
            )

    for key, v in d_accumulator[Integral_kind.ONE_ELECTRON].items():
        hamiltonian.add_one_electron_term(key, v)
    for key, v in d_accumulator[Integral_kind.TWO_ELECTRON].items():
        hamiltonian.add_two_electron_term(key, v)

    logger.debug(
        "Parsed record: %d one-electron and %d two-electron integrals",
        len(d_accumulator[Integral_kind.ONE_ELECTRON]),
        len(d_accumulator[Integral_kind.TWO_ELECTRON]),
    )
    return hamiltonian


def parse_records(records: List[Raw_record], config: Optional[Parser_config] = None) -> List[Hamiltonian]:
    """Parse all the records, in order. The first failure is raised as a
    `RecordError` carrying the index of the record."""
    hamiltonians = []
    for i, record in enumerate(records):
        try:
            hamiltonians.append(parse_record(record, config))
        except (ParseError, ValueError, ArithmeticError) as e:
            raise RecordError(i, f"{type(e).__name__}: {e}") from e
    return hamiltonians


# ~
# Integrals of the Hamiltonians stored in a LIQUiD file
# ~
def load_hamiltonians(liquid_path: str, config: Optional[Parser_config] = None) -> List[Hamiltonian]:
    """Read all the Hamiltonians of a LIQUiD file, in order of appearance."""
    T_load_start = time.time()
    records = split_records(read_text(liquid_path))
    hamiltonians = parse_records(records, config)
    logger.info(
        "Loaded %d Hamiltonians from %s in %.3fs", len(hamiltonians), liquid_path, time.time() - T_load_start
    )
    return hamiltonians

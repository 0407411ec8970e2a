import logging
import time
from functools import cached_property
from itertools import chain
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
from mpi4py import MPI  # Note this initializes and finalizes MPI session automatically

from liq.config import Parser_config
from liq.exceptions import ParseError
from liq.fundamental_types import Raw_record
from liq.hamiltonian import Hamiltonian
from liq.io import parse_record, read_text, split_records

logger = logging.getLogger(__name__)


class Record_failure(NamedTuple):
    """A record that could not be turned into a Hamiltonian"""

    index: int
    # Name of the exception class, e.g. "InconsistentIntegralError"
    reason: str
    message: str


#  ______ _     _        _ _           _           _
#  |  _  (_)   | |      (_) |         | |         | |
#  | | | |_ ___| |_ _ __ _| |__  _   _| |_ ___  __| |
#  | | | | / __| __| '__| | '_ \| | | | __/ _ \/ _` |
#  | |/ /| \__ \ |_| |  | | |_) | |_| | ||  __/ (_| |
#  |___/ |_|___/\__|_|  |_|_.__/ \__,_|\__\___|\__,_|
#


class Liquid_loader(object):
    """Parse the records of a LIQUiD file in a distributed fashion.

    Records are independent, so each rank parses a contiguous block of them
    (block sizes differ by at most one) and the results are gathered, in
    input order, on every rank. A failing record does not stop the others:
    it is reported as a |Record_failure| and its Hamiltonian is None.

    :param comm: MPI.COMM_WORLD communicator
    :param records: list of all the records, identical on every rank
    :param config: parser options
    """

    def __init__(self, comm, records: List[Raw_record], config: Optional[Parser_config] = None):
        self.comm = comm
        self.world_size = self.comm.Get_size()  # No. of processes running
        self.rank = self.comm.Get_rank()  # Rank of current process
        self.records = records
        self.full_problem_size = len(records)
        self.config = config

    @cached_property
    def distribution(self):
        """
        >>> loader = Liquid_loader(MPI.COMM_WORLD, ["nuc=1.0"] * 100)
        >>> loader.world_size = 3
        >>> loader.distribution
        array([34, 33, 33], dtype=int32)
        >>> loader = Liquid_loader(MPI.COMM_WORLD, ["nuc=1.0"] * 2)
        >>> loader.world_size = 3
        >>> loader.distribution
        array([1, 1, 0], dtype=int32)
        """
        floor, remainder = divmod(self.full_problem_size, self.world_size)
        ceiling = floor + 1
        return np.array([ceiling] * remainder + [floor] * (self.world_size - remainder), dtype="i")

    @cached_property
    def local_size(self):
        return self.distribution[self.rank]

    @cached_property
    def offsets(self):
        """
        >>> loader = Liquid_loader(MPI.COMM_WORLD, ["nuc=1.0"] * 100)
        >>> loader.world_size = 3
        >>> loader.offsets
        array([ 0, 34, 67], dtype=int32)
        """
        # Start of the local block for all ranks
        A = np.zeros(self.world_size, dtype="i")
        np.add.accumulate(self.distribution[:-1], out=A[1:])
        return A

    @cached_property
    def records_local(self) -> List[Raw_record]:
        start = int(self.offsets[self.rank])
        return self.records[start : start + int(self.local_size)]

    def parse_local(self) -> List[Tuple[int, Optional[Hamiltonian], Optional[Record_failure]]]:
        """Parse the records of this rank. Return (index, Hamiltonian or None, failure or None)"""
        l_result = []
        for i, record in enumerate(self.records_local, start=int(self.offsets[self.rank])):
            try:
                l_result.append((i, parse_record(record, self.config), None))
            except (ParseError, ValueError, ArithmeticError) as e:
                logger.debug("Record %d failed: %s", i, e)
                l_result.append((i, None, Record_failure(i, type(e).__name__, str(e))))
        return l_result

    def parse(self) -> Tuple[List[Optional[Hamiltonian]], List[Record_failure]]:
        """Hamiltonians of all the records (None for a failed one) and the list of failures"""
        T_parse_start = time.time()
        hamiltonians = []
        failures = []
        for _, hamiltonian, failure in chain.from_iterable(self.comm.allgather(self.parse_local())):
            hamiltonians.append(hamiltonian)
            if failure is not None:
                failures.append(failure)
        logger.debug(
            "Rank %d: parsed %d records in %.3fs", self.rank, self.local_size, time.time() - T_parse_start
        )
        return hamiltonians, failures


def load_hamiltonians_parallel(
    comm, liquid_path: str, config: Optional[Parser_config] = None
) -> Tuple[List[Optional[Hamiltonian]], List[Record_failure]]:
    """The master rank reads and splits the file, every rank parses its share of the records."""
    records, error = None, None
    if comm.Get_rank() == 0:
        try:
            records = split_records(read_text(liquid_path))
        except OSError as e:
            error = e
    records, error = comm.bcast((records, error), root=0)
    if error is not None:
        raise error
    return Liquid_loader(comm, records, config).parse()

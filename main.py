#!/usr/bin/env python3
from liq.drivers import *
from liq.config import Parser_config
import sys
import time

if __name__ == "__main__":
    liquid_path = sys.argv[1]
    config = Parser_config.from_argv(sys.argv[2:])

    comm = MPI.COMM_WORLD
    T_load_start = time.time()
    hamiltonians, failures = load_hamiltonians_parallel(comm, liquid_path, config)
    T_load_stop = time.time()

    if comm.Get_rank() == 0:
        for i, h in enumerate(hamiltonians):
            if h is None:
                continue
            print(
                f"Record {i}: N_orb {h.N_orb}, E0 {h.E0}, "
                f"{len(h.d_one_e_integral)} one-electron, {len(h.d_two_e_integral)} two-electron integrals"
            )
        for failure in failures:
            print(f"Record {failure.index} failed ({failure.reason}): {failure.message}")
        print("Time load Hamiltonians =", T_load_stop - T_load_start)

    sys.exit(1 if failures else 0)

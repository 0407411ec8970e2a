#!/usr/bin/env python3

import unittest
import time
import sys
import os
import random
import tempfile

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from liq.integral_indexing_utils import (
    compound_idx4_reverse,
    compound_idx4,
    canonical_idx4,
    compound_idx2,
    compound_idx2_reverse,
    compound_idx4_reverse_all,
    canonical_idx4_mulliken,
    canonicalize,
    symmetry_equivalents,
)
from liq.config import Parser_config
from liq.exceptions import (
    DuplicateNuclearTermError,
    InconsistentIntegralError,
    ParseError,
    RecordError,
)
from liq.fundamental_types import Integral_kind
from liq.hamiltonian import Hamiltonian
from liq.io import load_hamiltonians, parse_record, parse_records, read_text, split_records
from liq.tokenizer import gen_tokens
from liq.drivers import Liquid_loader, Record_failure, load_hamiltonians_parallel
from mpi4py import MPI

PROFILING = False
DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


class Timing:
    def setUp(self):
        print(f"{self.id()} ... ", end="", flush=True)
        self.startTime = time.perf_counter()
        if PROFILING:
            import cProfile

            self.pr = cProfile.Profile()
            self.pr.enable()

    def tearDown(self):
        t = time.perf_counter() - self.startTime
        print(f"ok ({t:.3f}s)")
        if PROFILING:
            from pstats import Stats

            self.pr.disable()
            p = Stats(self.pr)
            p.strip_dirs().sort_stats("tottime").print_stats(0.05)


def fmt(indices):
    return ",".join(map(str, indices))


class Test_Index(Timing, unittest.TestCase):
    def test_idx2_reverse(self, n=10000, nmax=(1 << 63) - 1):
        def check_idx2_reverse(ij):
            i, j = compound_idx2_reverse(ij)
            self.assertTrue(i <= j)
            self.assertEqual(ij, compound_idx2(i, j))

        for ij in random.sample(range(nmax), k=n):
            check_idx2_reverse(ij)

    def test_idx4_reverse(self, n=10000, nmax=(1 << 63) - 1):
        def check_idx4_reverse(ijkl):
            i, j, k, l = compound_idx4_reverse(ijkl)
            ik = compound_idx2(i, k)
            jl = compound_idx2(j, l)
            self.assertTrue(i <= k)
            self.assertTrue(j <= l)
            self.assertTrue(ik <= jl)
            self.assertEqual(ijkl, compound_idx4(i, j, k, l))

        for ijkl in random.sample(range(nmax), k=n):
            check_idx4_reverse(ijkl)

    def test_idx4_reverse_all(self, n=10000, nmax=(1 << 63) - 1):
        def check_idx4_reverse_all(ijkl):
            for i, j, k, l in compound_idx4_reverse_all(ijkl):
                self.assertEqual(compound_idx4(i, j, k, l), ijkl)

        for ijkl in random.sample(range(nmax), k=n):
            check_idx4_reverse_all(ijkl)

    def test_canonical_idx4(self, n=10000, nmax=(1 << 63) - 1):
        def check_canonical_idx4(ijkl):
            for i, j, k, l in compound_idx4_reverse_all(ijkl):
                self.assertEqual(
                    canonical_idx4(*compound_idx4_reverse(ijkl)), canonical_idx4(i, j, k, l)
                )

        for ijkl in random.sample(range(nmax), k=n):
            check_canonical_idx4(ijkl)

    def test_compound_idx4_reverse_is_canonical(self, n=10000, nmax=(1 << 63) - 1):
        def check_compound_idx4_reverse_is_canonical(ijkl):
            self.assertEqual(
                compound_idx4_reverse(ijkl), canonical_idx4(*compound_idx4_reverse(ijkl))
            )

        for ijkl in random.sample(range(nmax), k=n):
            check_compound_idx4_reverse_is_canonical(ijkl)

    def test_canonical_idx4_mulliken(self, n=2000, n_orb=12):
        for _ in range(n):
            idx = tuple(random.randrange(n_orb) for _ in range(4))
            key = canonical_idx4_mulliken(*idx)
            for perm in symmetry_equivalents(idx, "mulliken"):
                self.assertEqual(canonical_idx4_mulliken(*perm), key)

    def test_canonicalize_idempotent(self, n=2000, n_orb=12):
        for convention in ("dirac", "mulliken"):
            for _ in range(n):
                idx = tuple(random.randrange(n_orb) for _ in range(random.choice((2, 4))))
                key = canonicalize(idx, convention)
                self.assertEqual(canonicalize(key, convention), key)
                self.assertIn(key, symmetry_equivalents(idx, convention))

    def test_conventions_differ(self):
        # <01|10> is the exchange integral <00|11>, (01|10) is (01|01)
        self.assertEqual(canonicalize((0, 1, 1, 0), "dirac"), (0, 0, 1, 1))
        self.assertEqual(canonicalize((0, 1, 1, 0), "mulliken"), (0, 1, 0, 1))

    def test_unknown_convention(self):
        with self.assertRaises(ValueError):
            canonicalize((0, 1, 2, 3), "chemist")


class Test_Split(Timing, unittest.TestCase):
    def test_no_delimiter(self):
        self.assertListEqual(split_records("nuc=1.0 0,0=2.0"), ["nuc=1.0 0,0=2.0"])

    def test_empty(self):
        self.assertListEqual(split_records(""), [])
        self.assertListEqual(split_records("tst"), [])
        self.assertListEqual(split_records("tsttsttst"), [])

    def test_order(self):
        self.assertListEqual(split_records("A tst B tst C"), ["A ", " B ", " C"])
        self.assertListEqual(split_records("tstA tsttst B"), ["A ", " B"])


class Test_Tokenizer(Timing, unittest.TestCase):
    def tokens(self, line):
        return [(t.kind, t.indices, t.coefficient) for t in gen_tokens(line)]

    def test_exponent(self):
        ((_, _, c),) = self.tokens("2,3=1.0e-2")
        self.assertAlmostEqual(c, 0.01, places=15)
        self.assertListEqual(self.tokens("2,3=1.0"), [(Integral_kind.ONE_ELECTRON, (2, 3), 1.0)])
        self.assertListEqual(self.tokens("2,3=1.5e+2"), [(Integral_kind.ONE_ELECTRON, (2, 3), 150.0)])

    def test_nuclear_has_no_exponent(self):
        self.assertListEqual(self.tokens("nuc=1.0e2"), [(Integral_kind.NUCLEAR, (), 1.0)])

    def test_info_is_ignored(self):
        self.assertListEqual(self.tokens("info=0,0=1.0 nuc=2"), [(Integral_kind.NUCLEAR, (), 2.0)])

    def test_filler(self):
        self.assertListEqual(
            self.tokens("0,1 = -0.5 0 1 2 3 =0.25"),
            [
                (Integral_kind.ONE_ELECTRON, (0, 1), -0.5),
                (Integral_kind.TWO_ELECTRON, (0, 1, 2, 3), 0.25),
            ],
        )

    def test_not_a_term(self):
        self.assertListEqual(self.tokens("0,1,2=1.0 a0,0=1.0 0.1=1.0 hello"), [])

    def test_multiline(self):
        self.assertEqual(len(self.tokens("0,0=1.0\n1,1=2.0\r\n0,0,0,0=3.0\n")), 3)

    def test_nuclear_starts_a_word(self):
        self.assertListEqual(self.tokens("info=nuc=3.0 xnuc=2.0"), [])

    def test_kind_order(self):
        self.assertListEqual(
            [kind for kind, _, _ in self.tokens("0,0,0,0=1.0 0,0=2.0 nuc=3.0 1,1=4.0")],
            [
                Integral_kind.NUCLEAR,
                Integral_kind.ONE_ELECTRON,
                Integral_kind.ONE_ELECTRON,
                Integral_kind.TWO_ELECTRON,
            ],
        )

    def test_lazy_conversion(self):
        # Tokens are produced even if their number is malformed
        (token,) = gen_tokens("0,0=abc")
        with self.assertRaises(ValueError):
            token.coefficient


class Test_Parse_record(Timing, unittest.TestCase):
    def test_duplicate_absorbed(self):
        h = parse_record("0,0=1.5 0,0=1.5")
        self.assertDictEqual(h.d_one_e_integral, {(0, 0): 1.5})
        self.assertEqual(h.n_terms, 1)

    def test_duplicate_inconsistent(self):
        with self.assertRaises(InconsistentIntegralError) as cm:
            parse_record("0,0=1.5 0,0=2.0")
        e = cm.exception
        self.assertIsInstance(e, ParseError)
        self.assertEqual(e.kind, Integral_kind.ONE_ELECTRON)
        self.assertEqual((e.indices, e.coefficient), ((0, 0), 2.0))
        self.assertEqual((e.recorded_indices, e.recorded_coefficient), ((0, 0), 1.5))

    def test_commutativity(self):
        h_qp = parse_record("1,0=3.0e1")
        h_pq = parse_record("0,1=3.0e1")
        self.assertDictEqual(h_qp.d_one_e_integral, {(0, 1): 30.0})
        self.assertEqual(h_qp, h_pq)

    def test_nuclear_only(self):
        h = parse_record("nuc=-5.25")
        self.assertListEqual(
            [(t.kind, t.indices, t.coefficient) for t in h.terms()],
            [(Integral_kind.NUCLEAR, (), -5.25)],
        )

    def test_no_nuclear(self):
        h = parse_record("0,0=1.0")
        self.assertIsNone(h.E0)
        self.assertEqual(h.to_integrals()[0], 0.0)

    def test_empty_record(self):
        h = parse_record("  \n")
        self.assertEqual(h.n_terms, 0)
        self.assertEqual(h.N_orb, 0)

    def test_first_nuclear_wins(self):
        with self.assertLogs("liq.io", level="WARNING"):
            h = parse_record("nuc=1.0 0,0=1.0 nuc=2.0 nuc=-")
        self.assertEqual(h.E0, 1.0)

    def test_strict_nuclear(self):
        config = Parser_config(strict_nuclear=True)
        self.assertEqual(parse_record("nuc=1.0 0,0=1.0", config).E0, 1.0)
        with self.assertRaises(DuplicateNuclearTermError):
            parse_record("nuc=1.0 nuc=1.0", config)

    def test_two_electron_symmetry(self):
        for perm in symmetry_equivalents((0, 1, 2, 3)):
            h = parse_record(f"0,1,2,3=4.0 {fmt(perm)}=4.0")
            self.assertDictEqual(h.d_two_e_integral, {(0, 1, 2, 3): 4.0})
            with self.assertRaises(InconsistentIntegralError):
                parse_record(f"0,1,2,3=4.0 {fmt(perm)}=4.5")

    def test_two_electron_distinct(self):
        # <01|23> and <02|13> are different integrals
        h = parse_record("0,1,2,3=4.0 0,2,1,3=4.5")
        self.assertEqual(len(h.d_two_e_integral), 2)

    def test_mulliken(self):
        config = Parser_config(convention="mulliken")
        h = parse_record("0,1,1,0=0.25 1,0,0,1=0.25 0,0,1,1=0.5", config)
        self.assertDictEqual(h.d_two_e_integral, {(0, 1, 0, 1): 0.25, (0, 0, 1, 1): 0.5})
        with self.assertRaises(InconsistentIntegralError):
            parse_record("0,1,1,0=0.25 0,0,1,1=0.5")

    def test_order_independence(self, n=20):
        tokens = ["nuc=0.5", "info=shuffled", "0,0=-1.25", "1,0=0.125", "0,1=0.125", "1,1=-0.5"]
        tokens += ["0,0,0,0=0.75", "0,0,1,1=0.5", "1,1,0,0=0.5", "0,1,0,1=0.25", "1,0,1,0=0.25e0"]
        reference = parse_record(" ".join(tokens))
        rng = random.Random(42)
        for _ in range(n):
            rng.shuffle(tokens)
            h = parse_record(" ".join(tokens))
            self.assertEqual(h.E0, reference.E0)
            self.assertDictEqual(h.d_one_e_integral, reference.d_one_e_integral)
            self.assertDictEqual(h.d_two_e_integral, reference.d_two_e_integral)

    def test_malformed_number(self):
        for line in ("0,0=abc", "0,0=-", "0,0=.", "nuc=x", "0,1,2,3= e5"):
            with self.assertRaises(ValueError):
                parse_record(line)
        with self.assertRaises(OverflowError):
            parse_record("0,0=1.0e999")

    def test_coefficient_is_not_a_term(self):
        h = parse_record("0,0= 1.5 2,3=0.25")
        self.assertDictEqual(h.d_one_e_integral, {(0, 0): 1.5, (2, 3): 0.25})
        self.assertDictEqual(h.d_two_e_integral, {})

    def test_numeric_word_before_one_electron(self):
        h = parse_record("0.7414 0,0=1.0")
        self.assertDictEqual(h.d_one_e_integral, {(0, 0): 1.0})
        h = parse_record("5 6 0,0=1.0 1,1=2.0")
        self.assertDictEqual(h.d_one_e_integral, {(0, 0): 1.0, (1, 1): 2.0})

    def test_one_electron_checked_first(self):
        # The malformed two-electron coefficient is never reached
        with self.assertRaises(InconsistentIntegralError):
            parse_record("0,0,0,0=abc 0,0=1.0 0,0=2.0")


class Test_Hamiltonian(Timing, unittest.TestCase):
    @property
    def hamiltonian(self):
        return parse_record("nuc=0.5 0,1=-0.25 1,1=-1.0 0,1,0,1=0.75 0,0,1,1=0.125")

    def test_arrays(self):
        h = self.hamiltonian
        h1 = h.one_e_array()
        self.assertEqual(h1.shape, (2, 2))
        self.assertEqual(h1[1, 0], -0.25)
        self.assertEqual(h1[0, 0], 0.0)
        h2 = h.two_e_array()
        self.assertEqual(h2.shape, (2, 2, 2, 2))
        for i, j, k, l in symmetry_equivalents((0, 0, 1, 1)):
            self.assertEqual(h2[i, j, k, l], 0.125)
        self.assertEqual(h2[1, 0, 1, 0], 0.75)
        self.assertEqual(h2[0, 0, 0, 0], 0.0)

    def test_to_integrals(self):
        E0, d_one_e_integral, d_two_e_integral = self.hamiltonian.to_integrals()
        self.assertEqual(E0, 0.5)
        self.assertEqual(d_one_e_integral[(1, 0)], d_one_e_integral[(0, 1)])
        self.assertEqual(d_two_e_integral[compound_idx4(1, 0, 1, 0)], 0.75)
        self.assertEqual(d_two_e_integral[compound_idx4(0, 1, 1, 0)], 0.125)

    def test_to_integrals_mulliken(self):
        h = parse_record("0,0,1,1=0.5", Parser_config(convention="mulliken"))
        _, _, d_two_e_integral = h.to_integrals()
        # (00|11) = <01|01>
        self.assertDictEqual(d_two_e_integral, {compound_idx4(0, 1, 0, 1): 0.5})

    def test_accumulation(self):
        h = Hamiltonian()
        h.add_identity_term(1.0)
        h.add_identity_term(0.5)
        h.add_one_electron_term((0, 0), 1.0)
        h.add_one_electron_term((0, 0), 1.0)
        self.assertEqual(h.E0, 1.5)
        self.assertDictEqual(h.d_one_e_integral, {(0, 0): 2.0})


class Test_Load(Timing, unittest.TestCase):
    liquid_path = os.path.join(DATA_DIR, "h2_sto3g.liquid")

    def test_h2_sto3g(self):
        h, h_permuted = load_hamiltonians(self.liquid_path)
        self.assertEqual(h, h_permuted)
        self.assertAlmostEqual(h.E0, 0.713753990909)
        self.assertEqual(h.N_orb, 2)
        self.assertEqual(len(h.d_one_e_integral), 2)
        self.assertEqual(len(h.d_two_e_integral), 4)
        self.assertEqual(h.d_two_e_integral[(0, 1, 0, 1)], 0.181287518)

    def test_compressed(self):
        import bz2
        import gzip

        text = read_text(self.liquid_path)
        with tempfile.TemporaryDirectory() as d:
            for ext, opener in (("gz", gzip.open), ("bz2", bz2.open)):
                path = os.path.join(d, f"h2_sto3g.liquid.{ext}")
                with opener(path, "wb") as f:
                    f.write(text.encode("ascii"))
                self.assertEqual(load_hamiltonians(path), load_hamiltonians(self.liquid_path))

    def test_record_error(self):
        records = ["0,0=1.0", "nuc=1.0 0,0=1.0 0,0=2.0", "0,0=abc"]
        with self.assertRaises(RecordError) as cm:
            parse_records(records)
        self.assertEqual(cm.exception.index, 1)
        self.assertIsInstance(cm.exception.__cause__, InconsistentIntegralError)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_hamiltonians(os.path.join(DATA_DIR, "does_not_exist.liquid"))


class Test_Drivers(Timing, unittest.TestCase):
    records = ["nuc=1.0 0,0=1.5", "0,0,0,0=abc 0,0=1.5 0,0=2.0", "0,0=abc", "1,0=3.0e1"]

    def test_parse(self):
        loader = Liquid_loader(MPI.COMM_WORLD, self.records)
        hamiltonians, failures = loader.parse()
        self.assertEqual(len(hamiltonians), len(self.records))
        self.assertIsNone(hamiltonians[1])
        self.assertIsNone(hamiltonians[2])
        self.assertEqual(hamiltonians[0], parse_record(self.records[0]))
        self.assertDictEqual(hamiltonians[3].d_one_e_integral, {(0, 1): 30.0})
        self.assertListEqual([f.index for f in failures], [1, 2])
        self.assertListEqual(
            [f.reason for f in failures], ["InconsistentIntegralError", "ValueError"]
        )
        self.assertIsInstance(failures[0], Record_failure)

    def test_distribution(self):
        loader = Liquid_loader(MPI.COMM_WORLD, self.records * 25)
        loader.world_size = 3
        loader.rank = 2
        self.assertListEqual(loader.distribution.tolist(), [34, 33, 33])
        self.assertEqual(len(loader.records_local), 33)
        self.assertEqual(loader.records_local[0], (self.records * 25)[67])
        self.assertEqual(loader.parse_local()[0][0], 67)

    def test_load_parallel(self):
        hamiltonians, failures = load_hamiltonians_parallel(
            MPI.COMM_WORLD, os.path.join(DATA_DIR, "h2_sto3g.liquid")
        )
        self.assertListEqual(failures, [])
        self.assertEqual(hamiltonians, load_hamiltonians(os.path.join(DATA_DIR, "h2_sto3g.liquid")))


class Test_Config(Timing, unittest.TestCase):
    def test_from_argv(self):
        self.assertEqual(Parser_config.from_argv([]), Parser_config())
        config = Parser_config.from_argv(["--convention=mulliken", "--strict"])
        self.assertTrue(config.strict_nuclear)
        self.assertEqual(config.convention, "mulliken")

    def test_invalid(self):
        with self.assertRaises(ValueError):
            Parser_config.from_argv(["--convention=chemist"])


if __name__ == "__main__":
    try:
        sys.argv.remove("--profiling")
    except ValueError:
        PROFILING = False
    else:
        PROFILING = True
    unittest.main(failfast=True, verbosity=0)

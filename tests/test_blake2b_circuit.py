import os  # env flag for slow multi-chunk tests
import pathlib  # locate repo root
import random  # deterministic messages + tamper positions
import sys  # adjust import path for local modules
import unittest  # unit test framework

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from blake2b_circuit import (  # generator harness under test
    SAMPLE_INPUT,
    Blake2bCircuitGenerator,
    main,
    num_input_elements,
    pack_message,
    reference_digest,
)
from witness import ConstraintViolation, WitnessError, WitnessEvaluator  # evaluator + errors

VECTORS = [  # (message, keyed BLAKE2b-256 digest)
    (b"", "e58199f28d56fea2ec39fa5e6f2720d27a38d0b187c1cde079d37e3f799b5dd0"),
    (b"abc", "4ebf7df5e1b1d1c8837bb6bb970eb076130ec5e21287473e76c286c83179435b"),
    (
        b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
        "5ef99720a55fd1a9b7161424a77e2b86bf77b08e764c8d5659440b9c8c930917",
    ),
    (
        b"abcdefghbcdefghicdefghijdefghijkefghijklfghijklmghijklmnhijklmnoijklmnopjklmnopqklmnopqrlmnopqrsmnopqrstnopqrstu",
        "d0fc4d095e3ad9a8126851d46cae8ab300301d0317d3b30c7fbad84225e9cb99",
    ),
]


def _skip_slow():
    return os.environ.get("BLAKE2B_GADGET_SKIP_SLOW") == "1"


class HelperTests(unittest.TestCase):
    def test_reference_digest_vectors(self):
        for msg, expected in VECTORS:
            self.assertEqual(reference_digest(msg).hex(), expected)

    def test_pack_message(self):
        self.assertEqual(num_input_elements(3, 8), 3)
        self.assertEqual(num_input_elements(3, 16), 2)
        self.assertEqual(num_input_elements(3, 7), 4)
        self.assertEqual(pack_message(b"abc", 8), [0x61, 0x62, 0x63])
        self.assertEqual(pack_message(b"abc", 16), [0x6261, 0x63])
        self.assertEqual(pack_message(b"\xff", 3), [7, 7, 3])


class CircuitVectorTests(unittest.TestCase):  # End-to-end evaluation against the literal vectors.
    def test_vectors(self):
        for msg, expected in VECTORS:
            with self.subTest(length=len(msg)):
                gen = Blake2bCircuitGenerator(f"vec{len(msg)}", len(msg)).build_circuit()
                self.assertEqual(len(gen.output_wires), 32)
                ev = gen.eval_circuit(msg)
                self.assertEqual(gen.digest_hex(ev), expected)

    def test_other_element_widths(self):
        msg = b"abc"
        for width in (7, 16, 64):
            with self.subTest(width=width):
                gen = Blake2bCircuitGenerator(f"w{width}", len(msg), bit_width=width)
                ev = gen.eval_circuit(msg)
                self.assertEqual(gen.digest(ev), reference_digest(msg))

    def test_multi_chunk_random_message(self):
        if _skip_slow():
            raise unittest.SkipTest("BLAKE2B_GADGET_SKIP_SLOW=1")
        rng = random.Random(11)
        msg = bytes(rng.getrandbits(8) for _ in range(300))
        gen = Blake2bCircuitGenerator("long", len(msg)).build_circuit()
        self.assertEqual(gen.gadget.num_compressions, 4)
        ev = gen.eval_circuit(msg)
        self.assertEqual(gen.digest(ev), reference_digest(msg))

    def test_main_sample(self):
        if _skip_slow():
            raise unittest.SkipTest("BLAKE2B_GADGET_SKIP_SLOW=1")
        self.assertEqual(len(SAMPLE_INPUT), 64)
        self.assertEqual(main(), 0)


class CircuitPropertyTests(unittest.TestCase):  # Determinism and soundness on one shared shape.
    MESSAGE = b"determinism"

    def test_determinism(self):
        gens = [Blake2bCircuitGenerator("det", len(self.MESSAGE)).build_circuit() for _ in range(2)]
        self.assertEqual(gens[0].cs.num_constraints, gens[1].cs.num_constraints)
        self.assertEqual(gens[0].cs.fingerprint(), gens[1].cs.fingerprint())
        digests = [g.digest_hex(g.eval_circuit(self.MESSAGE)) for g in gens]
        self.assertEqual(digests[0], digests[1])
        self.assertEqual(digests[0], reference_digest(self.MESSAGE).hex())

    def test_tampered_witness_is_rejected(self):
        gen = Blake2bCircuitGenerator("tamper", len(self.MESSAGE)).build_circuit()
        ev = gen.eval_circuit(self.MESSAGE)
        n_inputs = len(gen.input_wires)
        rng = random.Random(5)
        for idx in [n_inputs, gen.cs.num_variables - 1] + rng.sample(range(n_inputs, gen.cs.num_variables), 8):
            original = ev.assignment[idx]
            ev.assignment[idx] = (original + 1) % gen.cs.p
            with self.assertRaises(ConstraintViolation):
                ev.check_constraints()
            ev.assignment[idx] = original
        ev.check_constraints()

    def test_out_of_range_input_byte(self):
        gen = Blake2bCircuitGenerator("range", 2).build_circuit()
        ev = WitnessEvaluator(gen.cs)
        ev.set_wire_values(gen.input_wires, [0x61, 0x162])
        with self.assertRaises(ConstraintViolation):
            ev.evaluate()

    def test_missing_input(self):
        gen = Blake2bCircuitGenerator("missing", 2).build_circuit()
        ev = WitnessEvaluator(gen.cs)
        ev.set_wire_value(gen.input_wires[0], 1)
        with self.assertRaises(WitnessError):
            ev.evaluate()
        with self.assertRaises(WitnessError):
            ev.set_wire_value(gen.output_wires[0], 1)

    def test_wrong_message_length(self):
        gen = Blake2bCircuitGenerator("len", 3)
        with self.assertRaises(ValueError):
            gen.eval_circuit(b"abcd")


if __name__ == "__main__":
    unittest.main()

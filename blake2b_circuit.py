from __future__ import annotations  # keep type hints lightweight

import hashlib  # reference (plain) keyed BLAKE2b
import logging  # generator progress

from blake2b_gadget import KEY, OUTPUT_LENGTH, Blake2bGadget  # gadget + fixed parameters
from r1cs import ConstraintSystem  # constraint arena
from witness import WitnessEvaluator  # concrete evaluation

logger = logging.getLogger(__name__)

SAMPLE_INPUT = b"abcdefghijklmnopqrstuvwxyzabcdefghijklmnopqrstuvwxyzabcdefghijkl"  # 64-byte generator sample


def reference_digest(message) -> bytes:  # Plain keyed BLAKE2b-256, for cross-checking only.
    return hashlib.blake2b(bytes(message), key=KEY, digest_size=OUTPUT_LENGTH).digest()


def num_input_elements(message_length, bit_width) -> int:  # ceil(8 * len / bit_width)
    return -(-8 * int(message_length) // int(bit_width))


def pack_message(message, bit_width, count=None):  # Split message bits into little-endian elements.
    message = bytes(message)
    bit_width = int(bit_width)
    count = num_input_elements(len(message), bit_width) if count is None else int(count)
    x = int.from_bytes(message, "little")
    mask = (1 << bit_width) - 1
    return [(x >> (k * bit_width)) & mask for k in range(count)]


class Blake2bCircuitGenerator:  # Declares inputs/outputs around one gadget and drives sample evaluation.
    def __init__(self, name, message_length, bit_width=8):
        self.cs = ConstraintSystem(name)
        self.message_length = int(message_length)
        self.bit_width = int(bit_width)
        self.input_wires = None
        self.gadget = None
        self.output_wires = None

    def build_circuit(self):
        if self.gadget is not None:
            return self
        n = num_input_elements(self.message_length, self.bit_width)
        self.input_wires = self.cs.create_input_wire_array(n, "message")
        self.gadget = Blake2bGadget(self.cs, self.input_wires, self.bit_width, self.message_length,
                                    binary_output=False, padding_required=True, label=self.cs.name)
        self.output_wires = self.cs.make_output_array(self.gadget.get_output_wires(), "digest")
        logger.debug("%s", self.cs.summary())
        return self

    def generate_sample_input(self, evaluator: WitnessEvaluator, message):
        message = bytes(message)
        if len(message) != self.message_length:
            raise ValueError(f"circuit expects {self.message_length} bytes, got {len(message)}")
        evaluator.set_wire_values(self.input_wires, pack_message(message, self.bit_width, len(self.input_wires)))

    def eval_circuit(self, message, check=True) -> WitnessEvaluator:
        self.build_circuit()
        evaluator = WitnessEvaluator(self.cs)
        self.generate_sample_input(evaluator, message)
        return evaluator.evaluate(check=check)

    def digest(self, evaluator: WitnessEvaluator) -> bytes:
        return bytes(int(v) for v in evaluator.get_wire_values(self.output_wires))

    def digest_hex(self, evaluator: WitnessEvaluator) -> str:
        return self.digest(evaluator).hex()


def main(message=SAMPLE_INPUT):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    gen = Blake2bCircuitGenerator("blake2b", len(message)).build_circuit()
    logger.info("%s", gen.cs.summary())
    evaluator = gen.eval_circuit(message)
    digest = gen.digest_hex(evaluator)
    logger.info("digest %s", digest)
    expected = reference_digest(message).hex()
    if digest != expected:
        logger.error("digest mismatch: reference %s", expected)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

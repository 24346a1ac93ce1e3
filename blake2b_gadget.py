"""Keyed BLAKE2b-256 ("ZcashComputehSig" key) as an R1CS gadget.

The message is prepended with the 16-byte key block, split into 128-byte
chunks and compressed lane by lane. Every 64-bit addition is trimmed back to
64 bits through an exact-width bit decomposition (65 bits for two operands,
66 for three), so the carry is bound by constraints rather than dropped.
Values fully known at build time (IV, key block, byte counters, final flag)
fold to constants and cost nothing.
"""

from __future__ import annotations  # keep type hints lightweight

import logging  # build progress

from lanes import (  # 64-bit lane helpers
    LANE_MASK,
    bitwise_xor,
    constant_lane,
    lane_from_bytes,
    lane_to_bytes,
    rotate_right,
    wrapping_add,
)
from r1cs import ConstraintSystem  # constraint arena

logger = logging.getLogger(__name__)

BLOCK_BYTES = 128
ROUNDS = 12
KEY = b"ZcashComputehSig"
KEY_LENGTH = len(KEY)  # 16
OUTPUT_LENGTH = 32
PARAMETER_WORD = 0x01010000 | (KEY_LENGTH << 8) | OUTPUT_LENGTH  # 0x0101kknn, XORed into h[0]
ROTATIONS = (32, 24, 16, 63)

IV = (
    0x6A09E667F3BCC908, 0xBB67AE8584CAA73B, 0x3C6EF372FE94F82B, 0xA54FF53A5F1D36F1,
    0x510E527FADE682D1, 0x9B05688C2B3E6C1F, 0x1F83D9ABFB41BD6B, 0x5BE0CD19137E2179,
)

SIGMA = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
    (14, 10, 4, 8, 9, 15, 13, 6, 1, 12, 0, 2, 11, 7, 5, 3),
    (11, 8, 12, 0, 5, 2, 15, 13, 10, 14, 3, 6, 7, 1, 9, 4),
    (7, 9, 3, 1, 13, 12, 11, 14, 2, 6, 5, 10, 4, 0, 15, 8),
    (9, 0, 5, 7, 2, 4, 10, 15, 14, 1, 11, 12, 6, 8, 3, 13),
    (2, 12, 6, 10, 0, 11, 8, 3, 4, 13, 7, 5, 15, 14, 1, 9),
    (12, 5, 1, 15, 14, 13, 4, 10, 0, 7, 6, 3, 9, 2, 8, 11),
    (13, 11, 7, 14, 12, 1, 3, 9, 5, 0, 15, 4, 8, 6, 2, 10),
    (6, 15, 14, 9, 11, 3, 0, 8, 12, 2, 13, 7, 1, 4, 10, 5),
    (10, 2, 8, 4, 7, 6, 1, 5, 15, 11, 9, 14, 3, 12, 13, 0),
)

G_SCHEDULE = (  # four columns, then four diagonals
    (0, 4, 8, 12),
    (1, 5, 9, 13),
    (2, 6, 10, 14),
    (3, 7, 11, 15),
    (0, 5, 10, 15),
    (1, 6, 11, 12),
    (2, 7, 8, 13),
    (3, 4, 9, 14),
)


class Blake2bConfigError(ValueError):  # Raised at construction on inconsistent length information.
    pass


def check_length_consistency(input_count, bit_width, total_length_in_bytes):
    input_count, bit_width, total = int(input_count), int(bit_width), int(total_length_in_bytes)
    if bit_width < 1:
        raise Blake2bConfigError(f"bit width per input element must be positive, got {bit_width}")
    if total < 0:
        raise Blake2bConfigError(f"total length must be non-negative, got {total}")
    if total * 8 > input_count * bit_width or total * 8 < (input_count - 1) * bit_width:
        raise Blake2bConfigError(
            f"inconsistent length information: {total} bytes from {input_count} elements of {bit_width} bits"
        )


def _constant_byte(cs: ConstraintSystem, value):  # 8 constant bit wires, little-endian.
    return [cs.create_constant_wire((value >> i) & 1) for i in range(8)]


def input_bits(cs: ConstraintSystem, wires, bit_width, total_length_in_bytes, label="input"):
    """Range-check the input elements and regroup their bits into message bytes.

    Element k contributes its `bit_width` bits little-endian, elements are
    concatenated in order; bits past `8 * total_length_in_bytes` are dropped.
    """
    bits = []
    for k, w in enumerate(wires):
        bits.extend(cs.explode_to_bits(w, bit_width, f"{label}[{k}]"))
    return [bits[8 * j : 8 * j + 8] for j in range(int(total_length_in_bytes))]


def prepare_input(cs: ConstraintSystem, message_bytes):  # Key block + message, zero-padded into 128-byte chunks.
    zero = _constant_byte(cs, 0)
    data = [_constant_byte(cs, b) for b in KEY] + [zero] * (BLOCK_BYTES - KEY_LENGTH)
    data.extend(message_bytes)
    data.extend([zero] * (-len(data) % BLOCK_BYTES))
    return [data[i : i + BLOCK_BYTES] for i in range(0, len(data), BLOCK_BYTES)]


def initial_state(cs: ConstraintSystem):  # IV with the parameter block folded into lane 0.
    h = [constant_lane(cs, w) for w in IV]
    h[0] = bitwise_xor(cs, h[0], constant_lane(cs, PARAMETER_WORD))
    return h


def mix(cs: ConstraintSystem, v, a, b, c, d, m, x, y, label="G"):  # G function; returns a new working vector.
    v = list(v)
    r1, r2, r3, r4 = ROTATIONS
    v[a] = wrapping_add(cs, v[a], v[b], m[x], label=f"{label}:a1")
    v[d] = rotate_right(bitwise_xor(cs, v[d], v[a], f"{label}:d1"), r1)
    v[c] = wrapping_add(cs, v[c], v[d], label=f"{label}:c1")
    v[b] = rotate_right(bitwise_xor(cs, v[b], v[c], f"{label}:b1"), r2)
    v[a] = wrapping_add(cs, v[a], v[b], m[y], label=f"{label}:a2")
    v[d] = rotate_right(bitwise_xor(cs, v[d], v[a], f"{label}:d2"), r3)
    v[c] = wrapping_add(cs, v[c], v[d], label=f"{label}:c2")
    v[b] = rotate_right(bitwise_xor(cs, v[b], v[c], f"{label}:b2"), r4)
    return v


def compress(cs: ConstraintSystem, h, chunk, counter, is_last_chunk, label="F"):
    """One BLAKE2b compression; returns the new 8-lane chaining state.

    `counter` is the number of prepared-input bytes consumed up to and
    including this chunk.
    """
    counter = int(counter)
    if len(chunk) != BLOCK_BYTES:
        raise ValueError(f"chunk must be {BLOCK_BYTES} bytes, got {len(chunk)}")
    v = list(h) + [constant_lane(cs, w) for w in IV]
    v[12] = bitwise_xor(cs, v[12], constant_lane(cs, counter & LANE_MASK))
    v[13] = bitwise_xor(cs, v[13], constant_lane(cs, counter >> 64))
    if is_last_chunk:
        v[14] = bitwise_xor(cs, v[14], constant_lane(cs, LANE_MASK))
    m = [lane_from_bytes(chunk[8 * i : 8 * i + 8]) for i in range(16)]
    for r in range(ROUNDS):
        s = SIGMA[r % 10]
        for i, (a, b, c, d) in enumerate(G_SCHEDULE):
            v = mix(cs, v, a, b, c, d, m, s[2 * i], s[2 * i + 1], f"{label}:r{r}:g{i}")
    return [bitwise_xor(cs, bitwise_xor(cs, h[i], v[i], f"{label}:h{i}"), v[i + 8], f"{label}:h{i}") for i in range(8)]


def digest_bytes(cs: ConstraintSystem, h):  # First OUTPUT_LENGTH bytes of the little-endian state.
    out = []
    for lane in h:
        out.extend(lane_to_bytes(cs, lane))
    return out[:OUTPUT_LENGTH]


class Blake2bGadget:  # Keyed BLAKE2b-256 over a sequence of input wires.
    """Build the hash circuit for `total_length_in_bytes` message bytes.

    `input_wires` carry `bit_width_per_input_element` bits each; the length
    check runs before anything is appended to `cs`, so a rejected gadget leaves
    no partial wiring behind. `binary_output` and `padding_required` are kept
    for interface compatibility and do not change the circuit: the output is
    always 32 byte wires and padding is always applied.
    """

    def __init__(self, cs: ConstraintSystem, input_wires, bit_width_per_input_element, total_length_in_bytes,
                 binary_output=False, padding_required=True, label=""):
        input_wires = list(input_wires)
        check_length_consistency(len(input_wires), bit_width_per_input_element, total_length_in_bytes)
        self.cs = cs
        self.input_wires = input_wires
        self.bit_width_per_input_element = int(bit_width_per_input_element)
        self.total_length_in_bytes = int(total_length_in_bytes)
        self.binary_output = bool(binary_output)
        self.padding_required = bool(padding_required)
        self.label = str(label) or "blake2b"
        self.num_compressions = 0
        self.state = None  # final chaining state h[0..7], exploded lanes
        self._output = self._build_circuit()

    def _build_circuit(self):
        cs, label = self.cs, self.label
        start = cs.num_constraints
        message = input_bits(cs, self.input_wires, self.bit_width_per_input_element, self.total_length_in_bytes,
                             f"{label}:input")
        chunks = prepare_input(cs, message)
        prepared_length = BLOCK_BYTES + self.total_length_in_bytes
        h = initial_state(cs)
        counter = 0
        for i, chunk in enumerate(chunks):
            is_last = i == len(chunks) - 1
            counter = prepared_length if is_last else counter + BLOCK_BYTES
            h = compress(cs, h, chunk, counter, is_last, f"{label}:F{i}")
            self.num_compressions += 1
            logger.debug("%s: chunk %d/%d compressed (t=%d, final=%s), %d constraints so far",
                         label, i + 1, len(chunks), counter, is_last, cs.num_constraints - start)
        self.state = tuple(h)
        out = digest_bytes(cs, h)
        logger.debug("%s: %d message bytes, %d compressions, %d constraints",
                     label, self.total_length_in_bytes, self.num_compressions, cs.num_constraints - start)
        return out

    def get_output_wires(self):  # 32 byte wires, little-endian digest order.
        return list(self._output)

"""64-bit lane arithmetic over field wires.

A lane is either packed (one wire whose value is known to be < 2^64) or
exploded (64 boolean wires, little-endian). XOR and rotation need the
exploded form, addition needs the packed form. Packing is linear and free;
exploding a packed lane costs 64 booleanity constraints plus one packing
constraint.
"""

from __future__ import annotations  # keep type hints lightweight

from dataclasses import dataclass  # immutable lane containers

from r1cs import ConstraintSystem, Wire  # constraint arena + wire handles

LANE_BITS = 64
LANE_MASK = (1 << LANE_BITS) - 1


@dataclass(frozen=True)
class PackedLane:  # One wire holding a value < 2^64.
    wire: Wire


@dataclass(frozen=True)
class ExplodedLane:  # 64 boolean wires, bits[0] least significant.
    bits: tuple

    def __post_init__(self):
        if len(self.bits) != LANE_BITS:
            raise ValueError(f"exploded lane needs {LANE_BITS} bits, got {len(self.bits)}")

    def constant_value(self):  # Known value when every bit is constant, else None.
        v = 0
        for i, b in enumerate(self.bits):
            c = b.constant_value()
            if c is None:
                return None
            v |= c << i
        return v


def constant_lane(cs: ConstraintSystem, value) -> ExplodedLane:
    value = int(value)
    if value < 0 or value > LANE_MASK:
        raise ValueError(f"lane constant out of range: {value:#x}")
    return ExplodedLane(tuple(cs.create_constant_wire((value >> i) & 1) for i in range(LANE_BITS)))


def as_packed(cs: ConstraintSystem, lane) -> PackedLane:  # Free for exploded lanes.
    if isinstance(lane, PackedLane):
        return lane
    return PackedLane(cs.pack_bits(lane.bits))


def as_exploded(cs: ConstraintSystem, lane, label="lane") -> ExplodedLane:  # Constrains a packed lane to 64 bits.
    if isinstance(lane, ExplodedLane):
        return lane
    return ExplodedLane(tuple(cs.explode_to_bits(lane.wire, LANE_BITS, label)))


def lane_from_bytes(byte_bits) -> ExplodedLane:  # 8 little-endian bytes, each a list of 8 bit wires.
    byte_bits = list(byte_bits)
    if len(byte_bits) != LANE_BITS // 8:
        raise ValueError(f"expected {LANE_BITS // 8} bytes, got {len(byte_bits)}")
    return ExplodedLane(tuple(b for byte in byte_bits for b in byte))


def lane_to_bytes(cs: ConstraintSystem, lane) -> list:  # 8 byte wires, little-endian; each in [0, 255].
    bits = as_exploded(cs, lane).bits
    return [cs.pack_bits(bits[8 * j : 8 * j + 8]) for j in range(LANE_BITS // 8)]


def bitwise_xor(cs: ConstraintSystem, a, b, label="xor") -> ExplodedLane:
    a, b = as_exploded(cs, a, label), as_exploded(cs, b, label)
    return ExplodedLane(tuple(cs.xor_bits(x, y, label) for x, y in zip(a.bits, b.bits)))


def trim_width(num_operands) -> int:  # Bits needed for a sum of n lanes: 64 + ceil(log2 n).
    n = int(num_operands)
    if n < 1:
        raise ValueError("need at least one operand")
    return LANE_BITS + (n - 1).bit_length()


def trim(cs: ConstraintSystem, wire: Wire, width, label="trim"):
    """Reduce a field-level sum mod 2^64.

    The sum is exploded to exactly `width` bits, which both range-checks it
    and binds the bits above 63 to the true carry floor(sum / 2^64). Returns
    (low 64 bits as a lane, carry bits).
    """
    width = int(width)
    if width < LANE_BITS:
        raise ValueError(f"trim width must be >= {LANE_BITS}")
    bits = cs.explode_to_bits(wire, width, label)
    return ExplodedLane(tuple(bits[:LANE_BITS])), bits[LANE_BITS:]


def wrapping_add(cs: ConstraintSystem, *lanes, label="add") -> ExplodedLane:  # (Σ lanes) mod 2^64.
    if not lanes:
        raise ValueError("wrapping_add needs at least one lane")
    total = as_packed(cs, lanes[0]).wire
    for lane in lanes[1:]:
        total = cs.add(total, as_packed(cs, lane).wire)
    low, _carry = trim(cs, total, trim_width(len(lanes)), label)
    return low


def rotate_right(lane, amount) -> ExplodedLane:  # Re-indexes bits; no constraints.
    if not isinstance(lane, ExplodedLane):
        raise TypeError("rotate_right needs an exploded lane")
    amount = int(amount)
    if not 0 <= amount < LANE_BITS:
        raise ValueError(f"rotation amount must be in [0, {LANE_BITS})")
    bits = lane.bits
    return ExplodedLane(bits[amount:] + bits[:amount])

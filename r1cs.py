from __future__ import annotations  # keep type hints lightweight

import hashlib  # structural fingerprint of the constraint list
import logging  # allocation summaries

from field import Fr  # default circuit field (BN254 scalar)

logger = logging.getLogger(__name__)

class CircuitError(Exception):  # Raised on malformed circuit construction.
    pass

class WireMismatchError(CircuitError):  # Raised when a wire from another ConstraintSystem is used.
    pass

class LC:  # Linear combination Σ coeff_i * z[i] + const over one prime field.
    __slots__ = ("terms", "const", "p")

    def __init__(self, terms, const, p):  # terms: {var_index: nonzero coeff}, all reduced mod p.
        self.terms = terms
        self.const = const
        self.p = p

    @classmethod
    def variable(cls, idx, p):  # Single variable with coefficient 1.
        return cls({int(idx): 1}, 0, p)

    @classmethod
    def constant(cls, value, p):  # No variable terms.
        return cls({}, int(value) % p, p)

    def is_constant(self): return not self.terms

    def __add__(self, other):
        p = self.p
        terms = dict(self.terms)
        for i, c in other.terms.items():
            s = (terms.get(i, 0) + c) % p
            if s:
                terms[i] = s
            else:
                terms.pop(i, None)
        return LC(terms, (self.const + other.const) % p, p)

    def scale(self, k):  # k * self.
        p = self.p
        k %= p
        if k == 0:
            return LC({}, 0, p)
        return LC({i: (c * k) % p for i, c in self.terms.items()}, (self.const * k) % p, p)

    def __neg__(self): return self.scale(-1)

    def __sub__(self, other): return self + other.scale(-1)

    def dot(self, z):  # Evaluate on assignment z (canonical ints indexed by variable).
        acc = self.const
        for i, c in self.terms.items():
            acc += c * z[i]
        return acc % self.p

    def encode(self):  # Canonical, order-independent form.
        return (tuple(sorted(self.terms.items())), self.const)

    def __repr__(self):
        parts = [f"{c}*z{i}" for i, c in sorted(self.terms.items())]
        if self.const or not parts:
            parts.append(str(self.const))
        return "LC(" + " + ".join(parts) + ")"

class R1CSConstraint:  # One rank-1 constraint row, proving A(z) * B(z) = C(z).
    __slots__ = ("a", "b", "c", "label")

    def __init__(self, a_lc, b_lc, c_lc, label=""):
        self.a = a_lc
        self.b = b_lc
        self.c = c_lc
        self.label = str(label)

    def is_satisfied(self, z):
        return (self.a.dot(z) * self.b.dot(z) - self.c.dot(z)) % self.a.p == 0

class Wire:  # Immutable circuit signal; a linear combination owned by one ConstraintSystem.
    __slots__ = ("cs", "lc")

    def __init__(self, cs, lc):
        self.cs = cs
        self.lc = lc

    def is_constant(self): return self.lc.is_constant()

    def constant_value(self):  # Known value for constant wires, else None.
        return self.lc.const if self.lc.is_constant() else None

    def variable_index(self):  # Index when this wire is exactly one variable, else None.
        if self.lc.const or len(self.lc.terms) != 1:
            return None
        (idx, coeff), = self.lc.terms.items()
        return idx if coeff == 1 else None

    def __add__(self, other): return self.cs.add(self, other)

    __radd__ = __add__

    def __sub__(self, other): return self.cs.sub(self, other)

    def __rsub__(self, other): return self.cs.sub(other, self)

    def __mul__(self, other):
        if isinstance(other, int):
            return self.cs.mul_constant(self, other)
        return self.cs.multiply(self, other)

    __rmul__ = __mul__

    def __neg__(self): return self.cs.mul_constant(self, -1)

    def __repr__(self): return f"Wire({self.lc!r})"

class ConstraintSystem:  # Append-only arena of variables, hints and R1CS constraints.
    """Explicit constraint-system handle.

    Every non-input variable is allocated together with a hint, a function of
    the values allocated before it, which the witness evaluator replays in
    allocation order. Linear operations (add, sub, constant scaling, bit
    packing) only build linear combinations and never allocate. Nothing is
    ever removed or rewritten once appended.
    """

    def __init__(self, name="circuit", field=Fr):
        self.name = str(name)
        self.field = field
        self.p = field.MODULUS
        self.num_variables = 0
        self.hints = []  # (variable indices, fn(z) -> list[int] | None for inputs)
        self.constraints = []
        self.inputs = []  # (name, Wire) public inputs in allocation order
        self.witnesses = []  # (name, Wire) private prover inputs
        self.outputs = []  # (name, Wire)

    def _alloc(self, count, hint):  # Reserve `count` consecutive variables.
        start = self.num_variables
        self.num_variables += int(count)
        idxs = list(range(start, self.num_variables))
        self.hints.append((idxs, hint))
        return idxs

    def _var(self, idx): return Wire(self, LC.variable(idx, self.p))

    def _coerce(self, x):  # int -> constant wire; foreign wire -> error.
        if isinstance(x, Wire):
            if x.cs is not self:
                raise WireMismatchError(f"wire belongs to {x.cs.name!r}, not {self.name!r}")
            return x
        if isinstance(x, (int, self.field)):
            return self.create_constant_wire(int(x))
        raise TypeError(f"expected Wire or int, got {type(x).__name__}")

    def _constrain(self, a, b, c, label):
        self.constraints.append(R1CSConstraint(a, b, c, label))

    def one_wire(self): return self.create_constant_wire(1)

    def zero_wire(self): return self.create_constant_wire(0)

    def create_constant_wire(self, value):
        return Wire(self, LC.constant(value, self.p))

    def create_constant_wire_array(self, values):
        return [self.create_constant_wire(v) for v in values]

    def create_input_wire(self, name=""):  # Public circuit input, assigned by the evaluator.
        w = self._var(self._alloc(1, None)[0])
        self.inputs.append((str(name), w))
        return w

    def create_input_wire_array(self, n, name=""):
        return [self.create_input_wire(f"{name}[{i}]") for i in range(int(n))]

    def create_prover_witness_wire(self, name=""):  # Private input, assigned by the evaluator.
        w = self._var(self._alloc(1, None)[0])
        self.witnesses.append((str(name), w))
        return w

    def add(self, a, b):
        a, b = self._coerce(a), self._coerce(b)
        return Wire(self, a.lc + b.lc)

    def sub(self, a, b):
        a, b = self._coerce(a), self._coerce(b)
        return Wire(self, a.lc - b.lc)

    def mul_constant(self, a, k):
        return Wire(self, self._coerce(a).lc.scale(int(k)))

    def pack_bits(self, bits):  # Σ bits[i] * 2^i; no width constraint beyond len(bits).
        p = self.p
        terms, const = {}, 0
        for i, b in enumerate(bits):
            lc, k = self._coerce(b).lc, 1 << i
            const += lc.const * k
            for idx, c in lc.terms.items():
                terms[idx] = (terms.get(idx, 0) + c * k) % p
        return Wire(self, LC({i: c for i, c in terms.items() if c}, const % p, p))

    def multiply(self, a, b, label="mul"):  # One variable + one constraint unless an operand is constant.
        a, b = self._coerce(a), self._coerce(b)
        if a.is_constant():
            return Wire(self, b.lc.scale(a.lc.const))
        if b.is_constant():
            return Wire(self, a.lc.scale(b.lc.const))
        a_lc, b_lc, p = a.lc, b.lc, self.p
        idx = self._alloc(1, lambda z: [(a_lc.dot(z) * b_lc.dot(z)) % p])[0]
        out = self._var(idx)
        self._constrain(a_lc, b_lc, out.lc, label)
        return out

    def xor_bits(self, x, y, label="xor"):  # x + y - 2xy for boolean x, y; one constraint (2x)*y = x + y - out.
        x, y = self._coerce(x), self._coerce(y)
        if x.is_constant():
            x, y = y, x
        if y.is_constant():
            c = y.lc.const
            if c not in (0, 1):
                raise ValueError("xor_bits expects boolean constants")
            return x if c == 0 else Wire(self, LC.constant(1, self.p) - x.lc)
        x_lc, y_lc = x.lc, y.lc
        idx = self._alloc(1, lambda z: [x_lc.dot(z) ^ y_lc.dot(z)])[0]
        out = self._var(idx)
        self._constrain(x_lc.scale(2), y_lc, x_lc + y_lc - out.lc, label)
        return out

    def explode_to_bits(self, wire, width, label="bits"):  # Little-endian, each bit constrained boolean.
        """Decompose `wire` into `width` boolean wires whose packing equals it.

        Emits `width` booleanity constraints and one packing constraint. The
        packing is injective because `width` stays below the field size, so
        the bits are the unique binary expansion of the wire's value; a value
        needing more than `width` bits leaves the packing constraint
        unsatisfiable.
        """
        wire = self._coerce(wire)
        width = int(width)
        if width < 1 or width >= self.field.BITS:
            raise ValueError(f"bit width must be in [1, {self.field.BITS - 1}]")
        if wire.is_constant():
            v = wire.lc.const
            if v >> width:
                raise ValueError(f"constant {v:#x} does not fit in {width} bits")
            return [self.create_constant_wire((v >> i) & 1) for i in range(width)]
        w_lc = wire.lc
        idxs = self._alloc(width, lambda z: [(w_lc.dot(z) >> i) & 1 for i in range(width)])
        bits = [self._var(i) for i in idxs]
        for b in bits:
            self._constrain(b.lc, b.lc, b.lc, f"{label}:bool")
        self._constrain(self.pack_bits(bits).lc, LC.constant(1, self.p), w_lc, f"{label}:pack")
        return bits

    def assert_equal(self, a, b, label="eq"):  # One constraint (a - b) * 1 = 0.
        a, b = self._coerce(a), self._coerce(b)
        diff = a.lc - b.lc
        if diff.is_constant():
            if diff.const:
                raise CircuitError(f"constant assertion {label!r} can never hold")
            return
        self._constrain(diff, LC.constant(1, self.p), LC({}, 0, self.p), label)

    def make_output(self, wire, name=""):
        wire = self._coerce(wire)
        self.outputs.append((str(name), wire))
        return wire

    def make_output_array(self, wires, name=""):
        out = [self.make_output(w, f"{name}[{i}]") for i, w in enumerate(wires)]
        logger.debug("%s: declared %d outputs %r", self.name, len(out), name)
        return out

    @property
    def num_constraints(self): return len(self.constraints)

    def fingerprint(self):  # Deterministic digest of the constraint structure (labels excluded).
        h = hashlib.blake2b(digest_size=32)
        h.update(self.num_variables.to_bytes(8, "little"))
        h.update(len(self.inputs).to_bytes(8, "little"))
        for con in self.constraints:
            for lc in (con.a, con.b, con.c):
                h.update(repr(lc.encode()).encode())
        for _name, w in self.outputs:
            h.update(repr(w.lc.encode()).encode())
        return h.hexdigest()

    def summary(self):
        return (f"{self.name}: {self.num_variables} variables, {self.num_constraints} constraints, "
                f"{len(self.inputs)} inputs, {len(self.outputs)} outputs")

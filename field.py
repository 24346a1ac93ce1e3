class PrimeField:  # Prime field element kept as a canonical residue.
    MIN_BITS = 67  # three-operand 64-bit sums must not wrap the field.

    def __init_subclass__(cls):  # Validate the modulus once per subclass.
        if "MODULUS" not in cls.__dict__:
            return
        p = cls.MODULUS
        if p % 2 == 0 or p.bit_length() < cls.MIN_BITS:
            raise ValueError(f"MODULUS must be odd and at least {cls.MIN_BITS} bits")
        cls.BITS = p.bit_length()

    __slots__ = ("v",)

    def __init__(self, x=0):  # Build element from any int (reduced mod MODULUS).
        self.v = int(x) % type(self).MODULUS

    zero = classmethod(lambda cls: cls(0))  # Additive identity.

    one = classmethod(lambda cls: cls(1))  # Multiplicative identity.

    def to_int(self): return self.v  # Canonical integer in [0, MODULUS).

    def is_zero(self): return self.v == 0

    def inv(self):  # Multiplicative inverse in the same field.
        if self.v == 0: raise ZeroDivisionError("cannot invert zero")
        return type(self)(pow(self.v, -1, type(self).MODULUS))

    def bits(self, width):  # Little-endian bit decomposition of the canonical value.
        width = int(width)
        if self.v >> width:
            raise ValueError(f"value does not fit in {width} bits")
        return [(self.v >> i) & 1 for i in range(width)]

    def to_bytes_le(self, n=None):  # Little-endian byte encoding (default: minimal field width).
        n = (type(self).BITS + 7) // 8 if n is None else int(n)
        return self.v.to_bytes(n, "little")

    def _c(self, other):  # Coerce int/same-type operand into a canonical int.
        if isinstance(other, type(self)):
            return other.v
        if isinstance(other, int):
            return other % type(self).MODULUS
        raise TypeError(f"expected {type(self).__name__} or int")

    def __add__(self, other): return type(self)(self.v + self._c(other))

    __radd__ = __add__

    def __sub__(self, other): return type(self)(self.v - self._c(other))

    def __rsub__(self, other): return type(self)(self._c(other) - self.v)

    def __mul__(self, other): return type(self)(self.v * self._c(other))

    __rmul__ = __mul__

    def __pow__(self, e):  # Exponentiation with modular power semantics.
        return (self.inv()) ** (-e) if e < 0 else type(self)(pow(self.v, e, type(self).MODULUS))

    def __truediv__(self, other):  # Division as multiply by inverse.
        return self * type(self)(self._c(other)).inv()

    def __neg__(self): return type(self)(-self.v)

    def __eq__(self, other):  # Equality with field elements or canonical ints.
        if isinstance(other, type(self)):
            return self.v == other.v
        return self.v == (other % type(self).MODULUS) if isinstance(other, int) else False

    def __hash__(self): return hash((type(self).__name__, self.v))

    def __int__(self): return self.v  # int(...) exposes canonical integer.

    def __repr__(self): return f"{type(self).__name__}({self.v})"

class Fr(PrimeField):  # BN254 scalar field (libsnark/jsnark default curve).
    MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617  # BN254 Fr modulus

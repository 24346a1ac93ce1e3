from __future__ import annotations  # keep type hints lightweight

import logging  # evaluation summaries

from r1cs import CircuitError, ConstraintSystem, Wire  # constraint arena + wire handles

logger = logging.getLogger(__name__)


class WitnessError(CircuitError):  # Raised on missing or misplaced witness assignments.
    pass


class ConstraintViolation(CircuitError):  # Raised when an assignment fails a constraint.
    def __init__(self, index, label):
        super().__init__(f"constraint #{index} ({label}) is not satisfied")
        self.index = index
        self.label = label


class WitnessEvaluator:  # Assigns concrete values to every variable of a ConstraintSystem.
    def __init__(self, cs: ConstraintSystem):
        self.cs = cs
        self.assignment = [None] * cs.num_variables  # canonical ints mod cs.p
        self._assignable = {w.variable_index() for _n, w in cs.inputs + cs.witnesses}

    def set_wire_value(self, wire: Wire, value):  # Assign an input or prover-witness wire.
        idx = wire.variable_index() if wire.cs is self.cs else None
        if idx is None or idx not in self._assignable:
            raise WitnessError(f"{wire!r} is not an input wire of {self.cs.name!r}")
        self.assignment[idx] = int(value) % self.cs.p

    def set_wire_values(self, wires, values):
        wires, values = list(wires), list(values)
        if len(wires) != len(values):
            raise WitnessError(f"got {len(values)} values for {len(wires)} wires")
        for w, v in zip(wires, values):
            self.set_wire_value(w, v)

    def evaluate(self, check=True):  # Replay hints in allocation order, then (optionally) check.
        z = self.assignment
        for idxs, hint in self.cs.hints:
            if hint is None:
                if z[idxs[0]] is None:
                    raise WitnessError(f"input variable z{idxs[0]} was never assigned")
                continue
            values = hint(z)
            for i, v in zip(idxs, values):
                z[i] = v
        logger.debug("%s: assigned %d variables", self.cs.name, len(z))
        if check:
            self.check_constraints()
        return self

    def check_constraints(self):  # Raise ConstraintViolation on the first unsatisfied row.
        z = self.assignment
        if any(v is None for v in z):
            raise WitnessError("assignment is incomplete; call evaluate() first")
        for k, con in enumerate(self.cs.constraints):
            if not con.is_satisfied(z):
                raise ConstraintViolation(k, con.label)

    def get_wire_value(self, wire: Wire):  # Field value of any wire (linear combinations included).
        return self.cs.field(wire.lc.dot(self.assignment))

    def get_wire_values(self, wires):
        return [self.get_wire_value(w) for w in wires]

"""Evaluation of VM tapes over many points at once."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

from tapevm.errors import BadVarSliceError, MismatchedSlicesError
from tapevm.tracing import _div, _f32, _sqrt
from tapevm.vm_op import U8_MAX, VmOpcode
from tapevm.vm_tape import VmTape


def _fmin(a: float, b: float) -> float:
    """Minimum that ignores a NaN operand, as IEEE ``minNum`` does."""
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a <= b else b


def _fmax(a: float, b: float) -> float:
    """Maximum that ignores a NaN operand, as IEEE ``maxNum`` does."""
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a >= b else b


_UNARY: dict[VmOpcode, Callable[[float], float]] = {
    VmOpcode.NEG_REG: lambda a: -a,
    VmOpcode.ABS_REG: abs,
    VmOpcode.RECIP_REG: lambda a: _div(1.0, a),
    VmOpcode.SQRT_REG: _sqrt,
    VmOpcode.SQUARE_REG: lambda a: a * a,
    VmOpcode.COPY_REG: lambda a: a,
}

_REG_IMM: dict[VmOpcode, Callable[[float, float], float]] = {
    VmOpcode.ADD_REG_IMM: lambda a, imm: a + imm,
    VmOpcode.MUL_REG_IMM: lambda a, imm: a * imm,
    VmOpcode.DIV_REG_IMM: _div,
    VmOpcode.DIV_IMM_REG: lambda a, imm: _div(imm, a),
    VmOpcode.SUB_IMM_REG: lambda a, imm: imm - a,
    VmOpcode.SUB_REG_IMM: lambda a, imm: a - imm,
    VmOpcode.MIN_REG_IMM: _fmin,
    VmOpcode.MAX_REG_IMM: _fmax,
}

_REG_REG: dict[VmOpcode, Callable[[float, float], float]] = {
    VmOpcode.ADD_REG_REG: lambda a, b: a + b,
    VmOpcode.MUL_REG_REG: lambda a, b: a * b,
    VmOpcode.DIV_REG_REG: _div,
    VmOpcode.SUB_REG_REG: lambda a, b: a - b,
    VmOpcode.MIN_REG_REG: _fmin,
    VmOpcode.MAX_REG_REG: _fmax,
}


class FloatSliceEvaluator:
    """Evaluates a VM tape over slices of points in single precision.

    The tape must have been planned with the full register limit (255).
    Unlike point evaluation, min / max record no choices, and a NaN operand
    is ignored in favour of the other one.
    """

    def __init__(self, tape: VmTape, var_count: int) -> None:
        if tape.reg_limit != U8_MAX:
            raise ValueError(
                f"tape must use the full register limit ({U8_MAX}), "
                f"not {tape.reg_limit}"
            )
        if var_count < 0:
            raise ValueError("var_count must not be negative")
        self.tape = tape
        self.var_count = var_count

    def eval(
        self,
        xs: Sequence[float],
        ys: Sequence[float],
        zs: Sequence[float],
        vars: Sequence[float] = (),
    ) -> list[float]:
        """Evaluate at every point ``(xs[i], ys[i], zs[i])``, returning the values."""
        if not len(xs) == len(ys) == len(zs):
            raise MismatchedSlicesError()
        if len(vars) != self.var_count:
            raise BadVarSliceError(len(vars), self.var_count)

        size = len(xs)
        inputs = tuple([_f32(v) for v in column] for column in (xs, ys, zs))
        var_values = [_f32(v) for v in vars]
        # Slot lists are replaced, never mutated, so they may be shared.
        slots: list[list[float]] = [[math.nan] * size] * self.tape.slot_count

        for op in self.tape.iter_eval():
            code = op.opcode
            if code is VmOpcode.INPUT:
                if op.lhs >= len(inputs):
                    raise ValueError(f"invalid input: {op.lhs}")
                slots[op.out] = inputs[op.lhs]
            elif code is VmOpcode.VAR:
                slots[op.out] = [var_values[op.lhs]] * size
            elif code is VmOpcode.COPY_IMM:
                slots[op.out] = [_f32(op.imm)] * size
            elif code is VmOpcode.LOAD:
                slots[op.out] = slots[op.lhs]
            elif code is VmOpcode.STORE:
                slots[op.lhs] = slots[op.out]
            elif code in _UNARY:
                fn = _UNARY[code]
                slots[op.out] = [_f32(fn(a)) for a in slots[op.lhs]]
            elif code in _REG_IMM:
                fn = _REG_IMM[code]
                imm = _f32(op.imm)
                slots[op.out] = [_f32(fn(a, imm)) for a in slots[op.lhs]]
            elif code in _REG_REG:
                fn = _REG_REG[code]
                slots[op.out] = [
                    _f32(fn(a, b)) for a, b in zip(slots[op.lhs], slots[op.rhs])
                ]
            else:
                raise ValueError(f"cannot evaluate opcode {code.name}")

        return list(slots[0])
"""Point evaluation of VM tapes, recording which branch each min / max took."""

from __future__ import annotations

import math
import struct
from collections.abc import Callable, Sequence
from enum import IntFlag

from tapevm.errors import BadChoiceSliceError, BadVarSliceError
from tapevm.vm_op import U8_MAX, VmOpcode
from tapevm.vm_tape import VmTape

_TILE_SIZES = (256, 128, 64, 32, 16, 8)


def tile_sizes_2d() -> tuple[int, ...]:
    """Tile sizes used when rendering 2D images with the interpreter."""
    return _TILE_SIZES


def tile_sizes_3d() -> tuple[int, ...]:
    """Tile sizes used when rendering 3D volumes with the interpreter."""
    return _TILE_SIZES


class Choice(IntFlag):
    """Which operand of a min / max was chosen; ``BOTH`` when undecided."""

    NONE = 0
    LEFT = 1
    RIGHT = 2
    BOTH = 3


_F32 = struct.Struct("f")


def _f32(value: float) -> float:
    """Round a float to single precision, overflowing to infinity."""
    try:
        return _F32.unpack(_F32.pack(value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _sqrt(a: float) -> float:
    if a < 0.0:
        return math.nan
    return math.sqrt(a)


def _min_choice(a: float, b: float) -> tuple[float, Choice]:
    if a < b:
        return a, Choice.LEFT
    if b < a:
        return b, Choice.RIGHT
    return (math.nan if math.isnan(a) or math.isnan(b) else b), Choice.BOTH


def _max_choice(a: float, b: float) -> tuple[float, Choice]:
    if a > b:
        return a, Choice.LEFT
    if b > a:
        return b, Choice.RIGHT
    return (math.nan if math.isnan(a) or math.isnan(b) else b), Choice.BOTH


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
}

_REG_REG: dict[VmOpcode, Callable[[float, float], float]] = {
    VmOpcode.ADD_REG_REG: lambda a, b: a + b,
    VmOpcode.MUL_REG_REG: lambda a, b: a * b,
    VmOpcode.DIV_REG_REG: _div,
    VmOpcode.SUB_REG_REG: lambda a, b: a - b,
}

_CHOICE_IMM = {VmOpcode.MIN_REG_IMM: _min_choice, VmOpcode.MAX_REG_IMM: _max_choice}
_CHOICE_REG = {VmOpcode.MIN_REG_REG: _min_choice, VmOpcode.MAX_REG_REG: _max_choice}


class PointEvaluator:
    """Evaluates a VM tape at single points in single precision.

    The tape must have been planned with the full register limit (255).
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
        self.choice_count = sum(1 for op in tape if op.opcode.is_choice)

    def eval(
        self,
        x: float,
        y: float,
        z: float,
        vars: Sequence[float] = (),
        choices: Sequence[Choice] | None = None,
    ) -> tuple[float, tuple[Choice, ...], bool]:
        """Evaluate at ``(x, y, z)``.

        ``choices`` holds one prior choice per min / max, in evaluation order;
        the choices made here are OR-ed into them.  Returns the value, the
        updated choices, and whether any choice was not ``BOTH`` (meaning
        the tape could be simplified).
        """
        if len(vars) != self.var_count:
            raise BadVarSliceError(len(vars), self.var_count)
        if choices is None:
            made = [Choice.NONE] * self.choice_count
        else:
            made = [Choice(c) for c in choices]
            if len(made) != self.choice_count:
                raise BadChoiceSliceError(len(made), self.choice_count)

        inputs = (_f32(x), _f32(y), _f32(z))
        var_values = [_f32(v) for v in vars]
        slots = [math.nan] * self.tape.slot_count
        choice_index = 0
        simplify = False

        for op in self.tape.iter_eval():
            code = op.opcode
            if code is VmOpcode.INPUT:
                if op.lhs >= len(inputs):
                    raise ValueError(f"invalid input: {op.lhs}")
                slots[op.out] = inputs[op.lhs]
            elif code is VmOpcode.VAR:
                slots[op.out] = var_values[op.lhs]
            elif code is VmOpcode.COPY_IMM:
                slots[op.out] = _f32(op.imm)
            elif code is VmOpcode.LOAD:
                slots[op.out] = slots[op.lhs]
            elif code is VmOpcode.STORE:
                slots[op.lhs] = slots[op.out]
            elif code in _UNARY:
                slots[op.out] = _f32(_UNARY[code](slots[op.lhs]))
            elif code in _REG_IMM:
                slots[op.out] = _f32(_REG_IMM[code](slots[op.lhs], _f32(op.imm)))
            elif code in _REG_REG:
                slots[op.out] = _f32(_REG_REG[code](slots[op.lhs], slots[op.rhs]))
            else:
                if code in _CHOICE_IMM:
                    value, choice = _CHOICE_IMM[code](slots[op.lhs], _f32(op.imm))
                else:
                    value, choice = _CHOICE_REG[code](slots[op.lhs], slots[op.rhs])
                slots[op.out] = value
                made[choice_index] |= choice
                simplify |= made[choice_index] != Choice.BOTH
                choice_index += 1

        return slots[0], tuple(made), simplify
"""Instruction tapes of SSA operations."""

from __future__ import annotations

import math
import sys
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TextIO

from tapevm.alloc import RegisterAllocator
from tapevm.ssa_op import OperandShape, SsaOp
from tapevm.vm_tape import VmTape


def _format_imm(value: float) -> str:
    """Format an immediate the shortest way, without an exponent."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return format(Decimal(repr(value)).normalize(), "f")


@dataclass
class SsaTape:
    """SSA operations stored root first (reverse evaluation order).

    ``choice_count`` is the number of min / max operations; ``vars`` maps
    variable names to their index in the variable array used at evaluation.
    """

    tape: list[SsaOp] = field(default_factory=list)
    choice_count: int = 0
    vars: Mapping[str, int] = field(default_factory=dict)

    def reset(self) -> None:
        """Empty the tape, keeping the variable mapping."""
        self.tape.clear()
        self.choice_count = 0

    def pretty_lines(self) -> Iterator[str]:
        """Yield one readable line per operation, in evaluation order."""
        for op in reversed(self.tape):
            code = op.opcode
            head = f"${op.out} = {code.mnemonic}"
            match code.shape:
                case OperandShape.INPUT | OperandShape.VAR:
                    yield f"{head} {op.lhs}"
                case OperandShape.IMM:
                    yield f"{head} {_format_imm(op.imm)}"
                case OperandShape.REG:
                    yield f"{head} ${op.lhs}"
                case OperandShape.REG_REG:
                    yield f"{head} ${op.lhs} ${op.rhs}"
                case OperandShape.REG_IMM:
                    yield f"{head} ${op.lhs} {_format_imm(op.imm)}"
                case OperandShape.IMM_REG:
                    yield f"{head} {_format_imm(op.imm)} ${op.lhs}"
                case shape:
                    raise ValueError(f"unexpected operand shape {shape.value}")

    def pretty_print(self, file: TextIO | None = None) -> None:
        """Write :meth:`pretty_lines` to ``file`` (standard output by default)."""
        out = sys.stdout if file is None else file
        for line in self.pretty_lines():
            print(line, file=out)

    def get_asm(self, reg_limit: int) -> VmTape:
        """Lower the tape to VM operations using at most ``reg_limit`` registers."""
        alloc = RegisterAllocator(reg_limit, len(self.tape))
        for op in self.tape:
            alloc.op(op)
        return alloc.finalize()
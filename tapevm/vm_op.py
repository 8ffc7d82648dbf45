"""Operations for the register-limited virtual machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tapevm.ssa_op import U32_MAX, OperandShape

U8_MAX = 0xFF


class VmOpcode(Enum):
    """Opcodes of a VM tape, with their mnemonic and operand shape."""

    INPUT = ("INPUT", OperandShape.INPUT)
    VAR = ("VAR", OperandShape.VAR)

    NEG_REG = ("NEG", OperandShape.REG)
    ABS_REG = ("ABS", OperandShape.REG)
    RECIP_REG = ("RECIP", OperandShape.REG)
    SQRT_REG = ("SQRT", OperandShape.REG)
    SQUARE_REG = ("SQUARE", OperandShape.REG)
    COPY_REG = ("COPY", OperandShape.REG)

    ADD_REG_IMM = ("ADD", OperandShape.REG_IMM)
    MUL_REG_IMM = ("MUL", OperandShape.REG_IMM)
    DIV_REG_IMM = ("DIV", OperandShape.REG_IMM)
    DIV_IMM_REG = ("DIV", OperandShape.IMM_REG)
    SUB_IMM_REG = ("SUB", OperandShape.IMM_REG)
    SUB_REG_IMM = ("SUB", OperandShape.REG_IMM)
    MIN_REG_IMM = ("MIN", OperandShape.REG_IMM)
    MAX_REG_IMM = ("MAX", OperandShape.REG_IMM)

    ADD_REG_REG = ("ADD", OperandShape.REG_REG)
    MUL_REG_REG = ("MUL", OperandShape.REG_REG)
    DIV_REG_REG = ("DIV", OperandShape.REG_REG)
    SUB_REG_REG = ("SUB", OperandShape.REG_REG)
    MIN_REG_REG = ("MIN", OperandShape.REG_REG)
    MAX_REG_REG = ("MAX", OperandShape.REG_REG)

    COPY_IMM = ("COPY", OperandShape.IMM)

    LOAD = ("LOAD", OperandShape.MEM)
    STORE = ("STORE", OperandShape.MEM)

    def __init__(self, mnemonic: str, shape: OperandShape) -> None:
        self.mnemonic = mnemonic
        self.shape = shape

    @property
    def is_choice(self) -> bool:
        """True for min / max operations, which make a choice."""
        return self.mnemonic in ("MIN", "MAX")


@dataclass(frozen=True, slots=True)
class VmOp:
    """One VM operation; not in SSA form, registers are reused.

    ``out`` is a register.  ``lhs`` is the argument register, the input
    index for ``INPUT``, the variable index for ``VAR`` or the memory slot
    for ``LOAD`` / ``STORE``.  ``rhs`` is the second argument register and
    ``imm`` the immediate, where the opcode uses them.
    """

    opcode: VmOpcode
    out: int
    lhs: int | None = None
    rhs: int | None = None
    imm: float | None = None

    def __post_init__(self) -> None:
        shape = self.opcode.shape
        shape.validate(self.lhs, self.rhs, self.imm)
        lhs_limit = U32_MAX if shape in (OperandShape.VAR, OperandShape.MEM) else U8_MAX
        for name, limit in (("out", U8_MAX), ("lhs", lhs_limit), ("rhs", U8_MAX)):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= limit:
                raise ValueError(f"{name} out of range: {value}")
        if self.imm is not None:
            object.__setattr__(self, "imm", float(self.imm))
"""Operations of a tape in single static assignment form."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

U32_MAX = 0xFFFF_FFFF


class OperandShape(Enum):
    """Which operand fields an operation uses besides its output."""

    INPUT = "input"
    VAR = "var"
    IMM = "imm"
    REG = "reg"
    REG_IMM = "reg_imm"
    IMM_REG = "imm_reg"
    REG_REG = "reg_reg"
    MEM = "mem"

    @property
    def operands(self) -> tuple[str, ...]:
        """Names of the operand fields that must be set."""
        return _OPERANDS[self]

    def validate(self, lhs, rhs, imm) -> None:
        """Raise ``ValueError`` unless exactly the expected operands are set."""
        given = {"lhs": lhs, "rhs": rhs, "imm": imm}
        for name, value in given.items():
            wanted = name in self.operands
            if wanted and value is None:
                raise ValueError(f"{self.value} operation requires '{name}'")
            if not wanted and value is not None:
                raise ValueError(f"{self.value} operation takes no '{name}'")


_OPERANDS = {
    OperandShape.INPUT: ("lhs",),
    OperandShape.VAR: ("lhs",),
    OperandShape.IMM: ("imm",),
    OperandShape.REG: ("lhs",),
    OperandShape.REG_IMM: ("lhs", "imm"),
    OperandShape.IMM_REG: ("lhs", "imm"),
    OperandShape.REG_REG: ("lhs", "rhs"),
    OperandShape.MEM: ("lhs",),
}


class SsaOpcode(Enum):
    """Opcodes of an SSA tape, with their mnemonic and operand shape."""

    INPUT = ("INPUT", OperandShape.INPUT)
    VAR = ("VAR", OperandShape.VAR)
    COPY_IMM = ("COPY", OperandShape.IMM)

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

    ADD_REG_REG = ("ADD", OperandShape.REG_REG)
    MUL_REG_REG = ("MUL", OperandShape.REG_REG)
    DIV_REG_REG = ("DIV", OperandShape.REG_REG)
    SUB_REG_REG = ("SUB", OperandShape.REG_REG)

    MIN_REG_IMM = ("MIN", OperandShape.REG_IMM)
    MAX_REG_IMM = ("MAX", OperandShape.REG_IMM)
    MIN_REG_REG = ("MIN", OperandShape.REG_REG)
    MAX_REG_REG = ("MAX", OperandShape.REG_REG)

    def __init__(self, mnemonic: str, shape: OperandShape) -> None:
        self.mnemonic = mnemonic
        self.shape = shape

    @property
    def is_choice(self) -> bool:
        """True for min / max operations, which make a choice."""
        return self.mnemonic in ("MIN", "MAX")


@dataclass(frozen=True, slots=True)
class SsaOp:
    """One SSA operation.

    ``out`` is the output slot.  ``lhs`` holds the argument slot, or the
    input / variable index for ``INPUT`` and ``VAR``; ``rhs`` is the second
    argument slot and ``imm`` the immediate, where the opcode uses them.
    """

    opcode: SsaOpcode
    out: int
    lhs: int | None = None
    rhs: int | None = None
    imm: float | None = None

    def __post_init__(self) -> None:
        self.opcode.shape.validate(self.lhs, self.rhs, self.imm)
        for name in ("out", "lhs", "rhs"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= U32_MAX:
                raise ValueError(f"{name} out of range: {value}")
        if self.imm is not None:
            object.__setattr__(self, "imm", float(self.imm))

    def output(self) -> int:
        """Return the index of the output slot."""
        return self.out

    def choice_count(self) -> int:
        """Return the number of choices this operation makes (0 or 1)."""
        return 1 if self.opcode.is_choice else 0
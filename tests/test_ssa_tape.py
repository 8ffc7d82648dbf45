import io
import math
import operator

import pytest

from tapevm.ssa_op import OperandShape, SsaOp, SsaOpcode
from tapevm.ssa_tape import SsaTape
from tapevm.vm_op import VmOpcode

_UNARY = {
    "NEG": operator.neg,
    "ABS": abs,
    "SQUARE": lambda a: a * a,
    "COPY": lambda a: a,
    "RECIP": lambda a: 1.0 / a,
    "SQRT": math.sqrt,
}
_BINARY = {
    "ADD": operator.add,
    "SUB": operator.sub,
    "MUL": operator.mul,
    "DIV": operator.truediv,
    "MIN": min,
    "MAX": max,
}


def _eval_vm(tape, point):
    slots = [math.nan] * tape.slot_count
    for op in tape.iter_eval():
        mn = op.opcode.mnemonic
        shape = op.opcode.shape
        if op.opcode is VmOpcode.LOAD:
            slots[op.out] = slots[op.lhs]
        elif op.opcode is VmOpcode.STORE:
            slots[op.lhs] = slots[op.out]
        elif shape is OperandShape.INPUT:
            slots[op.out] = point[op.lhs]
        elif shape is OperandShape.IMM:
            slots[op.out] = op.imm
        elif shape is OperandShape.REG:
            slots[op.out] = _UNARY[mn](slots[op.lhs])
        elif shape is OperandShape.REG_IMM:
            slots[op.out] = _BINARY[mn](slots[op.lhs], op.imm)
        elif shape is OperandShape.IMM_REG:
            slots[op.out] = _BINARY[mn](op.imm, slots[op.lhs])
        else:
            slots[op.out] = _BINARY[mn](slots[op.lhs], slots[op.rhs])
    return slots[0]


def _circle():
    return SsaTape(
        tape=[
            SsaOp(SsaOpcode.SUB_REG_IMM, 0, lhs=1, imm=1.0),
            SsaOp(SsaOpcode.ADD_REG_REG, 1, lhs=2, rhs=3),
            SsaOp(SsaOpcode.SQUARE_REG, 2, lhs=4),
            SsaOp(SsaOpcode.SQUARE_REG, 3, lhs=5),
            SsaOp(SsaOpcode.INPUT, 4, lhs=0),
            SsaOp(SsaOpcode.INPUT, 5, lhs=1),
        ],
    )


def test_pretty_lines_circle():
    assert list(_circle().pretty_lines()) == [
        "$5 = INPUT 1",
        "$4 = INPUT 0",
        "$3 = SQUARE $5",
        "$2 = SQUARE $4",
        "$1 = ADD $2 $3",
        "$0 = SUB $1 1",
    ]


def test_pretty_lines_swapped_immediate():
    tape = SsaTape(
        tape=[
            SsaOp(SsaOpcode.SUB_IMM_REG, 0, lhs=1, imm=2.0),
            SsaOp(SsaOpcode.INPUT, 1, lhs=2),
        ]
    )
    assert list(tape.pretty_lines())[-1] == "$0 = SUB 2 $1"


def test_pretty_lines_fractional_copy():
    tape = SsaTape(tape=[SsaOp(SsaOpcode.COPY_IMM, 0, imm=0.5)])
    assert list(tape.pretty_lines()) == ["$0 = COPY 0.5"]


def test_pretty_lines_prefix_and_mnemonic():
    tape = _circle()
    lines = list(tape.pretty_lines())
    assert len(lines) == len(tape.tape)
    for line, op in zip(lines, reversed(tape.tape)):
        assert line.startswith(f"${op.out} = {op.opcode.mnemonic}")


def test_pretty_print_writes_lines():
    tape = _circle()
    buffer = io.StringIO()
    tape.pretty_print(buffer)
    assert buffer.getvalue() == "".join(line + "\n" for line in tape.pretty_lines())


def test_reset_clears_ops_and_keeps_vars():
    tape = _circle()
    tape.choice_count = 2
    tape.vars = {"a": 0}
    tape.reset()
    assert tape.tape == []
    assert tape.choice_count == 0
    assert tape.vars == {"a": 0}


@pytest.mark.parametrize("reg_limit", [2, 3, 255])
def test_get_asm_circle_values(reg_limit):
    asm = _circle().get_asm(reg_limit)
    assert asm.reg_limit == reg_limit
    assert _eval_vm(asm, (0.0, 0.0, 0.0)) == -1.0
    assert _eval_vm(asm, (1.0, 0.0, 0.0)) == 0.0


def test_get_asm_preserves_operation_count_without_spills():
    tape = _circle()
    asm = tape.get_asm(255)
    assert [op.opcode.name for op in asm] == [op.opcode.name for op in tape.tape]


def test_get_asm_empty_tape_rejected():
    with pytest.raises(ValueError):
        SsaTape().get_asm(255)
import math
import struct

import pytest

from tapevm.bulk import FloatSliceEvaluator
from tapevm.errors import BadVarSliceError, MismatchedSlicesError
from tapevm.ssa_op import SsaOp, SsaOpcode
from tapevm.ssa_tape import SsaTape
from tapevm.tracing import PointEvaluator


def _circle_tape() -> SsaTape:
    # x * x + y * y - 1
    return SsaTape(
        tape=[
            SsaOp(SsaOpcode.SUB_REG_IMM, 0, lhs=1, imm=1.0),
            SsaOp(SsaOpcode.ADD_REG_REG, 1, lhs=2, rhs=3),
            SsaOp(SsaOpcode.MUL_REG_REG, 2, lhs=4, rhs=4),
            SsaOp(SsaOpcode.MUL_REG_REG, 3, lhs=5, rhs=5),
            SsaOp(SsaOpcode.INPUT, 4, lhs=0),
            SsaOp(SsaOpcode.INPUT, 5, lhs=1),
        ]
    )


def _binary_tape(opcode: SsaOpcode) -> SsaTape:
    return SsaTape(
        tape=[
            SsaOp(opcode, 0, lhs=1, rhs=2),
            SsaOp(SsaOpcode.INPUT, 1, lhs=0),
            SsaOp(SsaOpcode.INPUT, 2, lhs=1),
        ]
    )


def _evaluator(tape: SsaTape, var_count: int = 0) -> FloatSliceEvaluator:
    return FloatSliceEvaluator(tape.get_asm(255), var_count)


def test_circle_matches_documented_values():
    ev = _evaluator(_circle_tape())
    assert ev.eval([0.0, 1.0], [0.0, 0.0], [0.0, 0.0]) == [-1.0, 0.0]


def test_agrees_with_point_evaluator():
    asm = _circle_tape().get_asm(255)
    bulk = FloatSliceEvaluator(asm, 0)
    point = PointEvaluator(asm, 0)
    xs = [-1.5, -0.25, 0.3, 0.9, 2.0]
    ys = [0.7, -0.6, 0.1, -1.2, 0.0]
    zs = [0.0] * len(xs)
    results = bulk.eval(xs, ys, zs)
    expected = [point.eval(x, y, z)[0] for x, y, z in zip(xs, ys, zs)]
    assert results == expected


@pytest.mark.parametrize(
    "opcode",
    [
        SsaOpcode.ADD_REG_REG,
        SsaOpcode.SUB_REG_REG,
        SsaOpcode.MUL_REG_REG,
        SsaOpcode.DIV_REG_REG,
        SsaOpcode.MIN_REG_REG,
        SsaOpcode.MAX_REG_REG,
    ],
)
def test_binary_ops_agree_with_point_evaluator(opcode):
    asm = _binary_tape(opcode).get_asm(255)
    bulk = FloatSliceEvaluator(asm, 0)
    point = PointEvaluator(asm, 0)
    xs = [1.0, -2.5, 3.25, 0.5]
    ys = [2.0, 4.0, -1.0, 0.5]
    zs = [0.0] * 4
    assert bulk.eval(xs, ys, zs) == [
        point.eval(x, y, z)[0] for x, y, z in zip(xs, ys, zs)
    ]


def test_min_ignores_nan_operand():
    ev = _evaluator(_binary_tape(SsaOpcode.MIN_REG_REG))
    result = ev.eval([1.5, math.nan], [math.nan, -2.0], [0.0, 0.0])
    assert result == [1.5, -2.0]


def test_max_ignores_nan_operand():
    ev = _evaluator(_binary_tape(SsaOpcode.MAX_REG_REG))
    result = ev.eval([1.5, math.nan], [math.nan, -2.0], [0.0, 0.0])
    assert result == [1.5, -2.0]


def test_inputs_are_rounded_to_single_precision():
    tape = SsaTape(tape=[SsaOp(SsaOpcode.INPUT, 0, lhs=0)])
    ev = _evaluator(tape)
    single = struct.unpack("f", struct.pack("f", 0.1))[0]
    assert ev.eval([0.1], [0.0], [0.0]) == [single]


def test_z_input_is_read():
    tape = SsaTape(tape=[SsaOp(SsaOpcode.INPUT, 0, lhs=2)])
    ev = _evaluator(tape)
    assert ev.eval([1.0, 2.0], [3.0, 4.0], [5.0, 6.0]) == [5.0, 6.0]


def test_variable_fills_every_point():
    tape = SsaTape(
        tape=[
            SsaOp(SsaOpcode.ADD_REG_REG, 0, lhs=1, rhs=2),
            SsaOp(SsaOpcode.INPUT, 1, lhs=0),
            SsaOp(SsaOpcode.VAR, 2, lhs=0),
        ],
        vars={"a": 0},
    )
    asm = tape.get_asm(255)
    bulk = FloatSliceEvaluator(asm, 1)
    point = PointEvaluator(asm, 1)
    xs = [0.0, 1.0, -3.0]
    result = bulk.eval(xs, [0.0] * 3, [0.0] * 3, [2.5])
    assert result == [point.eval(x, 0.0, 0.0, [2.5])[0] for x in xs]


def test_reciprocal_of_zero_is_infinite():
    tape = SsaTape(
        tape=[
            SsaOp(SsaOpcode.RECIP_REG, 0, lhs=1),
            SsaOp(SsaOpcode.INPUT, 1, lhs=0),
        ]
    )
    ev = _evaluator(tape)
    assert ev.eval([0.0], [0.0], [0.0]) == [math.inf]


def test_empty_slices_give_empty_result():
    ev = _evaluator(_circle_tape())
    assert ev.eval([], [], []) == []


def test_mismatched_slices_raise():
    ev = _evaluator(_circle_tape())
    with pytest.raises(MismatchedSlicesError):
        ev.eval([0.0, 1.0], [0.0], [0.0, 0.0])


def test_wrong_var_count_raises():
    ev = _evaluator(_circle_tape())
    with pytest.raises(BadVarSliceError) as info:
        ev.eval([0.0], [0.0], [0.0], [1.0])
    assert (info.value.got, info.value.expected) == (1, 0)


def test_reduced_register_limit_is_rejected():
    with pytest.raises(ValueError):
        FloatSliceEvaluator(_circle_tape().get_asm(4), 0)
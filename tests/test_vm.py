import numpy as np
import pytest

from bfswarm.tape import random_tape
from bfswarm.vm import MEMORY_SIZE, ByteCodeVM, VMState, as_program, build_bracket_pairs


def run(program, max_steps=1000, vm=None):
    vm = vm or ByteCodeVM()
    vm.reset()
    vm.load(program)
    ops = vm.run(max_steps)
    return vm, ops


def test_fresh_vm_is_zeroed():
    vm = ByteCodeVM()
    assert vm.memory.shape == (MEMORY_SIZE,)
    assert vm.memory.dtype == np.uint8
    assert not vm.memory.any()
    assert vm.data_pointer == vm.code_pointer == vm.operation_count == 0
    assert vm.output == []
    assert vm.state is VMState.IDLE


def test_increment_and_move():
    vm, ops = run("++>+++")
    assert ops == 6
    assert vm.memory[0] == 2 and vm.memory[1] == 3
    assert vm.data_pointer == 1
    assert vm.output == []


def test_output_appends_cell_value():
    vm, ops = run("++.")
    assert ops == 3
    assert vm.output == [2]


def test_left_wraps_to_last_cell():
    vm, _ = run("<")
    assert vm.data_pointer == MEMORY_SIZE - 1


def test_right_wraps_to_first_cell():
    vm = ByteCodeVM(memory_size=4)
    run(">>>>", vm=vm)
    assert vm.data_pointer == 0


def test_decrement_wraps_to_255():
    vm, _ = run("-")
    assert vm.memory[0] == 255


def test_increment_wraps_to_zero():
    vm = ByteCodeVM()
    vm.memory[0] = 255
    vm.load("+")
    vm.run()
    assert vm.memory[0] == 0


def test_loop_skipped_when_cell_is_zero():
    vm, ops = run("[+]")
    assert ops == 1
    assert vm.memory[0] == 0
    assert vm.halted


def test_loop_runs_until_cell_wraps():
    vm = ByteCodeVM()
    vm.memory[0] = 1
    vm.load("[+]")
    ops = vm.run(1000)
    # '[' once, then ('+', ']') for each of the 255 increments from 1 to 0
    assert ops == 1 + 2 * 255
    assert vm.memory[0] == 0
    assert vm.halted


def test_loop_cut_off_by_budget():
    vm = ByteCodeVM()
    vm.memory[0] = 1
    vm.load("[+]")
    assert vm.run(100) == 100
    assert not vm.halted


def test_countdown_loop():
    vm, ops = run("+++[-]")
    assert vm.memory[0] == 0
    assert ops == 3 + 1 + 3 * 2


def test_nested_loops_multiply():
    vm, _ = run("++[>+++[>++<-]<-]")
    assert vm.memory[2] == 12


def test_bracket_pairs_are_bidirectional():
    assert build_bracket_pairs(b"[[]]") == {0: 3, 3: 0, 1: 2, 2: 1}


def test_bracket_scan_stops_at_stray_close():
    pairs = build_bracket_pairs(b"[]][[]")
    assert pairs == {0: 1, 1: 0}


def test_unmatched_open_jumps_to_end():
    vm, ops = run("[++")
    assert ops == 1
    assert not vm.memory.any()


def test_lone_close_is_harmless():
    vm, ops = run("]")
    assert ops == 1
    assert vm.bracket_pairs == {}


def test_unmatched_close_restarts_and_budget_stops_it():
    vm, ops = run("+]", max_steps=100)
    assert ops == 100
    assert vm.memory[0] == 1


def test_non_opcode_bytes_are_counted_noops():
    vm, ops = run(bytes([5]) * 10, max_steps=7)
    assert ops == 7
    assert not vm.memory.any()
    assert vm.output == []
    assert vm.code_pointer == 7


def test_empty_program():
    vm = ByteCodeVM()
    vm.load(b"")
    assert vm.step() is False
    assert vm.run() == 0
    assert vm.state is VMState.HALTED


def test_zero_and_negative_budget():
    vm, ops = run("+++", max_steps=0)
    assert ops == 0
    vm, ops = run("+++", max_steps=-5)
    assert ops == 0
    assert not vm.memory.any()


def test_step_reports_progress():
    vm = ByteCodeVM()
    vm.load("+.")
    assert vm.step() is True
    assert vm.state is VMState.RUNNING
    assert vm.step() is True
    assert vm.state is VMState.HALTED
    assert vm.step() is False
    assert vm.operation_count == 2
    assert vm.output == [1]


def test_input_consumed_in_order():
    vm = ByteCodeVM()
    vm.feed(b"AB")
    vm.load(",.>,.")
    vm.run()
    assert vm.output == [65, 66]
    assert not vm.input


def test_input_empty_leaves_cell():
    vm = ByteCodeVM()
    vm.memory[0] = 7
    vm.load(",")
    vm.run()
    assert vm.memory[0] == 7


def test_reset_clears_state_but_keeps_program():
    vm, _ = run("+>++.")
    vm.reset()
    assert not vm.memory.any()
    assert vm.data_pointer == vm.code_pointer == vm.operation_count == 0
    assert vm.output == []
    assert vm.program == b"+>++."
    assert vm.bracket_pairs == {}
    assert vm.state is VMState.IDLE


def test_reset_twice_same_as_once():
    vm, _ = run("+++[>+<-]")
    vm.reset()
    once = (vm.memory.copy(), vm.data_pointer, vm.code_pointer, vm.operation_count, list(vm.output))
    vm.reset()
    twice = (vm.memory.copy(), vm.data_pointer, vm.code_pointer, vm.operation_count, list(vm.output))
    assert np.array_equal(once[0], twice[0])
    assert once[1:] == twice[1:]


def test_load_keeps_memory_and_pointers():
    vm = ByteCodeVM()
    vm.load("+++")
    vm.run()
    vm.load("+++.")
    # code pointer is still 3, so only '.' runs
    assert vm.run() == 1
    assert vm.output == [3]


def test_run_resets_only_operation_count():
    vm = ByteCodeVM()
    vm.load("+++")
    assert vm.run(2) == 2
    assert vm.run(10) == 1
    assert vm.memory[0] == 3


def test_run_is_deterministic():
    rng = np.random.default_rng(42)
    for _ in range(20):
        tape = random_tape(rng, op_ratio=0.6)
        a, ops_a = run(tape, max_steps=300)
        b, ops_b = run(tape, max_steps=300)
        assert ops_a == ops_b
        assert ops_a <= 300
        assert np.array_equal(a.memory, b.memory)
        assert a.output == b.output


def test_random_programs_never_trip_guard(caplog):
    rng = np.random.default_rng(7)
    vm = ByteCodeVM()
    for _ in range(50):
        run(random_tape(rng, op_ratio=0.9), max_steps=200, vm=vm)
    assert "exceeded" not in caplog.text


def test_instances_do_not_share_state():
    a, _ = run("+++.")
    b = ByteCodeVM()
    assert not b.memory.any()
    assert b.output == []
    assert a.memory is not b.memory


def test_snapshot_helpers():
    vm, _ = run("+++>++>>+")
    assert vm.memory_pattern(4) == (3, 2, 0, 1)
    assert vm.memory_sum() == 6


def test_memory_sum_does_not_overflow():
    vm = ByteCodeVM()
    vm.memory[:] = 255
    assert vm.memory_sum() == 255 * MEMORY_SIZE


@pytest.mark.parametrize("program, expected", [
    ("+-", b"+-"),
    (bytearray(b"[]"), b"[]"),
    ([62, 60], b"><"),
    (np.array([43, 43, 46]), b"++."),
    (np.array([62, 60], dtype=np.uint8), b"><"),
    (np.array([], dtype=np.int64), b""),
    ((b for b in b"[]"), b"[]"),
    ("\xff", b"\xff"),
])
def test_as_program(program, expected):
    assert as_program(program) == expected


@pytest.mark.parametrize("program, exc", [
    ("ā", ValueError),
    ([256], ValueError),
    (5, TypeError),
    (3.5, TypeError),
    (np.array([43, 256]), ValueError),
    (np.array([-1]), ValueError),
    (np.array([43.0]), TypeError),
])
def test_as_program_rejects(program, exc):
    with pytest.raises(exc):
        as_program(program)


def test_load_numpy_array_by_value():
    vm = ByteCodeVM()
    vm.load(np.array([43, 43, 46]))
    assert vm.program == b"++."
    assert vm.run() == 3
    assert vm.output == [2]

"""Rosetta test: bubble sort with destructuring swaps under every strategy."""

import pytest

from tests.unit.rosetta.conftest import (
    STRATEGIES,
    assert_clean_instrumentation,
    assert_cross_strategy_consistency,
    execute_for_strategy,
    extract_answer,
    instrument_for_strategy,
    run_uninstrumented,
)
from visualizer.run_types import ExecutionState

# ---------------------------------------------------------------------------
# Program: sorts a copy of seven numbers, logs the swap count, then the result.
# ---------------------------------------------------------------------------

PROGRAM = """\
// Bubble Sort Algorithm
function bubbleSort(arr) {
  const n = arr.length;
  let swaps = 0;

  for (let i = 0; i < n - 1; i++) {
    let swapped = false;

    for (let j = 0; j < n - i - 1; j++) {
      if (arr[j] > arr[j + 1]) {
        // Swap elements
        [arr[j], arr[j + 1]] = [arr[j + 1], arr[j]];
        swapped = true;
        swaps++;
      }
    }

    if (!swapped) {
      break;
    }
  }

  console.log('Sorting complete! Total swaps:', swaps);
  return arr;
}

const numbers = [64, 34, 25, 12, 22, 11, 90];
const sorted = bubbleSort([...numbers]);
const answer = sorted.join(",");
console.log(answer);
"""

EXPECTED = "11,12,22,25,34,64,90"

MIN_STEPS = 15


class TestBubbleSortInstrumentation:
    @pytest.fixture(params=STRATEGIES, ids=lambda s: s)
    def instrumented(self, request):
        return request.param, instrument_for_strategy(request.param, PROGRAM)

    def test_clean_instrumentation(self, instrumented):
        strategy, output = instrumented
        assert_clean_instrumentation(PROGRAM, output, min_steps=MIN_STEPS, strategy=strategy)

    def test_loop_variables_tracked(self, instrumented):
        _, output = instrumented
        assert '__trackVariable("i", i)' in output
        assert '__trackVariable("j", j)' in output


class TestBubbleSortCrossStrategy:
    @pytest.fixture(scope="class")
    def all_traces(self):
        return {s: execute_for_strategy(s, PROGRAM) for s in STRATEGIES}

    def test_cross_strategy_consistency(self, all_traces):
        assert_cross_strategy_consistency(all_traces)


class TestBubbleSortExecution:
    @pytest.fixture(params=STRATEGIES, ids=lambda s: s)
    def execution(self, request):
        return request.param, execute_for_strategy(request.param, PROGRAM)

    def test_correct_result(self, execution):
        strategy, trace = execution
        assert trace.state == ExecutionState.COMPLETED
        assert extract_answer(trace, strategy) == EXPECTED
        assert trace.output == ["Sorting complete! Total swaps: 14", EXPECTED]

    def test_input_left_untouched(self, execution):
        _, trace = execution
        final = trace.steps[-1].values()
        assert final["numbers"] == [64, 34, 25, 12, 22, 11, 90]
        assert final["sorted"] == [11, 12, 22, 25, 34, 64, 90]
        assert final["swaps"] == 14

    def test_matches_uninstrumented_run(self):
        assert run_uninstrumented(PROGRAM) == EXPECTED

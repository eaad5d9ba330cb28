from typing import List
import threading
import numpy as np
import pytest

from seedopt.trainer.utils import async_run, batch_run


def test_batch_run_fun():

    @batch_run(max_workers=3)
    def fun(x, y):
        return x + y

    # Create a batch of inputs
    x = [1, 2, 3, 4, 5]
    y = 10   # this will be broadcasted to each element in x

    # Run the function in batch mode
    outputs = fun(x, y)
    assert outputs == [11, 12, 13, 14, 15], f"Expected [11, 12, 13, 14, 15], got {outputs}"

    # Handling a function taking a list as inputs
    @batch_run(max_workers=3)
    def fun(x: List[int], y: List[int]) -> List[int]:
        return [a + b for a, b in zip(x, y)]

    x = [[1, 2, 3], [4, 5, 6]]
    y = [10, 20, 30]  # list won't be broadcasted correctly

    with pytest.raises(ValueError) as excinfo:
        fun(x, y)
    assert str(excinfo.value) == "All arguments and keyword arguments must have the same length."

    # Now we can broadcast y to match the length of x
    y = [[10, 20, 30]] * len(x)  # Broadcast
    outputs = fun(x, y)
    assert outputs == [[11, 22, 33], [14, 25, 36]], f"Expected [[11, 22, 33], [14, 25, 36]], got {outputs}"


def test_batch_run_keyword_arguments():

    @batch_run(max_workers=2, description="Scoring")
    def fun(x, scale=1):
        return x * scale

    assert fun([1, 2, 3], scale=[1, 10, 100]) == [1, 20, 300]
    assert fun(np.arange(3), scale=2) == [0, 2, 4]


def test_batch_run_requires_a_batch():

    @batch_run()
    def fun(x):
        return x

    with pytest.raises(ValueError):
        fun(1)


def test_batch_run_propagates_errors():

    @batch_run(max_workers=2)
    def fun(x):
        if x == 3:
            raise KeyError(x)
        return x

    with pytest.raises(KeyError):
        fun([1, 2, 3, 4])


def test_async_run_uses_threads():
    barrier = threading.Barrier(3, timeout=5)

    def wait(i):
        # deadlocks unless the three runs execute concurrently
        barrier.wait()
        return i

    outputs = async_run([wait] * 3, args_list=[(i,) for i in range(3)], max_workers=3)
    assert outputs == [0, 1, 2]

import threading
import numpy as np
import pytest

from seedopt.engine import PerturbationEngine
from seedopt.errors import ConfigurationError, EvaluationError, StateError
from seedopt.noise import NoiseGenerator, NullNoise
from seedopt.parameters import ParameterDefinition


def make_engine(**kwargs):
    definitions = [
        ParameterDefinition('weights', (3, 2)),
        ParameterDefinition('biases', (2,)),
        ParameterDefinition('scale', ()),
    ]
    return PerturbationEngine(definitions, NoiseGenerator(0.01), **kwargs)


def values(engine):
    return {name: np.array(value) for name, value in engine.parameters.items()}


def test_initial_state():
    engine = make_engine()
    assert engine.generation == 0
    assert engine.history == [] and engine.seeds == [] and engine.seed_weights == []
    for value in engine.parameters.values():
        assert not value.any()


def test_step_adds_keyed_noise():
    engine = make_engine()
    noise = NoiseGenerator(0.01)
    engine.step(4)
    assert engine.generation == 1
    assert engine.seeds == [4]
    # the k-th parameter uses seed + k
    assert np.array_equal(engine['weights'], noise((3, 2), 4, 1))
    assert np.array_equal(engine['biases'], noise((2,), 5, 1))
    assert np.array_equal(engine['scale'], noise((), 6, 1))


def test_step_is_deterministic():
    a, b = make_engine(), make_engine()
    for seed in [3, 1, 4, 1, 5]:
        a.step(seed)
        b.step(seed)
    assert a.parameters == b.parameters
    assert a.generation == b.generation == 5


@pytest.mark.parametrize("exact_rewind", [True, False])
def test_step_rewind_is_inverse(exact_rewind):
    engine = make_engine(exact_rewind=exact_rewind)
    engine.step(2)
    before = values(engine)
    engine.step(9)
    engine.rewind()
    assert engine.generation == 1
    assert engine.seeds == [2]
    for name, value in before.items():
        if exact_rewind:
            assert np.array_equal(engine[name], value)
        else:
            assert np.allclose(engine[name], value, atol=1e-6)


@pytest.mark.parametrize("exact_rewind", [True, False])
def test_deep_rewind_regenerates_noise(exact_rewind):
    engine = make_engine(exact_rewind=exact_rewind)
    engine.step(2)
    before = values(engine)
    engine.step(9)
    engine.step(4)
    engine.rewind()
    engine.rewind()
    assert engine.generation == 1
    assert engine.seeds == [2]
    for name, value in before.items():
        if exact_rewind:
            assert np.array_equal(engine[name], value)
        else:
            assert np.allclose(engine[name], value, atol=1e-6)


class CountingNoise(NoiseGenerator):

    def __init__(self, stdev):
        super().__init__(stdev)
        self.draws = 0

    def noise(self, shape, seed, generation, dtype=np.float32):
        self.draws += 1
        return super().noise(shape, seed, generation, dtype=dtype)


@pytest.mark.parametrize("generations", [10, 1000])
def test_rewind_after_step_draws_no_noise(generations):
    noise = CountingNoise(0.01)
    engine = PerturbationEngine([ParameterDefinition('weights', (784, 10))], noise)
    for seed in range(generations):
        engine.step(seed)
    before_last = engine.history
    noise.draws = 0
    engine.rewind()
    assert noise.draws <= 2, "Rewinding the last step should not depend on the generation count"
    assert engine.generation == generations - 1
    assert engine.history == before_last[:-1]


def test_rewind_to_zero():
    engine = make_engine()
    engine.step(1)
    engine.rewind()
    assert engine.generation == 0
    for value in engine.parameters.values():
        assert not value.any()


def test_rewind_restep_is_idempotent():
    engine = make_engine()
    engine.step(3)
    engine.step(8)
    after = values(engine)
    engine.rewind()
    engine.step(8)
    for name, value in after.items():
        assert np.array_equal(engine[name], value)


def test_cross_engine_determinism():
    a, b = make_engine(), make_engine()
    a.step(3)
    a.step(5)
    a.rewind()
    a.step(7)
    b.step(3)
    b.step(7)
    assert a.generation == b.generation == 2
    assert a.seeds == b.seeds == [3, 7]
    for name in a.parameters:
        assert np.array_equal(a[name], b[name]), f"{name} differs between engines"


def test_rewind_empty_history():
    engine = make_engine()
    with pytest.raises(StateError):
        engine.rewind()


def test_weighted_step():
    engine = make_engine(num_candidates=3)
    noise = NoiseGenerator(0.01)
    engine.weighted_step([0.5, 0.0, -2.0])
    assert engine.generation == 1
    assert engine.seed_weights == [(0.5, 0.0, -2.0)]
    expected = np.float32(0.5) * noise((2,), 0 + 1, 1) + np.float32(-2.0) * noise((2,), 2 + 1, 1)
    assert np.allclose(engine['biases'], expected)


def test_weighted_step_is_rewindable():
    engine = make_engine(num_candidates=2)
    engine.step(1)
    before = values(engine)
    engine.weighted_step([1.0, -1.0])
    engine.rewind()
    assert engine.generation == 1
    assert engine.seed_weights == []
    for name, value in before.items():
        assert np.array_equal(engine[name], value)


def test_weighted_step_length_mismatch():
    engine = make_engine(num_candidates=3)
    with pytest.raises(StateError):
        engine.weighted_step([1.0, 2.0])
    with pytest.raises(StateError):
        make_engine().weighted_step([])
    assert engine.generation == 0


def test_stale_generation():
    engine = make_engine()
    engine.step(1, generation=1)
    with pytest.raises(StateError):
        engine.step(2, generation=1)
    assert engine.generation == 1


def test_non_integer_seed():
    engine = make_engine()
    with pytest.raises(StateError):
        engine.step(1.5)
    engine.step(np.int64(2))
    assert engine.seeds == [2]


class FailingNoise(NoiseGenerator):

    def __init__(self):
        super().__init__(1.0)
        self.fail = False

    def noise(self, shape, seed, generation, dtype=np.float32):
        if self.fail:
            raise RuntimeError("noise source unavailable")
        return super().noise(shape, seed, generation, dtype=dtype)


def test_failed_step_is_atomic():
    failing = FailingNoise()
    definitions = [
        ParameterDefinition('first', (2,)),
        ParameterDefinition('second', (2,), noise=failing),
    ]
    engine = PerturbationEngine(definitions, NoiseGenerator(0.01))
    engine.step(1)
    engine.step(3)
    engine.step(4)
    before = engine.parameters

    failing.fail = True
    with pytest.raises(EvaluationError) as excinfo:
        engine.step(2)
    assert isinstance(excinfo.value.exception, RuntimeError)
    assert engine.generation == 3
    assert engine.seeds == [1, 3, 4]
    assert engine.parameters == before

    # the last step is undone from the kept parameters, without noise
    engine.rewind()
    rewound = engine.parameters
    # the next rewind replays seed 1 through the failing source
    with pytest.raises(EvaluationError):
        engine.rewind()
    assert engine.generation == 2
    assert engine.seeds == [1, 3]
    assert engine.parameters == rewound


def test_frozen_parameter():
    definitions = [ParameterDefinition('w', (2,)), ParameterDefinition('frozen', (2,), noise=NullNoise())]
    engine = PerturbationEngine(definitions, NoiseGenerator(0.1))
    engine.step(1)
    assert engine['w'].any()
    assert not engine['frozen'].any()


def test_configuration_errors():
    with pytest.raises(ConfigurationError):
        PerturbationEngine([], NoiseGenerator(0.1))
    with pytest.raises(ConfigurationError):
        PerturbationEngine([ParameterDefinition('w'), ParameterDefinition('w')], NoiseGenerator(0.1))
    with pytest.raises(ConfigurationError):
        PerturbationEngine([ParameterDefinition('w')], 0.1)
    with pytest.raises(ConfigurationError):
        PerturbationEngine([ParameterDefinition('w')], NoiseGenerator(0.1), num_candidates=0)


def test_concurrent_steps_are_serialized():
    engine = make_engine()

    def run(seed):
        for _ in range(20):
            engine.step(seed)

    threads = [threading.Thread(target=run, args=(s,)) for s in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert engine.generation == 80
    assert len(engine.history) == 80

    replay = make_engine()
    for seed in engine.seeds:
        replay.step(seed)
    assert replay.parameters == engine.parameters

import numpy as np
import pytest

from seedopt.engine import PerturbationEngine
from seedopt.errors import ConfigurationError, StateError
from seedopt.models import linear_regression, make_loss, sum_squared_difference
from seedopt.noise import NoiseGenerator
from seedopt.optimizers import BestSeedSelector, Proposal, WeightedCombiner
from seedopt.parameters import ParameterDefinition

XS = np.array([0, -1, -2, -3], dtype=np.float32)
YS = np.array([1, 2, 3, 4], dtype=np.float32)


def regression_loss(parameters, batch=None):
    predictions = parameters['bias'] + XS * parameters['weight']
    return float(np.sum(np.square(YS - predictions)))


def regression_engine(num_candidates=5, stdev=0.003):
    definitions = [ParameterDefinition('weight', (), np.float32), ParameterDefinition('bias', (), np.float32)]
    return PerturbationEngine(definitions, NoiseGenerator(stdev), num_candidates=num_candidates)


def test_select_ties_go_to_lowest_index():
    assert BestSeedSelector.select([5, 3, 3, 8]) == 1
    assert BestSeedSelector.select([2.0]) == 0
    assert BestSeedSelector.select([float('nan'), 4.0, 1.0]) == 2
    with pytest.raises(StateError):
        BestSeedSelector.select([])


def test_combine_weights():
    weights = WeightedCombiner.combine(10.0, [4.0], 2.0)
    assert weights.tolist() == [12.0]
    weights = WeightedCombiner.combine(1.0, [0.5, 1.0, 3.0, float('nan')], 1.0)
    assert weights.tolist() == [0.5, 0.0, -2.0, 0.0]
    with pytest.raises(StateError):
        WeightedCombiner.combine(1.0, [], 1.0)


def test_best_seed_steps_with_argmin():
    engine = regression_engine()
    selector = BestSeedSelector(engine, regression_loss)
    proposal = selector.propose()
    assert proposal.generation == 1
    assert proposal.seed == int(np.argmin(proposal.losses))
    # proposing is read only and idempotent
    assert selector.propose().seed == proposal.seed
    assert engine.generation == 0

    selector.update(proposal)
    assert engine.generation == 1
    assert engine.seeds == [proposal.seed]
    assert regression_loss(engine.parameters) == pytest.approx(proposal.best_loss)


def test_stale_proposal_is_rejected():
    engine = regression_engine()
    selector = BestSeedSelector(engine, regression_loss)
    proposal = selector.propose()
    selector.step()
    with pytest.raises(StateError):
        selector.update(proposal)
    assert engine.generation == 1
    with pytest.raises(StateError):
        selector.update("not a proposal")


def test_bypassing_does_not_step():
    engine = regression_engine()
    selector = BestSeedSelector(engine, regression_loss)
    proposal = selector.step(bypassing=True)
    assert isinstance(proposal, Proposal)
    assert engine.generation == 0


def test_optimizer_configuration_errors():
    engine = regression_engine(num_candidates=5)
    with pytest.raises(ConfigurationError):
        BestSeedSelector(engine, regression_loss, num_candidates=3)
    with pytest.raises(ConfigurationError):
        BestSeedSelector(regression_engine(num_candidates=None), regression_loss)
    with pytest.raises(ConfigurationError):
        BestSeedSelector("engine", regression_loss)
    with pytest.raises(ConfigurationError):
        WeightedCombiner(engine, regression_loss, scale=float('inf'))


def test_weighted_proposal():
    engine = regression_engine(num_candidates=4)
    combiner = WeightedCombiner(engine, regression_loss, scale=2.0)
    proposal = combiner.propose()
    assert proposal.baseline == pytest.approx(regression_loss(engine.parameters))
    assert np.allclose(proposal.weights, (proposal.baseline - proposal.losses) * 2.0)
    combiner.update(proposal)
    assert engine.seed_weights == [proposal.weights]


def test_best_seed_regression_fit():
    engine = regression_engine(num_candidates=5, stdev=0.003)
    selector = BestSeedSelector(engine, regression_loss)
    for _ in range(500):
        selector.step()
    assert engine.generation == 500
    assert -1.1 <= engine['weight'] <= -0.9, f"weight {engine['weight']}"
    assert 0.9 <= engine['bias'] <= 1.1, f"bias {engine['bias']}"


def test_weighted_regression_fit():
    engine = regression_engine(num_candidates=5, stdev=0.003)
    combiner = WeightedCombiner(engine, regression_loss, scale=100.0)
    for _ in range(1000):
        combiner.step()
    assert -1.1 <= engine['weight'] <= -0.9, f"weight {engine['weight']}"
    assert 0.9 <= engine['bias'] <= 1.1, f"bias {engine['bias']}"


def test_fit_with_model_loss():
    model = linear_regression()
    engine = PerturbationEngine(model.definitions, NoiseGenerator(0.003), num_candidates=5)
    loss_fn = make_loss(model, sum_squared_difference, data=(XS, YS))
    combiner = WeightedCombiner(engine, loss_fn, scale=100.0)
    start = loss_fn(engine.parameters)
    for _ in range(200):
        combiner.step()
    assert loss_fn(engine.parameters) < start

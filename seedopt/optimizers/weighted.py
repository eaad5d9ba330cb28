from typing import Sequence
import numpy as np

from seedopt.engine import PerturbationEngine
from seedopt.errors import ConfigurationError, StateError
from seedopt.optimizers.optimizer import Optimizer, Proposal


class WeightedCombiner(Optimizer):
    """Reward-weighted combination of all candidates.

    Each candidate's weight is its improvement over the unperturbed parameters,
    scaled by ``scale``::

        weight_i = (baseline - loss_i) * scale

    and the engine adds ``sum_i weight_i * noise_i``. This is a finite
    difference estimate of the negative gradient: candidates that lowered the
    loss pull the parameters toward their noise, candidates that raised it
    (negative weights) push the parameters away from theirs.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters.
    loss_fn : callable
        ``loss_fn(parameters, batch) -> float``.
    scale : float
        Scale factor k applied to every improvement; plays the role of a
        learning rate.
    num_candidates : int, optional
        N. Defaults to the engine's ``num_candidates``.
    num_threads : int, optional
        Threads used to score candidates in parallel.

    Notes
    -----
    The effective step is roughly ``-scale * N * stdev**2`` times the gradient,
    so ``scale`` has to be chosen together with the noise standard deviation.
    """

    def __init__(self,
                 engine: PerturbationEngine,
                 loss_fn,
                 scale: float,
                 *args,
                 num_candidates: int = None,
                 num_threads: int = None,
                 **kwargs):
        super().__init__(engine, loss_fn, *args, num_candidates=num_candidates, num_threads=num_threads, **kwargs)
        if not np.isfinite(scale):
            raise ConfigurationError(f"scale must be a finite number, got {scale}.")
        self.scale = float(scale)

    @staticmethod
    def combine(baseline: float, losses: Sequence[float], scale: float) -> np.ndarray:
        """Weights ``(baseline - loss_i) * scale`` for every candidate.

        A NaN improvement gives the candidate weight 0.
        """
        losses = np.asarray(losses, dtype=np.float64).reshape(-1)
        if losses.size == 0:
            raise StateError("Cannot combine an empty list of losses.")
        weights = (float(baseline) - losses) * float(scale)
        return np.where(np.isnan(weights), 0.0, weights)

    def seed_weights(self, batch=None) -> np.ndarray:
        """Weights for the next generation, without stepping."""
        return np.asarray(self.propose(batch).weights)

    def _step(self, parameters, generation, batch) -> Proposal:
        baseline = self.evaluator.baseline(parameters, batch)
        losses = self.evaluator.evaluate(parameters, generation, batch)
        weights = self.combine(baseline, losses, self.scale)
        return Proposal(generation=generation, losses=losses,
                        weights=tuple(float(w) for w in weights), baseline=baseline)

    def _update(self, proposal: Proposal):
        if proposal.weights is None:
            raise StateError("Proposal carries no weights.")
        return self.engine.weighted_step(proposal.weights, generation=proposal.generation)

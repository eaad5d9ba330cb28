from typing import Sequence
import numpy as np

from seedopt.engine import PerturbationEngine
from seedopt.errors import StateError
from seedopt.optimizers.optimizer import Optimizer, Proposal


class BestSeedSelector(Optimizer):
    """Best-of-N selection: step with the seed of the lowest-loss candidate.

    Each generation scores the N candidates ``current + noise(seed=i)`` for the
    next generation and steps the engine with the argmin. The step is taken even
    when every candidate is worse than the current parameters, matching plain
    best-of-N evolution; use ``ESTrainer(ensure_improvement=True)`` to roll such
    steps back.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters.
    loss_fn : callable
        ``loss_fn(parameters, batch) -> float``.
    num_candidates : int, optional
        N. Defaults to the engine's ``num_candidates``.
    num_threads : int, optional
        Threads used to score candidates in parallel.

    Examples
    --------
    >>> selector = BestSeedSelector(engine, loss_fn, num_candidates=5)
    >>> for _ in range(500):
    ...     selector.step()
    """

    def __init__(self,
                 engine: PerturbationEngine,
                 loss_fn,
                 *args,
                 num_candidates: int = None,
                 num_threads: int = None,
                 **kwargs):
        super().__init__(engine, loss_fn, *args, num_candidates=num_candidates, num_threads=num_threads, **kwargs)

    @staticmethod
    def select(losses: Sequence[float]) -> int:
        """Index of the smallest loss; ties go to the lowest index.

        NaN losses never win unless every loss is NaN, in which case index 0 is
        returned.

        Raises
        ------
        StateError
            If losses is empty.
        """
        losses = np.asarray(losses, dtype=np.float64).reshape(-1)
        if losses.size == 0:
            raise StateError("Cannot select from an empty list of losses.")
        losses = np.where(np.isnan(losses), np.inf, losses)
        return int(np.argmin(losses))

    def best_seed(self, batch=None) -> int:
        """Seed of the best candidate for the next generation, without stepping."""
        return self.propose(batch).seed

    def _step(self, parameters, generation, batch) -> Proposal:
        losses = self.evaluator.evaluate(parameters, generation, batch)
        return Proposal(generation=generation, losses=losses, seed=self.select(losses))

    def _update(self, proposal: Proposal):
        if proposal.seed is None:
            raise StateError("Proposal carries no seed.")
        return self.engine.step(proposal.seed, generation=proposal.generation)

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from seedopt.candidates import CandidateEvaluator, LossFn
from seedopt.engine import PerturbationEngine
from seedopt.errors import ConfigurationError, StateError


@dataclass(frozen=True)
class Proposal:
    """Update chosen by a selection policy for one specific generation.

    Attributes
    ----------
    generation : int
        The prospective generation the candidates were scored for. The proposal
        can only be applied while the engine is at ``generation - 1``.
    losses : numpy.ndarray
        Loss of every candidate.
    seed : int, optional
        Winning seed (best-of-N selection).
    weights : tuple of float, optional
        Per-candidate weights (reward-weighted combination).
    baseline : float, optional
        Loss of the unperturbed parameters, when it was computed.
    """
    generation: int
    losses: np.ndarray
    seed: Optional[int] = None
    weights: Optional[Tuple[float, ...]] = None
    baseline: Optional[float] = None

    @property
    def best_loss(self) -> float:
        return float(np.nanmin(self.losses)) if np.isfinite(self.losses).any() else float('inf')


class AbstractOptimizer:
    """Abstract base class for all optimizers.

    Defines the interface every optimizer implements to move the parameters of
    a :class:`PerturbationEngine`.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters. The optimizer never mutates them
        except through the engine.

    Raises
    ------
    ConfigurationError
        If engine is not a PerturbationEngine.
    """

    def __init__(self, engine: PerturbationEngine, *args, **kwargs):
        if not isinstance(engine, PerturbationEngine):
            raise ConfigurationError(f"engine must be a PerturbationEngine, got {type(engine)}.")
        self.engine = engine

    def step(self, *args, **kwargs):
        """Update the parameters by one generation."""
        raise NotImplementedError

    @property
    def parameters(self):
        return self.engine.parameters


class Optimizer(AbstractOptimizer):
    """Base class of the candidate-scoring optimizers.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters.
    loss_fn : callable
        ``loss_fn(parameters, batch) -> float``, smaller is better.
    num_candidates : int, optional
        Number of candidates per generation. Defaults to the engine's
        ``num_candidates``.
    num_threads : int, optional
        Score candidates in parallel with this many threads.

    Attributes
    ----------
    evaluator : CandidateEvaluator
        Builds and scores the candidates.

    Notes
    -----
    An update is computed in two stages:

    1. **Propose**: score the N candidates of the next generation and reduce
       their losses to a :class:`Proposal` (implemented in ``_step`` by
       subclasses). Proposing is read only and idempotent while the engine's
       generation does not change.

    2. **Update**: apply the proposal through the engine. A proposal scored
       for another generation is rejected, since its candidates no longer
       correspond to the noise the engine would apply.

    Usage
    -----
    >>> proposal = optimizer.propose(batch)
    >>> optimizer.update(proposal)
    or simply ``optimizer.step(batch)``.
    """

    def __init__(self,
                 engine: PerturbationEngine,
                 loss_fn: LossFn,
                 *args,
                 num_candidates: int = None,
                 num_threads: int = None,
                 **kwargs):
        super().__init__(engine)
        num_candidates = num_candidates if num_candidates is not None else engine.num_candidates
        if num_candidates is None:
            raise ConfigurationError("num_candidates must be given to the optimizer or the engine.")
        self.evaluator = CandidateEvaluator(loss_fn, engine.noise, num_candidates, num_threads=num_threads)
        if engine.num_candidates is not None and engine.num_candidates != self.evaluator.num_candidates:
            raise ConfigurationError(
                f"Optimizer scores {self.evaluator.num_candidates} candidates but the engine expects {engine.num_candidates}.")

    @property
    def num_candidates(self) -> int:
        return self.evaluator.num_candidates

    @property
    def loss_fn(self) -> LossFn:
        return self.evaluator.loss_fn

    def step(self, batch=None, bypassing: bool = False) -> Proposal:
        """Perform one optimization step.

        Parameters
        ----------
        batch : Any, optional
            Data passed to the loss function.
        bypassing : bool, default=False
            If True, computes the proposal but doesn't apply it.

        Returns
        -------
        Proposal
            The proposal that was (or would have been) applied.
        """
        proposal = self.propose(batch)
        if not bypassing:
            self.update(proposal)
        return proposal

    def propose(self, batch=None) -> Proposal:
        """Score the candidates of the next generation and build a proposal."""
        parameters, generation = self.engine.snapshot()
        return self._step(parameters, generation + 1, batch)

    def update(self, proposal: Proposal):
        """Apply a proposal through the engine.

        Raises
        ------
        StateError
            If the proposal was scored for a generation other than the
            engine's next one.
        """
        if not isinstance(proposal, Proposal):
            raise StateError(f"Expected a Proposal, got {type(proposal)}.")
        return self._update(proposal)

    # Subclass should implement the methods below.
    def _step(self, parameters, generation: int, batch) -> Proposal:
        raise NotImplementedError

    def _update(self, proposal: Proposal):
        raise NotImplementedError

from typing import Any, Callable, List
import numpy as np

from seedopt.engine import check_num_candidates, perturbation
from seedopt.errors import ESError, EvaluationError
from seedopt.noise import NoiseGenerator
from seedopt.parameters import ParameterSet

LossFn = Callable[[ParameterSet, Any], float]


def to_loss(value, candidate=None) -> float:
    try:
        return float(np.asarray(value, dtype=np.float64).reshape(()))
    except (TypeError, ValueError) as e:
        raise EvaluationError(f"Loss must be a scalar, got {value!r}", candidate=candidate, exception=e) from e


class CandidateEvaluator:
    """Builds and scores the N perturbed candidates of one generation.

    Candidate ``i`` adds ``noise(p.shape, i + k, generation)`` to every
    parameter ``p`` at index ``k``, which is exactly what
    ``PerturbationEngine.step(i)`` would add at that generation. Scoring never
    modifies the ParameterSet it is given.

    Parameters
    ----------
    loss_fn : callable
        ``loss_fn(parameters, batch) -> float``. Smaller is better.
    noise : NoiseGenerator
        Default noise source (per-parameter overrides are honored).
    num_candidates : int
        Number of candidates N scored per generation.
    num_threads : int, optional
        Score candidates on a thread pool when greater than 1.

    Raises
    ------
    ConfigurationError
        If num_candidates is not a positive integer.
    """

    def __init__(self, loss_fn: LossFn, noise: NoiseGenerator, num_candidates: int, num_threads: int = None):
        assert callable(loss_fn), "loss_fn must be callable."
        self.loss_fn = loss_fn
        self.noise = noise
        self.num_candidates = check_num_candidates(num_candidates)
        self.num_threads = num_threads

    def candidate(self, parameters: ParameterSet, index: int, generation: int) -> ParameterSet:
        """Parameters of candidate ``index`` for the (prospective) ``generation``."""
        values = {}
        for k, d in enumerate(parameters.definitions):
            values[d.name] = parameters[d.name] + perturbation(self.noise, d, k, index, generation)
        return parameters.replace(values)

    def candidates(self, parameters: ParameterSet, generation: int) -> List[ParameterSet]:
        return [self.candidate(parameters, i, generation) for i in range(self.num_candidates)]

    def baseline(self, parameters: ParameterSet, batch=None) -> float:
        """Loss of the unperturbed parameters."""
        try:
            value = self.loss_fn(parameters, batch)
        except ESError:
            raise
        except Exception as e:
            raise EvaluationError("Baseline loss evaluation failed", exception=e) from e
        return to_loss(value)

    def _score(self, parameters: ParameterSet, index: int, generation: int, batch) -> float:
        try:
            value = self.loss_fn(self.candidate(parameters, index, generation), batch)
        except ESError:
            raise
        except Exception as e:
            raise EvaluationError(f"Loss evaluation of candidate {index} failed", candidate=index, exception=e) from e
        return to_loss(value, candidate=index)

    def evaluate(self, parameters: ParameterSet, generation: int, batch=None) -> np.ndarray:
        """Losses of all candidates, indexed by candidate.

        Parameters
        ----------
        parameters : ParameterSet
            Current parameters (read only).
        generation : int
            The prospective generation, i.e. the current generation plus one.
        batch : Any, optional
            Data passed through to ``loss_fn``.

        Returns
        -------
        numpy.ndarray
            float64 array of length ``num_candidates``.

        Raises
        ------
        EvaluationError
            If any loss evaluation fails.
        """
        indices = list(range(self.num_candidates))
        if self.num_threads is not None and self.num_threads > 1:
            from seedopt.trainer.utils import batch_run  # late import, seedopt.trainer imports the optimizers
            n = len(indices)
            score = batch_run(max_workers=self.num_threads)(self._score)
            losses = score([parameters] * n, indices, [generation] * n, [batch] * n)
        else:
            losses = [self._score(parameters, i, generation, batch) for i in indices]
        return np.asarray(losses, dtype=np.float64)

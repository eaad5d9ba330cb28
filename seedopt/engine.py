import logging
import threading
from typing import List, Optional, Sequence, Tuple, Union
import numpy as np

from seedopt.errors import ConfigurationError, ESError, EvaluationError, StateError
from seedopt.noise import NoiseGenerator
from seedopt.parameters import ParameterDefinition, ParameterSet, check_definitions

logger = logging.getLogger(__name__)

HistoryEntry = Union[int, Tuple[float, ...]]


def check_num_candidates(num_candidates) -> int:
    if isinstance(num_candidates, bool) or not isinstance(num_candidates, (int, np.integer)) or num_candidates <= 0:
        raise ConfigurationError(f"Number of candidates must be a positive integer, got {num_candidates!r}.")
    return int(num_candidates)


def perturbation(noise: NoiseGenerator, definition: ParameterDefinition, index: int,
                 entry: HistoryEntry, generation: int) -> np.ndarray:
    """Noise one history entry adds to one parameter.

    Parameters
    ----------
    noise : NoiseGenerator
        Default generator; ``definition.noise`` takes precedence when set.
    definition : ParameterDefinition
        The parameter being perturbed.
    index : int
        Disambiguating index of the parameter, added to every seed.
    entry : int or tuple of float
        A seed, or a weight vector whose i-th weight scales the noise of seed i.
    generation : int
        Generation the noise is keyed on.
    """
    noise = definition.noise if definition.noise is not None else noise
    if isinstance(entry, tuple):
        total = np.zeros(definition.shape, dtype=definition.dtype)
        for i, weight in enumerate(entry):
            if weight == 0:
                continue
            sample = noise(definition.shape, i + index, generation, dtype=definition.dtype)
            total = total + np.asarray(weight, dtype=definition.dtype) * sample
        return np.asarray(total, dtype=definition.dtype)
    return noise(definition.shape, entry + index, generation, dtype=definition.dtype)


class PerturbationEngine:
    """State machine that moves parameters through parameter space by seeds.

    The engine owns a :class:`ParameterSet` that starts at all zeros, a
    generation counter and the stack of applied history entries. Only integers
    (or weight vectors) are retained; the noise each entry adds is regenerated
    from ``(generation, seed + k)`` whenever it is needed.

    Parameters
    ----------
    definitions : list of ParameterDefinition
        Parameters to optimize. Names must be unique.
    noise : NoiseGenerator
        Default noise source for every parameter without its own override.
    num_candidates : int, optional
        Length every weight vector passed to :meth:`weighted_step` must have.
        Unchecked when None.
    exact_rewind : bool, default=True
        Only matters when rewinding past the last mutation; the parameters
        before the last step are kept, so a rewind right after a step costs no
        noise draws. For deeper rewinds, True rebuilds the previous values by
        re-applying the retained history to the initial zeros, which restores
        them bit for bit. False subtracts the regenerated noise in place, which
        costs one generation of work but is only exact up to floating point
        rounding.

    Attributes
    ----------
    noise : NoiseGenerator
        The default noise source.
    num_candidates : int or None
        Expected weight vector length.

    Raises
    ------
    ConfigurationError
        On empty or duplicate definitions, a non-NoiseGenerator noise source or
        a non-positive candidate count.

    Notes
    -----
    All mutations (:meth:`step`, :meth:`weighted_step`, :meth:`rewind`) and all
    reads of the current state are serialized by one re-entrant lock. Each
    mutation computes every new value first and commits them together, so an
    exception leaves parameters, generation and history unchanged.

    Examples
    --------
    >>> engine = PerturbationEngine([ParameterDefinition('w', (2,))], NoiseGenerator(0.01))
    >>> _ = engine.step(3)
    >>> engine.generation, engine.seeds
    (1, [3])
    >>> _ = engine.rewind()
    >>> bool((engine['w'] == 0).all())
    True
    """

    def __init__(self,
                 definitions: Sequence[ParameterDefinition],
                 noise: NoiseGenerator,
                 num_candidates: int = None,
                 exact_rewind: bool = True):
        self._definitions = tuple(check_definitions(definitions))
        if not isinstance(noise, NoiseGenerator):
            raise ConfigurationError(f"noise must be a NoiseGenerator, got {type(noise)}.")
        self.noise = noise
        self.num_candidates = None if num_candidates is None else check_num_candidates(num_candidates)
        self.exact_rewind = exact_rewind
        self._lock = threading.RLock()
        self._parameters = ParameterSet.zeros(self._definitions)
        self._generation = 0
        self._history: List[HistoryEntry] = []
        # parameters before the last mutation, cleared by a rewind
        self._previous: Optional[ParameterSet] = None

    @property
    def definitions(self) -> Tuple[ParameterDefinition, ...]:
        return self._definitions

    @property
    def parameters(self) -> ParameterSet:
        """Snapshot of the current parameters."""
        with self._lock:
            return self._parameters

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def history(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._history)

    @property
    def seeds(self) -> List[int]:
        """Seeds applied by :meth:`step`, oldest first."""
        with self._lock:
            return [e for e in self._history if not isinstance(e, tuple)]

    @property
    def seed_weights(self) -> List[Tuple[float, ...]]:
        """Weight vectors applied by :meth:`weighted_step`, oldest first."""
        with self._lock:
            return [e for e in self._history if isinstance(e, tuple)]

    def snapshot(self) -> Tuple[ParameterSet, int]:
        """Current parameters and generation, read together."""
        with self._lock:
            return self._parameters, self._generation

    def __getitem__(self, name: str) -> np.ndarray:
        return self.parameters[name]

    def step(self, seed: int, generation: int = None) -> ParameterSet:
        """Advance one generation and add the noise of ``seed``.

        Every parameter ``p`` at index ``k`` becomes
        ``p + noise(p.shape, seed + k, generation + 1)``.

        Parameters
        ----------
        seed : int
            Seed of the noise to add.
        generation : int, optional
            Generation the seed was selected for. When given, the step is
            refused unless it equals the generation the step would produce.

        Returns
        -------
        ParameterSet
            The new parameters.

        Raises
        ------
        StateError
            If seed is not an integer, or generation is given and stale.
        EvaluationError
            If computing a perturbed value fails. Nothing is committed.
        """
        if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
            raise StateError(f"Seed must be an integer, got {seed!r}.")
        return self._advance(int(seed), generation)

    def weighted_step(self, weights: Sequence[float], generation: int = None) -> ParameterSet:
        """Advance one generation and add a weighted sum of candidate noise.

        Every parameter ``p`` at index ``k`` becomes
        ``p + sum_i weights[i] * noise(p.shape, i + k, generation + 1)``.

        Raises
        ------
        StateError
            If the weight vector is empty or its length differs from
            ``num_candidates``, or generation is given and stale.
        EvaluationError
            If computing a perturbed value fails. Nothing is committed.
        """
        weights = tuple(float(w) for w in weights)
        if len(weights) == 0:
            raise StateError("Weight vector must not be empty.")
        if self.num_candidates is not None and len(weights) != self.num_candidates:
            raise StateError(f"Expected {self.num_candidates} weights, got {len(weights)}.")
        return self._advance(weights, generation)

    def rewind(self) -> ParameterSet:
        """Undo the most recent step or weighted step.

        Right after a step the kept previous parameters are restored directly.
        Otherwise the noise is regenerated (see ``exact_rewind``).

        Returns
        -------
        ParameterSet
            The restored parameters.

        Raises
        ------
        StateError
            If the history is empty (generation 0).
        EvaluationError
            If recomputing the noise fails. Nothing is committed.
        """
        with self._lock:
            if not self._history:
                raise StateError("Cannot rewind at generation 0: the history is empty.")
            entry = self._history[-1]
            try:
                if self._previous is not None:
                    restored = self._previous
                elif self.exact_rewind:
                    restored = self._replay(self._history[:-1])
                else:
                    restored = self._apply(self._parameters, entry, self._generation, sign=-1)
            except ESError:
                raise
            except Exception as e:
                raise EvaluationError(f"Failed to rewind generation {self._generation}", exception=e) from e
            self._parameters = restored
            self._history.pop()
            self._previous = None
            self._generation -= 1
            logger.debug("rewind %r -> generation %d", entry, self._generation)
            return restored

    def _advance(self, entry: HistoryEntry, expected: int = None) -> ParameterSet:
        with self._lock:
            generation = self._generation + 1
            if expected is not None and expected != generation:
                raise StateError(
                    f"Stale update: computed for generation {expected}, engine is at generation {self._generation}.")
            try:
                updated = self._apply(self._parameters, entry, generation)
            except ESError:
                raise
            except Exception as e:
                raise EvaluationError(f"Failed to apply {entry!r} at generation {generation}", exception=e) from e
            self._previous = self._parameters
            self._parameters = updated
            self._history.append(entry)
            self._generation = generation
            logger.debug("step %r -> generation %d", entry, generation)
            return updated

    def _apply(self, parameters: ParameterSet, entry: HistoryEntry, generation: int, sign: int = 1) -> ParameterSet:
        # Buffer every new value before building the new set.
        values = {}
        for k, d in enumerate(self._definitions):
            delta = perturbation(self.noise, d, k, entry, generation)
            if sign > 0:
                values[d.name] = parameters[d.name] + delta
            else:
                values[d.name] = parameters[d.name] - delta
        return parameters.replace(values)

    def _replay(self, history: Sequence[HistoryEntry]) -> ParameterSet:
        parameters = ParameterSet.zeros(self._definitions)
        for generation, entry in enumerate(history, start=1):
            parameters = self._apply(parameters, entry, generation)
        return parameters

    def __repr__(self):
        return (f"{type(self).__name__}(parameters={[d.name for d in self._definitions]}, "
                f"generation={self.generation}, noise={self.noise!r})")

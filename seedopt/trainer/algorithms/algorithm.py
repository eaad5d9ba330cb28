from typing import Optional
from seedopt.engine import PerturbationEngine
from seedopt.trainer.loggers import DefaultLogger


class AbstractAlgorithm:
    """Abstract base class for all training algorithms.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine whose parameters are trained by the algorithm.
    *args
        Additional positional arguments.
    **kwargs
        Additional keyword arguments.
    """

    def __init__(self, engine, *args, **kwargs):
        self.engine = engine

    def train(self, *args, **kwargs):
        """Train the parameters using the algorithm's specific strategy."""
        pass


class Trainer(AbstractAlgorithm):
    """Base trainer class that defines the API for training parameters from datasets.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters to train.
    num_threads : int, optional
        Maximum number of threads for parallel candidate scoring, by default None.
    logger : BaseLogger, optional
        Logger instance for tracking training metrics, by default None
        (uses DefaultLogger).

    Attributes
    ----------
    engine : PerturbationEngine
        The engine being trained.
    num_threads : int or None
        Maximum number of threads for parallel operations.
    logger : BaseLogger
        Logger instance for metric tracking.

    Notes
    -----
    The training paradigm involves:
    - engine: PerturbationEngine holding named numpy parameters
    - loss: function (parameters, batch) -> float, smaller is better
    - train_dataset: dataset of (input, target) pairs, or None for a fixed objective
    """

    def __init__(self,
                 engine,
                 num_threads: Optional[int] = None,   # maximum number of threads to use for parallel execution
                 logger=None,  # logger for tracking metrics
                 *args,
                 **kwargs):
        assert isinstance(engine, PerturbationEngine), "Engine must be a PerturbationEngine. Getting {}".format(type(engine))
        super().__init__(engine, *args, **kwargs)
        self.num_threads = num_threads
        # Use DefaultLogger as default if logger is None
        self.logger = logger if logger is not None else DefaultLogger()

    def _use_asyncio(self, threads=None):
        """Whether parallel execution should be used for the given number of threads."""
        effective_threads = threads or self.num_threads
        return effective_threads is not None and effective_threads > 1

    def train(self,
              train_dataset=None,  # dataset of (x, info) pairs
              num_threads: int = None,  # maximum number of threads to use (overrides self.num_threads)
              **kwargs
              ):
        """Train the parameters on the dataset.

        Raises
        ------
        NotImplementedError
            This method must be implemented by subclasses.
        """
        raise NotImplementedError

from typing import Union, Any, Callable, Sequence
import importlib

from seedopt.engine import PerturbationEngine
from seedopt.errors import ConfigurationError
from seedopt.models.loss import make_loss
from seedopt.models.models import ModelDef
from seedopt.noise import NoiseGenerator, GaussianNoise
from seedopt.optimizers.optimizer import AbstractOptimizer
from seedopt.parameters import ParameterDefinition
from seedopt.trainer.algorithms import Trainer
from seedopt.trainer.loggers import BaseLogger


def dataset_check(dataset):
    assert isinstance(dataset, dict), "Dataset must be a dictionary"
    assert 'inputs' in dataset and 'infos' in dataset, "Dataset must contain 'inputs' and 'infos' keys"
    assert len(dataset['inputs']) == len(dataset['infos']), "Inputs and infos must have the same length"


def train(
    *,
    model: Union[ModelDef, PerturbationEngine, Sequence[ParameterDefinition]],
    loss_fn: Union[Callable, str],
    train_dataset: Union[dict, None] = None,
    stdev: float = 0.003,
    noise: Union[NoiseGenerator, None] = None,
    num_candidates: int = 5,
    # class of optimizer
    algorithm: Union[Trainer, str] = 'ESTrainer',
    optimizer: Union[AbstractOptimizer, str] = 'BestSeedSelector',
    logger: Union[BaseLogger, str] = 'ConsoleLogger',
    num_threads: Union[int, None] = None,
    # extra configs
    optimizer_kwargs: Union[dict, None] = None,
    logger_kwargs: Union[dict, None] = None,
    # The rest is treated as trainer config
    **trainer_kwargs,
) -> Any:
    """High-level training function for seed-based evolution strategies.

    Builds the engine, optimizer, logger and training algorithm from
    instances, classes or names and runs the generation loop.

    Parameters
    ----------
    model : ModelDef, PerturbationEngine or list of ParameterDefinition
        What to train. Pass a PerturbationEngine to read the trained
        parameters afterwards; otherwise a new engine is built from the
        definitions.
    loss_fn : callable or str
        ``loss_fn(parameters, batch) -> float``, or the name of a loss in
        :mod:`seedopt.models.loss` (e.g. ``'softmax_cross_entropy'``), which is
        combined with ``model`` through ``make_loss``; this needs a ModelDef.
    train_dataset : dict, optional
        Dataset with 'inputs' and 'infos' keys of the same length. When None,
        ``loss_fn`` receives ``batch=None`` every generation.
    stdev : float, default=0.003
        Noise standard deviation, used when ``noise`` is None and a new
        engine is built.
    noise : NoiseGenerator, optional
        Noise source of a new engine, by default ``GaussianNoise(stdev)``.
    num_candidates : int, default=5
        Number of candidates N per generation.
    algorithm : Trainer class or str, default='ESTrainer'
        Training algorithm.
    optimizer : Optimizer, Optimizer class or str, default='BestSeedSelector'
        Selection policy, e.g. 'BestSeedSelector' or 'WeightedCombiner'
        (which needs ``optimizer_kwargs={'scale': ...}``).
    logger : BaseLogger, BaseLogger class or str, default='ConsoleLogger'
        Telemetry sink.
    num_threads : int, optional
        Threads used to score candidates in parallel.
    optimizer_kwargs : dict, optional
        Extra keyword arguments of the optimizer constructor.
    logger_kwargs : dict, optional
        Extra keyword arguments of the logger constructor.
    **trainer_kwargs
        Forwarded to the algorithm's ``train`` (num_generations, batch_size,
        test_dataset, accuracy_fn, seed, ...).

    Returns
    -------
    tuple[list[float], float or None]
        What the algorithm's ``train`` returns.

    Raises
    ------
    ConfigurationError
        If a component name cannot be resolved or a component has the wrong type.
    AssertionError
        If the dataset format is invalid (missing keys, mismatched lengths).

    Examples
    --------
    >>> engine = PerturbationEngine(linear_regression().definitions, GaussianNoise(0.003), num_candidates=5)
    >>> train(model=engine, loss_fn=loss_fn, num_generations=500)
    >>> engine['weight'], engine['bias']
    """
    optimizer_kwargs = dict(optimizer_kwargs or {})
    logger_kwargs = logger_kwargs or {}

    if train_dataset is not None:
        dataset_check(train_dataset)

    trainer_class = load_trainer_class(algorithm)

    if isinstance(model, PerturbationEngine):
        engine = model
    else:
        definitions = model.definitions if isinstance(model, ModelDef) else model
        noise = noise if noise is not None else GaussianNoise(stdev)
        engine = PerturbationEngine(definitions, noise, num_candidates=num_candidates)

    if isinstance(loss_fn, str):
        if not isinstance(model, ModelDef):
            raise ConfigurationError(f"Loss '{loss_fn}' given by name needs a ModelDef, got {type(model)}.")
        loss_fn = make_loss(model, load_loss(loss_fn))

    optimizer_kwargs.setdefault("num_candidates", engine.num_candidates or num_candidates)
    optimizer = load_optimizer(optimizer, engine, loss_fn, **optimizer_kwargs)
    logger = load_logger(logger, **logger_kwargs)

    algo = trainer_class(
        engine,
        optimizer,
        num_threads=num_threads,
        logger=logger
    )

    return algo.train(
        train_dataset=train_dataset,
        **trainer_kwargs)


def _resolve(module_name: str, name: str, kind: str):
    module = importlib.import_module(module_name)
    if not hasattr(module, name):
        raise ConfigurationError(f"Unknown {kind} '{name}' in {module_name}.")
    return getattr(module, name)


def load_loss(loss: Union[Callable, str]) -> Callable:
    if isinstance(loss, str):
        return _resolve("seedopt.models.loss", loss, "loss")
    elif callable(loss):
        return loss
    else:
        raise ConfigurationError(f"Invalid loss type: {type(loss)}")


def load_optimizer(optimizer: Union[AbstractOptimizer, str], engine: PerturbationEngine, loss_fn, **kwargs) -> AbstractOptimizer:
    if isinstance(optimizer, AbstractOptimizer):
        return optimizer
    elif isinstance(optimizer, str):
        optimizer_class = _resolve("seedopt.optimizers", optimizer, "optimizer")
        return load_optimizer(optimizer_class, engine, loss_fn, **kwargs)
    elif isinstance(optimizer, type) and issubclass(optimizer, AbstractOptimizer):
        return optimizer(engine, loss_fn, **kwargs)
    else:
        raise ConfigurationError(f"Invalid optimizer type: {type(optimizer)}")


def load_logger(logger: Union[BaseLogger, str], **kwargs) -> BaseLogger:
    if isinstance(logger, BaseLogger):
        return logger
    elif isinstance(logger, str):
        logger_class = _resolve("seedopt.trainer.loggers", logger, "logger")
        return load_logger(logger_class, **kwargs)
    elif isinstance(logger, type) and issubclass(logger, BaseLogger):
        return logger(**kwargs)
    else:
        raise ConfigurationError(f"Invalid logger type: {type(logger)}")


def load_trainer_class(trainer: Union[Trainer, str]) -> Trainer:
    if isinstance(trainer, str):
        trainer_class = _resolve("seedopt.trainer.algorithms", trainer, "algorithm")
    else:
        trainer_class = trainer
    if not (isinstance(trainer_class, type) and issubclass(trainer_class, Trainer)):
        raise ConfigurationError(f"Invalid trainer type: {trainer_class}")
    return trainer_class

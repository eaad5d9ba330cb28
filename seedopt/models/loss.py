from typing import Callable, Optional, Tuple
import numpy as np

from seedopt.models.models import ModelDef

Loss = Callable[[np.ndarray, np.ndarray], float]


def _flatten_sequences(actual, target):
    # [batch, time, classes] -> [batch * time, classes]
    if actual.ndim == 3:
        actual = actual.reshape(-1, actual.shape[-1])
        target = target.reshape(-1, target.shape[-1])
    return actual, target


def _softmax(logits: np.ndarray) -> np.ndarray:
    shifted = logits - np.max(logits, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=-1, keepdims=True)


def sum_squared_difference(actual, target) -> float:
    """Sum of squared differences over all elements."""
    actual = np.asarray(actual)
    return float(np.sum(np.square(np.asarray(target, dtype=actual.dtype) - actual)))


def softmax_squared_difference(actual, target) -> float:
    """Squared difference between softmax(actual) and one-hot targets, summed over classes and averaged over the batch."""
    actual, target = _flatten_sequences(np.asarray(actual), np.asarray(target))
    sqr_diffs = np.square(_softmax(actual) - target)
    return float(np.mean(np.sum(sqr_diffs, axis=-1), axis=0))


def softmax_cross_entropy(actual, target) -> float:
    """Cross entropy between softmax(actual) and one-hot (or soft) targets, averaged over the batch."""
    actual, target = _flatten_sequences(np.asarray(actual, dtype=np.float64), np.asarray(target, dtype=np.float64))
    shifted = actual - np.max(actual, axis=-1, keepdims=True)
    log_softmax = shifted - np.log(np.sum(np.exp(shifted), axis=-1, keepdims=True))
    return float(np.mean(-np.sum(target * log_softmax, axis=-1)))


def make_loss(model: ModelDef, loss: Loss, data: Optional[Tuple] = None):
    """Turn a model and a loss into a ``loss_fn(parameters, batch)``.

    Args:
        model: the model computing outputs from parameters and inputs.
        loss: ``loss(actual, target) -> float``.
        data: optional fixed ``(inputs, targets)`` used when the batch is None.

    A batch is an ``(inputs, targets)`` pair, e.g. what DataLoader yields.
    """

    def loss_fn(parameters, batch=None):
        if batch is None:
            assert data is not None, "No batch given and no fixed data bound to the loss."
            batch = data
        inputs, targets = batch
        return loss(model(parameters, np.asarray(inputs)), np.asarray(targets))

    return loss_fn

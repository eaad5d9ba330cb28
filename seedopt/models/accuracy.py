import numpy as np

from seedopt.models.models import ModelDef


def percent(actual, target) -> float:
    """Fraction of rows whose top scoring class equals the integer label in target."""
    actual = np.asarray(actual)
    labels = np.argmax(actual, axis=-1)
    correct = labels.reshape(-1) == np.asarray(target).astype(labels.dtype).reshape(-1)
    if correct.size == 0:
        return 0.0
    return float(np.mean(correct))


def make_accuracy(model: ModelDef, accuracy=percent):
    """Turn a model and an accuracy metric into ``accuracy_fn(parameters, inputs, targets)``."""

    def accuracy_fn(parameters, inputs, targets):
        return accuracy(model(parameters, np.asarray(inputs)), np.asarray(targets))

    return accuracy_fn

from seedopt.candidates import to_loss
from seedopt.errors import ESError, EvaluationError
import numpy as np


def evaluate_loss(loss_fn, parameters, inputs, infos):
    """ Loss of the parameters on a whole dataset

    Args:
        loss_fn: loss_fn(parameters, batch) -> float
        parameters: the ParameterSet to evaluate
        inputs: list of inputs
        infos: list of targets for each input
    """
    assert len(inputs) == len(infos), "Inputs and infos must have the same length"
    try:
        value = loss_fn(parameters, (inputs, infos))
    except ESError:
        raise
    except Exception as e:
        raise EvaluationError("Test loss evaluation failed", exception=e) from e
    return to_loss(value)


def evaluate_accuracy(accuracy_fn, parameters, inputs, infos):
    """ Accuracy of the parameters on a whole dataset, a float in [0, 1]

    Args:
        accuracy_fn: accuracy_fn(parameters, inputs, targets) -> float
        parameters: the ParameterSet to evaluate
        inputs: list of inputs
        infos: list of targets for each input
    """
    assert len(inputs) == len(infos), "Inputs and infos must have the same length"
    try:
        accuracy = float(accuracy_fn(parameters, np.asarray(inputs), np.asarray(infos)))
    except ESError:
        raise
    except Exception as e:
        raise EvaluationError("Accuracy evaluation failed", exception=e) from e
    if not 0.0 <= accuracy <= 1.0:
        raise EvaluationError(f"Accuracy must be in [0, 1], got {accuracy}")
    return accuracy

from seedopt.models.models import ModelDef, linear_regression, single_layer_nn, two_layer_nn
from seedopt.models.loss import sum_squared_difference, softmax_squared_difference, softmax_cross_entropy, make_loss
from seedopt.models.accuracy import percent, make_accuracy

__all__ = [
    "ModelDef",
    "linear_regression",
    "single_layer_nn",
    "two_layer_nn",
    "sum_squared_difference",
    "softmax_squared_difference",
    "softmax_cross_entropy",
    "make_loss",
    "percent",
    "make_accuracy",
]

"""Small illustrative models.

A model is a list of ParameterDefinitions plus a pure ``forward(parameters,
inputs)`` function; the engine owns the parameters, the model only reads them.
"""
from dataclasses import dataclass
from typing import Callable, List
import numpy as np

from seedopt.parameters import ParameterDefinition, ParameterSet


@dataclass(frozen=True)
class ModelDef:
    """Parameters a model needs and the function computing its output."""
    definitions: List[ParameterDefinition]
    forward: Callable[[ParameterSet, np.ndarray], np.ndarray]
    name: str = "model"

    def __call__(self, parameters: ParameterSet, inputs) -> np.ndarray:
        return self.forward(parameters, inputs)


def linear_regression(dtype=np.float32) -> ModelDef:
    """``y = weight * x + bias`` with scalar weight and bias."""
    definitions = [
        ParameterDefinition('weight', (), dtype),
        ParameterDefinition('bias', (), dtype),
    ]

    def forward(parameters, inputs):
        inputs = np.asarray(inputs, dtype=parameters['weight'].dtype)
        return parameters['bias'] + inputs * parameters['weight']

    return ModelDef(definitions, forward, name='linear_regression')


def single_layer_nn(input_size: int, output_size: int, dtype=np.float32) -> ModelDef:
    """Fully connected layer, ``inputs @ weights + biases``."""
    definitions = [
        ParameterDefinition('weights', (input_size, output_size), dtype),
        ParameterDefinition('biases', (output_size,), dtype),
    ]

    def forward(parameters, inputs):
        inputs = np.asarray(inputs, dtype=parameters['weights'].dtype)
        return parameters['biases'] + inputs @ parameters['weights']

    return ModelDef(definitions, forward, name='single_layer_nn')


def two_layer_nn(input_size: int, hidden_size: int, output_size: int, dtype=np.float32) -> ModelDef:
    """Two fully connected layers with a tanh in between."""
    definitions = [
        ParameterDefinition('l1weights', (input_size, hidden_size), dtype),
        ParameterDefinition('l1biases', (hidden_size,), dtype),
        ParameterDefinition('l2weights', (hidden_size, output_size), dtype),
        ParameterDefinition('l2biases', (output_size,), dtype),
    ]

    def forward(parameters, inputs):
        inputs = np.asarray(inputs, dtype=parameters['l1weights'].dtype)
        hidden = np.tanh(parameters['l1biases'] + inputs @ parameters['l1weights'])
        return parameters['l2biases'] + hidden @ parameters['l2weights']

    return ModelDef(definitions, forward, name='two_layer_nn')

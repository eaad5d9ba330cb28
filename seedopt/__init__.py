from seedopt.errors import ESError, ConfigurationError, EvaluationError, StateError
from seedopt.noise import NoiseGenerator, GaussianNoise, TruncatedNormalNoise, NullNoise
from seedopt.parameters import ParameterDefinition, ParameterSet
from seedopt.engine import PerturbationEngine
from seedopt.candidates import CandidateEvaluator
from seedopt.optimizers import Proposal, BestSeedSelector, WeightedCombiner
from seedopt.trainer import DataLoader, ESTrainer, train

__all__ = [
    "ESError",
    "ConfigurationError",
    "EvaluationError",
    "StateError",
    "NoiseGenerator",
    "GaussianNoise",
    "TruncatedNormalNoise",
    "NullNoise",
    "ParameterDefinition",
    "ParameterSet",
    "PerturbationEngine",
    "CandidateEvaluator",
    "Proposal",
    "BestSeedSelector",
    "WeightedCombiner",
    "DataLoader",
    "ESTrainer",
    "train",
]

from seedopt.trainer.algorithms.algorithm import AbstractAlgorithm, Trainer
from seedopt.trainer.algorithms.es_algorithms import ESTrainer

from seedopt.trainer.loader import DataLoader
from seedopt.trainer.loggers import BaseLogger, ConsoleLogger, TensorboardLogger, WandbLogger, DefaultLogger
from seedopt.trainer.algorithms import AbstractAlgorithm, Trainer, ESTrainer
from seedopt.trainer.train import train

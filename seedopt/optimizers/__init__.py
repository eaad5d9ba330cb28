from seedopt.optimizers.optimizer import AbstractOptimizer, Optimizer, Proposal
from seedopt.optimizers.best_seed import BestSeedSelector
from seedopt.optimizers.weighted import WeightedCombiner

__all__ = ["AbstractOptimizer", "Optimizer", "Proposal", "BestSeedSelector", "WeightedCombiner"]

import numpy as np
from seedopt import GaussianNoise, PerturbationEngine, WeightedCombiner
from seedopt.models import linear_regression, make_loss, sum_squared_difference
from seedopt.trainer.algorithms import ESTrainer
from seedopt.trainer.loggers import ConsoleLogger


def main():
    xs = np.array([0.0, -1.0, -2.0, -3.0], dtype=np.float32)
    ys = np.array([1.0, 2.0, 3.0, 4.0], dtype=np.float32)
    model = linear_regression()
    engine = PerturbationEngine(model.definitions, GaussianNoise(0.003), num_candidates=5)

    # a fixed objective: the loss ignores the batch
    loss_fn = make_loss(model, sum_squared_difference, data=(xs, ys))
    optimizer = WeightedCombiner(engine, loss_fn, scale=100.0)

    algorithm = ESTrainer(engine, optimizer, logger=ConsoleLogger())
    train_losses, _ = algorithm.train(num_generations=1000, log_frequency=200, target_loss=1e-6)
    print(f"weight={engine['weight']:.4f} bias={engine['bias']:.4f} after {len(train_losses)} generations")

    # undo the last generation and redo it
    last = engine.history[-1]
    engine.rewind()
    engine.weighted_step(last)
    print(f"rewound and replayed generation {engine.generation}: loss {loss_fn(engine.parameters):.6f}")


if __name__ == "__main__":
    main()

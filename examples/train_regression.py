import numpy as np
from seedopt import GaussianNoise, PerturbationEngine, trainer
from seedopt.models import linear_regression, make_loss, sum_squared_difference


def main():
    # y = -x + 1
    train_dataset = dict(inputs=[0.0, -1.0, -2.0, -3.0], infos=[1.0, 2.0, 3.0, 4.0])
    model = linear_regression(dtype=np.float32)
    engine = PerturbationEngine(model.definitions, GaussianNoise(0.003), num_candidates=5)

    trainer.train(
        model=engine,
        loss_fn=make_loss(model, sum_squared_difference),
        train_dataset=train_dataset,
        optimizer='BestSeedSelector',
        # trainer kwargs
        num_generations=500,
        batch_size=4,
        eval_frequency=100,
        log_frequency=100,
    )
    print(f"weight={engine['weight']:.4f} bias={engine['bias']:.4f} (expected -1, 1)")
    print(f"{engine.generation} generations stored as {len(engine.seeds)} seeds")


if __name__ == "__main__":
    main()

import argparse
import numpy as np
from seedopt import GaussianNoise, PerturbationEngine, trainer
from seedopt.models import make_accuracy, make_loss, single_layer_nn, two_layer_nn, softmax_cross_entropy


def make_blobs(num_samples, num_classes, num_features, rng):
    """Gaussian clusters around random centers, with one-hot targets."""
    centers = rng.normal(scale=3.0, size=(num_classes, num_features))
    labels = rng.integers(num_classes, size=num_samples)
    inputs = centers[labels] + rng.normal(size=(num_samples, num_features))
    targets = np.eye(num_classes)[labels]
    return dict(inputs=list(inputs.astype(np.float32)), infos=list(targets))


def main():
    parser = argparse.ArgumentParser(description='Train a small classifier with seed-based evolution strategies')
    parser.add_argument('--hidden_size', type=int, default=0,
                        help='Size of the hidden layer; 0 trains a single layer')
    parser.add_argument('--num_classes', type=int, default=3)
    parser.add_argument('--num_features', type=int, default=4)
    parser.add_argument('--optimizer', type=str, default='WeightedCombiner',
                        choices=['BestSeedSelector', 'WeightedCombiner'])
    parser.add_argument('--scale', type=float, default=200.0,
                        help='Scale of the WeightedCombiner weights')
    parser.add_argument('--stdev', type=float, default=0.01)
    parser.add_argument('--num_candidates', type=int, default=20)
    parser.add_argument('--num_generations', type=int, default=300)
    parser.add_argument('--batch_size', type=int, default=32)
    parser.add_argument('--num_threads', type=int, default=None)
    parser.add_argument('--logger', type=str, default='ConsoleLogger',
                        choices=['ConsoleLogger', 'TensorboardLogger', 'WandbLogger'])
    parser.add_argument('--log_dir', type=str, default='./logs')
    parser.add_argument('--seed', type=int, default=0)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    train_dataset = make_blobs(512, args.num_classes, args.num_features, rng)
    test_dataset = make_blobs(128, args.num_classes, args.num_features, rng)

    if args.hidden_size > 0:
        model = two_layer_nn(args.num_features, args.hidden_size, args.num_classes)
    else:
        model = single_layer_nn(args.num_features, args.num_classes)
    engine = PerturbationEngine(model.definitions, GaussianNoise(args.stdev), num_candidates=args.num_candidates)

    accuracy = make_accuracy(model)

    def accuracy_fn(parameters, inputs, targets):
        return accuracy(parameters, inputs, np.argmax(targets, axis=-1))

    optimizer_kwargs = {'scale': args.scale} if args.optimizer == 'WeightedCombiner' else {}
    logger_kwargs = {'log_dir': args.log_dir} if args.logger != 'ConsoleLogger' else {}

    train_losses, test_accuracy = trainer.train(
        model=engine,
        loss_fn=make_loss(model, softmax_cross_entropy),
        train_dataset=train_dataset,
        optimizer=args.optimizer,
        optimizer_kwargs=optimizer_kwargs,
        logger=args.logger,
        logger_kwargs=logger_kwargs,
        num_threads=args.num_threads,
        # trainer kwargs
        num_generations=args.num_generations,
        batch_size=args.batch_size,
        test_dataset=test_dataset,
        accuracy_fn=accuracy_fn,
        eval_frequency=50,
        log_frequency=10,
        log_parameters=True,
        seed=args.seed,
    )
    print(f"Final test accuracy: {test_accuracy:.3f}, last train loss: {train_losses[-1]:.4f}")


if __name__ == "__main__":
    main()

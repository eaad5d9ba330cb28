import numpy as np
from typing import Union
from seedopt.optimizers.optimizer import Optimizer, Proposal
from seedopt.optimizers.utils import format_array, print_color
from seedopt.trainer.algorithms.algorithm import Trainer
from seedopt.trainer.evaluators import evaluate_accuracy, evaluate_loss
from seedopt.trainer.loader import DataLoader


class ESTrainer(Trainer):
    """Generation loop of seed-based evolution strategies.

    Each generation draws a minibatch (or none, for a fixed objective), asks
    the optimizer for a proposal scored on that batch, applies it through the
    engine, optionally rolls it back when it did not improve the batch loss,
    and periodically logs and evaluates.

    Parameters
    ----------
    engine : PerturbationEngine
        The engine owning the parameters.
    optimizer : Optimizer
        Selection policy moving the engine (e.g. BestSeedSelector or
        WeightedCombiner). Must drive the same engine.
    num_threads : int, optional
        Threads used to score candidates in parallel, by default None.
    logger : BaseLogger, optional
        Telemetry sink, by default ConsoleLogger.

    Attributes
    ----------
    optimizer : Optimizer
        The selection policy.
    n_iters : int
        Number of generations run so far, including rolled back ones.
    """

    def __init__(self,
                 engine,
                 optimizer,
                 num_threads: int = None,   # maximum number of threads to use for parallel execution
                 logger=None,
                 *args,
                 **kwargs,
                 ):
        super().__init__(engine, num_threads=num_threads, logger=logger, *args, **kwargs)
        assert isinstance(optimizer, Optimizer), "Optimizer must be a seedopt Optimizer. Getting {}".format(type(optimizer))
        assert optimizer.engine is engine, "Optimizer must drive the same engine as the trainer."
        self.optimizer = optimizer
        self.n_iters = 0  # number of iterations

    def train(self,
              train_dataset=None,
              *,
              num_generations: int = 1,  # number of generations
              batch_size: int = 1,  # batch size of each generation
              test_dataset=None,  # dataset of (x, info) pairs to evaluate the parameters
              accuracy_fn=None,  # accuracy_fn(parameters, inputs, targets) -> float in [0, 1]
              eval_frequency: int = 1,  # frequency of evaluation
              log_frequency: Union[int, None] = None,  # frequency of logging
              ensure_improvement: bool = False,  # whether to roll back generations that do not improve the batch loss
              improvement_threshold: float = 0.,  # threshold for improvement
              target_loss: Union[float, None] = None,  # stop once the best candidate loss reaches this value
              seed: Union[int, None] = None,  # seed of the minibatch sampling order
              log_parameters: bool = False,  # whether to log every parameter tensor
              verbose: Union[bool, str] = False,  # whether to print every generation ("parameters" also prints the parameters)
              num_threads: int = None,  # maximum number of threads to use (overrides self.num_threads)
              **kwargs
              ):
        """Run the generation loop.

        Parameters
        ----------
        train_dataset : dict, optional
            Training dataset with 'inputs' and 'infos' keys. When None, the
            loss function is called with ``batch=None`` every generation.
        num_generations : int, optional
            Number of generations to run, by default 1.
        batch_size : int, optional
            Minibatch size drawn every generation, by default 1.
        test_dataset : dict, optional
            Evaluation dataset, defaults to train_dataset.
        accuracy_fn : callable, optional
            If given, evaluation also reports accuracy and the returned test
            score is the accuracy; otherwise it is the test loss.
        eval_frequency : int, optional
            Evaluate every N generations; 0 disables evaluation, by default 1.
        log_frequency : int, optional
            Log every N generations, defaults to eval_frequency (or 1).
        ensure_improvement : bool, optional
            Rewind a generation whose parameters do not lower the batch loss
            by at least ``improvement_threshold``, by default False.
        improvement_threshold : float, optional
            Minimum loss decrease required to keep a generation.
        target_loss : float, optional
            Stop early once the best candidate loss is at most this value.
        seed : int, optional
            Seed of the minibatch sampling order.
        log_parameters : bool, optional
            Log every parameter tensor (histograms for TensorBoard and wandb).
        verbose : bool or str, optional
            Print the loss of every generation; "parameters" also prints
            every parameter tensor.
        num_threads : int, optional
            Overrides ``self.num_threads`` for candidate scoring.

        Returns
        -------
        tuple[list[float], float or None]
            Best candidate loss of every generation and the last test score.
        """
        num_threads = num_threads or self.num_threads  # Use provided num_threads or fall back to self.num_threads
        evaluator = self.optimizer.evaluator
        default_threads = evaluator.num_threads
        if self._use_asyncio(num_threads):
            evaluator.num_threads = num_threads
        log_frequency = log_frequency or eval_frequency or 1  # frequency of logging (default to eval_frequency)
        test_dataset = test_dataset or train_dataset  # default to train_dataset if test_dataset is not provided

        try:
            test_score = None
            if test_dataset is not None and eval_frequency > 0:
                test_score = self.evaluate(test_dataset, accuracy_fn=accuracy_fn)

            loader = DataLoader(train_dataset, batch_size=batch_size, seed=seed) if train_dataset is not None else None
            train_losses = []

            for _ in range(num_generations):
                batch = loader.sample() if loader is not None else None

                backup, _ = self.engine.snapshot()
                proposal = self.optimizer.propose(batch)
                self.optimizer.update(proposal)
                loss = proposal.best_loss
                self.n_iters += 1
                train_losses.append(loss)

                # Reject the update if the loss on the current batch is not improved
                if ensure_improvement:
                    if not self.has_improvement(batch, proposal, backup, threshold=improvement_threshold):
                        self.engine.rewind()

                if verbose:
                    print_color(f"Generation {self.engine.generation}: best candidate loss {loss}", 'blue')
                    if verbose == "parameters":
                        for name, value in self.engine.parameters.items():
                            print_color(f"  {name}: {format_array(value)}", "cyan")

                # Evaluate the parameters after update
                if test_dataset is not None and eval_frequency > 0 and self.n_iters % eval_frequency == 0:
                    test_score = self.evaluate(test_dataset, accuracy_fn=accuracy_fn)

                # Logging
                if self.n_iters % log_frequency == 0:
                    self.logger.log('Best candidate loss', loss, self.n_iters)
                    if proposal.baseline is not None:
                        self.logger.log('Baseline loss', proposal.baseline, self.n_iters)
                    if log_parameters:
                        for name, value in self.engine.parameters.items():
                            self.logger.log(f"Parameter: {name}", value, self.n_iters, color='red')

                if target_loss is not None and loss <= target_loss:
                    print_color(f"Target loss {target_loss} reached after {self.n_iters} generations.", 'green')
                    break
        finally:
            # the per-call thread count does not outlive this call
            evaluator.num_threads = default_threads

        return train_losses, test_score

    def evaluate(self, dataset, accuracy_fn=None):
        """Evaluate the current parameters on a dataset and log the result.

        Returns
        -------
        float
            The accuracy if ``accuracy_fn`` is given, otherwise the loss.
        """
        parameters = self.engine.parameters
        test_loss = evaluate_loss(self.optimizer.loss_fn, parameters, dataset['inputs'], dataset['infos'])
        self.logger.log('Test loss', test_loss, self.n_iters, color='green')
        if accuracy_fn is None:
            return test_loss
        accuracy = evaluate_accuracy(accuracy_fn, parameters, dataset['inputs'], dataset['infos'])
        self.logger.log('Test accuracy', accuracy, self.n_iters, color='green')
        return accuracy

    def has_improvement(self, batch, proposal: Proposal, backup, threshold=0.):
        """Check whether the applied proposal lowered the loss on the batch.

        Parameters
        ----------
        batch : Any
            The batch the proposal was scored on.
        proposal : Proposal
            The proposal that was just applied.
        backup : ParameterSet
            Parameters before the proposal was applied.
        threshold : float, optional
            Minimum loss decrease, by default 0.

        Returns
        -------
        bool
            True if the update lowered the loss by at least ``threshold``.
        """
        evaluator = self.optimizer.evaluator
        current_loss = proposal.baseline if proposal.baseline is not None else evaluator.baseline(backup, batch)
        if proposal.seed is not None:
            # the stepped parameters are the winning candidate
            new_loss = proposal.best_loss
        else:
            new_loss = evaluator.baseline(self.engine.parameters, batch)
        if np.isnan(new_loss) or new_loss > current_loss - threshold:
            self.logger.log('Update rejected', f"Current loss {current_loss}, New loss {new_loss}", self.n_iters, color='red')
            return False
        else:
            print_color(f"Update accepted: Current loss {current_loss}, New loss {new_loss}", 'green')
            return True

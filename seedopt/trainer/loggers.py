import numpy as np


def _is_array(data):
    return isinstance(data, np.ndarray) and data.ndim > 0


class BaseLogger:

    def __init__(self, log_dir='./logs', **kwargs):
        """Initialize the logger. This method can be overridden by subclasses."""
        self.log_dir = log_dir

    def log(self, name, data, step, **kwargs):
        """Log a message with the given name and data at the specified step.

        Args:
            name: Name of the metric
            data: Value of the metric (a scalar, a string or a numpy array)
            step: Current generation
            **kwargs: Additional arguments (e.g., color)
        """
        raise NotImplementedError("Subclasses should implement this method.")


class ConsoleLogger(BaseLogger):
    """A simple logger that prints messages to the console."""

    def log(self, name, data, step, **kwargs):
        """Log a message to the console.

        Arrays are summarized by their mean and standard deviation.
        """
        color = kwargs.get('color', None)
        color_codes = {
            'green': '\033[92m',
            'red': '\033[91m',
            'blue': '\033[94m',
            'end': '\033[0m'
        }

        start_color = color_codes.get(color, '')
        end_color = color_codes['end'] if color in color_codes else ''

        if _is_array(data):
            data = f"shape={data.shape} mean={np.mean(data):.6g} std={np.std(data):.6g}"
        print(f"[Step {step}] {start_color}{name}: {data}{end_color}")


class TensorboardLogger(ConsoleLogger):
    """A logger that writes metrics to TensorBoard."""

    def __init__(self, log_dir='./logs', verbose=True, **kwargs):
        super().__init__(log_dir, **kwargs)
        self.verbose = verbose
        # Late import to avoid dependency issues
        try:
            from tensorboardX import SummaryWriter
        except ImportError:
            # try importing from torch.utils.tensorboard if tensorboardX is not available
            from torch.utils.tensorboard import SummaryWriter

        self.writer = SummaryWriter(self.log_dir)

    def log(self, name, data, step, **kwargs):
        """Log a message to TensorBoard.

        Strings are logged as text, arrays as histograms and everything else
        as a scalar.
        """
        if self.verbose:
            super().log(name, data, step, **kwargs)
        if isinstance(data, str):
            self.writer.add_text(name, data, step)
        elif _is_array(data):
            self.writer.add_histogram(name, np.asarray(data, dtype=np.float64), step)
        else:
            self.writer.add_scalar(name, float(data), step)

    def close(self):
        self.writer.close()


class WandbLogger(ConsoleLogger):
    """A logger that writes metrics to Weights and Biases (wandb)."""

    def __init__(self, log_dir='./logs', verbose=True, project=None, **kwargs):
        super().__init__(log_dir, **kwargs)
        self.verbose = verbose
        # Late import to avoid dependency issues
        try:
            import wandb
        except ImportError:
            raise ImportError("wandb is required for WandbLogger. Install it with: pip install wandb")

        self.wandb = wandb
        if not wandb.run:
            wandb.init(project=project, dir=log_dir, **kwargs)

    def log(self, name, data, step, **kwargs):
        """Log a message to Weights and Biases."""
        if self.verbose:
            super().log(name, data, step, **kwargs)

        if isinstance(data, str):
            # wandb has no add_text equivalent
            self.wandb.log({f"{name}_text": data}, step=step)
        elif _is_array(data):
            self.wandb.log({name: self.wandb.Histogram(np.asarray(data, dtype=np.float64))}, step=step)
        else:
            self.wandb.log({name: data}, step=step)


DefaultLogger = ConsoleLogger

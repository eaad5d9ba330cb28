import numpy as np


class DataLoader:

    def __init__(self, dataset, batch_size=1, replacement=False, shuffle=True, seed=None):
        """ Initialize the data loader

        Args:
            dataset: the dataset to load (a dict of inputs and infos)
            batch_size: the number of samples to load in each batch
            replacement: whether to sample with replacement
            shuffle: whether to shuffle the dataset after each epoch
            seed: seed of the sampling order, for reproducible runs
        """
        assert isinstance(dataset, dict), "Dataset must be a dict"
        assert 'inputs' in dataset and 'infos' in dataset, "Dataset must have 'inputs' and 'infos' key"
        assert len(dataset['inputs']) == len(dataset['infos']), "Inputs and infos must have the same length"
        assert len(dataset['inputs']) > 0, "Dataset must not be empty"
        assert batch_size > 0, "Batch size must be positive"

        self.dataset = dataset
        self.batch_size = batch_size
        self.replacement = replacement
        self.shuffle = shuffle
        self._rng = np.random.default_rng(seed)
        self._indices = self._update_indices()
        self._i = 0

    def __len__(self):
        """Number of batches in one epoch."""
        return -(-len(self.dataset['inputs']) // self.batch_size)

    def __iter__(self):
        indices = self._indices
        for i in range(self._i, len(indices), self.batch_size):
            self._i = i + self.batch_size
            yield self._batch(indices[i:i + self.batch_size])
        self._i = 0

        if self.shuffle:
            self._indices = self._update_indices()

    def __next__(self):
        """ Return the next batch of the current epoch; StopIteration ends the epoch and starts a new one. """
        if self._i >= len(self._indices):
            self._i = 0
            if self.shuffle:
                self._indices = self._update_indices()
            raise StopIteration
        batch = self._batch(self._indices[self._i:self._i + self.batch_size])
        self._i += self.batch_size
        return batch

    def sample(self):
        """ Return the next batch, starting a new epoch when the current one is exhausted. """
        if self._i >= len(self._indices):
            self._i = 0
            if self.shuffle:
                self._indices = self._update_indices()
        batch = self._batch(self._indices[self._i:self._i + self.batch_size])
        self._i += self.batch_size
        return batch

    def _batch(self, indices):
        xs = [self.dataset['inputs'][ind] for ind in indices]
        infos = [self.dataset['infos'][ind] for ind in indices]
        return xs, infos

    def _update_indices(self):
        N = len(self.dataset['inputs'])
        if not self.shuffle and not self.replacement:
            return np.arange(N)
        return self._rng.choice(N, size=N, replace=self.replacement)

import sys
import types
import numpy as np
import pytest

from seedopt.trainer.loggers import BaseLogger, ConsoleLogger, DefaultLogger, TensorboardLogger, WandbLogger


def test_default_logger_is_console():
    assert DefaultLogger is ConsoleLogger


def test_base_logger_is_abstract():
    with pytest.raises(NotImplementedError):
        BaseLogger().log('loss', 1.0, 0)


def test_console_logger(capsys):
    logger = ConsoleLogger()
    logger.log('Best candidate loss', 0.5, 3)
    logger.log('Parameter: w', np.array([1.0, 3.0]), 3, color='red')
    out = capsys.readouterr().out
    assert "[Step 3] Best candidate loss: 0.5" in out
    assert "Parameter: w: shape=(2,) mean=2 std=1" in out


def test_tensorboard_logger(tmp_path):
    pytest.importorskip("tensorboardX")
    logger = TensorboardLogger(log_dir=str(tmp_path), verbose=False)
    logger.log('Best candidate loss', 0.25, 1)
    logger.log('message', 'hello', 1)
    logger.log('Parameter: w', np.random.default_rng(0).normal(size=16), 1)
    logger.log('Parameter: b', np.float32(0.5), 1)
    logger.close()
    assert any(tmp_path.iterdir()), "TensorBoard event file should be written"


class FakeWandb(types.ModuleType):

    def __init__(self):
        super().__init__('wandb')
        self.run = None
        self.logged = []

    def init(self, **kwargs):
        self.run = object()

    def log(self, data, step=None):
        self.logged.append((data, step))

    class Histogram:
        def __init__(self, values):
            self.values = values


def test_wandb_logger(monkeypatch):
    fake = FakeWandb()
    monkeypatch.setitem(sys.modules, 'wandb', fake)
    logger = WandbLogger(verbose=False, project='seedopt')
    assert fake.run is not None
    logger.log('Test loss', 1.5, 2)
    logger.log('message', 'done', 2)
    logger.log('Parameter: w', np.ones(4), 2)
    assert fake.logged[0] == ({'Test loss': 1.5}, 2)
    assert fake.logged[1] == ({'message_text': 'done'}, 2)
    histogram = fake.logged[2][0]['Parameter: w']
    assert isinstance(histogram, FakeWandb.Histogram)
    assert np.array_equal(histogram.values, np.ones(4))

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np

from seedopt.errors import ConfigurationError
from seedopt.noise import NoiseGenerator, SUPPORTED_DTYPES


@dataclass(frozen=True)
class ParameterDefinition:
    """Declarative description of one optimized tensor.

    Parameters
    ----------
    name : str
        Unique name of the parameter.
    shape : tuple of int
        Shape of the tensor. Every dimension must be a positive integer;
        ``()`` declares a scalar.
    dtype : numpy dtype, default float32
        Floating element type (float16, float32 or float64). The initial value
        is a tensor of zeros of this type.
    noise : NoiseGenerator, optional
        Noise used for this parameter instead of the engine's generator. Use
        ``NullNoise()`` to keep a parameter fixed.

    Raises
    ------
    ConfigurationError
        If the name is empty, a dimension is not a positive integer or the
        dtype is not a supported floating type.
    """

    name: str
    shape: Tuple[int, ...] = ()
    dtype: np.dtype = field(default=np.dtype(np.float32))
    noise: Optional[NoiseGenerator] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(f"Parameter name must be a non-empty string, got {self.name!r}.")
        if isinstance(self.shape, (int, np.integer)):
            raise ConfigurationError(f"Shape of '{self.name}' must be a sequence of integers, got {self.shape!r}.")
        try:
            shape = tuple(self.shape)
        except TypeError:
            raise ConfigurationError(f"Shape of '{self.name}' must be a sequence of integers, got {self.shape!r}.")
        for d in shape:
            if isinstance(d, bool) or not isinstance(d, (int, np.integer)) or d <= 0:
                raise ConfigurationError(
                    f"Shape of '{self.name}' must contain positive integers, got {shape!r}.")
        try:
            dtype = np.dtype(self.dtype)
        except TypeError:
            raise ConfigurationError(f"Invalid dtype for '{self.name}': {self.dtype!r}.")
        if dtype not in SUPPORTED_DTYPES:
            raise ConfigurationError(
                f"Parameter '{self.name}' must have a floating dtype (float16, float32 or float64), got {dtype}.")
        if self.noise is not None and not isinstance(self.noise, NoiseGenerator):
            raise ConfigurationError(f"Noise override of '{self.name}' must be a NoiseGenerator, got {type(self.noise)}.")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'shape', tuple(int(d) for d in shape))
        object.__setattr__(self, 'dtype', dtype)

    def zero(self) -> np.ndarray:
        """Return the initial all-zero value."""
        return np.zeros(self.shape, dtype=self.dtype)

    @property
    def size(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64))


def check_definitions(definitions: Iterable[ParameterDefinition]) -> List[ParameterDefinition]:
    """Validate a list of definitions and return it as a list.

    Raises ConfigurationError when the list is empty, holds something other than
    ParameterDefinition or repeats a name.
    """
    if isinstance(definitions, ParameterDefinition):
        definitions = [definitions]
    definitions = list(definitions)
    if len(definitions) == 0:
        raise ConfigurationError("At least one parameter definition is required.")
    seen = set()
    for d in definitions:
        if not isinstance(d, ParameterDefinition):
            raise ConfigurationError(f"Expected ParameterDefinition, got {type(d)}.")
        if d.name in seen:
            raise ConfigurationError(f"Duplicate parameter name '{d.name}'.")
        seen.add(d.name)
    return definitions


def _frozen(value: np.ndarray, dtype) -> np.ndarray:
    value = np.array(value, dtype=dtype, copy=True)
    value.setflags(write=False)
    return value


class ParameterSet(Mapping):
    """Immutable, ordered mapping of parameter names to tensors.

    The order is the order of the definitions; the position of a parameter is
    the disambiguating index ``k`` added to every seed when its noise is drawn.
    Values are stored as read-only copies, so a ParameterSet handed to a loss
    function can never be changed underneath it. Updating parameters produces a
    new ParameterSet (see :meth:`replace`).

    Parameters
    ----------
    definitions : list of ParameterDefinition
        The parameters, in order.
    values : dict, optional
        Values by name. Missing names start at zero. Each value must have the
        shape declared by its definition.
    """

    def __init__(self, definitions: Sequence[ParameterDefinition], values: Optional[Dict[str, np.ndarray]] = None):
        definitions = check_definitions(definitions)
        values = values or {}
        unknown = set(values) - {d.name for d in definitions}
        if unknown:
            raise ConfigurationError(f"Unknown parameter name(s): {sorted(unknown)}.")
        data = {}
        for d in definitions:
            if d.name in values:
                value = np.asarray(values[d.name])
                if value.shape != d.shape:
                    raise ConfigurationError(
                        f"Value of '{d.name}' has shape {value.shape}, expected {d.shape}.")
                data[d.name] = _frozen(value, d.dtype)
            else:
                data[d.name] = _frozen(d.zero(), d.dtype)
        self._definitions = tuple(definitions)
        self._index = {d.name: k for k, d in enumerate(definitions)}
        self._data = data

    @classmethod
    def zeros(cls, definitions: Sequence[ParameterDefinition]) -> 'ParameterSet':
        return cls(definitions)

    @property
    def definitions(self) -> Tuple[ParameterDefinition, ...]:
        return self._definitions

    def index(self, name: str) -> int:
        """Disambiguating index of a parameter (its position in definition order)."""
        return self._index[name]

    def definition(self, name: str) -> ParameterDefinition:
        return self._definitions[self._index[name]]

    def replace(self, values: Dict[str, np.ndarray]) -> 'ParameterSet':
        """Return a new ParameterSet with some values replaced."""
        merged = dict(self._data)
        merged.update(values)
        return ParameterSet(self._definitions, merged)

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Writable copies of all values."""
        return {name: np.array(value, copy=True) for name, value in self._data.items()}

    def __getitem__(self, name: str) -> np.ndarray:
        return self._data[name]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __eq__(self, other):
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return (self._definitions == other._definitions
                and all(np.array_equal(self._data[k], other._data[k]) for k in self._data))

    __hash__ = None

    def __repr__(self):
        items = ", ".join(f"{d.name}: {d.dtype}{list(d.shape)}" for d in self._definitions)
        return f"ParameterSet({items})"

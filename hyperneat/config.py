"""
HyperNEAT run parameters.

Parameters are resolved once into an immutable ``HyperNEATParameters`` value
and handed to the substrate and the population evaluators by reference.

The on-disk format is the plain ``params.txt`` layout:

    threshold 0.2
    weightRange 3.0
    numberOfThreads 4
    substrateActivationFunction sigmoid
    StartActivationFunctions
    sigmoid 0.5
    gaussian 0.25
    sine 0.25
    EndActivationFunctions

Keys are case-insensitive. Lines inside the activation block are
``name probability`` pairs.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Any, Optional, Union

from loguru import logger

from .core.activations import ACTIVATIONS
from .exceptions import ConfigurationError, MissingConfigurationError


DEFAULT_PARAMS_FILE = 'params.txt'
DEFAULT_SUBSTRATE_ACTIVATION = 'sigmoid'

ACTIVATION_BLOCK_START = 'startactivationfunctions'
ACTIVATION_BLOCK_END = 'endactivationfunctions'


@dataclass(frozen=True)
class HyperNEATParameters:
    """
    Resolved parameters shared by the substrate encoder and evaluators.

    Attributes:
        threshold: Pruning threshold on |CPPN output|, in [0, 1)
        weight_range: Magnitude of the largest phenotype weight
        num_threads: Parallel evaluation hint (0 or 1 runs inline)
        substrate_activation_function: Activation name for substrate neurons
        activation_probabilities: CPPN activation name -> selection probability
        parameters: Every raw ``key value`` pair read from the file
    """
    threshold: Optional[float] = None
    weight_range: Optional[float] = None
    num_threads: int = 0
    substrate_activation_function: Optional[str] = None
    activation_probabilities: Dict[str, float] = field(default_factory=dict)
    parameters: Dict[str, str] = field(default_factory=dict)

    def require(self, name: str) -> float:
        """Return a resolved numeric parameter or raise MissingConfigurationError."""
        value = getattr(self, name, None)
        if value is None:
            raise MissingConfigurationError(name)
        return value

    def get_parameter(self, key: str) -> Optional[str]:
        """Raw string value for a file key, or None when absent."""
        return self.parameters.get(key.lower())

    @property
    def substrate_activation(self) -> str:
        return self.substrate_activation_function or DEFAULT_SUBSTRATE_ACTIVATION

    def with_overrides(self, **changes: Any) -> 'HyperNEATParameters':
        """Copy with some fields replaced (this instance is left untouched)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'threshold': self.threshold,
            'weight_range': self.weight_range,
            'num_threads': self.num_threads,
            'substrate_activation_function': self.substrate_activation_function,
            'activation_probabilities': dict(self.activation_probabilities),
        }


def _parse_float(key: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Parameter '{key}' is not a number: {raw!r}") from None


def _parse_int(key: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Parameter '{key}' is not an integer: {raw!r}") from None


def _check_activation(key: str, name: str) -> str:
    if name not in ACTIVATIONS:
        raise ConfigurationError(
            f"Parameter '{key}' names unknown activation {name!r}. "
            f"Available: {list(ACTIVATIONS.keys())}"
        )
    return name


def parse_parameters(text: str) -> HyperNEATParameters:
    """
    Parse the contents of a params file.

    Args:
        text: File contents

    Returns:
        HyperNEATParameters with every recognised key resolved

    Raises:
        ConfigurationError: On malformed lines, bad numbers or unknown
            activation names
    """
    parameters: Dict[str, str] = {}
    activation_probabilities: Dict[str, float] = {}
    reading_activations = False

    for line_number, line in enumerate(text.splitlines(), start=1):
        fields = line.split()
        if not fields or fields[0].startswith('#'):
            continue

        key = fields[0]
        if key.lower() == ACTIVATION_BLOCK_START:
            reading_activations = True
            continue
        if key.lower() == ACTIVATION_BLOCK_END:
            reading_activations = False
            continue

        if len(fields) < 2:
            raise ConfigurationError(f"Line {line_number}: expected 'key value', got {line.strip()!r}")

        if reading_activations:
            activation_probabilities[_check_activation(key, key)] = _parse_float(key, fields[1])
        else:
            parameters[key.lower()] = fields[1]

    threshold = None
    if 'threshold' in parameters:
        threshold = _parse_float('threshold', parameters['threshold'])

    weight_range = None
    if 'weightrange' in parameters:
        weight_range = _parse_float('weightRange', parameters['weightrange'])

    num_threads = 0
    if 'numberofthreads' in parameters:
        num_threads = _parse_int('numberOfThreads', parameters['numberofthreads'])

    substrate_activation = None
    if 'substrateactivationfunction' in parameters:
        substrate_activation = _check_activation(
            'substrateActivationFunction', parameters['substrateactivationfunction'])

    return HyperNEATParameters(
        threshold=threshold,
        weight_range=weight_range,
        num_threads=num_threads,
        substrate_activation_function=substrate_activation,
        activation_probabilities=activation_probabilities,
        parameters=parameters,
    )


def load_parameters(path: Union[str, Path] = DEFAULT_PARAMS_FILE) -> HyperNEATParameters:
    """
    Load parameters from a params file.

    Raises:
        ConfigurationError: If the file cannot be read or holds bad values
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Error reading {path}: {e}") from e

    params = parse_parameters(text)
    logger.debug(f"Loaded parameters from {path}: {params.to_dict()}")
    return params

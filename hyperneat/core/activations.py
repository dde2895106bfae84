"""
Activation functions for CPPN and substrate neurons.

CPPNs mix activation functions so that a small genotype can express regular
geometric patterns:
- Sigmoidal: smooth, bounded responses (sigmoid, tanh)
- Symmetric: gaussian and abs give mirrored patterns across an axis
- Periodic: sine gives repetition along an axis
- Piecewise: linear, relu, step
"""

import random
from typing import Callable, Dict, Optional, Union

import numpy as np


def linear(x: np.ndarray) -> np.ndarray:
    """Identity activation - no nonlinearity."""
    return x


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Steepened sigmoid, bounded (0, 1)."""
    # Clip to avoid overflow
    x = np.clip(x, -100, 100)
    return 1 / (1 + np.exp(-4.9 * x))


def tanh(x: np.ndarray) -> np.ndarray:
    """Hyperbolic tangent - smooth, bounded (-1, 1)."""
    return np.tanh(x)


def gaussian(x: np.ndarray) -> np.ndarray:
    """Bipolar gaussian, peaks at 1 for x=0 and falls to -1."""
    return 2 * np.exp(-(x * 2.5) ** 2) - 1


def sine(x: np.ndarray) -> np.ndarray:
    """Sinusoidal activation - periodic, useful for coordinate networks."""
    return np.sin(x)


def absolute(x: np.ndarray) -> np.ndarray:
    return np.abs(x)


def step(x: np.ndarray) -> np.ndarray:
    return np.where(x > 0, 1.0, 0.0)


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(0, x)


class Activation:
    """Wrapper for an activation function with its metadata."""

    def __init__(
        self,
        name: str,
        func: Callable,
        family: str,
        properties: Dict
    ):
        self.name = name
        self.func = func
        self.family = family
        self.properties = properties

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.func(x)

    def __repr__(self):
        return f"Activation({self.name}, family={self.family})"


# Registry of all activation functions
ACTIVATIONS: Dict[str, Activation] = {
    'linear': Activation(
        name='linear',
        func=linear,
        family='piecewise',
        properties={
            'bounded': False,
            'symmetric': False,
            'range': (-np.inf, np.inf),
            'description': 'Identity function - no nonlinearity'
        }
    ),
    'sigmoid': Activation(
        name='sigmoid',
        func=sigmoid,
        family='sigmoidal',
        properties={
            'bounded': True,
            'symmetric': False,
            'range': (0, 1),
            'description': 'Steepened sigmoid (slope 4.9)'
        }
    ),
    'tanh': Activation(
        name='tanh',
        func=tanh,
        family='sigmoidal',
        properties={
            'bounded': True,
            'symmetric': False,
            'range': (-1, 1),
            'description': 'Hyperbolic tangent - zero-centred sigmoid'
        }
    ),
    'gaussian': Activation(
        name='gaussian',
        func=gaussian,
        family='symmetric',
        properties={
            'bounded': True,
            'symmetric': True,
            'range': (-1, 1),
            'description': 'Bipolar gaussian - mirrored pattern about zero'
        }
    ),
    'sine': Activation(
        name='sine',
        func=sine,
        family='periodic',
        properties={
            'bounded': True,
            'symmetric': False,
            'range': (-1, 1),
            'description': 'Sine - repeating pattern along an axis'
        }
    ),
    'abs': Activation(
        name='abs',
        func=absolute,
        family='symmetric',
        properties={
            'bounded': False,
            'symmetric': True,
            'range': (0, np.inf),
            'description': 'Absolute value - mirrored, unbounded'
        }
    ),
    'step': Activation(
        name='step',
        func=step,
        family='piecewise',
        properties={
            'bounded': True,
            'symmetric': False,
            'range': (0, 1),
            'description': 'Heaviside step - hard threshold at zero'
        }
    ),
    'relu': Activation(
        name='relu',
        func=relu,
        family='piecewise',
        properties={
            'bounded': False,
            'symmetric': False,
            'range': (0, np.inf),
            'description': 'Rectified Linear Unit'
        }
    ),
}


def get_activation(activation: Union[str, Activation]) -> Activation:
    """Get activation function by name (Activation instances pass through)."""
    if isinstance(activation, Activation):
        return activation
    if activation not in ACTIVATIONS:
        raise KeyError(
            f"Unknown activation: {activation}. "
            f"Available: {list(ACTIVATIONS.keys())}"
        )
    return ACTIVATIONS[activation]


def choose_activation(
    probabilities: Dict[str, float],
    rng: Optional[random.Random] = None,
) -> Activation:
    """
    Draw an activation in proportion to the configured probabilities.

    Probabilities need not sum to 1; they are normalised. With no positive
    weight configured, sigmoid is returned.
    """
    rng = rng or random
    names = [name for name, p in probabilities.items() if p > 0]
    if not names:
        return ACTIVATIONS['sigmoid']

    total = sum(probabilities[name] for name in names)
    pick = rng.random() * total
    cumulative = 0.0
    for name in names:
        cumulative += probabilities[name]
        if pick < cumulative:
            return get_activation(name)
    return get_activation(names[-1])

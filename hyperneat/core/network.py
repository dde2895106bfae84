"""
Recurrent network execution.

A decoded genome runs as a discrete-time recurrent network: each step every
non-input neuron takes the weighted sum of all source outputs from the
previous step and passes it through its own activation function. Input
neurons simply hold whatever was injected. Neurons are ordered
inputs | outputs | hidden.
"""

from typing import Dict, List, Protocol, Sequence, Tuple

import numpy as np

from .activations import Activation


class Network(Protocol):
    """What evaluators and the substrate need from an executable network."""

    total_neuron_count: int
    input_neuron_count: int
    output_neuron_count: int

    def clear_signals(self) -> None: ...

    def set_input_signals(self, values: Sequence[float]) -> None: ...

    def multiple_steps(self, steps: int) -> None: ...

    def get_output_signal(self, index: int) -> float: ...


class RecurrentNetwork:
    """
    Discrete-time recurrent network backed by a dense weight matrix.

    Args:
        activations: One activation per neuron, in neuron order
        input_count: Number of leading input neurons
        output_count: Number of output neurons following the inputs
        connections: (source index, target index, weight) triples using
            positional neuron indices
    """

    def __init__(
        self,
        activations: List[Activation],
        input_count: int,
        output_count: int,
        connections: Sequence[Tuple[int, int, float]],
    ):
        if input_count + output_count > len(activations):
            raise ValueError(
                f"{input_count} inputs + {output_count} outputs exceed "
                f"{len(activations)} neurons"
            )

        self.activations = activations
        self.total_neuron_count = len(activations)
        self.input_neuron_count = input_count
        self.output_neuron_count = output_count

        n = self.total_neuron_count
        # weights[target, source]
        self.weights = np.zeros((n, n))
        for source, target, weight in connections:
            self.weights[target, source] += weight

        # Group non-input neurons by activation so each step is vectorised
        groups: Dict[str, List[int]] = {}
        self._group_functions: Dict[str, Activation] = {}
        for idx in range(input_count, n):
            act = activations[idx]
            groups.setdefault(act.name, []).append(idx)
            self._group_functions[act.name] = act
        self._groups = {name: np.array(idxs, dtype=int) for name, idxs in groups.items()}

        self.signals = np.zeros(n)

    @property
    def connection_count(self) -> int:
        return int(np.count_nonzero(self.weights))

    def clear_signals(self) -> None:
        """Reset every neuron's output to zero."""
        self.signals[:] = 0.0

    def set_input_signals(self, values: Sequence[float]) -> None:
        """Inject an input vector; extra values are ignored, missing ones stay put."""
        values = np.asarray(values, dtype=float)
        count = min(len(values), self.input_neuron_count)
        self.signals[:count] = values[:count]

    def single_step(self) -> None:
        totals = self.weights @ self.signals
        updated = self.signals.copy()
        for name, idxs in self._groups.items():
            updated[idxs] = self._group_functions[name](totals[idxs])
        self.signals = updated

    def multiple_steps(self, steps: int) -> None:
        for _ in range(steps):
            self.single_step()

    def get_output_signal(self, index: int) -> float:
        if not 0 <= index < self.output_neuron_count:
            raise IndexError(f"Output {index} out of range ({self.output_neuron_count} outputs)")
        return float(self.signals[self.input_neuron_count + index])

    def activate(self, inputs: Sequence[float], steps: int = 1) -> np.ndarray:
        """Clear, inject inputs, relax for ``steps`` and return all outputs."""
        self.clear_signals()
        self.set_input_signals(inputs)
        self.multiple_steps(steps)
        start = self.input_neuron_count
        return self.signals[start:start + self.output_neuron_count].copy()

    def __repr__(self) -> str:
        return (
            f"RecurrentNetwork(neurons={self.total_neuron_count}, "
            f"inputs={self.input_neuron_count}, outputs={self.output_neuron_count}, "
            f"connections={self.connection_count})"
        )

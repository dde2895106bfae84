"""
Substrate encoding: expanding a CPPN into a phenotype genome.

The substrate is a fixed geometric layout of neurons on three horizontal
rows of the square [-1, 1] x [-1, 1]:

    y = +1   outputs
    y =  0   hidden
    y = -1   inputs

Within a row, neurons are spread evenly: neuron i of a row with n slots sits
at x = -1 + delta/2 + i * delta with delta = 2/n. Every candidate connection
(source, target) is turned into the coordinate vector
(sourceX, sourceY, targetX, targetY), fed to the CPPN, and the CPPN's first
output decides whether the connection exists and with what weight.

Two indexes are in play: the global index over the ordered neuron list
inputs | outputs | hidden, and the within-layer index of a neuron in its own
row. Everything below takes global indexes.
"""

from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from ..config import HyperNEATParameters
from ..core.activations import Activation, get_activation
from ..core.genome import ConnectionGene, NeatGenome, NeuronGene, NeuronType
from ..core.network import Network
from ..exceptions import ConfigurationError, InvalidNodeIndexError


# Row (y coordinate) of each neuron type
LAYER_Y = {
    NeuronType.INPUT: -1.0,
    NeuronType.HIDDEN: 0.0,
    NeuronType.OUTPUT: 1.0,
}

COORDINATE_COUNT = 4

CoordinateMapper = Callable[['Substrate', int, int], Sequence[float]]


def layer_delta(count: int) -> float:
    """Spacing between neighbouring neurons of a row with ``count`` slots."""
    return 2.0 / count if count > 0 else 0.0


def rescale_weight(raw: float, threshold: float, weight_range: float) -> float:
    """
    Map a CPPN output that passed the threshold onto a phenotype weight.

    The magnitude grows linearly from 0 at |raw| == threshold to
    weight_range at |raw| == 1; the sign is the sign of raw.
    """
    magnitude = (abs(raw) - threshold) / (1.0 - threshold) * weight_range
    return float(np.sign(raw) * magnitude)


def grid_coordinates(substrate: 'Substrate', source: int, target: int) -> np.ndarray:
    """Default geometry: evenly spaced rows at y = -1 (in), 0 (hidden), +1 (out)."""
    coordinates = np.empty(COORDINATE_COUNT)
    coordinates[0], coordinates[1] = substrate.position(source)
    coordinates[2], coordinates[3] = substrate.position(target)
    return coordinates


def relaxation_steps(network: Network) -> int:
    """
    Steps needed for a signal to cross the CPPN twice.

    Two passes over every neuron that is neither input nor output, plus one.
    A settling heuristic, not a convergence guarantee.
    """
    hidden = network.total_neuron_count - (network.input_neuron_count + network.output_neuron_count)
    return 2 * hidden + 1


class Substrate:
    """
    Fixed neuron layout against which CPPN outputs are read as connections.

    Args:
        input_count: Number of substrate input neurons
        output_count: Number of substrate output neurons
        hidden_count: Number of substrate hidden neurons (0 wires inputs
            straight to outputs)
        activation: Activation for every substrate neuron (the configured
            substrate activation when None)
        params: Resolved run parameters; threshold and weight_range are required
        coordinate_mapper: Geometry used to build each CPPN query
    """

    def __init__(
        self,
        input_count: int,
        output_count: int,
        hidden_count: int,
        activation: Optional[Union[str, Activation]],
        params: HyperNEATParameters,
        coordinate_mapper: CoordinateMapper = grid_coordinates,
    ):
        for name, count in (('input_count', input_count),
                            ('output_count', output_count),
                            ('hidden_count', hidden_count)):
            if count < 0:
                raise ValueError(f"{name} must be non-negative, got {count}")

        threshold = float(params.require('threshold'))
        weight_range = float(params.require('weight_range'))
        if not 0.0 <= threshold < 1.0:
            raise ConfigurationError(f"threshold must lie in [0, 1), got {threshold}")

        self._input_count = input_count
        self._output_count = output_count
        self._hidden_count = hidden_count
        self._threshold = threshold
        self._weight_range = weight_range
        try:
            self._activation = get_activation(activation if activation is not None else params.substrate_activation)
        except KeyError as e:
            raise ConfigurationError(e.args[0]) from e
        self._coordinate_mapper = coordinate_mapper

        self._input_delta = layer_delta(input_count)
        self._output_delta = layer_delta(output_count)
        self._hidden_delta = layer_delta(hidden_count)

        # Every index computation below relies on this order
        name = self._activation.name
        neurons = [NeuronGene(i, NeuronType.INPUT, name) for i in range(input_count)]
        neurons += [NeuronGene(input_count + i, NeuronType.OUTPUT, name) for i in range(output_count)]
        neurons += [
            NeuronGene(input_count + output_count + i, NeuronType.HIDDEN, name)
            for i in range(hidden_count)
        ]
        self._neurons: Tuple[NeuronGene, ...] = tuple(neurons)

    @property
    def input_count(self) -> int:
        return self._input_count

    @property
    def output_count(self) -> int:
        return self._output_count

    @property
    def hidden_count(self) -> int:
        return self._hidden_count

    @property
    def neuron_count(self) -> int:
        return len(self._neurons)

    @property
    def input_delta(self) -> float:
        return self._input_delta

    @property
    def output_delta(self) -> float:
        return self._output_delta

    @property
    def hidden_delta(self) -> float:
        return self._hidden_delta

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def weight_range(self) -> float:
        return self._weight_range

    @property
    def activation(self) -> Activation:
        return self._activation

    @property
    def neurons(self) -> Tuple[NeuronGene, ...]:
        return self._neurons

    # Global index <-> layer helpers

    def is_input(self, node: int) -> bool:
        return 0 <= node < self._input_count

    def is_output(self, node: int) -> bool:
        return self._input_count <= node < self._input_count + self._output_count

    def is_hidden(self, node: int) -> bool:
        start = self._input_count + self._output_count
        return start <= node < start + self._hidden_count

    def index_for_input(self, input_index: int) -> int:
        return input_index

    def index_for_output(self, output_index: int) -> int:
        return output_index + self._input_count

    def index_for_hidden(self, hidden_index: int) -> int:
        return hidden_index + self._input_count + self._output_count

    def layer_of(self, node: int) -> NeuronType:
        if self.is_input(node):
            return NeuronType.INPUT
        if self.is_output(node):
            return NeuronType.OUTPUT
        if self.is_hidden(node):
            return NeuronType.HIDDEN
        raise InvalidNodeIndexError(node, self.neuron_count)

    def index_for_type(self, node: int) -> int:
        """Within-layer index of a global node index."""
        layer = self.layer_of(node)
        if layer is NeuronType.INPUT:
            return node
        if layer is NeuronType.OUTPUT:
            return node - self._input_count
        return node - self._input_count - self._output_count

    def delta_for_node(self, node: int) -> float:
        layer = self.layer_of(node)
        if layer is NeuronType.INPUT:
            return self._input_delta
        if layer is NeuronType.OUTPUT:
            return self._output_delta
        return self._hidden_delta

    def position(self, node: int) -> Tuple[float, float]:
        """(x, y) of a node on the default grid."""
        layer = self.layer_of(node)
        delta = self.delta_for_node(node)
        x = -1.0 + delta / 2.0 + self.index_for_type(node) * delta
        return x, LAYER_Y[layer]

    def coordinates(self, source: int, target: int) -> np.ndarray:
        """Coordinate vector for one CPPN query, via the configured mapper."""
        coords = np.asarray(self._coordinate_mapper(self, source, target), dtype=float)
        if coords.shape != (COORDINATE_COUNT,):
            raise ValueError(
                f"Coordinate mapper returned shape {coords.shape}, expected ({COORDINATE_COUNT},)"
            )
        return coords

    def weight(self, raw: float) -> float:
        return rescale_weight(raw, self._threshold, self._weight_range)

    def connection_pairs(self) -> List[Tuple[int, int]]:
        """Every (source, target) global index pair the CPPN is queried for."""
        inputs = [self.index_for_input(i) for i in range(self._input_count)]
        outputs = [self.index_for_output(o) for o in range(self._output_count)]
        if self._hidden_count > 0:
            hidden = [self.index_for_hidden(h) for h in range(self._hidden_count)]
            return (
                [(i, h) for i in inputs for h in hidden]
                + [(h, o) for h in hidden for o in outputs]
            )
        return [(i, o) for i in inputs for o in outputs]

    # Encoding

    def query(self, cppn: Network, source: int, target: int, steps: int) -> float:
        """Relax the CPPN on one coordinate vector and read its first output."""
        cppn.clear_signals()
        cppn.set_input_signals(self.coordinates(source, target))
        cppn.multiple_steps(steps)
        return cppn.get_output_signal(0)

    def generate_genome(self, cppn: Network, genome_id=0) -> NeatGenome:
        """
        Build a phenotype genome by querying the CPPN for every candidate
        connection.

        Connections are kept only where |output| exceeds the threshold; ids
        are assigned sequentially in query order.

        Args:
            cppn: Decoded CPPN network
            genome_id: Identifier for the produced genome

        Returns:
            NeatGenome over the substrate's neuron list
        """
        steps = relaxation_steps(cppn)
        connections: List[ConnectionGene] = []
        pairs = self.connection_pairs()

        for source, target in pairs:
            output = self.query(cppn, source, target, steps)
            if abs(output) > self._threshold:
                connections.append(
                    ConnectionGene(len(connections), source, target, self.weight(output))
                )

        logger.debug(
            f"Substrate {self.input_count}x{self.hidden_count}x{self.output_count}: "
            f"{len(pairs)} queries, {len(connections)} connections kept"
        )
        return NeatGenome(
            genome_id=genome_id,
            neurons=list(self._neurons),
            connections=connections,
            input_count=self._input_count,
            output_count=self._output_count,
        )

    def generate_network(self, cppn: Network, genome_id=0):
        """Encode the CPPN and decode the phenotype with the substrate activation."""
        return self.generate_genome(cppn, genome_id).decode(self._activation)

    def __repr__(self) -> str:
        return (
            f"Substrate(inputs={self._input_count}, outputs={self._output_count}, "
            f"hidden={self._hidden_count}, threshold={self._threshold}, "
            f"weight_range={self._weight_range}, activation={self._activation.name})"
        )

"""
Genome representation for CPPNs and substrate phenotypes.

A NeatGenome is a plain neuron/connection list. The same structure serves as
the compact genotype (a CPPN queried by the substrate) and as the phenotype
the substrate produces. Either one decodes into a RecurrentNetwork.

Key features:
- Neuron list ordered inputs | outputs | hidden
- Per-neuron activation functions (CPPNs mix them freely)
- Mutable fitness bookkeeping written by the population evaluators
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union
import random
import uuid

from loguru import logger

from ..exceptions import DecodeError
from .activations import Activation, choose_activation, get_activation
from .network import Network, RecurrentNetwork


class NeuronType(str, Enum):
    INPUT = 'input'
    OUTPUT = 'output'
    HIDDEN = 'hidden'


# Position of each type in a well-formed neuron list
NEURON_ORDER = {NeuronType.INPUT: 0, NeuronType.OUTPUT: 1, NeuronType.HIDDEN: 2}

CPPN_INPUT_COUNT = 4  # (sourceX, sourceY, targetX, targetY)
CPPN_OUTPUT_COUNT = 1


def generate_genome_id(generation: int = 0, prefix: str = '') -> str:
    """Generate a unique genome identifier."""
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_gen{generation}_{short_uuid}"
    return f"gen{generation}_{short_uuid}"


@dataclass(frozen=True)
class NeuronGene:
    neuron_id: int
    neuron_type: NeuronType
    activation: str = 'sigmoid'


@dataclass(frozen=True)
class ConnectionGene:
    connection_id: int
    source_id: int
    target_id: int
    weight: float


class Genome(Protocol):
    """What the population evaluators need from a genome."""

    genome_id: Any
    fitness: float
    total_fitness: float
    evaluation_count: int

    def decode(self, activation: Optional[Activation] = None) -> Optional[Network]: ...


@dataclass
class NeatGenome:
    """
    Neuron/connection genome.

    Attributes:
        genome_id: Identifier for this genome
        neurons: Neuron genes, inputs first, then outputs, then hidden
        connections: Connection genes referring to neuron ids
        input_count: Number of input neurons
        output_count: Number of output neurons
        fitness: Fitness assigned by the last evaluation
        total_fitness: Accumulated fitness (mirrors fitness for single evaluations)
        evaluation_count: How many evaluations contributed to fitness
    """
    genome_id: Any
    neurons: List[NeuronGene]
    connections: List[ConnectionGene]
    input_count: int
    output_count: int
    fitness: float = 0.0
    total_fitness: float = 0.0
    evaluation_count: int = 0

    def __post_init__(self):
        """Validate neuron layout."""
        counts = {t: 0 for t in NeuronType}
        last_rank = 0
        for neuron in self.neurons:
            rank = NEURON_ORDER[neuron.neuron_type]
            if rank < last_rank:
                raise ValueError(
                    f"Neuron {neuron.neuron_id} ({neuron.neuron_type.value}) is out of "
                    f"order; neurons must be ordered inputs, outputs, hidden"
                )
            last_rank = rank
            counts[neuron.neuron_type] += 1

        if counts[NeuronType.INPUT] != self.input_count:
            raise ValueError(
                f"Genome declares {self.input_count} inputs but has "
                f"{counts[NeuronType.INPUT]} input neurons"
            )
        if counts[NeuronType.OUTPUT] != self.output_count:
            raise ValueError(
                f"Genome declares {self.output_count} outputs but has "
                f"{counts[NeuronType.OUTPUT]} output neurons"
            )

    @property
    def hidden_count(self) -> int:
        return len(self.neurons) - self.input_count - self.output_count

    def decode(self, activation: Optional[Union[str, Activation]] = None) -> Optional[RecurrentNetwork]:
        """
        Build an executable network.

        Args:
            activation: Optional override applied to every neuron

        Returns:
            RecurrentNetwork, or None when a connection names an unknown neuron

        Raises:
            DecodeError: If a neuron names an unknown activation function
        """
        positions = {neuron.neuron_id: i for i, neuron in enumerate(self.neurons)}

        wiring = []
        for conn in self.connections:
            source = positions.get(conn.source_id)
            target = positions.get(conn.target_id)
            if source is None or target is None:
                logger.debug(
                    f"Genome {self.genome_id}: connection {conn.connection_id} "
                    f"references unknown neuron ({conn.source_id} -> {conn.target_id})"
                )
                return None
            wiring.append((source, target, conn.weight))

        try:
            if activation is not None:
                override = get_activation(activation)
                activations = [override] * len(self.neurons)
            else:
                activations = [get_activation(n.activation) for n in self.neurons]
        except KeyError as e:
            raise DecodeError(f"Genome {self.genome_id}: {e.args[0]}") from e

        return RecurrentNetwork(activations, self.input_count, self.output_count, wiring)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            'genome_id': self.genome_id,
            'input_count': self.input_count,
            'output_count': self.output_count,
            'neurons': [
                {'id': n.neuron_id, 'type': n.neuron_type.value, 'activation': n.activation}
                for n in self.neurons
            ],
            'connections': [
                {'id': c.connection_id, 'source': c.source_id, 'target': c.target_id, 'weight': c.weight}
                for c in self.connections
            ],
            'fitness': self.fitness,
            'total_fitness': self.total_fitness,
            'evaluation_count': self.evaluation_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NeatGenome':
        """Create NeatGenome from dictionary (e.g., loaded from JSON)."""
        return cls(
            genome_id=data['genome_id'],
            neurons=[
                NeuronGene(n['id'], NeuronType(n['type']), n.get('activation', 'sigmoid'))
                for n in data['neurons']
            ],
            connections=[
                ConnectionGene(c['id'], c['source'], c['target'], c['weight'])
                for c in data['connections']
            ],
            input_count=data['input_count'],
            output_count=data['output_count'],
            fitness=data.get('fitness', 0.0),
            total_fitness=data.get('total_fitness', 0.0),
            evaluation_count=data.get('evaluation_count', 0),
        )

    def copy(self) -> 'NeatGenome':
        """Copy with fresh gene lists (genes themselves are immutable)."""
        return NeatGenome(
            genome_id=self.genome_id,
            neurons=list(self.neurons),
            connections=list(self.connections),
            input_count=self.input_count,
            output_count=self.output_count,
            fitness=self.fitness,
            total_fitness=self.total_fitness,
            evaluation_count=self.evaluation_count,
        )

    def __repr__(self) -> str:
        return (
            f"NeatGenome(id={self.genome_id}, neurons={len(self.neurons)}, "
            f"connections={len(self.connections)}, fitness={self.fitness:.4f}, "
            f"evals={self.evaluation_count})"
        )


def create_cppn_genome(
    hidden_count: int = 0,
    activation_probabilities: Optional[Dict[str, float]] = None,
    weight_scale: float = 1.0,
    rng: Optional[random.Random] = None,
    generation: int = 0,
    prefix: str = 'cppn',
) -> NeatGenome:
    """
    Create a fully connected CPPN with random weights.

    Four inputs take the substrate coordinate vector, one output gives the
    connection weight. With hidden neurons the wiring is input -> hidden ->
    output, otherwise input -> output.

    Args:
        hidden_count: Number of hidden neurons
        activation_probabilities: Activation name -> probability for
            output and hidden neurons (uniform over the registry when None)
        weight_scale: Weights are drawn uniformly from [-weight_scale, weight_scale]
        rng: Random source (module-level random when None)
        generation: Generation number for the genome id
        prefix: Prefix for the genome id

    Returns:
        A randomly initialized NeatGenome
    """
    rng = rng or random.Random()
    if not activation_probabilities:
        activation_probabilities = {'sigmoid': 1.0, 'gaussian': 1.0, 'sine': 1.0, 'tanh': 1.0}

    neurons = [NeuronGene(i, NeuronType.INPUT, 'linear') for i in range(CPPN_INPUT_COUNT)]
    next_id = CPPN_INPUT_COUNT
    outputs = []
    for _ in range(CPPN_OUTPUT_COUNT):
        act = choose_activation(activation_probabilities, rng)
        neurons.append(NeuronGene(next_id, NeuronType.OUTPUT, act.name))
        outputs.append(next_id)
        next_id += 1
    hidden = []
    for _ in range(hidden_count):
        act = choose_activation(activation_probabilities, rng)
        neurons.append(NeuronGene(next_id, NeuronType.HIDDEN, act.name))
        hidden.append(next_id)
        next_id += 1

    inputs = list(range(CPPN_INPUT_COUNT))
    if hidden:
        pairs = [(s, t) for s in inputs for t in hidden] + [(s, t) for s in hidden for t in outputs]
    else:
        pairs = [(s, t) for s in inputs for t in outputs]

    connections = [
        ConnectionGene(i, source, target, rng.uniform(-weight_scale, weight_scale))
        for i, (source, target) in enumerate(pairs)
    ]

    return NeatGenome(
        genome_id=generate_genome_id(generation, prefix),
        neurons=neurons,
        connections=connections,
        input_count=CPPN_INPUT_COUNT,
        output_count=CPPN_OUTPUT_COUNT,
    )

"""Networks, genomes and activation functions."""

from .activations import ACTIVATIONS, Activation, choose_activation, get_activation
from .network import Network, RecurrentNetwork
from .genome import (
    ConnectionGene,
    Genome,
    NeatGenome,
    NeuronGene,
    NeuronType,
    create_cppn_genome,
)

__all__ = [
    'ACTIVATIONS',
    'Activation',
    'choose_activation',
    'get_activation',
    'Network',
    'RecurrentNetwork',
    'ConnectionGene',
    'Genome',
    'NeatGenome',
    'NeuronGene',
    'NeuronType',
    'create_cppn_genome',
]

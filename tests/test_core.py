"""
Tests for activations, networks and genomes.

Run with: python -m pytest tests/test_core.py -v
"""

import pytest
import numpy as np
import random
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hyperneat.core.activations import ACTIVATIONS, choose_activation, get_activation
from hyperneat.core.genome import (
    ConnectionGene,
    NeatGenome,
    NeuronGene,
    NeuronType,
    create_cppn_genome,
    generate_genome_id,
)
from hyperneat.core.network import RecurrentNetwork
from hyperneat.exceptions import DecodeError


def make_genome(connections=None):
    neurons = [
        NeuronGene(10, NeuronType.INPUT, 'linear'),
        NeuronGene(11, NeuronType.INPUT, 'linear'),
        NeuronGene(20, NeuronType.OUTPUT, 'linear'),
        NeuronGene(30, NeuronType.HIDDEN, 'linear'),
    ]
    if connections is None:
        connections = [
            ConnectionGene(0, 10, 30, 0.5),
            ConnectionGene(1, 11, 30, 0.25),
            ConnectionGene(2, 30, 20, 2.0),
        ]
    return NeatGenome('test_001', neurons, connections, input_count=2, output_count=1)


class TestActivations:
    """Tests for the activation registry."""

    def test_known_values(self):
        assert get_activation('linear')(np.array([2.0]))[0] == 2.0
        assert get_activation('sigmoid')(np.array([0.0]))[0] == pytest.approx(0.5)
        assert get_activation('gaussian')(np.array([0.0]))[0] == pytest.approx(1.0)
        assert get_activation('abs')(np.array([-3.0]))[0] == 3.0
        assert get_activation('step')(np.array([-0.1, 0.1])).tolist() == [0.0, 1.0]

    def test_bounded_ranges(self):
        x = np.linspace(-10, 10, 201)
        for name, act in ACTIVATIONS.items():
            if act.properties['bounded']:
                low, high = act.properties['range']
                values = act(x)
                assert values.min() >= low - 1e-9, name
                assert values.max() <= high + 1e-9, name

    def test_unknown_activation(self):
        with pytest.raises(KeyError):
            get_activation('swish')

    def test_passthrough(self):
        act = ACTIVATIONS['tanh']
        assert get_activation(act) is act

    def test_choose_activation(self):
        rng = random.Random(0)
        assert choose_activation({'sine': 1.0}, rng).name == 'sine'
        assert choose_activation({'sine': 0.0}, rng).name == 'sigmoid'

        picks = [choose_activation({'tanh': 3.0, 'gaussian': 1.0}, rng).name for _ in range(400)]
        assert set(picks) == {'tanh', 'gaussian'}
        assert picks.count('tanh') > picks.count('gaussian')


class TestRecurrentNetwork:
    """Tests for discrete-time network execution."""

    def test_single_step(self):
        linear = ACTIVATIONS['linear']
        net = RecurrentNetwork([linear] * 3, 2, 1, [(0, 2, 0.5), (1, 2, 0.25)])
        net.set_input_signals([1.0, 2.0])
        net.single_step()

        assert net.get_output_signal(0) == pytest.approx(1.0)

    def test_signal_needs_steps_to_propagate(self):
        """Through one hidden neuron the output settles after two steps."""
        net = make_genome().decode()
        net.clear_signals()
        net.set_input_signals([1.0, 2.0])

        net.single_step()
        assert net.get_output_signal(0) == 0.0
        net.single_step()
        assert net.get_output_signal(0) == pytest.approx(2.0)

    def test_clear_signals(self):
        net = make_genome().decode()
        net.set_input_signals([1.0, 1.0])
        net.multiple_steps(3)
        net.clear_signals()

        assert np.all(net.signals == 0.0)

    def test_activate(self):
        net = make_genome().decode()
        outputs = net.activate([1.0, 2.0], steps=2)
        np.testing.assert_allclose(outputs, [2.0])

    def test_counts(self):
        net = make_genome().decode()
        assert net.total_neuron_count == 4
        assert net.input_neuron_count == 2
        assert net.output_neuron_count == 1
        assert net.connection_count == 3

    def test_output_index_checked(self):
        net = make_genome().decode()
        with pytest.raises(IndexError):
            net.get_output_signal(1)


class TestNeatGenome:
    """Tests for NeatGenome."""

    def test_defaults(self):
        genome = make_genome()
        assert genome.fitness == 0.0
        assert genome.evaluation_count == 0
        assert genome.hidden_count == 1

    def test_neuron_order_validated(self):
        neurons = [
            NeuronGene(0, NeuronType.INPUT),
            NeuronGene(1, NeuronType.HIDDEN),
            NeuronGene(2, NeuronType.OUTPUT),
        ]
        with pytest.raises(ValueError):
            NeatGenome('bad', neurons, [], input_count=1, output_count=1)

    def test_declared_counts_validated(self):
        neurons = [NeuronGene(0, NeuronType.INPUT), NeuronGene(1, NeuronType.OUTPUT)]
        with pytest.raises(ValueError):
            NeatGenome('bad', neurons, [], input_count=2, output_count=1)

    def test_unknown_neuron_does_not_decode(self):
        genome = make_genome([ConnectionGene(0, 10, 99, 1.0)])
        assert genome.decode() is None

    def test_unknown_activation_raises_decode_error(self):
        """A misspelled activation name fails decoding with DecodeError, not KeyError."""
        genome = make_genome()
        genome.neurons[3] = NeuronGene(30, NeuronType.HIDDEN, 'sigmod')

        with pytest.raises(DecodeError):
            genome.decode()
        with pytest.raises(DecodeError):
            make_genome().decode('sigmod')

    def test_activation_override(self):
        genome = make_genome()
        net = genome.decode('step')
        assert all(a.name == 'step' for a in net.activations)

    def test_serialization(self):
        genome = make_genome()
        genome.fitness = 0.4
        genome.evaluation_count = 2

        d = genome.to_dict()
        assert d['neurons'][2] == {'id': 20, 'type': 'output', 'activation': 'linear'}

        restored = NeatGenome.from_dict(d)
        assert restored.neurons == genome.neurons
        assert restored.connections == genome.connections
        assert restored.fitness == 0.4
        assert restored.evaluation_count == 2

    def test_copy_is_independent(self):
        genome = make_genome()
        clone = genome.copy()
        clone.connections.pop()
        clone.fitness = 1.0

        assert len(genome.connections) == 3
        assert genome.fitness == 0.0

    def test_generate_genome_id(self):
        assert generate_genome_id(3, 'cppn').startswith('cppn_gen3_')
        assert generate_genome_id() != generate_genome_id()


class TestCreateCPPN:
    """Tests for random CPPN construction."""

    def test_direct(self):
        genome = create_cppn_genome(rng=random.Random(1))
        assert genome.input_count == 4
        assert genome.output_count == 1
        assert len(genome.connections) == 4

    def test_with_hidden(self):
        genome = create_cppn_genome(hidden_count=3, rng=random.Random(1), weight_scale=0.5)
        assert genome.hidden_count == 3
        assert len(genome.connections) == 4 * 3 + 3 * 1
        assert all(abs(c.weight) <= 0.5 for c in genome.connections)

    def test_activation_probabilities(self):
        genome = create_cppn_genome(hidden_count=4, activation_probabilities={'sine': 1.0})
        non_inputs = genome.neurons[genome.input_count:]
        assert all(n.activation == 'sine' for n in non_inputs)

    def test_seeded(self):
        a = create_cppn_genome(hidden_count=2, rng=random.Random(5))
        b = create_cppn_genome(hidden_count=2, rng=random.Random(5))
        assert a.connections == b.connections
        assert a.neurons == b.neurons

"""
Population evaluators: turning decoded networks into genome fitness.

Three strategies share one interface and are picked at construction:
- BatchPopulationEvaluator: decode every genome and stage the networks for
  an external scoring step; fitness is set to the floor
- SingleFilePopulationEvaluator: score each not-yet-evaluated genome on its
  own with a NetworkEvaluator
- SingleFilePairPopulationEvaluator: relative fitness from a randomised
  single-elimination tournament scored by a NetworkPairEvaluator

Per-genome failures (undecodable genomes, scorer exceptions) are logged and
floored; they never abort a pass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import partial
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
import math
import random

import numpy as np
from loguru import logger

from ..config import HyperNEATParameters
from ..core.activations import Activation, get_activation
from ..core.genome import Genome
from ..core.network import Network
from ..exceptions import DecodeError, EvaluationError
from .population import get_population_stats


# Fitness given to genomes that cannot be meaningfully scored
MIN_GENOME_FITNESS = 1e-7


# =============================================================================
# Network scorers
# =============================================================================

class NetworkEvaluator(ABC):
    """Scores a single network."""

    @abstractmethod
    def evaluate(self, network: Network) -> float:
        ...

    @property
    def evaluator_state_message(self) -> str:
        return ''


class NetworkPairEvaluator(ABC):
    """Scores two networks against each other."""

    @abstractmethod
    def evaluate_pair(self, network_a: Network, network_b: Network) -> Tuple[float, float]:
        ...

    @property
    def evaluator_state_message(self) -> str:
        return ''


class FunctionEvaluator(NetworkEvaluator):
    """NetworkEvaluator around a plain ``network -> score`` callable."""

    def __init__(self, func: Callable[[Network], float], message: str = ''):
        self.func = func
        self.message = message

    def evaluate(self, network: Network) -> float:
        return self.func(network)

    @property
    def evaluator_state_message(self) -> str:
        return self.message


class FunctionPairEvaluator(NetworkPairEvaluator):
    """NetworkPairEvaluator around a plain ``(a, b) -> (score_a, score_b)`` callable."""

    def __init__(self, func: Callable[[Network, Network], Tuple[float, float]], message: str = ''):
        self.func = func
        self.message = message

    def evaluate_pair(self, network_a: Network, network_b: Network) -> Tuple[float, float]:
        return self.func(network_a, network_b)

    @property
    def evaluator_state_message(self) -> str:
        return self.message


def as_network_evaluator(evaluator: Union[NetworkEvaluator, Callable]) -> NetworkEvaluator:
    if isinstance(evaluator, NetworkEvaluator):
        return evaluator
    if callable(evaluator):
        return FunctionEvaluator(evaluator)
    raise TypeError(f"Expected a NetworkEvaluator or callable, got {type(evaluator).__name__}")


def as_pair_evaluator(evaluator: Union[NetworkPairEvaluator, Callable]) -> NetworkPairEvaluator:
    if isinstance(evaluator, NetworkPairEvaluator):
        return evaluator
    if callable(evaluator):
        return FunctionPairEvaluator(evaluator)
    raise TypeError(f"Expected a NetworkPairEvaluator or callable, got {type(evaluator).__name__}")


# =============================================================================
# Population evaluators
# =============================================================================

class PopulationEvaluator(ABC):
    """
    Assigns fitness to a population once per generation.

    Args:
        activation: Activation override passed to every genome decode
            (each neuron keeps its own activation when None)
        min_fitness: Fitness floor
        num_threads: Thread pool size for independent per-genome or
            per-pairing work (0 or 1 runs inline)
    """

    def __init__(
        self,
        activation: Optional[Union[str, Activation]] = None,
        min_fitness: float = MIN_GENOME_FITNESS,
        num_threads: int = 0,
    ):
        self.activation_fn = get_activation(activation) if activation is not None else None
        self.min_fitness = min_fitness
        self.num_threads = num_threads
        self._evaluation_count = 0

    @abstractmethod
    def evaluate_population(self, population: Sequence[Genome], ea: Any = None) -> None:
        """Write fitness, total_fitness and evaluation_count onto the population."""
        ...

    @property
    def evaluation_count(self) -> int:
        """Evaluations performed across every call so far."""
        return self._evaluation_count

    @property
    def evaluator_state_message(self) -> str:
        return ''

    @property
    def best_is_intermediate_champion(self) -> bool:
        # Only relevant to incremental evolution experiments.
        return False

    @property
    def search_completed(self) -> bool:
        # Convergence is decided by the search loop, not here.
        return False

    def _decode(self, genome: Genome) -> Optional[Network]:
        """Decode a genome, folding DecodeError into an absent network."""
        try:
            network = genome.decode(self.activation_fn)
        except DecodeError as e:
            logger.debug(f"Genome {genome.genome_id} failed to decode: {e}")
            return None
        if network is None:
            logger.debug(f"Genome {genome.genome_id} did not decode to a network")
        return network

    def _map(self, func: Callable, items: Sequence) -> List:
        """Apply func to every item, in order, through a thread pool when configured."""
        items = list(items)
        if self.num_threads > 1 and len(items) > 1:
            with ThreadPool(min(self.num_threads, len(items))) as pool:
                return pool.map(func, items)
        return [func(item) for item in items]

    def _log_summary(self, population: Sequence[Genome], scored: int) -> None:
        stats = get_population_stats(population)
        if stats['size'] == 0:
            return
        logger.info(
            f"{type(self).__name__}: {scored} evaluations, "
            f"best={stats['max_fitness']:.4f} mean={stats['mean_fitness']:.4f}, "
            f"total={self._evaluation_count}"
        )


class BatchPopulationEvaluator(PopulationEvaluator):
    """
    Decode-only staging pass.

    Every genome is decoded regardless of its evaluation state and the
    networks are kept on ``networks`` (aligned with ``genomes``) for an
    external scoring step. Fitness is set to the floor and the evaluation
    count to 1; no scorer is called here.
    """

    def __init__(
        self,
        network_evaluator: Optional[Union[NetworkEvaluator, Callable]] = None,
        activation: Optional[Union[str, Activation]] = None,
        min_fitness: float = MIN_GENOME_FITNESS,
        num_threads: int = 0,
    ):
        super().__init__(activation, min_fitness, num_threads)
        self.network_evaluator = (
            as_network_evaluator(network_evaluator) if network_evaluator is not None else None
        )
        self.genomes: List[Genome] = []
        self.networks: List[Optional[Network]] = []

    def evaluate_population(self, population: Sequence[Genome], ea: Any = None) -> None:
        genomes = list(population)
        networks = self._map(self._decode, genomes)

        for genome in genomes:
            genome.fitness = self.min_fitness
            genome.total_fitness = genome.fitness
            genome.evaluation_count = 1
            self._evaluation_count += 1

        self.genomes = genomes
        self.networks = networks
        decoded = sum(1 for n in networks if n is not None)
        logger.debug(f"Batch staged {decoded}/{len(genomes)} decoded networks")
        self._log_summary(genomes, len(genomes))

    @property
    def evaluator_state_message(self) -> str:
        if self.network_evaluator is None:
            return ''
        return self.network_evaluator.evaluator_state_message


class SingleFilePopulationEvaluator(PopulationEvaluator):
    """
    Scores every new genome (evaluation_count == 0) on its own.

    A scored genome is never rescored until its evaluation count is reset
    externally.

    Args:
        network_evaluator: Scorer for one network
        activation: Activation override for decoding
        genome_decode: Replacement for the default ``genome.decode`` path
        min_fitness: Fitness floor
        num_threads: Thread pool size for scoring genomes concurrently
        strict: Raise EvaluationError on scorer exceptions instead of flooring
    """

    def __init__(
        self,
        network_evaluator: Union[NetworkEvaluator, Callable],
        activation: Optional[Union[str, Activation]] = None,
        genome_decode: Optional[Callable[[Genome], Optional[Network]]] = None,
        min_fitness: float = MIN_GENOME_FITNESS,
        num_threads: int = 0,
        strict: bool = False,
    ):
        super().__init__(activation, min_fitness, num_threads)
        self.network_evaluator = as_network_evaluator(network_evaluator)
        self.genome_decode = genome_decode or self.default_genome_decoder
        self.strict = strict

    def default_genome_decoder(self, genome: Genome) -> Optional[Network]:
        return self._decode(genome)

    def _score(self, genome: Genome) -> float:
        try:
            network = self.genome_decode(genome)
        except DecodeError as e:
            logger.debug(f"Genome {genome.genome_id} failed to decode: {e}")
            network = None

        if network is None:
            # Future genomes may not decode - handle the possibility.
            return self.min_fitness

        try:
            score = float(self.network_evaluator.evaluate(network))
        except Exception as e:
            if self.strict:
                raise EvaluationError(genome.genome_id, e) from e
            logger.warning(f"Scoring genome {genome.genome_id} failed: {e}")
            return self.min_fitness

        if math.isnan(score):
            logger.warning(f"Genome {genome.genome_id} scored NaN")
            return self.min_fitness
        return max(score, self.min_fitness)

    def evaluate_population(self, population: Sequence[Genome], ea: Any = None) -> None:
        pending = [g for g in population if g.evaluation_count == 0]
        scores = self._map(self._score, pending)

        for genome, fitness in zip(pending, scores):
            genome.fitness = fitness
            # Reset these genome level statistics.
            genome.total_fitness = genome.fitness
            genome.evaluation_count = 1
            self._evaluation_count += 1

        self._log_summary(population, len(pending))

    @property
    def evaluator_state_message(self) -> str:
        return self.network_evaluator.evaluator_state_message


@dataclass(frozen=True)
class MatchRecord:
    """One played pairing: population indices and their scores."""
    index_a: int
    index_b: int
    score_a: float
    score_b: float


class SingleFilePairPopulationEvaluator(PopulationEvaluator):
    """
    Single-elimination tournament relative fitness assessment.

    The population is shuffled into an active list. Each round pairs
    consecutive active genomes, scores every pairing with the pair evaluator
    and keeps the strictly higher scorer of each pair (the second genome on a
    tie); an unpaired trailing genome drops out. Rounds are counted from 0 up
    to floor(log2(N)) in steps of 2. A genome's fitness is the mean of its
    own scores over the matches it played, floored; genomes that played no
    match get the floor.

    A pairing with an undecodable genome is not played: the decodable side
    advances on a walkover and nothing is recorded. The same applies to a
    pairing whose scorer raises or returns a non-finite score, with the
    second genome advancing.

    Args:
        pair_evaluator: Scorer for a pair of networks
        activation: Activation override for decoding
        min_fitness: Fitness floor
        num_threads: Thread pool size for the pairings of one round
        rng: Source of the shuffle (anything with ``shuffle``); a fresh
            ``random.Random`` when None
    """

    def __init__(
        self,
        pair_evaluator: Union[NetworkPairEvaluator, Callable],
        activation: Optional[Union[str, Activation]] = None,
        min_fitness: float = MIN_GENOME_FITNESS,
        num_threads: int = 0,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(activation, min_fitness, num_threads)
        self.pair_evaluator = as_pair_evaluator(pair_evaluator)
        self.rng = rng or random.Random()
        self.last_matches: List[MatchRecord] = []

    @staticmethod
    def round_budget(count: int) -> int:
        """floor(log2(count)), and 0 for populations too small to pair."""
        if count < 2:
            return 0
        return count.bit_length() - 1

    def _play(self, genomes: Sequence[Genome], pairing: Tuple[int, int]) -> Tuple[Optional[MatchRecord], int]:
        a, b = pairing
        network_a = self._decode(genomes[a])
        network_b = self._decode(genomes[b])
        if network_a is None or network_b is None:
            winner = a if network_b is None and network_a is not None else b
            logger.debug(f"Pairing {a} vs {b} not played; {winner} advances")
            return None, winner

        try:
            score_a, score_b = self.pair_evaluator.evaluate_pair(network_a, network_b)
            score_a, score_b = float(score_a), float(score_b)
        except Exception as e:
            logger.warning(f"Scoring pairing {a} vs {b} failed: {e}")
            return None, b

        if not (math.isfinite(score_a) and math.isfinite(score_b)):
            logger.warning(f"Pairing {a} vs {b} scored ({score_a}, {score_b}); not recorded")
            return None, b

        winner = a if score_a > score_b else b
        return MatchRecord(a, b, score_a, score_b), winner

    def evaluate_population(self, population: Sequence[Genome], ea: Any = None) -> None:
        count = len(population)
        active = list(range(count))
        self.rng.shuffle(active)

        play = partial(self._play, population)
        matches: List[MatchRecord] = []
        budget = self.round_budget(count)

        for round_index in range(0, budget, 2):
            working = list(active)
            pairings = [(working[j], working[j + 1]) for j in range(0, len(working) - 1, 2)]
            results = self._map(play, pairings)

            active = []
            for record, winner in results:
                if record is not None:
                    matches.append(record)
                active.append(winner)
            logger.debug(
                f"Tournament round {round_index}: {len(pairings)} pairings, "
                f"{len(active)} advance"
            )

        # Mean of the relative fitness over matches played
        totals = np.zeros(count)
        played = np.zeros(count, dtype=int)
        for match in matches:
            totals[match.index_a] += match.score_a
            totals[match.index_b] += match.score_b
            played[match.index_a] += 1
            played[match.index_b] += 1

        for i, genome in enumerate(population):
            if played[i] == 0:
                fitness = self.min_fitness
            else:
                fitness = max(self.min_fitness, float(totals[i] / played[i]))
            genome.fitness = fitness
            genome.total_fitness = fitness
            genome.evaluation_count += int(played[i])

        self._evaluation_count += len(matches)
        self.last_matches = matches
        self._log_summary(population, len(matches))

    @property
    def evaluator_state_message(self) -> str:
        return self.pair_evaluator.evaluator_state_message


# =============================================================================
# Strategy selection
# =============================================================================

class EvaluatorKind(str, Enum):
    BATCH = 'batch'
    SINGLE_FILE = 'single_file'
    PAIRWISE_TOURNAMENT = 'pairwise_tournament'


def create_population_evaluator(
    kind: Union[EvaluatorKind, str],
    evaluator: Optional[Union[NetworkEvaluator, NetworkPairEvaluator, Callable]] = None,
    params: Optional[HyperNEATParameters] = None,
    activation: Optional[Union[str, Activation]] = None,
    min_fitness: float = MIN_GENOME_FITNESS,
    **kwargs: Any,
) -> PopulationEvaluator:
    """
    Build the population evaluator for a kind of experiment.

    Args:
        kind: Which strategy to use
        evaluator: Network scorer (pair scorer for the tournament)
        params: Run parameters; supplies the thread hint and, when no
            activation is given, the configured substrate activation
        activation: Activation override for decoding
        min_fitness: Fitness floor
        **kwargs: Strategy-specific options (genome_decode, strict, rng)

    Returns:
        A PopulationEvaluator for the requested strategy
    """
    kind = EvaluatorKind(kind)
    num_threads = params.num_threads if params is not None else 0
    if activation is None and params is not None:
        activation = params.substrate_activation_function

    if kind is EvaluatorKind.BATCH:
        return BatchPopulationEvaluator(evaluator, activation, min_fitness, num_threads)

    if evaluator is None:
        raise ValueError(f"{kind.value} evaluation needs a network evaluator")

    if kind is EvaluatorKind.SINGLE_FILE:
        return SingleFilePopulationEvaluator(
            evaluator, activation, min_fitness=min_fitness, num_threads=num_threads, **kwargs
        )
    return SingleFilePairPopulationEvaluator(
        evaluator, activation, min_fitness=min_fitness, num_threads=num_threads, **kwargs
    )

"""
Population summaries.

A population is any ordered sequence of genomes exposing ``fitness``,
``total_fitness`` and ``evaluation_count``; it stays index-stable for the
duration of one evaluation call.
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..core.genome import Genome


def get_population_stats(population: Sequence[Genome]) -> Dict[str, Any]:
    """
    Compute fitness statistics about the population.

    Args:
        population: Sequence of genomes

    Returns:
        Dictionary with population statistics
    """
    if not population:
        return {'size': 0, 'evaluated_count': 0, 'total_evaluations': 0}

    fitnesses = np.array([g.fitness for g in population], dtype=float)
    evaluation_counts = [g.evaluation_count for g in population]

    return {
        'size': len(population),
        'evaluated_count': sum(1 for c in evaluation_counts if c > 0),
        'total_evaluations': int(sum(evaluation_counts)),
        'min_fitness': float(fitnesses.min()),
        'max_fitness': float(fitnesses.max()),
        'mean_fitness': float(fitnesses.mean()),
        'std_fitness': float(fitnesses.std()),
    }


def best_genome(population: Sequence[Genome]) -> Optional[Genome]:
    """Return the genome with the highest fitness (first one on ties)."""
    if not population:
        return None
    return max(population, key=lambda g: g.fitness)

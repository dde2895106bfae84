"""
Substrate encoding and population fitness assignment.

Key components:
- Substrate: expands a CPPN into a phenotype genome by geometric querying
- PopulationEvaluator strategies: batch staging, single-file scoring and
  single-elimination tournament coevolution

Example usage:
    from hyperneat.config import load_parameters
    from hyperneat.core import create_cppn_genome
    from hyperneat.evolution import Substrate

    params = load_parameters('params.txt')
    substrate = Substrate(9, 4, 16, None, params)
    cppn = create_cppn_genome(hidden_count=3).decode()
    phenotype = substrate.generate_genome(cppn)
"""

from .substrate import Substrate, grid_coordinates, rescale_weight, relaxation_steps
from .evaluators import (
    MIN_GENOME_FITNESS,
    BatchPopulationEvaluator,
    EvaluatorKind,
    MatchRecord,
    NetworkEvaluator,
    NetworkPairEvaluator,
    PopulationEvaluator,
    SingleFilePairPopulationEvaluator,
    SingleFilePopulationEvaluator,
    create_population_evaluator,
)
from .population import best_genome, get_population_stats

__all__ = [
    # Substrate
    'Substrate',
    'grid_coordinates',
    'rescale_weight',
    'relaxation_steps',
    # Evaluators
    'MIN_GENOME_FITNESS',
    'BatchPopulationEvaluator',
    'EvaluatorKind',
    'MatchRecord',
    'NetworkEvaluator',
    'NetworkPairEvaluator',
    'PopulationEvaluator',
    'SingleFilePairPopulationEvaluator',
    'SingleFilePopulationEvaluator',
    'create_population_evaluator',
    # Population
    'best_genome',
    'get_population_stats',
]

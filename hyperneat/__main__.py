"""
Command-line entry point.

Usage:
    python -m hyperneat encode --inputs 9 --outputs 4 --hidden 16 --threshold 0.2 --weight-range 3.0
    python -m hyperneat encode --inputs 2 --outputs 1 --params params.txt --verbose
"""

import argparse
import random
import sys

from loguru import logger

from .config import HyperNEATParameters, load_parameters
from .core.genome import create_cppn_genome
from .evolution.substrate import Substrate
from .exceptions import HyperNEATError
from .logger_setup import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='hyperneat',
        description='Encode a random CPPN onto a substrate',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    encode = subparsers.add_parser('encode', help='Encode a random CPPN and summarise the phenotype')
    encode.add_argument('--inputs', type=int, required=True, help='Substrate input neurons')
    encode.add_argument('--outputs', type=int, required=True, help='Substrate output neurons')
    encode.add_argument('--hidden', type=int, default=0, help='Substrate hidden neurons')
    encode.add_argument('--params', type=str, default=None, help='params.txt file')
    encode.add_argument('--threshold', type=float, default=None, help='Override pruning threshold')
    encode.add_argument('--weight-range', type=float, default=None, help='Override weight range')
    encode.add_argument('--cppn-hidden', type=int, default=2, help='Hidden neurons in the random CPPN')
    encode.add_argument('--seed', type=int, default=None, help='Random seed')
    encode.add_argument('--verbose', action='store_true', help='Print every connection')
    encode.add_argument('--log-level', type=str, default='INFO')
    return parser


def encode(args: argparse.Namespace) -> int:
    params = load_parameters(args.params) if args.params else HyperNEATParameters()
    overrides = {}
    if args.threshold is not None:
        overrides['threshold'] = args.threshold
    if args.weight_range is not None:
        overrides['weight_range'] = args.weight_range
    if overrides:
        params = params.with_overrides(**overrides)

    rng = random.Random(args.seed)
    substrate = Substrate(args.inputs, args.outputs, args.hidden, None, params)
    cppn_genome = create_cppn_genome(
        hidden_count=args.cppn_hidden,
        activation_probabilities=params.activation_probabilities,
        rng=rng,
    )
    cppn = cppn_genome.decode()
    phenotype = substrate.generate_genome(cppn, genome_id=cppn_genome.genome_id)

    print(f"{substrate}")
    print(f"CPPN: {cppn_genome}")
    print(f"Phenotype: {len(phenotype.neurons)} neurons, {len(phenotype.connections)} connections")
    if args.verbose:
        for conn in phenotype.connections:
            print(f"  [{conn.connection_id:4d}] {conn.source_id:4d} -> {conn.target_id:4d}  {conn.weight:+.4f}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(level=args.log_level)
    try:
        if args.command == 'encode':
            return encode(args)
    except HyperNEATError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())

"""HyperNEAT substrate encoding and population evaluation."""

__version__ = '0.1.0'

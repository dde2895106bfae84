"""
Exception hierarchy for the HyperNEAT substrate core.

Structural invariant violations (bad node indices, unresolved configuration)
are fatal to the call that hits them. Per-genome decode and scoring failures
are recovered by the evaluators and never abort an evaluation pass.
"""


class HyperNEATError(Exception):
    """Base for all hyperneat exceptions."""

    pass


class ConfigurationError(HyperNEATError):
    """Parameter file could not be read or a value could not be parsed."""

    pass


class MissingConfigurationError(ConfigurationError):
    """A required numeric parameter was never resolved."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Required parameter '{name}' is not configured")


class InvalidNodeIndexError(HyperNEATError, IndexError):
    """A substrate was queried with a global node index outside its ranges."""

    def __init__(self, node: int, neuron_count: int):
        self.node = node
        self.neuron_count = neuron_count
        super().__init__(f"Invalid node {node} (substrate has {neuron_count} neurons)")


class DecodeError(HyperNEATError):
    """A genome could not be decoded into a network."""

    pass


class EvaluationError(HyperNEATError):
    """A network scorer failed while running in strict mode."""

    def __init__(self, genome_id, cause: BaseException):
        self.genome_id = genome_id
        self.cause = cause
        super().__init__(f"Evaluation of genome {genome_id} failed: {cause}")

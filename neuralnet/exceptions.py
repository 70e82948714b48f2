"""
exceptions.py
~~~~~~~~~~~~~

Error types raised by the network engine.

Each failure kind is its own class so callers can tell them apart, and each
also derives from the closest built-in (``ValueError`` or ``IndexError``)
so generic handlers keep working.
"""


class NetworkError(Exception):
    """Base class for all network engine errors."""


class InvalidTopology(NetworkError, ValueError):
    """Fewer than two layers, or a layer size that is not a positive integer."""


class InputSizeMismatch(NetworkError, ValueError):
    """Input vector length differs from the input layer size."""


class TargetSizeMismatch(NetworkError, ValueError):
    """Target vector length differs from the output layer size."""


class IndexOutOfRange(NetworkError, IndexError):
    """Layer, neuron or weight index outside the network's topology."""


class NoWeightsForInputLayer(NetworkError, IndexError):
    """Weights or biases requested for the input layer, which has none."""


class SnapshotError(NetworkError, ValueError):
    """A persisted snapshot is malformed or cannot be restored."""

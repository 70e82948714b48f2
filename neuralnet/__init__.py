"""
neuralnet package
~~~~~~~~~~~~~~~~~

Minimal feedforward neural network engine.
Contains the network implementation, activation functions, the snapshot
save-file format and SQLite model persistence.
"""

from .activation import (
    ActivationFunction,
    LINEAR,
    RELU,
    SIGMOID,
    TANH,
    available_activations,
    get_activation,
    register_activation,
)
from .exceptions import (
    IndexOutOfRange,
    InputSizeMismatch,
    InvalidTopology,
    NetworkError,
    NoWeightsForInputLayer,
    SnapshotError,
    TargetSizeMismatch,
)
from .network import Network
from .snapshot import (
    load_network_file,
    loads_network,
    dumps_network,
    network_from_snapshot,
    network_to_snapshot,
    save_network_file,
)

__version__ = "1.0.0"

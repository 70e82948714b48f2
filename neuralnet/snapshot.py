"""
snapshot.py
~~~~~~~~~~~

Save-file format for networks.

A snapshot is a JSON document holding the topology, the activation name,
the training settings and every weight and bias. Floats are written at full
``repr`` precision, so a restored network produces bit-identical outputs.

Example snapshot for ``Network([2, 1])``::

    {
        "format_version": 1,
        "layer_sizes": [2, 1],
        "activation": "sigmoid",
        "learning_rate": 0.5,
        "hidden_delta_rule": "weighted_sum",
        "weights": [[[0.25, 0.75]]],
        "biases": [[0.5]]
    }
"""

import json
import logging
import os
from typing import Any, Dict, Optional

import numpy as np

from .activation import get_activation
from .exceptions import InvalidTopology, SnapshotError
from .network import Network, validate_layer_sizes

# Configure module logger
logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

REQUIRED_KEYS = (
    'format_version',
    'layer_sizes',
    'activation',
    'learning_rate',
    'weights',
    'biases',
)


class NetworkEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        """
        Convert numpy values to plain Python types for JSON serialization.

        Args:
            obj: Object to serialize

        Returns:
            JSON-serializable representation
        """
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


def network_to_snapshot(network: Network) -> Dict[str, Any]:
    """
    Capture everything needed to rebuild ``network`` without reinitializing.

    Outputs, deltas and the last total error are transient and not saved.
    """
    return {
        'format_version': FORMAT_VERSION,
        'layer_sizes': list(network.sizes),
        'activation': network.activation_name,
        'learning_rate': network.learning_rate,
        'hidden_delta_rule': network.hidden_delta_rule,
        'weights': [w.tolist() for w in network.weights],
        'biases': [b.tolist() for b in network.biases],
    }


def network_from_snapshot(
    snapshot: Dict[str, Any],
    activation: Any = None
) -> Network:
    """
    Rebuild a network from a snapshot dict.

    Args:
        snapshot: Dict produced by ``network_to_snapshot``
        activation: Activation to use instead of looking up the saved name.
            Required when the network was built with an unregistered
            activation.

    Raises:
        SnapshotError: If the snapshot is malformed or inconsistent
        InvalidTopology: If the saved layer sizes are invalid
    """
    if not isinstance(snapshot, dict):
        raise SnapshotError(
            f"Snapshot must be a dict, got {type(snapshot).__name__}"
        )

    missing = [key for key in REQUIRED_KEYS if key not in snapshot]
    if missing:
        raise SnapshotError(f"Snapshot is missing keys: {missing}")

    version = snapshot['format_version']
    if version != FORMAT_VERSION:
        raise SnapshotError(f"Unsupported snapshot format version {version!r}")

    if activation is None:
        name = snapshot['activation']
        if name is None:
            raise SnapshotError(
                "Snapshot has no activation name; pass activation= to load it"
            )
        try:
            activation = get_activation(name)
        except ValueError as e:
            raise SnapshotError(str(e)) from e

    sizes = validate_layer_sizes(snapshot['layer_sizes'])

    try:
        weights = [np.array(w, dtype=float) for w in snapshot['weights']]
        biases = [np.array(b, dtype=float) for b in snapshot['biases']]
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Snapshot parameters are not numeric: {e}") from e

    if len(weights) != len(sizes) - 1 or len(biases) != len(sizes) - 1:
        raise SnapshotError(
            f"Snapshot for {len(sizes)} layers must hold {len(sizes) - 1} "
            f"weight and bias entries, got {len(weights)} and {len(biases)}"
        )

    for l in range(1, len(sizes)):
        expected = (sizes[l], sizes[l - 1])
        if weights[l - 1].shape != expected:
            raise SnapshotError(
                f"Layer {l} weights have shape {weights[l - 1].shape}, "
                f"expected {expected}"
            )
        if biases[l - 1].shape != (sizes[l],):
            raise SnapshotError(
                f"Layer {l} biases have shape {biases[l - 1].shape}, "
                f"expected {(sizes[l],)}"
            )

    try:
        return Network.from_parameters(
            weights,
            biases,
            activation=activation,
            learning_rate=snapshot['learning_rate'],
            hidden_delta_rule=snapshot.get('hidden_delta_rule', 'weighted_sum')
        )
    except InvalidTopology:
        raise
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid snapshot settings: {e}") from e


def dumps_network(network: Network, indent: Optional[int] = None) -> str:
    """Serialize ``network`` to a JSON string."""
    return json.dumps(
        network_to_snapshot(network),
        cls=NetworkEncoder,
        indent=indent
    )


def loads_network(text: str, activation: Any = None) -> Network:
    """
    Rebuild a network from a JSON string.

    Raises:
        SnapshotError: If ``text`` is not valid snapshot JSON
    """
    try:
        snapshot = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    return network_from_snapshot(snapshot, activation=activation)


def save_network_file(network: Network, path: str) -> None:
    """
    Write ``network`` to a save file, creating parent directories.

    Example:
        >>> net = Network([2, 2, 1])
        >>> save_network_file(net, 'models/xor.json')
    """
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)

    with open(path, 'w', encoding='utf-8') as f:
        f.write(dumps_network(network, indent=2))

    logger.info(f"Saved network {network.sizes} to {path}")


def load_network_file(path: str, activation: Any = None) -> Network:
    """
    Read a network from a save file written by ``save_network_file``.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        SnapshotError: If the file is not a valid snapshot
    """
    with open(path, 'r', encoding='utf-8') as f:
        network = loads_network(f.read(), activation=activation)

    logger.info(f"Loaded network {network.sizes} from {path}")
    return network

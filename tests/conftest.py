"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the network engine tests.
"""

import pytest

from neuralnet import Network

# Known constants for a [2, 3, 1] network
HIDDEN_WEIGHTS = [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]]
HIDDEN_BIASES = [0.1, 0.2, 0.3]
OUTPUT_WEIGHTS = [[0.7, 0.8, 0.9]]
OUTPUT_BIASES = [0.4]


@pytest.fixture
def fixed_parameters():
    """Weights and biases of the fixed network, as plain lists."""
    return {
        "hidden_weights": [list(row) for row in HIDDEN_WEIGHTS],
        "hidden_biases": list(HIDDEN_BIASES),
        "output_weights": [list(row) for row in OUTPUT_WEIGHTS],
        "output_biases": list(OUTPUT_BIASES),
    }


@pytest.fixture
def fixed_network():
    """A [2, 3, 1] sigmoid network with known weights, learning rate 0.1."""
    return Network.from_parameters(
        [HIDDEN_WEIGHTS, OUTPUT_WEIGHTS],
        [HIDDEN_BIASES, OUTPUT_BIASES],
        activation='sigmoid',
        learning_rate=0.1
    )


@pytest.fixture
def and_data():
    """Truth table of logical AND."""
    return [
        ([0.0, 0.0], [0.0]),
        ([0.0, 1.0], [0.0]),
        ([1.0, 0.0], [0.0]),
        ([1.0, 1.0], [1.0]),
    ]


@pytest.fixture
def temp_db_dir(tmp_path):
    """Create a temporary directory for database storage."""
    db_dir = tmp_path / "test_models"
    db_dir.mkdir()
    return str(db_dir)

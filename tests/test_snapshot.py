"""
test_snapshot.py
~~~~~~~~~~~~~~~~

Unit tests for the snapshot save-file format.
"""

import json
import os

import numpy as np
import pytest

from neuralnet import (
    ActivationFunction,
    InvalidTopology,
    Network,
    SnapshotError,
    dumps_network,
    load_network_file,
    loads_network,
    network_from_snapshot,
    network_to_snapshot,
    save_network_file,
)
from neuralnet.snapshot import FORMAT_VERSION, NetworkEncoder


@pytest.fixture
def trained_network(and_data):
    """A [2, 3, 1] tanh network after a few epochs of training."""
    net = Network([2, 3, 1], 'tanh', 0.05, seed=4)
    net.fit(and_data, epochs=20)
    return net


@pytest.mark.unit
class TestSnapshotContents:
    """Test what a snapshot captures."""

    def test_fields(self, fixed_network):
        snapshot = network_to_snapshot(fixed_network)

        assert snapshot['format_version'] == FORMAT_VERSION
        assert snapshot['layer_sizes'] == [2, 3, 1]
        assert snapshot['activation'] == 'sigmoid'
        assert snapshot['learning_rate'] == 0.1
        assert snapshot['hidden_delta_rule'] == 'weighted_sum'
        assert snapshot['weights'] == [
            [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]],
            [[0.7, 0.8, 0.9]],
        ]
        assert snapshot['biases'] == [[0.1, 0.2, 0.3], [0.4]]

    def test_snapshot_is_plain_json(self, trained_network):
        text = json.dumps(trained_network.to_snapshot())

        assert json.loads(text)['layer_sizes'] == [2, 3, 1]

    def test_encoder_handles_numpy_values(self):
        text = json.dumps(
            {'a': np.arange(3), 'b': np.int64(7), 'c': np.float32(0.5)},
            cls=NetworkEncoder
        )

        assert json.loads(text) == {'a': [0, 1, 2], 'b': 7, 'c': 0.5}


@pytest.mark.unit
class TestRoundTrip:
    """Test that restored networks behave exactly like the originals."""

    def test_outputs_are_bit_identical(self, trained_network):
        held_out = [0.3, 0.8]
        before = trained_network.run_network(held_out)

        restored = loads_network(dumps_network(trained_network))

        assert np.array_equal(restored.run_network(held_out), before)
        assert np.allclose(restored.run_network(held_out), before, atol=1e-9)

    def test_parameters_and_settings_restored(self, trained_network):
        restored = Network.from_snapshot(trained_network.to_snapshot())

        assert restored.sizes == trained_network.sizes
        assert restored.learning_rate == trained_network.learning_rate
        assert restored.activation_name == 'tanh'
        for original, loaded in zip(trained_network.weights, restored.weights):
            assert np.array_equal(original, loaded)
        for original, loaded in zip(trained_network.biases, restored.biases):
            assert np.array_equal(original, loaded)

    def test_training_continues_identically(self, trained_network):
        restored = loads_network(dumps_network(trained_network))

        trained_network.train([1.0, 1.0], [1.0])
        restored.train([1.0, 1.0], [1.0])

        assert restored.total_error == trained_network.total_error
        for original, loaded in zip(trained_network.weights, restored.weights):
            assert np.array_equal(original, loaded)

    def test_hidden_delta_rule_restored(self):
        net = Network([2, 2, 1], seed=0, hidden_delta_rule='last_downstream')

        restored = loads_network(dumps_network(net))

        assert restored.hidden_delta_rule == 'last_downstream'

    def test_save_file_round_trip(self, trained_network, tmp_path):
        path = os.path.join(str(tmp_path), 'nested', 'dir', 'net.json')

        save_network_file(trained_network, path)
        restored = load_network_file(path)

        assert os.path.exists(path)
        assert np.array_equal(
            restored.run_network([0.1, 0.9]),
            trained_network.run_network([0.1, 0.9])
        )

    def test_missing_save_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_network_file(str(tmp_path / 'absent.json'))


@pytest.mark.unit
class TestCustomActivations:
    """Test snapshots of networks with unregistered activations."""

    def test_unregistered_name_needs_override(self):
        leaky = ActivationFunction(
            'leaky', lambda z: z if z > 0 else 0.1 * z,
            lambda o: 1.0 if o > 0 else 0.1
        )
        net = Network([2, 1], leaky, seed=0)
        text = dumps_network(net)

        with pytest.raises(SnapshotError):
            loads_network(text)

        restored = loads_network(text, activation=leaky)
        assert np.array_equal(
            restored.run_network([-1.0, 0.5]), net.run_network([-1.0, 0.5])
        )

    def test_nameless_activation_needs_override(self):
        class Identity:
            def activate(self, x):
                return x

            def derivative(self, output):
                return 1.0

        net = Network([1, 1], Identity(), seed=0)
        snapshot = net.to_snapshot()

        assert snapshot['activation'] is None
        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)
        assert network_from_snapshot(snapshot, Identity()).sizes == [1, 1]


@pytest.mark.unit
class TestMalformedSnapshots:
    """Test rejection of snapshots that cannot be restored."""

    def test_not_json(self):
        with pytest.raises(SnapshotError):
            loads_network("{not json")

    def test_not_a_dict(self):
        with pytest.raises(SnapshotError):
            network_from_snapshot([1, 2, 3])

    @pytest.mark.parametrize("key", ['layer_sizes', 'weights', 'biases'])
    def test_missing_key(self, fixed_network, key):
        snapshot = fixed_network.to_snapshot()
        del snapshot[key]

        with pytest.raises(SnapshotError) as exc_info:
            network_from_snapshot(snapshot)
        assert key in str(exc_info.value)

    def test_unsupported_version(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['format_version'] = 99

        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)

    def test_invalid_layer_sizes(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['layer_sizes'] = [2, 0, 1]

        with pytest.raises(InvalidTopology):
            network_from_snapshot(snapshot)

    def test_weight_shape_mismatch(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['weights'][1] = [[0.7, 0.8]]

        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)

    def test_ragged_weights(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['weights'][0] = [[0.1, 0.2], [0.3], [0.5, 0.6]]

        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)

    def test_wrong_layer_count(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['layer_sizes'] = [2, 3, 1, 1]

        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)

    def test_invalid_learning_rate(self, fixed_network):
        snapshot = fixed_network.to_snapshot()
        snapshot['learning_rate'] = -1.0

        with pytest.raises(SnapshotError):
            network_from_snapshot(snapshot)

"""
network.py
~~~~~~~~~~

A feedforward neural network of scalar neurons, trained one example at a
time by plain gradient descent with backpropagation.

Neuron state is kept in numpy arrays owned by the network, indexed by
layer. For a network with ``sizes = [2, 3, 1]``:

- ``weights[l - 1]`` holds the incoming weights of layer ``l`` with shape
  ``(sizes[l], sizes[l - 1])``; row ``n`` is neuron ``n``'s weight vector
- ``biases[l - 1]`` holds layer ``l``'s biases with shape ``(sizes[l],)``
- ``outputs[l]`` and ``deltas[l]`` hold the last forward-pass outputs and
  the last backward-pass error signals of layer ``l``

Layer 0 is the input layer. Its neurons only hold the input values, so it
has no weights, no biases and its deltas stay at zero.

The network is not thread-safe: ``run_network`` and ``train`` both mutate
the neuron state and must be serialized by the caller.
"""

import logging
import math
import numbers
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .activation import resolve_activation
from .exceptions import (
    IndexOutOfRange,
    InputSizeMismatch,
    InvalidTopology,
    NoWeightsForInputLayer,
    TargetSizeMismatch,
)

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.5
DEFAULT_ACTIVATION = 'sigmoid'

# 'weighted_sum' is standard backpropagation. 'last_downstream' keeps only
# the last downstream delta (negated) for hidden neurons, which reproduces
# the behaviour of the engine this one replaces.
HIDDEN_DELTA_RULES = ('weighted_sum', 'last_downstream')


def validate_layer_sizes(layer_sizes: Iterable[int]) -> List[int]:
    """
    Check a topology and return it as a list of ints.

    Raises:
        InvalidTopology: If there are fewer than two layers or a layer size
            is not a positive integer
    """
    sizes = list(layer_sizes)
    if len(sizes) < 2:
        raise InvalidTopology(
            f"A network needs at least 2 layers, got {len(sizes)}"
        )
    for i, size in enumerate(sizes):
        if isinstance(size, bool) or not isinstance(size, numbers.Integral):
            raise InvalidTopology(
                f"Layer {i} size must be an integer, got {size!r}"
            )
        if size <= 0:
            raise InvalidTopology(
                f"Layer {i} must have at least one neuron, got {size}"
            )
    return [int(size) for size in sizes]


def _validate_learning_rate(learning_rate: float) -> float:
    if isinstance(learning_rate, bool) or \
            not isinstance(learning_rate, numbers.Real):
        raise ValueError(
            f"learning_rate must be a number, got {learning_rate!r}"
        )
    if not math.isfinite(learning_rate) or learning_rate <= 0:
        raise ValueError(
            f"learning_rate must be a positive finite number, "
            f"got {learning_rate}"
        )
    return float(learning_rate)


def _validate_rule(rule: str) -> str:
    if rule not in HIDDEN_DELTA_RULES:
        raise ValueError(
            f"hidden_delta_rule must be one of {HIDDEN_DELTA_RULES}, "
            f"got {rule!r}"
        )
    return rule


def _check_index(index: int, size: int, what: str) -> None:
    if isinstance(index, bool) or not isinstance(index, numbers.Integral) \
            or not 0 <= index < size:
        raise IndexOutOfRange(
            f"{what} index {index!r} out of range [0, {size})"
        )


class Network:
    """
    Layered network of scalar neurons.

    Args:
        layer_sizes: Neuron count per layer, input layer first
        activation: Registered activation name, or any object exposing
            ``activate(x)`` and ``derivative(output)``
        learning_rate: Gradient descent step size
        seed: Seed for weight initialization and shuffling
        rng: A ``numpy.random.Generator`` to use instead of ``seed``
        hidden_delta_rule: One of ``HIDDEN_DELTA_RULES``

    Raises:
        InvalidTopology: If ``layer_sizes`` is not a valid topology

    Example:
        >>> net = Network([2, 2, 1], 'sigmoid', 0.5, seed=7)
        >>> net.train([1.0, 0.0], [1.0])
        >>> net.run_network([1.0, 0.0]).shape
        (1,)
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        activation: Any = DEFAULT_ACTIVATION,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        *,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        hidden_delta_rule: str = 'weighted_sum'
    ):
        if seed is not None and rng is not None:
            raise ValueError("Pass either seed or rng, not both")

        self._init_state(
            validate_layer_sizes(layer_sizes),
            activation,
            learning_rate,
            hidden_delta_rule
        )
        self._rng = rng if rng is not None else np.random.default_rng(seed)

        # Uniform in [0, 1), drawn once; training only mutates in place
        self.weights = [
            self._rng.random((y, x))
            for x, y in zip(self.sizes[:-1], self.sizes[1:])
        ]
        self.biases = [self._rng.random(y) for y in self.sizes[1:]]

        logger.info(
            f"Created network {self.sizes} with activation "
            f"{self.activation_name}, learning_rate={self.learning_rate}"
        )

    def _init_state(
        self,
        sizes: List[int],
        activation: Any,
        learning_rate: float,
        hidden_delta_rule: str
    ) -> None:
        self.sizes = sizes
        self.num_layers = len(sizes)
        self.activation = resolve_activation(activation)
        self.learning_rate = _validate_learning_rate(learning_rate)
        self.hidden_delta_rule = _validate_rule(hidden_delta_rule)
        self.outputs = [np.zeros(n) for n in sizes]
        self.deltas = [np.zeros(n) for n in sizes]
        # Halved sum-of-squared error of the last train() call
        self.total_error: Optional[float] = None

    @classmethod
    def from_parameters(
        cls,
        weights: Sequence[Any],
        biases: Sequence[Any],
        activation: Any = DEFAULT_ACTIVATION,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        *,
        rng: Optional[np.random.Generator] = None,
        hidden_delta_rule: str = 'weighted_sum'
    ) -> 'Network':
        """
        Build a network from known weights and biases.

        No random initialization takes place. The topology is derived from
        the weight shapes.

        Args:
            weights: One ``(sizes[l], sizes[l - 1])`` matrix per layer after
                the input layer
            biases: One ``(sizes[l],)`` vector per layer after the input
                layer

        Raises:
            InvalidTopology: If the shapes do not describe a valid topology
        """
        weights = [np.array(w, dtype=float) for w in weights]
        biases = [np.array(b, dtype=float) for b in biases]

        if not weights or len(weights) != len(biases):
            raise InvalidTopology(
                f"Expected matching non-empty weight and bias lists, got "
                f"{len(weights)} weight and {len(biases)} bias entries"
            )

        for i, w in enumerate(weights):
            if w.ndim != 2:
                raise InvalidTopology(
                    f"Weights of layer {i + 1} must be 2-dimensional, "
                    f"got shape {w.shape}"
                )
        sizes = validate_layer_sizes(
            [weights[0].shape[1]] + [w.shape[0] for w in weights]
        )
        for l in range(1, len(sizes)):
            w, b = weights[l - 1], biases[l - 1]
            if w.shape != (sizes[l], sizes[l - 1]):
                raise InvalidTopology(
                    f"Weights of layer {l} have shape {w.shape}, expected "
                    f"{(sizes[l], sizes[l - 1])}"
                )
            if b.shape != (sizes[l],):
                raise InvalidTopology(
                    f"Biases of layer {l} have shape {b.shape}, expected "
                    f"{(sizes[l],)}"
                )

        net = cls.__new__(cls)
        net._init_state(sizes, activation, learning_rate, hidden_delta_rule)
        net._rng = rng if rng is not None else np.random.default_rng()
        net.weights = weights
        net.biases = biases

        logger.info(f"Restored network {sizes} from parameters")
        return net

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Dict[str, Any],
        activation: Any = None
    ) -> 'Network':
        """Restore a network saved with ``to_snapshot``."""
        from .snapshot import network_from_snapshot
        return network_from_snapshot(snapshot, activation=activation)

    def to_snapshot(self) -> Dict[str, Any]:
        """Export topology, weights and biases as a JSON-ready dict."""
        from .snapshot import network_to_snapshot
        return network_to_snapshot(self)

    @property
    def activation_name(self) -> Optional[str]:
        return getattr(self.activation, 'name', None)

    def __repr__(self) -> str:
        return (
            f"Network({self.sizes}, activation={self.activation_name!r}, "
            f"learning_rate={self.learning_rate})"
        )

    # ------------------------------------------------------------------
    # Forward and backward passes
    # ------------------------------------------------------------------

    def _as_vector(
        self,
        values: Iterable[float],
        expected: int,
        error: type,
        what: str
    ) -> np.ndarray:
        vector = np.array(values, dtype=float).ravel()
        if vector.size != expected:
            raise error(
                f"Expected {expected} {what} value(s), got {vector.size}"
            )
        return vector

    def run_network(self, inputs: Iterable[float]) -> np.ndarray:
        """
        Feed ``inputs`` forward and return the output layer's values.

        Every neuron's output is overwritten, and ``train`` relies on those
        outputs for its backward pass.

        Raises:
            InputSizeMismatch: If ``len(inputs)`` differs from the input
                layer size
        """
        x = self._as_vector(inputs, self.sizes[0], InputSizeMismatch, 'input')
        self.outputs[0] = x

        activate = self.activation.activate
        for l in range(1, self.num_layers):
            z = self.weights[l - 1] @ self.outputs[l - 1] + self.biases[l - 1]
            self.outputs[l] = np.array([activate(float(s)) for s in z])

        return self.outputs[-1].copy()

    def train(
        self,
        inputs: Iterable[float],
        targets: Iterable[float]
    ) -> None:
        """
        Run one gradient descent step on a single example.

        Sets ``total_error`` to the halved sum-of-squared error of the
        forward pass, then updates every weight and bias in place.

        Raises:
            InputSizeMismatch: If ``len(inputs)`` differs from the input
                layer size
            TargetSizeMismatch: If ``len(targets)`` differs from the output
                layer size
        """
        x = self._as_vector(inputs, self.sizes[0], InputSizeMismatch, 'input')
        y = self._as_vector(
            targets, self.sizes[-1], TargetSizeMismatch, 'target'
        )

        actual = self.run_network(x)
        self.total_error = float(0.5 * np.sum((y - actual) ** 2))

        self._backpropagate(y)
        logger.debug(f"Train step error={self.total_error:.6g}")

    def _backpropagate(self, targets: np.ndarray) -> None:
        lr = self.learning_rate
        derivative = self.activation.derivative
        output_layer = self.num_layers - 1

        # Weights of layer l + 1 as they were during the forward pass
        downstream_weights = None

        for l in range(output_layer, 0, -1):
            out = self.outputs[l]
            slopes = np.array([derivative(float(o)) for o in out])

            if l == output_layer:
                delta = -(targets - out) * slopes
            elif self.hidden_delta_rule == 'weighted_sum':
                delta = slopes * (downstream_weights.T @ self.deltas[l + 1])
            else:
                delta = -slopes * self.deltas[l + 1][-1]

            self.deltas[l] = delta
            downstream_weights = self.weights[l - 1].copy()

            self.weights[l - 1] -= lr * np.outer(delta, self.outputs[l - 1])
            self.biases[l - 1] -= lr * delta

    def fit(
        self,
        training_data: Iterable[Tuple[Any, Any]],
        epochs: int,
        shuffle: bool = True,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None
    ) -> List[float]:
        """
        Train on every example once per epoch, one update per example.

        Args:
            training_data: ``(inputs, targets)`` pairs
            epochs: Number of passes over ``training_data``
            shuffle: Visit examples in a fresh random order each epoch
            callback: Called after each epoch with ``epoch``,
                ``total_epochs``, ``error`` and ``elapsed_time``

        Returns:
            Mean ``total_error`` of each epoch
        """
        if isinstance(epochs, bool) or not isinstance(epochs, int) \
                or epochs < 1:
            raise ValueError("epochs must be a positive integer")

        training_data = list(training_data)
        n = len(training_data)
        if n == 0:
            raise ValueError("training_data must not be empty")

        history = []
        start_time = time.time()

        for epoch in range(1, epochs + 1):
            order = self._rng.permutation(n) if shuffle else range(n)

            epoch_error = 0.0
            for i in order:
                x, y = training_data[i]
                self.train(x, y)
                epoch_error += self.total_error

            mean_error = epoch_error / n
            history.append(mean_error)
            logger.debug(f"Epoch {epoch}/{epochs}: error={mean_error:.6g}")

            if callback:
                callback({
                    'epoch': epoch,
                    'total_epochs': epochs,
                    'error': mean_error,
                    'elapsed_time': time.time() - start_time
                })

        logger.info(
            f"Trained {self.sizes} for {epochs} epoch(s) on {n} example(s), "
            f"final error={history[-1]:.6g}"
        )
        return history

    def evaluate(self, test_data: Iterable[Tuple[Any, Any]]) -> float:
        """
        Return the mean halved sum-of-squared error over ``test_data``.

        Weights and biases are left untouched.
        """
        errors = []
        for x, y in test_data:
            y = self._as_vector(
                y, self.sizes[-1], TargetSizeMismatch, 'target'
            )
            errors.append(0.5 * np.sum((y - self.run_network(x)) ** 2))

        if not errors:
            raise ValueError("test_data must not be empty")
        return float(np.mean(errors))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def _check_neuron(self, layer: int, neuron: int) -> None:
        _check_index(layer, self.num_layers, 'Layer')
        _check_index(neuron, self.sizes[layer], 'Neuron')

    def _check_weighted(self, layer: int, neuron: int) -> None:
        if layer == 0:
            raise NoWeightsForInputLayer(
                "The input layer has no weights or biases"
            )
        self._check_neuron(layer, neuron)

    def get_weight(self, layer: int, neuron: int, input_index: int) -> float:
        """Weight from neuron ``input_index`` of ``layer - 1`` into ``neuron``."""
        self._check_weighted(layer, neuron)
        _check_index(input_index, self.sizes[layer - 1], 'Input')
        return float(self.weights[layer - 1][neuron, input_index])

    def set_weight(
        self,
        layer: int,
        neuron: int,
        input_index: int,
        value: float
    ) -> None:
        self._check_weighted(layer, neuron)
        _check_index(input_index, self.sizes[layer - 1], 'Input')
        self.weights[layer - 1][neuron, input_index] = value

    def get_bias(self, layer: int, neuron: int) -> float:
        self._check_weighted(layer, neuron)
        return float(self.biases[layer - 1][neuron])

    def set_bias(self, layer: int, neuron: int, value: float) -> None:
        self._check_weighted(layer, neuron)
        self.biases[layer - 1][neuron] = value

    def get_output(self, layer: int, neuron: int) -> float:
        """Output of a neuron from the last forward pass."""
        self._check_neuron(layer, neuron)
        return float(self.outputs[layer][neuron])

    def get_delta(self, layer: int, neuron: int) -> float:
        """Error signal of a neuron from the last training step."""
        self._check_neuron(layer, neuron)
        return float(self.deltas[layer][neuron])

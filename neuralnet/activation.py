"""
activation.py
~~~~~~~~~~~~~

Activation functions for the network.

An activation is any object exposing ``activate(x)`` and
``derivative(output)``. The derivative takes the neuron's already computed
output rather than its weighted sum, which matches the closed forms used
in backpropagation (sigmoid: ``o * (1 - o)``).
"""

import logging
from typing import Callable, Dict, List

import numpy as np

logger = logging.getLogger(__name__)


class ActivationFunction:
    """
    Named pair of scalar functions used by every non-input neuron.

    Args:
        name: Registry name, also written into snapshots
        function: Maps a weighted sum to an output
        derivative: Maps an output to the slope of ``function`` there
    """

    def __init__(
        self,
        name: str,
        function: Callable[[float], float],
        derivative: Callable[[float], float]
    ):
        self.name = name
        self._function = function
        self._derivative = derivative

    def activate(self, x: float) -> float:
        return float(self._function(x))

    def derivative(self, output: float) -> float:
        return float(self._derivative(output))

    def __repr__(self) -> str:
        return f"ActivationFunction({self.name!r})"


def _sigmoid(z: float) -> float:
    # Split on sign so np.exp never overflows
    if z >= 0:
        return 1.0 / (1.0 + np.exp(-z))
    e = np.exp(z)
    return e / (1.0 + e)


def _sigmoid_prime(output: float) -> float:
    return output * (1.0 - output)


def _tanh_prime(output: float) -> float:
    return 1.0 - output * output


def _relu(z: float) -> float:
    return z if z > 0.0 else 0.0


def _relu_prime(output: float) -> float:
    return 1.0 if output > 0.0 else 0.0


SIGMOID = ActivationFunction('sigmoid', _sigmoid, _sigmoid_prime)
TANH = ActivationFunction('tanh', np.tanh, _tanh_prime)
RELU = ActivationFunction('relu', _relu, _relu_prime)
LINEAR = ActivationFunction('linear', lambda z: z, lambda output: 1.0)

_REGISTRY: Dict[str, ActivationFunction] = {
    fn.name: fn for fn in (SIGMOID, TANH, RELU, LINEAR)
}


def register_activation(activation: ActivationFunction) -> None:
    """
    Make an activation available by name.

    Registered activations can be restored from snapshots without passing
    the activation object to the loader. Re-registering a name replaces it.
    """
    if activation.name in _REGISTRY:
        logger.warning(f"Replacing registered activation '{activation.name}'")
    _REGISTRY[activation.name] = activation


def get_activation(name: str) -> ActivationFunction:
    """
    Look up a registered activation.

    Raises:
        ValueError: If no activation is registered under ``name``
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown activation '{name}'. "
            f"Available: {available_activations()}"
        ) from None


def available_activations() -> List[str]:
    return sorted(_REGISTRY)


def resolve_activation(activation):
    """Accept a registered name or any object with activate/derivative."""
    if isinstance(activation, str):
        return get_activation(activation)
    if callable(getattr(activation, 'activate', None)) and \
            callable(getattr(activation, 'derivative', None)):
        return activation
    raise TypeError(
        "activation must be a registered name or provide "
        "activate() and derivative()"
    )

"""Default pin factory used by the bundled token stores."""

from __future__ import annotations

import secrets
import string
from typing import Callable

PinFactory = Callable[[], str]

DEFAULT_PIN_LENGTH = 6
DEFAULT_PIN_ALPHABET = string.digits


def generate_pin(length: int = DEFAULT_PIN_LENGTH, alphabet: str = DEFAULT_PIN_ALPHABET) -> str:
    """Return a random pin of ``length`` characters drawn from ``alphabet``."""
    if length <= 0:
        raise ValueError("Pin length must be positive.")
    if not alphabet:
        raise ValueError("Pin alphabet must not be empty.")
    return "".join(secrets.choice(alphabet) for _ in range(length))


def pin_factory(length: int = DEFAULT_PIN_LENGTH, alphabet: str = DEFAULT_PIN_ALPHABET) -> PinFactory:
    """Bind pin settings into a zero-argument factory."""
    # Validate eagerly so misconfiguration surfaces at startup.
    generate_pin(length, alphabet)
    return lambda: generate_pin(length, alphabet)

"""Sampling primitives for Thompson sampling.

Normal -> Gamma -> Beta, all drawn from an injected ``random.Random`` so that
a seeded source reproduces the same sequence of selections.

- ``normal``: Box-Muller transform (the cosine companion variate is dropped)
- ``gamma``: Marsaglia-Tsang squeeze-and-reject, boosted for shape < 1
- ``beta``: ratio of two gamma draws
"""

from __future__ import annotations

import math
import random


class Sampler:
    """Draws normal, gamma and beta variates from a single random source."""

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize the sampler.

        Args:
            rng: Random source. A fresh OS-seeded ``random.Random`` if None.
        """
        self.rng = rng or random.Random()

    def uniform(self) -> float:
        """One Uniform(0, 1] draw (never exactly zero, safe for log)."""
        return 1.0 - self.rng.random()

    def normal(self) -> float:
        """One standard-normal draw via Box-Muller."""
        u1 = self.uniform()
        u2 = self.uniform()
        return math.sqrt(-2.0 * math.log(u1)) * math.sin(2.0 * math.pi * u2)

    def gamma(self, shape: float) -> float:
        """One Gamma(shape, 1) draw.

        Args:
            shape: Shape parameter, strictly positive.

        Returns:
            A positive finite sample.

        Raises:
            ValueError: If shape is not positive.
        """
        if shape <= 0:
            raise ValueError(f"gamma shape must be positive, got {shape}")

        if shape < 1:
            # Gamma(a) = Gamma(a + 1) * U^(1/a)
            return self.gamma(shape + 1.0) * self.uniform() ** (1.0 / shape)

        d = shape - 1.0 / 3.0
        c = 1.0 / math.sqrt(9.0 * d)

        while True:
            x = self.normal()
            v = 1.0 + c * x
            while v <= 0:
                x = self.normal()
                v = 1.0 + c * x

            v = v * v * v
            u = self.uniform()

            if u < 1.0 - 0.0331 * (x * x) * (x * x):
                return d * v
            if math.log(u) < 0.5 * x * x + d * (1.0 - v + math.log(v)):
                return d * v

    def beta(self, alpha: float, beta: float) -> float:
        """One Beta(alpha, beta) draw as X / (X + Y) of two gamma variates."""
        x = self.gamma(alpha)
        y = self.gamma(beta)
        return x / (x + y)

    def posterior_sample(self, success_count: int, failure_count: int) -> float:
        """Sample a success probability from the Beta-Bernoulli posterior.

        Uses a uniform Beta(1, 1) prior, so both parameters are always >= 1.
        """
        return self.beta(success_count + 1, failure_count + 1)

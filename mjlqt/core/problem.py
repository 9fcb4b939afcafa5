# Copyright 2024 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Jump-linear tracking problem specification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import jax.numpy as jnp
import numpy as np
from jax import Array, dtypes

from mjlqt.core.errors import InvalidDimensions
from mjlqt.core.types import Dimensions


def _shape(name: str, x: Any) -> tuple:
    try:
        return np.shape(x)
    except ValueError as e:
        # Ragged nested sequences have no array shape
        raise InvalidDimensions(
            f"{name} is not a uniformly shaped array"
        ) from e


def _expect_shape(name: str, actual: tuple, expected: tuple) -> None:
    if tuple(actual) != tuple(expected):
        raise InvalidDimensions(
            f"{name} must have shape {expected}, got {tuple(actual)}"
        )


def validate_dimensions(
    A: Any,
    B: Any,
    Q: Any,
    R: Any,
    transition_matrix: Any,
    terminal_cost: Any,
    horizon: Any,
    ref_weightings: Any,
) -> Dimensions:
    """Check that all inputs of the backward recursion are consistent.

    Only shapes are inspected; no array is converted or allocated.

    Args:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        Q: State cost matrices (M, n, n).
        R: Input cost matrices (M, p, p).
        transition_matrix: Mode transition matrix (M, M).
        terminal_cost: Terminal cost matrix (n, n).
        horizon: Number of control stages N >= 1.
        ref_weightings: Reference weightings (>= N+1, n).

    Returns:
        The problem Dimensions (M, n, p, N).

    Raises:
        InvalidDimensions: Naming the first inconsistent input.
    """
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)):
        raise InvalidDimensions(f"horizon must be an integer, got {horizon!r}")
    if horizon < 1:
        raise InvalidDimensions(f"horizon must be >= 1, got {horizon}")

    shape_A = _shape('A', A)
    if len(shape_A) != 3:
        raise InvalidDimensions(
            f"A must be a stack of matrices (M, n, n), got shape {shape_A}"
        )
    num_modes, n = shape_A[0], shape_A[1]
    if num_modes < 1:
        raise InvalidDimensions("A must contain at least one mode")
    if n < 1:
        raise InvalidDimensions(f"state dimension must be >= 1, got {n}")
    _expect_shape('A', shape_A, (num_modes, n, n))

    shape_B = _shape('B', B)
    if len(shape_B) != 3:
        raise InvalidDimensions(
            f"B must be a stack of matrices (M, n, p), got shape {shape_B}"
        )
    p = shape_B[2]
    if p < 1:
        raise InvalidDimensions(f"input dimension must be >= 1, got {p}")
    _expect_shape('B', shape_B, (num_modes, n, p))
    _expect_shape('Q', _shape('Q', Q), (num_modes, n, n))
    _expect_shape('R', _shape('R', R), (num_modes, p, p))
    _expect_shape(
        'transition_matrix',
        _shape('transition_matrix', transition_matrix),
        (num_modes, num_modes),
    )
    _expect_shape(
        'terminal_cost', _shape('terminal_cost', terminal_cost), (n, n)
    )

    shape_ref = _shape('ref_weightings', ref_weightings)
    if len(shape_ref) != 2 or shape_ref[1] != n or shape_ref[0] < horizon + 1:
        raise InvalidDimensions(
            f"ref_weightings must have shape (>= {horizon + 1}, {n}), "
            f"got {shape_ref}"
        )

    return Dimensions(
        num_modes=int(num_modes),
        state_dim=int(n),
        input_dim=int(p),
        horizon=int(horizon),
    )


@dataclass
class JumpLinearProblem:
    """Finite-horizon LQ tracking problem over a Markov jump-linear system.

    The system switches among M modes according to a Markov chain with
    transition matrix T, T[j, m] = P(next mode m | current mode j):

        x[k+1] = A[m] x[k] + B[m] u[k],   m ~ T[j, :]

    and the cost-to-go at stage k in mode j is x' K[k, j] x - 2 sigma[k, j]' x
    (up to a constant), with K[N, j] = terminal_cost and
    sigma[N, j] = ref_weightings[N] for every mode j.

    The matrices are the augmented model: any tracking error dynamics are
    assumed to be folded into A, B, Q, R by the caller.

    Attributes:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        Q: State cost matrices (M, n, n).
        R: Input cost matrices (M, p, p).
        transition_matrix: Row-stochastic mode transition matrix (M, M).
        terminal_cost: Terminal cost matrix (n, n), shared by all modes.
        horizon: Number of control stages N.
        ref_weightings: Affine weighting per stage 0..N, shape (>= N+1, n).
            Defaults to zeros (pure regulation).

    Example:
        >>> problem = JumpLinearProblem(
        ...     A=jnp.stack([A_delivered, A_lost]),
        ...     B=jnp.stack([B_delivered, B_lost]),
        ...     Q=jnp.stack([Q, Q]),
        ...     R=jnp.stack([R, R]),
        ...     transition_matrix=jnp.array([[0.9, 0.1], [0.6, 0.4]]),
        ...     terminal_cost=Q,
        ...     horizon=50,
        ... )
        >>> result = problem.solve()
    """

    A: Array
    B: Array
    Q: Array
    R: Array
    transition_matrix: Array
    terminal_cost: Array
    horizon: int
    ref_weightings: Optional[Array] = None

    dims: Dimensions = field(init=False, repr=False)

    def __post_init__(self):
        """Validate dimensions, then convert inputs to JAX arrays."""
        if self.ref_weightings is None:
            shape_A = _shape('A', self.A)
            state_dim = shape_A[-1] if len(shape_A) == 3 else 0
            horizon = (
                self.horizon if isinstance(self.horizon, (int, np.integer)) else 0
            )
            self.ref_weightings = np.zeros((max(horizon, 0) + 1, state_dim))

        self.dims = validate_dimensions(
            self.A, self.B, self.Q, self.R, self.transition_matrix,
            self.terminal_cost, self.horizon, self.ref_weightings,
        )
        self.horizon = self.dims.horizon

        dtype = dtypes.canonicalize_dtype(jnp.result_type(
            *(np.asarray(x) for x in (
                self.A, self.B, self.Q, self.R, self.transition_matrix,
                self.terminal_cost, self.ref_weightings,
            )),
            jnp.float32,
        ))
        self.A = jnp.asarray(self.A, dtype=dtype)
        self.B = jnp.asarray(self.B, dtype=dtype)
        self.Q = jnp.asarray(self.Q, dtype=dtype)
        self.R = jnp.asarray(self.R, dtype=dtype)
        self.transition_matrix = jnp.asarray(self.transition_matrix, dtype=dtype)
        self.terminal_cost = jnp.asarray(self.terminal_cost, dtype=dtype)
        self.ref_weightings = jnp.asarray(self.ref_weightings, dtype=dtype)

    @property
    def num_modes(self) -> int:
        """Return the number of modes M."""
        return self.dims.num_modes

    @property
    def state_dim(self) -> int:
        """Return the state dimension n."""
        return self.dims.state_dim

    @property
    def input_dim(self) -> int:
        """Return the input dimension p."""
        return self.dims.input_dim

    def solve(self, config=None):
        """Run the backward recursion on this problem.

        Args:
            config: RecursionConfig, dict of its fields, or None.

        Returns:
            JumpTrackingGains for stages 0..N-1.
        """
        from mjlqt.lqr.riccati import solve_problem  # Avoid circular import

        return solve_problem(self, config)

    @classmethod
    def from_modes(
        cls,
        A: Sequence[Any],
        B: Sequence[Any],
        Q: Sequence[Any],
        R: Sequence[Any],
        transition_matrix: Any,
        terminal_cost: Any,
        horizon: int,
        ref_weightings: Optional[Any] = None,
    ) -> 'JumpLinearProblem':
        """Create a problem from per-mode lists of matrices.

        Args:
            A: Sequence of M state matrices (n, n).
            B: Sequence of M input matrices (n, p).
            Q: Sequence of M state cost matrices (n, n).
            R: Sequence of M input cost matrices (p, p).
            transition_matrix: Mode transition matrix (M, M).
            terminal_cost: Terminal cost matrix (n, n).
            horizon: Number of control stages N.
            ref_weightings: Reference weightings (N+1, n), or None.

        Returns:
            JumpLinearProblem instance.

        Raises:
            InvalidDimensions: If the per-mode matrices cannot be stacked or
                the stacks are inconsistent.
        """
        stacks = []
        for name, mats in (('A', A), ('B', B), ('Q', Q), ('R', R)):
            shapes = {np.shape(mat) for mat in mats}
            if len(shapes) != 1:
                raise InvalidDimensions(
                    f"all modes of {name} must share one shape, got {sorted(shapes)}"
                )
            stacks.append(np.stack([np.asarray(mat) for mat in mats]))

        return cls(
            *stacks,
            transition_matrix=transition_matrix,
            terminal_cost=terminal_cost,
            horizon=horizon,
            ref_weightings=ref_weightings,
        )

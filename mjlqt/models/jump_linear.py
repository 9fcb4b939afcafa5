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

"""Markov jump-linear system models.

A jump-linear system consists of a set of linear system models, usually
referred to as modes, one of which is active at a time. In a Markov
jump-linear system the active mode evolves according to a Markov chain,
e.g. modelling packet loss or delay in a networked control loop.
"""

from functools import partial
from typing import Any, Optional

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array, jit, lax

from mjlqt.core.errors import InvalidDimensions, InvalidTransitionMatrix
from mjlqt.utils.linalg import block_diag


def validate_transition_matrix(
    transition_matrix: Any,
    num_modes: Optional[int] = None,
    atol: float = 1e-8,
) -> Array:
    """Check that a transition matrix is square and row-stochastic.

    Args:
        transition_matrix: Candidate matrix of shape (M, M).
        num_modes: Expected number of modes M, if known.
        atol: Tolerance for negative entries and row sums.

    Returns:
        The transition matrix as a JAX array.

    Raises:
        InvalidTransitionMatrix: If the matrix is not square, has the wrong
            number of modes, has negative entries or rows not summing to 1.
    """
    T = np.asarray(transition_matrix)
    if T.ndim != 2 or T.shape[0] != T.shape[1] or T.shape[0] < 1:
        raise InvalidTransitionMatrix(
            f"transition matrix must be square, got shape {T.shape}"
        )
    if num_modes is not None and T.shape[0] != num_modes:
        raise InvalidTransitionMatrix(
            f"transition matrix must have shape ({num_modes}, {num_modes}), "
            f"got {T.shape}"
        )
    if not np.all(np.isfinite(T)) or np.any(T < -atol):
        raise InvalidTransitionMatrix(
            "transition matrix entries must be finite and non-negative"
        )
    row_sums = T.sum(axis=1)
    if not np.allclose(row_sums, 1.0, rtol=0.0, atol=atol):
        raise InvalidTransitionMatrix(
            f"transition matrix rows must sum to 1, got row sums {row_sums}"
        )
    return jnp.asarray(transition_matrix)


class JumpLinearSystem:
    """Jump-linear system x[k+1] = A[mode] x[k] + B[mode] u[k].

    Attributes:
        A: State matrices, shape (M, n, n).
        B: Input matrices, shape (M, n, p), or None for an autonomous system.

    Example:
        >>> system = JumpLinearSystem(A=jnp.stack([A, A_lost]),
        ...                           B=jnp.stack([B, jnp.zeros_like(B)]))
        >>> x_next = system.simulate(x, mode=1, u=u)
        >>> system.is_mean_square_stable(T)
    """

    def __init__(self, A: Any, B: Optional[Any] = None):
        shape_A = np.shape(A)
        if len(shape_A) != 3 or shape_A[1] != shape_A[2] or shape_A[0] < 1:
            raise InvalidDimensions(
                f"A must be a non-empty stack of square matrices (M, n, n), "
                f"got shape {shape_A}"
            )
        if B is not None:
            shape_B = np.shape(B)
            if len(shape_B) != 3 or shape_B[:2] != shape_A[:2]:
                raise InvalidDimensions(
                    f"B must have shape ({shape_A[0]}, {shape_A[1]}, p), "
                    f"got {shape_B}"
                )
        self.A = jnp.asarray(A)
        self.B = None if B is None else jnp.asarray(B)

    @property
    def num_modes(self) -> int:
        return self.A.shape[0]

    @property
    def state_dim(self) -> int:
        return self.A.shape[1]

    @property
    def input_dim(self) -> int:
        return 0 if self.B is None else self.B.shape[2]

    def check_mode(self, mode: int) -> None:
        """Raise ValueError unless mode is in 0..M-1."""
        if not 0 <= int(mode) < self.num_modes:
            raise ValueError(
                f"mode must be from {{0, ..., {self.num_modes - 1}}}, got {mode}"
            )

    def simulate(self, x: Array, mode: int, u: Optional[Array] = None) -> Array:
        """Propagate a state one step in the given mode.

        Args:
            x: State of shape (n,).
            mode: Active mode index.
            u: Input of shape (p,), or None for no input.

        Returns:
            Successor state of shape (n,).
        """
        self.check_mode(mode)
        x_next = self.A[mode] @ x
        if u is not None:
            if self.B is None:
                raise ValueError("system has no input matrices")
            x_next = x_next + self.B[mode] @ u
        return x_next

    def is_mean_square_stable(self, transition_matrix: Any) -> bool:
        """Check mean square stability of the autonomous jump system.

        The second moments evolve linearly with the operator
        blkdiag(A_i kron A_i) (T' kron I_{n^2}); the system is mean square
        stable iff its spectral radius is below one.

        Args:
            transition_matrix: Row-stochastic matrix of shape (M, M).

        Returns:
            True if the system is mean square stable.
        """
        T = validate_transition_matrix(transition_matrix, self.num_modes)
        n = self.state_dim
        blocks = jax.vmap(jnp.kron)(self.A, self.A)
        operator = block_diag(blocks) @ jnp.kron(
            T.T.astype(blocks.dtype), jnp.eye(n * n, dtype=blocks.dtype)
        )
        spectral_radius = jnp.max(jnp.abs(jnp.linalg.eigvals(operator)))
        return bool(spectral_radius < 1.0)


@partial(jit, static_argnames=('length',))
def sample_mode_sequence(
    key: Array,
    transition_matrix: Array,
    initial_mode: int,
    length: int,
) -> Array:
    """Sample a trajectory of the mode Markov chain.

    Args:
        key: JAX PRNG key.
        transition_matrix: Row-stochastic matrix of shape (M, M).
        initial_mode: Mode at index 0.
        length: Number of modes to return (>= 1).

    Returns:
        Integer array of shape (length,) starting with initial_mode.
    """
    # Zero probabilities become -inf logits and are never drawn
    logits = jnp.log(transition_matrix)
    initial_mode = jnp.asarray(initial_mode, dtype=jnp.int32)

    def step(mode, step_key):
        next_mode = jax.random.categorical(step_key, logits[mode]).astype(jnp.int32)
        return next_mode, next_mode

    keys = jax.random.split(key, length - 1)
    _, rest = lax.scan(step, initial_mode, keys)
    return jnp.concatenate([initial_mode[None], rest])

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

"""Rollout utilities for jump-linear systems.

This module provides functions for simulating a jump-linear system along a
given mode sequence, in open loop or under a mode-dependent control law.
"""

from typing import Tuple

import jax.numpy as jnp
import numpy as np
from jax import Array, jit, lax

from mjlqt.core.errors import InvalidDimensions


@jit
def _closed_loop_scan(A, B, gains, feedforward, x0, modes):
    def step(x, inp):
        L_k, ff_k, mode, next_mode = inp
        u = L_k[mode] @ x + ff_k[mode]
        x_next = A[next_mode] @ x + B[next_mode] @ u
        return x_next, (x_next, u)

    _, (X_rest, U) = lax.scan(
        step, x0, (gains, feedforward, modes[:-1], modes[1:])
    )
    return jnp.vstack((x0, X_rest)), U


def closed_loop_rollout(
    A: Array,
    B: Array,
    gains: Array,
    feedforward: Array,
    x0: Array,
    modes: Array,
) -> Tuple[Array, Array]:
    """Roll out a jump-linear system under a mode-dependent control law.

    The input at stage k depends on the current mode modes[k], while the
    transition to stage k+1 is governed by the mode modes[k+1] realized
    over that step, matching the expectation taken in the backward sweep:

        u[k]   = gains[k, modes[k]] @ x[k] + feedforward[k, modes[k]]
        x[k+1] = A[modes[k+1]] @ x[k] + B[modes[k+1]] @ u[k]

    Args:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        gains: Feedback gains (N, M, p, n).
        feedforward: Feedforward terms (N, M, p).
        x0: Initial state (n,).
        modes: Mode sequence of shape (N+1,).

    Returns:
        Tuple of:
            - X: State trajectory (N+1, n)
            - U: Input trajectory (N, p)

    Example:
        >>> result = solve_problem(problem)
        >>> modes = sample_mode_sequence(key, T, 0, result.horizon + 1)
        >>> X, U = closed_loop_rollout(A, B, result.gains, result.feedforward,
        ...                            x0, modes)
    """
    horizon = np.shape(gains)[0]
    if np.shape(modes) != (horizon + 1,):
        raise InvalidDimensions(
            f"modes must have shape ({horizon + 1},), got {np.shape(modes)}"
        )
    if np.shape(feedforward)[:1] != (horizon,):
        raise InvalidDimensions(
            f"feedforward must cover {horizon} stages, got shape "
            f"{np.shape(feedforward)}"
        )
    A, B = jnp.asarray(A), jnp.asarray(B)
    gains, feedforward = jnp.asarray(gains), jnp.asarray(feedforward)
    x0 = jnp.asarray(x0, dtype=jnp.result_type(A, B, gains, feedforward))
    return _closed_loop_scan(A, B, gains, feedforward, x0, jnp.asarray(modes))


@jit
def rollout(A: Array, B: Array, U: Array, x0: Array, modes: Array) -> Array:
    """Open-loop rollout: x[k+1] = A[modes[k+1]] x[k] + B[modes[k+1]] U[k].

    Args:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        U: Input sequence (N, p).
        x0: Initial state (n,).
        modes: Mode sequence (N+1,); modes[0] is not used by the dynamics.

    Returns:
        X: State trajectory (N+1, n).
    """
    x0 = x0.astype(jnp.result_type(A, B, U, x0))

    def step(x, inp):
        u, mode = inp
        x_next = A[mode] @ x + B[mode] @ u
        return x_next, x_next

    _, X_rest = lax.scan(step, x0, (U, modes[1:]))
    return jnp.vstack((x0, X_rest))

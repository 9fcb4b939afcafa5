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

"""Linear algebra primitives for the jump-linear Riccati recursion.

This module provides the numerical building blocks used at every stage of
the backward sweep: exact symmetrization, a Moore-Penrose pseudo-inverse
with an explicit singular-value cutoff, and probability-weighted mixing of
per-mode quantities.
"""

from typing import Optional, Sequence

import jax.numpy as jnp
from jax import Array


def symmetrize(X: Array) -> Array:
    """Symmetrize a matrix (or a stack of matrices).

    Args:
        X: Matrix of shape (..., n, n).

    Returns:
        Symmetric matrix (X + X') / 2, transposing the last two axes.
    """
    return 0.5 * (X + jnp.swapaxes(X, -1, -2))


def is_symmetric(X: Array, atol: float = 1e-10) -> bool:
    """Check if a matrix (or every matrix of a stack) is symmetric.

    Args:
        X: Matrix of shape (..., n, n).
        atol: Absolute tolerance on X - X'.

    Returns:
        True if |X - X'| <= atol elementwise.
    """
    return bool(jnp.all(jnp.abs(X - jnp.swapaxes(X, -1, -2)) <= atol))


def default_pinv_rtol(shape: Sequence[int], dtype) -> float:
    """Default relative singular-value cutoff for `pinv`.

    Follows the LAPACK convention max(rows, cols) * eps: singular values
    below this fraction of the largest one are indistinguishable from
    round-off and are treated as zero.

    Args:
        shape: Shape of the matrix to invert; only the last two axes count.
        dtype: Floating point dtype of the matrix.

    Returns:
        The relative tolerance as a Python float.
    """
    return max(shape[-2:]) * float(jnp.finfo(dtype).eps)


def pinv(X: Array, rtol: Optional[float] = None) -> Array:
    """Moore-Penrose pseudo-inverse via the singular value decomposition.

    Singular values s_i <= rtol * max(s) are truncated to zero, so the
    result is the minimum-norm least-squares inverse of the numerically
    non-singular part of X. The zero matrix maps to the zero matrix.

    Args:
        X: Matrix of shape (m, n).
        rtol: Relative cutoff. Defaults to `default_pinv_rtol(X.shape, X.dtype)`.

    Returns:
        X_pinv: Pseudo-inverse of shape (n, m).

    Example:
        >>> X = jnp.array([[1.0, 1.0], [1.0, 1.0]])
        >>> pinv(X)  # [[0.25, 0.25], [0.25, 0.25]]
    """
    if rtol is None:
        rtol = default_pinv_rtol(X.shape, X.dtype)

    U, s, Vt = jnp.linalg.svd(X, full_matrices=False)
    cutoff = rtol * jnp.max(s)
    keep = s > cutoff
    # Guard the division so truncated values never produce inf
    s_inv = jnp.where(keep, 1.0 / jnp.where(keep, s, 1.0), 0.0)
    return (Vt.T * s_inv) @ U.T


def mix_modes(weights: Array, stack: Array) -> Array:
    """Probability-weighted sum over the leading (mode) axis of a stack.

    With a transition matrix T of shape (M, M) and a stack X of shape
    (M, ...), returns Y with Y[j] = sum_m T[j, m] X[m]. A single row of
    weights (M,) returns one mixture. The contraction has a fixed
    summation order, so repeated calls are bit-identical.

    Args:
        weights: Transition matrix (M, M) or probability row (M,).
        stack: Per-mode quantities of shape (M, ...).

    Returns:
        Mixed quantities of shape (M, ...) or (...).
    """
    return jnp.tensordot(weights, stack, axes=1)


def block_diag(stack: Array) -> Array:
    """Create a block diagonal matrix from a stack of square blocks.

    Args:
        stack: Blocks of shape (M, d, d).

    Returns:
        Block diagonal matrix of shape (M * d, M * d).

    Example:
        >>> block_diag(jnp.stack([jnp.eye(2), 2 * jnp.eye(2)]))  # (4, 4)
    """
    num_blocks, d = stack.shape[0], stack.shape[1]
    result = jnp.zeros((num_blocks * d, num_blocks * d), dtype=stack.dtype)
    for i in range(num_blocks):
        result = result.at[i * d:(i + 1) * d, i * d:(i + 1) * d].set(stack[i])
    return result

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

"""Backward Riccati recursion for Markov jump-linear tracking problems.

The value function at stage k in mode j is x' K[k, j] x - 2 sigma[k, j]' x.
Each stage mixes the next-stage value functions of all modes with the
transition probabilities of the current mode and minimizes over the input,
using a pseudo-inverse so that singular input costs stay well-defined.
"""

from functools import partial
from typing import Any, Dict, Optional, Tuple, Union

import jax
import jax.numpy as jnp
import numpy as np
from absl import logging
from jax import Array, jit, lax, vmap

from mjlqt.core.errors import AllocationFailure, NumericalDegeneracy
from mjlqt.core.problem import JumpLinearProblem
from mjlqt.core.solution import JumpTrackingGains
from mjlqt.core.types import StageGains, ValueFunction
from mjlqt.lqr.config import RecursionConfig
from mjlqt.models.jump_linear import validate_transition_matrix
from mjlqt.utils.linalg import default_pinv_rtol, mix_modes, pinv, symmetrize


def jump_riccati_step(
    value_next: ValueFunction,
    A: Array,
    B: Array,
    Q: Array,
    R: Array,
    transition_matrix: Array,
    ref_weighting: Array,
    rtol: Optional[float] = None,
) -> Tuple[ValueFunction, StageGains]:
    """Single backward step of the jump-linear tracking recursion.

    For every next mode i:
        QAKA[i] = Q[i] + sym(A[i]' K[i] A[i])
        RBKB[i] = R[i] + sym(B[i]' K[i] B[i])
        BKA[i]  = B[i]' K[i] A[i]
        Asig[i] = A[i]' sigma[i],  Bsig[i] = B[i]' sigma[i]

    and for every current mode j, with P1, P2, P3, s1, s2 the mixtures of
    the quantities above over T[j, :]:
        L[j]           = -pinv(P3) P2
        feedforward[j] = pinv(P3) s2
        K_prev[j]      = sym(P1 - P2' pinv(P3) P2)
        sigma_prev[j]  = ref_weighting + s1 - P2' pinv(P3) s2

    Args:
        value_next: Value function of stage k+1 for every mode.
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        Q: State cost matrices (M, n, n).
        R: Input cost matrices (M, p, p).
        transition_matrix: Mode transition matrix (M, M).
        ref_weighting: Reference weighting of stage k, shape (n,).
        rtol: Relative singular-value cutoff of the pseudo-inverse.

    Returns:
        Tuple of:
            - value: Value function of stage k for every mode
            - gains: Feedback gains and feedforward terms of stage k
    """
    def next_mode_terms(A_i, B_i, Q_i, R_i, K_i, sigma_i):
        AtK = A_i.T @ K_i
        BtK = B_i.T @ K_i
        QAKA = Q_i + symmetrize(AtK @ A_i)
        RBKB = R_i + symmetrize(BtK @ B_i)
        BKA = BtK @ A_i
        return QAKA, RBKB, BKA, A_i.T @ sigma_i, B_i.T @ sigma_i

    QAKA, RBKB, BKA, Asigma, Bsigma = vmap(next_mode_terms)(
        A, B, Q, R, value_next.K, value_next.sigma
    )

    # Expectations over the next mode, one row of T per current mode
    P1 = mix_modes(transition_matrix, QAKA)
    P2 = mix_modes(transition_matrix, BKA)
    P3 = mix_modes(transition_matrix, RBKB)
    s1 = mix_modes(transition_matrix, Asigma)
    s2 = mix_modes(transition_matrix, Bsigma)

    def current_mode_law(P1_j, P2_j, P3_j, s1_j, s2_j):
        P3_pinv = pinv(P3_j, rtol)
        L = -P3_pinv @ P2_j
        feedforward = P3_pinv @ s2_j
        K = symmetrize(P1_j - P2_j.T @ P3_pinv @ P2_j)
        sigma = ref_weighting + s1_j - P2_j.T @ P3_pinv @ s2_j
        return K, sigma, L, feedforward

    K, sigma, L, feedforward = vmap(current_mode_law)(P1, P2, P3, s1, s2)
    return ValueFunction(K=K, sigma=sigma), StageGains(L=L, feedforward=feedforward)


@partial(jit, static_argnames=('keep_values',))
def jump_tracking_backward(
    A: Array,
    B: Array,
    Q: Array,
    R: Array,
    transition_matrix: Array,
    terminal_cost: Array,
    ref_weightings: Array,
    rtol: Optional[float] = None,
    keep_values: bool = False,
) -> Tuple[Array, Array, Optional[Array], Optional[Array]]:
    """Backward sweep over all stages (no input validation).

    The horizon is N = ref_weightings.shape[0] - 1. Stages are processed
    from N-1 down to 0 by a reverse scan; the scan carry holds only the
    next-stage value function, and the outputs are stored forward indexed.

    Args:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        Q: State cost matrices (M, n, n).
        R: Input cost matrices (M, p, p).
        transition_matrix: Mode transition matrix (M, M).
        terminal_cost: Terminal cost (n, n), shared by all modes.
        ref_weightings: Reference weightings of stages 0..N, shape (N+1, n).
        rtol: Relative singular-value cutoff of the pseudo-inverse.
        keep_values: Also return the value function history.

    Returns:
        Tuple of:
            - gains: Feedback gains (N, M, p, n)
            - feedforward: Feedforward terms (N, M, p)
            - K: Quadratic value functions (N+1, M, n, n), or None
            - sigma: Affine value functions (N+1, M, n), or None
    """
    num_modes = A.shape[0]
    n = A.shape[1]

    # The terminal value function does not depend on the mode
    value_terminal = ValueFunction(
        K=jnp.broadcast_to(terminal_cost, (num_modes, n, n)),
        sigma=jnp.broadcast_to(ref_weightings[-1], (num_modes, n)),
    )

    def bwd_step(value_next, ref_k):
        value, stage_gains = jump_riccati_step(
            value_next, A, B, Q, R, transition_matrix, ref_k, rtol
        )
        if keep_values:
            return value, (stage_gains, value)
        return value, (stage_gains, None)

    _, (stage_gains, values) = lax.scan(
        bwd_step, value_terminal, ref_weightings[:-1], reverse=True
    )

    if not keep_values:
        return stage_gains.L, stage_gains.feedforward, None, None

    K = jnp.concatenate([values.K, value_terminal.K[None]], axis=0)
    sigma = jnp.concatenate([values.sigma, value_terminal.sigma[None]], axis=0)
    return stage_gains.L, stage_gains.feedforward, K, sigma


def _is_out_of_memory(error: Exception) -> bool:
    # XLA reports failed device allocations as RESOURCE_EXHAUSTED
    if isinstance(error, MemoryError):
        return True
    return str(error).startswith('RESOURCE_EXHAUSTED')


def _check_finite(gains: Array, feedforward: Array) -> None:
    """Raise NumericalDegeneracy at the first non-finite stage in sweep order."""
    finite = (
        jnp.all(jnp.isfinite(gains), axis=(2, 3))
        & jnp.all(jnp.isfinite(feedforward), axis=2)
    )
    bad_stages, bad_modes = np.nonzero(~np.asarray(finite))
    if bad_stages.size == 0:
        return

    # The sweep runs backward, so the largest stage index failed first
    stage = int(bad_stages.max())
    mode = int(bad_modes[bad_stages == stage].min())
    logging.error(
        'Backward recursion degenerated at stage %d, mode %d', stage, mode
    )
    raise NumericalDegeneracy(
        f"non-finite gain or feedforward term at stage {stage}, mode {mode}",
        stage=stage,
        mode=mode,
    )


def solve_problem(
    problem: JumpLinearProblem,
    config: Union[RecursionConfig, Dict[str, Any], None] = None,
) -> JumpTrackingGains:
    """Compute the optimal mode-dependent tracking law of a problem.

    Args:
        problem: Validated JumpLinearProblem.
        config: RecursionConfig, dict of its fields, or None for defaults.

    Returns:
        JumpTrackingGains with gains (N, M, p, n) and feedforward (N, M, p).

    Raises:
        InvalidTransitionMatrix: If validation is requested and the
            transition matrix is not row-stochastic.
        AllocationFailure: If the result arrays cannot be allocated.
        NumericalDegeneracy: If check_finite is set and a stage produced
            non-finite gains.
    """
    config = RecursionConfig.create(config)
    dims = problem.dims
    logging.info(
        'Solving jump-linear tracking problem: %d modes, n=%d, p=%d, N=%d',
        dims.num_modes, dims.state_dim, dims.input_dim, dims.horizon,
    )

    if config.validate_transition_matrix:
        validate_transition_matrix(
            problem.transition_matrix, dims.num_modes, config.transition_atol
        )

    ref_weightings = problem.ref_weightings
    if ref_weightings.shape[0] > dims.horizon + 1:
        logging.warning(
            'Ignoring %d reference weightings past the terminal stage %d',
            ref_weightings.shape[0] - dims.horizon - 1, dims.horizon,
        )
        ref_weightings = ref_weightings[:dims.horizon + 1]

    rtol = config.pinv_rtol
    if rtol is None:
        rtol = default_pinv_rtol(
            (dims.input_dim, dims.input_dim), problem.R.dtype
        )

    try:
        gains, feedforward, K, sigma = jax.block_until_ready(
            jump_tracking_backward(
                problem.A,
                problem.B,
                problem.Q,
                problem.R,
                problem.transition_matrix,
                problem.terminal_cost,
                ref_weightings,
                rtol,
                keep_values=config.return_value_functions,
            )
        )
    except (MemoryError, jax.errors.JaxRuntimeError) as e:
        if not _is_out_of_memory(e):
            raise
        raise AllocationFailure(
            f"could not allocate results for {dims.horizon} stages and "
            f"{dims.num_modes} modes: {e}"
        ) from e

    if config.check_finite:
        _check_finite(gains, feedforward)

    return JumpTrackingGains(
        gains=gains,
        feedforward=feedforward,
        K=K,
        sigma=sigma,
        info={'pinv_rtol': rtol, 'config': config.to_dict()},
    )


def solve(
    A: Any,
    B: Any,
    Q: Any,
    R: Any,
    transition_matrix: Any,
    terminal_cost: Any,
    horizon: int,
    ref_weightings: Any,
    config: Union[RecursionConfig, Dict[str, Any], None] = None,
) -> Tuple[Array, Array]:
    """Compute gains and feedforward terms of a jump-linear tracking problem.

    Args:
        A: State matrices (M, n, n).
        B: Input matrices (M, n, p).
        Q: State cost matrices (M, n, n).
        R: Input cost matrices (M, p, p).
        transition_matrix: Row-stochastic mode transition matrix (M, M).
        terminal_cost: Terminal cost (n, n), shared by all modes.
        horizon: Number of control stages N >= 1.
        ref_weightings: Reference weightings of stages 0..N, shape (N+1, n).
        config: RecursionConfig, dict of its fields, or None.

    Returns:
        Tuple of:
            - gains: Feedback gains L, stage-major (N, M, p, n)
            - feedforward: Feedforward terms, stage-major (N, M, p)

    Raises:
        InvalidDimensions: If the inputs are inconsistent; raised before
            any computation.
        AllocationFailure: If the result arrays cannot be allocated.
        NumericalDegeneracy: If a stage produced non-finite gains.

    Example:
        >>> L, ff = solve(A, B, Q, R, T, K_T, horizon=20, ref_weightings=refs)
        >>> u = L[k, mode] @ x + ff[k, mode]
    """
    problem = JumpLinearProblem(
        A=A,
        B=B,
        Q=Q,
        R=R,
        transition_matrix=transition_matrix,
        terminal_cost=terminal_cost,
        horizon=horizon,
        ref_weightings=ref_weightings,
    )
    result = solve_problem(problem, config)
    return result.gains, result.feedforward


__all__ = [
    'jump_riccati_step',
    'jump_tracking_backward',
    'solve_problem',
    'solve',
]

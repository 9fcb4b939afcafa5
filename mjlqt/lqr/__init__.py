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

"""Finite-horizon LQ tracking for Markov jump-linear systems.

This module provides the backward Riccati recursion that computes
mode-dependent feedback gains and feedforward terms:
- Single backward step mixing next-stage value functions across modes
- Full backward sweep over the horizon
- Validated entry points returning arrays or a result container

Example:
    >>> from mjlqt.lqr import solve
    >>>
    >>> L, ff = solve(A, B, Q, R, T, K_T, horizon=20, ref_weightings=refs)
    >>> u = L[k, mode] @ x + ff[k, mode]
"""

from mjlqt.lqr.config import RecursionConfig

from mjlqt.lqr.riccati import (
    jump_riccati_step,
    jump_tracking_backward,
    solve_problem,
    solve,
)

__all__ = [
    'RecursionConfig',
    'jump_riccati_step',
    'jump_tracking_backward',
    'solve_problem',
    'solve',
]

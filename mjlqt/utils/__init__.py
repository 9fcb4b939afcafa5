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

"""Utility functions for jump-linear tracking.

This module provides the computational building blocks used by the
backward recursion and by simulations of its control law:

- Symmetrization, pseudo-inversion and mode mixing
- Open-loop and closed-loop rollouts along a mode sequence
"""

# Linear algebra utilities
from mjlqt.utils.linalg import (
    symmetrize,
    is_symmetric,
    default_pinv_rtol,
    pinv,
    mix_modes,
    block_diag,
)

# Rollout utilities
from mjlqt.utils.rollout import (
    rollout,
    closed_loop_rollout,
)

__all__ = [
    # Linear algebra
    'symmetrize',
    'is_symmetric',
    'default_pinv_rtol',
    'pinv',
    'mix_modes',
    'block_diag',
    # Rollout
    'rollout',
    'closed_loop_rollout',
]

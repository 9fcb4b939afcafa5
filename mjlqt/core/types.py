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

"""Type definitions for jump-linear tracking problems."""

from typing import NamedTuple

from jax import Array


# Array layout conventions
# Mode stack:     (M, ...) one slice per mode, e.g. A is (M, n, n)
# Stage-major:    (N, M, ...) gains and feedforward terms
# Value history:  (N+1, M, ...) index N holds the terminal value function


class Dimensions(NamedTuple):
    """Problem dimensions shared by every input."""
    num_modes: int   # M
    state_dim: int   # n
    input_dim: int   # p
    horizon: int     # N


class ValueFunction(NamedTuple):
    """Cost-to-go x' K x - 2 sigma' x for every mode at one stage.

    Attributes:
        K: Quadratic terms, symmetric, shape (M, n, n).
        sigma: Affine terms, shape (M, n).
    """
    K: Array
    sigma: Array


class StageGains(NamedTuple):
    """Optimal control law u = L x + feedforward for every mode at one stage.

    Attributes:
        L: Feedback gains, shape (M, p, n).
        feedforward: Feedforward terms, shape (M, p).
    """
    L: Array
    feedforward: Array

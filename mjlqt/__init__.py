"""mjlqt: Finite-horizon LQ tracking for Markov jump-linear systems in JAX.

Computes optimal mode-dependent feedback gains and feedforward terms for
linear systems whose matrices switch among a finite set of modes according
to a Markov chain (e.g. packet loss or delay in a networked control loop).

Main modules:
- mjlqt.core: Problem specification, result container, errors and types
- mjlqt.lqr: Backward Riccati recursion and its configuration
- mjlqt.models: Jump-linear system model and Markov mode sampling
- mjlqt.utils: Linear algebra primitives and rollout utilities
"""

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

from . import core
from . import utils
from . import models
from . import lqr

from mjlqt.core import (
    JumpLinearProblem,
    JumpTrackingGains,
    InvalidDimensions,
    AllocationFailure,
    NumericalDegeneracy,
)
from mjlqt.lqr import RecursionConfig, solve, solve_problem

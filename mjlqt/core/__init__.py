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

"""Core abstractions for jump-linear tracking problems.

This module provides the fundamental data structures and type definitions:

- JumpLinearProblem: Problem specification (mode stacks, transition matrix,
  terminal data, horizon)
- JumpTrackingGains: Solution container (gains, feedforward, value functions)
- Error taxonomy raised by the solver
"""

from mjlqt.core.types import (
    Dimensions,
    ValueFunction,
    StageGains,
)

from mjlqt.core.errors import (
    JumpLQTError,
    InvalidDimensions,
    InvalidTransitionMatrix,
    AllocationFailure,
    NumericalDegeneracy,
)

from mjlqt.core.problem import (
    JumpLinearProblem,
    validate_dimensions,
)

from mjlqt.core.solution import JumpTrackingGains

__all__ = [
    # Types
    'Dimensions',
    'ValueFunction',
    'StageGains',
    # Errors
    'JumpLQTError',
    'InvalidDimensions',
    'InvalidTransitionMatrix',
    'AllocationFailure',
    'NumericalDegeneracy',
    # Problem
    'JumpLinearProblem',
    'validate_dimensions',
    # Solution
    'JumpTrackingGains',
]

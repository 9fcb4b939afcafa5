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

"""Exceptions raised by the jump-linear tracking solver.

All errors are fatal for the call that raised them: the backward recursion
is deterministic, so retrying with the same inputs fails the same way, and
no partially populated result is ever returned.
"""

from typing import Optional


class JumpLQTError(Exception):
    """Base class for all mjlqt errors."""


class InvalidDimensions(JumpLQTError, ValueError):
    """Inputs are structurally inconsistent (shapes, mode count, horizon).

    Raised before any computation starts.
    """


class InvalidTransitionMatrix(InvalidDimensions):
    """Transition matrix is not a square row-stochastic matrix."""


class AllocationFailure(JumpLQTError, MemoryError):
    """Storage for the result arrays could not be obtained."""


class NumericalDegeneracy(JumpLQTError, ArithmeticError):
    """A stage of the recursion produced non-finite gains.

    Attributes:
        stage: Stage index k at which the degeneracy first appeared, in
            recursion order (i.e. the largest offending stage index).
        mode: Mode index j of the offending gain at that stage.
    """

    def __init__(self, message: str, stage: Optional[int] = None,
                 mode: Optional[int] = None):
        super().__init__(message)
        self.stage = stage
        self.mode = mode


__all__ = [
    'JumpLQTError',
    'InvalidDimensions',
    'InvalidTransitionMatrix',
    'AllocationFailure',
    'NumericalDegeneracy',
]

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

"""Result container for the jump-linear backward recursion."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from jax import Array

from mjlqt.core.types import StageGains, ValueFunction


@dataclass
class JumpTrackingGains:
    """Mode-dependent control law for every stage of the horizon.

    Results are stored stage-major: the optimal input at stage k when the
    system is in mode j is

        u = gains[k, j] @ x + feedforward[k, j]

    Attributes:
        gains: Feedback gains L of shape (N, M, p, n).
        feedforward: Feedforward terms of shape (N, M, p).
        K: Quadratic value function history (N+1, M, n, n), or None unless
            requested with RecursionConfig.return_value_functions. K[N] holds
            the terminal cost for every mode.
        sigma: Affine value function history (N+1, M, n), or None.
        info: Dictionary with solver information such as:
            - 'pinv_rtol': Singular-value cutoff used by the pseudo-inverse
            - 'config': RecursionConfig fields used for the solve

    Example:
        >>> result = solve_problem(problem)
        >>> u0 = result.control(0, mode, x0)
    """

    gains: Array
    feedforward: Array
    K: Optional[Array] = None
    sigma: Optional[Array] = None
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def horizon(self) -> int:
        """Return the number of stages N."""
        return self.gains.shape[0]

    @property
    def num_modes(self) -> int:
        """Return the number of modes M."""
        return self.gains.shape[1]

    @property
    def input_dim(self) -> int:
        """Return the input dimension p."""
        return self.gains.shape[2]

    @property
    def state_dim(self) -> int:
        """Return the state dimension n."""
        return self.gains.shape[3]

    @property
    def has_value_functions(self) -> bool:
        """Return whether the K and sigma history was kept."""
        return self.K is not None and self.sigma is not None

    def stage(self, k: int) -> StageGains:
        """Return the gains of all modes at stage k."""
        return StageGains(L=self.gains[k], feedforward=self.feedforward[k])

    def value_function(self, k: int) -> ValueFunction:
        """Return the value function of all modes at stage k (0..N).

        Raises:
            ValueError: If the value function history was not kept.
        """
        if not self.has_value_functions:
            raise ValueError(
                "Value functions were not kept; solve with "
                "return_value_functions=True."
            )
        return ValueFunction(K=self.K[k], sigma=self.sigma[k])

    def control(self, k: int, mode: int, x: Array) -> Array:
        """Evaluate the control law at stage k in the given mode.

        Args:
            k: Stage index in 0..N-1.
            mode: Current mode index.
            x: State vector of shape (n,).

        Returns:
            Control input of shape (p,).
        """
        return self.gains[k, mode] @ x + self.feedforward[k, mode]

    def tail(self, num_stages: int) -> 'JumpTrackingGains':
        """Keep only the last num_stages stages.

        Since each stage depends only on later stages, the result equals the
        solution of the problem with horizon num_stages, the same terminal
        cost and the last num_stages + 1 reference weightings.

        Args:
            num_stages: New horizon (must be in 1..N).

        Returns:
            New JumpTrackingGains covering stages N-num_stages..N-1.
        """
        if not 1 <= num_stages <= self.horizon:
            raise ValueError(
                f"num_stages must be in [1, {self.horizon}], got {num_stages}"
            )

        start = self.horizon - num_stages
        return JumpTrackingGains(
            gains=self.gains[start:],
            feedforward=self.feedforward[start:],
            K=self.K[start:] if self.K is not None else None,
            sigma=self.sigma[start:] if self.sigma is not None else None,
            info=dict(self.info),
        )

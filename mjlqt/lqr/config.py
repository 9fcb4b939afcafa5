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

"""Configuration for the jump-linear backward recursion."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union


@dataclass
class RecursionConfig:
    """Configuration for the backward Riccati sweep.

    Attributes:
        pinv_rtol: Relative singular-value cutoff of the pseudo-inverse.
            None uses max(p, p) * eps of the working dtype.
        check_finite: Raise NumericalDegeneracy if any gain or feedforward
            term is not finite.
        validate_transition_matrix: Check that the transition matrix is
            row-stochastic before solving.
        transition_atol: Tolerance of the row-stochastic check.
        return_value_functions: Keep the full K / sigma history in the result
            instead of only the gains.
    """
    pinv_rtol: Optional[float] = None
    check_finite: bool = True
    validate_transition_matrix: bool = False
    transition_atol: float = 1e-8
    return_value_functions: bool = False

    def __post_init__(self):
        if self.pinv_rtol is not None and self.pinv_rtol < 0:
            raise ValueError(f"pinv_rtol must be >= 0, got {self.pinv_rtol}")
        if self.transition_atol < 0:
            raise ValueError(
                f"transition_atol must be >= 0, got {self.transition_atol}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (e.g. for logging)."""
        return asdict(self)

    @classmethod
    def create(
        cls,
        config: Union['RecursionConfig', Dict[str, Any], None] = None,
    ) -> 'RecursionConfig':
        """Build a config from an instance, a dict of fields, or None."""
        if config is None:
            return cls()
        if isinstance(config, dict):
            return cls(**config)
        return config

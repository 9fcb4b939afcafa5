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

"""Tests for the jump-linear system model and mode sampling."""

from absl.testing import absltest
from absl.testing import parameterized

import jax
import jax.numpy as jnp
from jax import config
import numpy as np

from mjlqt.core import InvalidDimensions, InvalidTransitionMatrix
from mjlqt.models import (
    JumpLinearSystem,
    sample_mode_sequence,
    validate_transition_matrix,
)

config.update('jax_enable_x64', True)


class ValidateTransitionMatrixTest(parameterized.TestCase):
    """Tests for validate_transition_matrix."""

    def test_valid(self):
        T = [[0.9, 0.1], [0.6, 0.4]]
        result = validate_transition_matrix(T, num_modes=2)
        np.testing.assert_allclose(result, T)

    @parameterized.named_parameters(
        ('not_square', np.ones((2, 3)) / 3, None),
        ('wrong_modes', np.eye(3), 2),
        ('negative', np.array([[1.5, -0.5], [0.0, 1.0]]), None),
        ('row_sum', np.array([[0.5, 0.6], [0.5, 0.5]]), None),
        ('not_finite', np.array([[np.nan, 1.0], [0.0, 1.0]]), None),
    )
    def test_invalid(self, T, num_modes):
        with self.assertRaises(InvalidTransitionMatrix):
            validate_transition_matrix(T, num_modes=num_modes)

    def test_is_invalid_dimensions(self):
        self.assertTrue(issubclass(InvalidTransitionMatrix, InvalidDimensions))


class JumpLinearSystemTest(parameterized.TestCase):
    """Tests for JumpLinearSystem."""

    def setUp(self):
        super().setUp()
        self.A = jnp.stack([jnp.array([[1.0, 1.0], [0.0, 1.0]]), jnp.eye(2)])
        self.B = jnp.stack([jnp.array([[0.0], [1.0]]), jnp.zeros((2, 1))])
        self.system = JumpLinearSystem(self.A, self.B)

    def test_dimensions(self):
        self.assertEqual(self.system.num_modes, 2)
        self.assertEqual(self.system.state_dim, 2)
        self.assertEqual(self.system.input_dim, 1)

    def test_simulate(self):
        x = jnp.array([1.0, 2.0])
        u = jnp.array([3.0])
        np.testing.assert_allclose(self.system.simulate(x, 0, u), [3.0, 5.0])
        np.testing.assert_allclose(self.system.simulate(x, 1, u), [1.0, 2.0])
        np.testing.assert_allclose(self.system.simulate(x, 0), [3.0, 2.0])

    def test_simulate_invalid_mode(self):
        with self.assertRaises(ValueError):
            self.system.simulate(jnp.zeros(2), 2)

    def test_autonomous_system_rejects_input(self):
        system = JumpLinearSystem(self.A)
        self.assertEqual(system.input_dim, 0)
        with self.assertRaises(ValueError):
            system.simulate(jnp.zeros(2), 0, jnp.zeros(1))

    def test_invalid_shapes(self):
        with self.assertRaises(InvalidDimensions):
            JumpLinearSystem(jnp.eye(2))
        with self.assertRaises(InvalidDimensions):
            JumpLinearSystem(self.A, jnp.zeros((3, 2, 1)))

    @parameterized.named_parameters(
        ('contracting', [0.5, 0.9], [[0.5, 0.5], [0.5, 0.5]], True),
        ('expanding', [2.0, 0.0], [[0.5, 0.5], [0.5, 0.5]], False),
        ('unstable_mode_rarely_active', [1.2, 0.0], [[0.5, 0.5], [0.5, 0.5]],
         True),
        ('unstable_mode_absorbing', [1.2, 0.0], [[1.0, 0.0], [1.0, 0.0]],
         False),
    )
    def test_mean_square_stability(self, scales, T, expected):
        A = jnp.stack([s * jnp.eye(2) for s in scales])
        system = JumpLinearSystem(A)
        self.assertEqual(system.is_mean_square_stable(jnp.array(T)), expected)

    def test_single_mode_stability_is_spectral_radius(self):
        A = jnp.array([[[0.9, 5.0], [0.0, 0.8]]])
        self.assertTrue(JumpLinearSystem(A).is_mean_square_stable([[1.0]]))
        A = jnp.array([[[1.01, 0.0], [0.0, 0.1]]])
        self.assertFalse(JumpLinearSystem(A).is_mean_square_stable([[1.0]]))

    def test_stability_rejects_invalid_transition_matrix(self):
        with self.assertRaises(InvalidTransitionMatrix):
            self.system.is_mean_square_stable(jnp.eye(3))


class SampleModeSequenceTest(parameterized.TestCase):
    """Tests for Markov mode sampling."""

    def test_deterministic_cycle(self):
        T = jnp.array([[0.0, 1.0], [1.0, 0.0]])
        modes = sample_mode_sequence(jax.random.PRNGKey(0), T, 1, 6)
        np.testing.assert_array_equal(modes, [1, 0, 1, 0, 1, 0])

    def test_length_one(self):
        T = jnp.array([[0.5, 0.5], [0.5, 0.5]])
        modes = sample_mode_sequence(jax.random.PRNGKey(1), T, 0, 1)
        np.testing.assert_array_equal(modes, [0])

    def test_absorbing_mode(self):
        T = jnp.array([[0.2, 0.3, 0.5], [0.0, 1.0, 0.0], [0.1, 0.1, 0.8]])
        modes = sample_mode_sequence(jax.random.PRNGKey(2), T, 1, 50)
        np.testing.assert_array_equal(modes, np.ones(50, dtype=np.int32))

    def test_never_draws_zero_probability_transitions(self):
        T = jnp.array([[0.5, 0.5, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5]])
        modes = np.asarray(
            sample_mode_sequence(jax.random.PRNGKey(3), T, 0, 200)
        )
        self.assertTrue(np.all((modes >= 0) & (modes < 3)))
        for current, nxt in zip(modes[:-1], modes[1:]):
            self.assertGreater(float(T[current, nxt]), 0.0)

    def test_reproducible(self):
        T = jnp.array([[0.7, 0.3], [0.4, 0.6]])
        key = jax.random.PRNGKey(4)
        np.testing.assert_array_equal(sample_mode_sequence(key, T, 0, 30),
                                      sample_mode_sequence(key, T, 0, 30))


if __name__ == '__main__':
    absltest.main()

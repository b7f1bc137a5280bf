# Copyright 2020 Michael Janschek
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
"""Tests for log-probabilities and entropy of actor outputs."""

import math

import numpy as np
import pytest
import torch

from pytorch_rl_engine.functional import policy


def assert_allclose(actual, desired):
    return np.testing.assert_allclose(actual, desired, rtol=1e-06, atol=1e-05)


def test_discrete_log_probs():
    output = torch.tensor([[[0.2, 0.8]], [[0.5, 0.5]]])
    actions = torch.tensor([[1.], [0.]])

    assert_allclose(policy.log_probs(output, actions, 1, 0), np.log([[0.8], [0.5]]))


def test_discrete_entropy():
    output = torch.tensor([[[0.5, 0.5]]])

    _, entropy = policy.log_probs_and_entropy(output, torch.tensor([[0.]]), 1, 0)

    assert_allclose(entropy, [math.log(2.)])


def test_continuous_log_probs_and_entropy():
    # mean 0, log standard deviation 0
    output = torch.zeros(1, 2, 1)
    actions = torch.zeros(1, 1)

    log_probs, entropy = policy.log_probs_and_entropy(output, actions, 0, 1)

    assert_allclose(log_probs, [[-0.5 * math.log(2 * math.pi)]])
    assert_allclose(entropy, [0.5 + 0.5 * math.log(2 * math.pi)])


def test_mixed_heads():
    output = torch.tensor([[[0.25, 0.75], [1., 0.], [0., 0.]]])
    actions = torch.tensor([[1., 1.]])

    log_probs = policy.log_probs(output, actions, 1, 1)

    assert log_probs.shape == (1, 2)
    assert_allclose(log_probs[0, 0], math.log(0.75))
    assert_allclose(log_probs[0, 1], -0.5 * math.log(2 * math.pi))


def test_shape_mismatch_raises():
    with pytest.raises(ValueError):
        policy.log_probs(torch.zeros(1, 2, 2), torch.zeros(1, 1), 1, 0)
    with pytest.raises(ValueError):
        policy.log_probs(torch.zeros(1, 1, 2), torch.zeros(1, 2), 1, 0)

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
"""Tests for value based loss computation."""

import numpy as np
import pytest
import torch
from torch import nn

from pytorch_rl_engine.functional import categorical, q_values


def assert_allclose(actual, desired):
    return np.testing.assert_allclose(actual, desired, rtol=1e-06, atol=1e-05)


class _FixedNet(nn.Module):
    """Returns the same output for every state."""

    def __init__(self, output):
        super(_FixedNet, self).__init__()
        self.output = torch.tensor(output)

    def forward(self, x):
        return self.output.repeat(x.shape[0], 1)


def test_q_values_view():
    values = q_values.q_values(torch.zeros(2, 3), _FixedNet([1., 2., 3., 4.]), 2, 2)

    assert values.shape == (2, 2, 2)
    assert_allclose(values[0], [[1., 2.], [3., 4.]])


def test_q_values_shape_mismatch_raises():
    with pytest.raises(ValueError):
        q_values.q_values(torch.zeros(2, 3), _FixedNet([1., 2., 3.]), 2, 2)


def test_gather_action_values():
    values = torch.tensor([[[1., 2.], [3., 4.]]])

    assert_allclose(q_values.gather_action_values(values, torch.tensor([[1, 0]])), [[2., 3.]])


def test_gather_rejects_wrong_head_count():
    values = torch.tensor([[[1., 2.], [3., 4.]]])

    with pytest.raises(ValueError):
        q_values.gather_action_values(values, torch.tensor([[1]]))


def test_next_state_values_max_and_double():
    target_net = _FixedNet([1., 5.])
    policy_net = _FixedNet([5., 1.])
    next_states = torch.zeros(2, 3)

    plain = q_values.next_state_values(next_states, target_net, policy_net, 1, 2)
    double = q_values.next_state_values(next_states, target_net, policy_net, 1, 2, double=True)

    assert_allclose(plain, [[5.], [5.]])
    assert_allclose(double, [[1.], [1.]])


def test_next_state_values_empty_batch():
    values = q_values.next_state_values(torch.zeros(0, 3), _FixedNet([1., 5.]),
                                        _FixedNet([1., 5.]), 1, 2)

    assert values.shape == (0, 1)


def test_expected_state_action_values():
    targets = q_values.expected_state_action_values(torch.tensor([[4.]]),
                                                    torch.tensor([1., 2.]),
                                                    torch.tensor([0.5, 0.5]),
                                                    torch.tensor([True, False]))

    assert_allclose(targets, [[3.], [2.]])


def test_absolute_td_errors_average_heads():
    errors = q_values.absolute_td_errors(torch.tensor([[1., 3.]]), torch.tensor([[2., 0.]]))

    assert_allclose(errors, [2.])


def test_next_state_distributions_select_by_expected_value():
    value_support = categorical.support(0., 1., 2)
    # action 0 has expected value 0.2, action 1 has expected value 0.6
    net = _FixedNet([0.8, 0.2, 0.4, 0.6])

    distributions = q_values.next_state_distributions(torch.zeros(1, 3), net, net,
                                                      1, 2, 2, value_support)

    assert_allclose(distributions, [[[0.4, 0.6]]])


def test_soft_update():
    torch.manual_seed(0)
    policy = nn.Linear(3, 2)
    target = nn.Linear(3, 2)
    original = [p.clone() for p in target.parameters()]

    q_values.soft_update(target, policy, 0.)
    for param, before in zip(target.parameters(), original):
        assert_allclose(param.detach(), before.detach())

    q_values.soft_update(target, policy, 0.5)
    for param, before, source in zip(target.parameters(), original, policy.parameters()):
        assert_allclose(param.detach(), (0.5 * before + 0.5 * source).detach())

    q_values.soft_update(target, policy, 1.)
    for param, source in zip(target.parameters(), policy.parameters()):
        assert_allclose(param.detach(), source.detach())

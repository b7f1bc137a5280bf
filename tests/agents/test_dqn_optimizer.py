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
"""Tests for the DQN optimization step."""

import copy

import numpy as np
import pytest
import torch
from torch.optim import Adam

from pytorch_rl_engine.agents import DQNOptimizer, build_q_strategy
from pytorch_rl_engine.data_structures import (Episode,
                                               PrioritizedReplayMemory,
                                               ReplayMemory,
                                               to_memory_transitions)
from pytorch_rl_engine.functional import categorical
from pytorch_rl_engine.nets import QNet


def assert_allclose(actual, desired):
    return np.testing.assert_allclose(actual, desired, rtol=1e-06, atol=1e-05)


NUM_HEADS = 2
NUM_ACTIONS = 3


def _transitions(num_episodes, length=4):
    episode = Episode()
    for _ in range(num_episodes):
        for step in range(length):
            episode.add_transition([float(step), 1., 0.], step == length - 1,
                                   [step % NUM_ACTIONS, 1], float(step))
    return to_memory_transitions(episode.drain())


def _optimizer(batch_size=4, num_atoms=1, double=False, tau=0.5, **kwargs):
    torch.manual_seed(0)
    policy_net = QNet((3,), NUM_HEADS, NUM_ACTIONS, width=16, depth=1, num_atoms=num_atoms)
    target_net = copy.deepcopy(policy_net)
    value_support = None
    if num_atoms > 1:
        value_support = categorical.support(0., 10., num_atoms)
    return DQNOptimizer(policy_net,
                        target_net,
                        Adam(policy_net.parameters(), lr=1e-3),
                        build_q_strategy(NUM_HEADS, NUM_ACTIONS, double=double,
                                         value_support=value_support),
                        batch_size=batch_size,
                        tau=tau,
                        **kwargs)


def _parameters(net):
    return [p.detach().clone() for p in net.parameters()]


def test_insufficient_data_is_a_no_op():
    optimizer = _optimizer(batch_size=4)
    memory = ReplayMemory(10)
    memory.push(_transitions(1, length=2))
    before = _parameters(optimizer.policy_net)

    assert optimizer.optimize(memory) is None
    assert optimizer.update_counter == 0
    assert len(memory) == 2
    for param, original in zip(optimizer.policy_net.parameters(), before):
        assert_allclose(param.detach(), original)


def test_optimize_updates_policy_net():
    optimizer = _optimizer(batch_size=4)
    memory = ReplayMemory(100, seed=0)
    memory.push(_transitions(3))
    before = _parameters(optimizer.policy_net)

    metrics = optimizer.optimize(memory)

    assert set(metrics) == {'loss', 'learning_rate', 'update_counter', 'training_steps'}
    assert np.isfinite(metrics['loss'])
    assert metrics['update_counter'] == 1
    assert metrics['training_steps'] == 4
    assert any(not torch.equal(p.detach(), b)
               for p, b in zip(optimizer.policy_net.parameters(), before))


def test_full_soft_update_copies_policy_net():
    optimizer = _optimizer(batch_size=4, tau=1.)
    memory = ReplayMemory(100, seed=0)
    memory.push(_transitions(3))

    optimizer.optimize(memory)

    for target, policy in zip(optimizer.target_net.parameters(),
                              optimizer.policy_net.parameters()):
        assert_allclose(target.detach(), policy.detach())


def test_soft_update_interval():
    optimizer = _optimizer(batch_size=4, tau=1., soft_update_interval=2)
    memory = ReplayMemory(100, seed=0)
    memory.push(_transitions(3))
    before = _parameters(optimizer.target_net)

    optimizer.optimize(memory)

    for target, original in zip(optimizer.target_net.parameters(), before):
        assert_allclose(target.detach(), original)


def test_prioritized_memory_receives_new_priorities():
    optimizer = _optimizer(batch_size=4, double=True)
    memory = PrioritizedReplayMemory(100, seed=0)
    memory.push(_transitions(3))

    optimizer.optimize(memory)

    assert len(memory.sampled_indices) == 4
    assert any(memory.priority(i) != pytest.approx(1.) for i in memory.sampled_indices)


@pytest.mark.parametrize('n_step_returns', [1, 3])
def test_categorical_optimize(n_step_returns):
    optimizer = _optimizer(batch_size=4, num_atoms=11, n_step_returns=n_step_returns)
    memory = PrioritizedReplayMemory(100, seed=0)
    memory.push(_transitions(3))

    metrics = optimizer.optimize(memory)

    assert np.isfinite(metrics['loss'])


def test_all_terminal_batch():
    optimizer = _optimizer(batch_size=3)
    memory = ReplayMemory(10, seed=0)
    memory.push(_transitions(3, length=1))

    metrics = optimizer.optimize(memory)

    assert np.isfinite(metrics['loss'])

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
"""Tests for batching of transitions."""

import numpy as np
import pytest
import torch

from pytorch_rl_engine.data_structures import (Episode, MemoryTransition,
                                               state_to_tensor,
                                               states_to_tensor,
                                               to_memory_transitions,
                                               to_policy_batch, to_q_batch)


def assert_allclose(actual, desired):
    return np.testing.assert_allclose(actual, desired, rtol=1e-06, atol=1e-05)


def _chain(rewards):
    episode = Episode()
    for step, reward in enumerate(rewards):
        episode.add_transition([float(step)] * 4, step == len(rewards) - 1, [step % 2, 1], reward)
    return to_memory_transitions(episode.drain())


def test_q_batch_shapes():
    transitions = _chain([1., 2., 3.])

    batch = to_q_batch(transitions, gamma=0.9)

    assert batch.states.shape == (3, 4)
    assert batch.actions.shape == (3, 2)
    assert batch.actions.dtype == torch.int64
    assert batch.non_final_mask.tolist() == [True, True, False]
    assert batch.non_final_next_states.shape == (2, 4)
    assert_allclose(batch.rewards, [1., 2., 3.])
    assert_allclose(batch.discounts, [0.9, 0.9, 0.9])


def test_q_batch_all_terminal():
    transitions = [MemoryTransition([0.] * 4, [0, 0], [], 1.) for _ in range(3)]

    batch = to_q_batch(transitions)

    assert batch.non_final_mask.tolist() == [False] * 3
    assert batch.non_final_next_states.shape == (0, 4)


def test_q_batch_n_step():
    transitions = _chain([1., 2., 3.])

    batch = to_q_batch(transitions, gamma=0.5, n_steps=2)

    assert_allclose(batch.rewards, [2., 3.5, 3.])
    assert_allclose(batch.discounts, [0.25, 0.25, 0.5])
    assert batch.non_final_mask.tolist() == [True, False, False]
    assert_allclose(batch.non_final_next_states, [[2.] * 4])


def test_grid_states():
    assert states_to_tensor([np.zeros((3, 3)), np.ones((3, 3))]).shape == (2, 3, 3)


def test_three_dimensional_state_raises():
    with pytest.raises(ValueError):
        state_to_tensor(np.zeros((2, 2, 2)))


def test_different_state_shapes_raise():
    with pytest.raises(ValueError):
        states_to_tensor([[0., 1.], [0., 1., 2.]])


def test_different_head_counts_raise():
    transitions = [MemoryTransition([0.], [0], [], 1.),
                   MemoryTransition([0.], [0, 1], [], 1.)]

    with pytest.raises(ValueError):
        to_q_batch(transitions)


def test_policy_batch_concatenates_actions():
    transitions = [MemoryTransition([0., 1.], [2], [0.5, -0.5], 1.),
                   MemoryTransition([1., 0.], [1], [0.1, 0.2], 1.)]

    batch = to_policy_batch(transitions)

    assert batch.states.shape == (2, 2)
    assert_allclose(batch.actions, [[2., 0.5, -0.5], [1., 0.1, 0.2]])

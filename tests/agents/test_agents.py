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
"""Tests for agents: action selection, training entry points and persistence."""

import threading

import numpy as np
import pytest
import torch

from pytorch_rl_engine.agents import (DQNAgent, DQNAgentOptions, PPOAgent,
                                      PPOAgentOptions)
from pytorch_rl_engine.data_structures import Episode
from pytorch_rl_engine.tools import Recorder


def _portables(num_episodes, length=3, continuous=False):
    episode = Episode()
    for _ in range(num_episodes):
        for step in range(length):
            episode.add_transition([float(step), 0.5, 1.], step == length - 1, [step % 2, 1],
                                   1., continuous_actions=[0.] if continuous else [])
    return episode.drain()


def _dqn_options(tmp_path, **kwargs):
    return DQNAgentOptions(batch_size=4, width=16, depth=1, seed=0,
                           save_path=str(tmp_path))._replace(**kwargs)


def _ppo_options(tmp_path, **kwargs):
    return PPOAgentOptions(batch_size=2, width=16, depth=1, seed=0,
                           save_path=str(tmp_path))._replace(**kwargs)


def test_unequal_action_heads_raise(tmp_path):
    with pytest.raises(ValueError):
        DQNAgent((3,), [2, 3], _dqn_options(tmp_path))


@pytest.mark.parametrize('variant', [{},
                                     {'categorical': True, 'num_atoms': 11},
                                     {'boltzmann': True},
                                     {'noisy': True, 'dueling': True}])
def test_dqn_select_actions(tmp_path, variant):
    agent = DQNAgent((3,), [2, 2], _dqn_options(tmp_path, **variant))
    states = [[0., 1., 2.], [1., 1., 1.], [2., 0., 1.]]

    for is_training in (True, False):
        actions = agent.select_actions(states, is_training=is_training)
        assert actions.shape == (3, 2)
        assert ((actions >= 0) & (actions < 2)).all()
    assert agent.policy_net.training


def test_dqn_greedy_selection_is_deterministic(tmp_path):
    agent = DQNAgent((3,), [3], _dqn_options(tmp_path))
    states = [[0., 1., 2.], [1., 1., 1.]]

    first = agent.select_actions(states, is_training=False)

    assert np.array_equal(first, agent.select_actions(states, is_training=False))


def test_dqn_selection_waits_for_optimization(tmp_path):
    agent = DQNAgent((3,), [2], _dqn_options(tmp_path, noisy=True))
    selector = threading.Thread(target=agent.select_actions, args=([[0., 1., 2.]], False))

    with agent.lock_memory:
        selector.start()
        selector.join(timeout=0.2)
        assert selector.is_alive()
        assert agent.policy_net.training

    selector.join(timeout=5.)
    assert not selector.is_alive()
    assert agent.policy_net.training


def test_dqn_add_and_optimize(tmp_path):
    recorder = Recorder(str(tmp_path))
    agent = DQNAgent((3,), [2, 2], _dqn_options(tmp_path, prioritized=True), recorder=recorder)

    assert agent.optimize_model() is None

    agent.add_transitions(_portables(2))

    assert agent.episode_count == 2
    assert len(agent.memory) == 6
    assert recorder.episodes_seen == 2
    assert np.isfinite(agent.optimize_model()['loss'])
    assert recorder.updates_seen == 1


def test_dqn_save_and_load(tmp_path):
    agent = DQNAgent((3,), [2, 2], _dqn_options(tmp_path))
    agent.add_transitions(_portables(2))
    agent.optimize_model()
    agent.save()

    restored = DQNAgent((3,), [2, 2], _dqn_options(tmp_path, seed=1))
    restored.load()

    assert restored.episode_count == 2
    assert len(restored.memory) == 6
    for param, original in zip(restored.policy_net.parameters(), agent.policy_net.parameters()):
        np.testing.assert_allclose(param.detach().cpu().numpy(),
                                   original.detach().cpu().numpy())


def test_load_missing_checkpoint_raises(tmp_path):
    agent = DQNAgent((3,), [2], _dqn_options(tmp_path))

    with pytest.raises(FileNotFoundError):
        agent.load(str(tmp_path / 'missing'))


def test_load_without_memory_snapshot_empties_memory(tmp_path):
    agent = DQNAgent((3,), [2, 2], _dqn_options(tmp_path))
    agent.save(save_memory=False)
    agent.add_transitions(_portables(1))

    agent.load()

    assert len(agent.memory) == 0
    assert agent.episode_count == 0


def test_ppo_select_actions_respects_bounds(tmp_path):
    agent = PPOAgent((3,), [2, 3], [(-0.1, 0.1)], _ppo_options(tmp_path))
    states = [[0., 1., 2.], [1., 1., 1.]]

    discrete, continuous, core_state = agent.select_actions(states)

    assert discrete.shape == (2, 2)
    assert (discrete[:, 0] < 2).all()
    assert continuous.shape == (2, 1)
    assert (np.abs(continuous) <= 0.1 + 1e-6).all()
    assert core_state == tuple()


def test_ppo_nan_head_keeps_actions_in_range(tmp_path):
    agent = PPOAgent((3,), [2, 4], options=_ppo_options(tmp_path))
    with torch.no_grad():
        for param in agent.actor.discrete_heads[0].parameters():
            param.fill_(float('nan'))
    states = [[0., 1., 2.]] * 200

    discrete, _, _ = agent.select_actions(states)

    assert discrete[:, 0].max() < 2
    assert discrete[:, 1].max() < 4


def test_ppo_continuous_only(tmp_path):
    agent = PPOAgent((3,), [], [(-1., 1.), (0., 2.)], _ppo_options(tmp_path))

    discrete, continuous, _ = agent.select_actions([[0., 1., 2.]], is_training=False)

    assert discrete.shape == (1, 0)
    assert continuous.shape == (1, 2)


def test_ppo_recurrent_core_state(tmp_path):
    agent = PPOAgent((3,), [2], options=_ppo_options(tmp_path, use_rnn=True))
    core_state = agent.initial_state(2)

    _, _, core_state = agent.select_actions([[0., 1., 2.], [1., 1., 1.]], core_state=core_state)

    assert [s.shape for s in core_state] == [(1, 2, 16), (1, 2, 16)]


def test_ppo_train_and_save(tmp_path):
    agent = PPOAgent((3,), [2, 2], [(-1., 1.)], _ppo_options(tmp_path))

    agent.add_transitions(_portables(2, continuous=True))
    metrics = agent.optimize_model()

    assert np.isfinite(metrics['actor_loss'])
    assert len(agent.memory) == 0

    agent.save()
    restored = PPOAgent((3,), [2, 2], [(-1., 1.)], _ppo_options(tmp_path, seed=3))
    restored.load()

    assert restored.episode_count == 2

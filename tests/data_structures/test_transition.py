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
"""Tests for transition linkage and reconstruction."""

import pytest

from pytorch_rl_engine.data_structures import (Episode, MemoryTransition,
                                               PortableTransition,
                                               TransitionGraphError,
                                               episode_chains,
                                               to_memory_transitions,
                                               to_portable_transitions,
                                               walk_chain)


def _portable(transition_id, next_id, reward=1.):
    return PortableTransition(transition_id, (float(len(transition_id)),), (0,), (), reward, next_id)


def _two_episodes():
    episode = Episode()
    for step in range(3):
        episode.add_transition((float(step), 0.), step == 2, [step % 2], 1.)
    for step in range(2):
        episode.add_transition((0., float(step)), step == 1, [1], 2.)
    return episode.drain()


def test_round_trip_keeps_portable_transitions():
    portables = _two_episodes()

    transitions = to_memory_transitions(portables)

    assert to_portable_transitions(transitions) == portables


def test_reconstruction_links_neighbors():
    transitions = to_memory_transitions(_two_episodes())
    first, second, third = transitions[:3]

    assert first.previous_transition is None
    assert first.next_transition is second
    assert second.previous_transition is first
    assert first.next_state == second.state
    assert third.next_transition is None
    assert third.is_terminal


def test_chains_are_emitted_head_first():
    portables = [_portable('b', 'c'), _portable('c', None), _portable('a', 'b')]

    transitions = to_memory_transitions(portables)

    assert [t.id for t in transitions] == ['a', 'b', 'c']
    assert walk_chain(transitions[0]) == transitions


def test_duplicate_id_raises():
    with pytest.raises(TransitionGraphError):
        to_memory_transitions([_portable('a', None), _portable('a', None)])


def test_dangling_reference_raises():
    with pytest.raises(TransitionGraphError):
        to_memory_transitions([_portable('a', 'missing')])


def test_two_predecessors_raise():
    with pytest.raises(TransitionGraphError):
        to_memory_transitions([_portable('a', 'c'), _portable('b', 'c'), _portable('c', None)])


def test_cycle_raises():
    with pytest.raises(TransitionGraphError):
        to_memory_transitions([_portable('a', 'b'), _portable('b', 'a')])


def test_graph_error_is_value_error():
    assert issubclass(TransitionGraphError, ValueError)


def test_episode_chains_split_at_breaks():
    transitions = to_memory_transitions(_two_episodes())
    single = MemoryTransition((5., 5.), [0], [], 0., next_state=(6., 6.))

    chains = episode_chains(transitions + [single])

    assert [len(c) for c in chains] == [3, 2, 1]
    assert chains[2][0] is single


def test_to_transition_copies_fields():
    transition = MemoryTransition((1., 2.), [1, 0], [0.5], 3., next_state=(2., 3.))

    record = transition.to_transition()

    assert record.state == (1., 2.)
    assert record.discrete_actions == (1, 0)
    assert record.continuous_actions == (0.5,)
    assert record.reward == 3.
    assert record.next_state == (2., 3.)

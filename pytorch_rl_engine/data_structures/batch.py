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

"""Conversion of transitions into batched tensors.
"""
from typing import Any, List, NamedTuple, Sequence

import numpy as np
import torch

from ..functional.n_step import n_step_returns
from .transition import MemoryTransition


class QBatch(NamedTuple):
    """Tensors used by value based optimization.

    ``non_final_next_states`` holds only states of transitions flagged in ``non_final_mask``,
    it has a leading dimension of 0, if all transitions are terminal.
    """
    states: torch.Tensor
    actions: torch.Tensor
    rewards: torch.Tensor
    discounts: torch.Tensor
    non_final_mask: torch.Tensor
    non_final_next_states: torch.Tensor


class PolicyBatch(NamedTuple):
    """Tensors used by policy based optimization.

    ``actions`` concatenates discrete and continuous actions of each transition.
    """
    states: torch.Tensor
    actions: torch.Tensor


def state_to_tensor(state: Any) -> torch.Tensor:
    """Return :py:attr:`state` as float tensor.

    Raises
    ------
    ValueError
        If :py:attr:`state` is neither a flat vector nor a 2-D grid.
    """
    if isinstance(state, torch.Tensor):
        tensor = state.detach().float()
    else:
        tensor = torch.from_numpy(np.asarray(state, dtype=np.float32))

    if tensor.dim() not in (1, 2):
        raise ValueError("A state must be a flat vector or a 2-D grid, got shape %s."
                         % (tuple(tensor.shape),))
    return tensor


def states_to_tensor(states: Sequence[Any],
                     device: torch.device = None) -> torch.Tensor:
    """Stack :py:attr:`states` into a single tensor with a leading batch dimension.

    Raises
    ------
    ValueError
        If states are malformed or differ in shape.
    """
    tensors = [state_to_tensor(s) for s in states]
    shapes = {tuple(t.shape) for t in tensors}
    if len(shapes) > 1:
        raise ValueError("Can not stack states of different shapes %s." % sorted(shapes))

    return torch.stack(tensors).to(device)


def discrete_actions_to_tensor(transitions: Sequence[MemoryTransition],
                               device: torch.device = None) -> torch.Tensor:
    """Return a ``[B, heads]`` tensor of discrete actions.

    Raises
    ------
    ValueError
        If transitions differ in their number of discrete action heads.
    """
    head_counts = {len(t.discrete_actions) for t in transitions}
    if len(head_counts) > 1:
        raise ValueError("Transitions differ in their number of discrete action heads: %s."
                         % sorted(head_counts))

    return torch.tensor([t.discrete_actions for t in transitions],
                        dtype=torch.int64,
                        device=device)


def to_q_batch(transitions: List[MemoryTransition],
               device: torch.device = None,
               gamma: float = 0.99,
               n_steps: int = 1) -> QBatch:
    """Assemble a :py:class:`QBatch` from sampled :py:attr:`transitions`.

    For :py:attr:`n_steps` larger 1, rewards are replaced by n-step returns
    and next states by the state reached after walking up to n steps.

    Parameters
    ----------
    transitions: `list` of :py:class:`~.MemoryTransition`
        The sampled transitions.
    device: :py:class:`torch.device`
        The device all tensors are moved to.
    gamma: `float`
        Reward discount factor.
    n_steps: `int`
        Number of rewards accumulated per target.
    """
    assert len(transitions) > 0

    states = states_to_tensor([t.state for t in transitions], device)
    actions = discrete_actions_to_tensor(transitions, device)

    if n_steps > 1:
        rewards, next_states, discounts = n_step_returns(transitions, n_steps, gamma)
    else:
        rewards = torch.tensor([t.reward for t in transitions], dtype=torch.float)
        next_states = [t.next_state for t in transitions]
        discounts = torch.full((len(transitions),), gamma, dtype=torch.float)

    non_final_mask = torch.tensor([s is not None for s in next_states],
                                  dtype=torch.bool,
                                  device=device)
    non_final = [s for s in next_states if s is not None]
    if non_final:
        non_final_next_states = states_to_tensor(non_final, device)
    else:
        non_final_next_states = torch.zeros((0,) + tuple(states.shape[1:]), device=device)

    return QBatch(states,
                  actions,
                  rewards.to(device),
                  discounts.to(device),
                  non_final_mask,
                  non_final_next_states)


def to_policy_batch(transitions: List[MemoryTransition],
                    device: torch.device = None) -> PolicyBatch:
    """Assemble a :py:class:`PolicyBatch` from :py:attr:`transitions`.
    """
    assert len(transitions) > 0

    states = states_to_tensor([t.state for t in transitions], device)

    head_counts = {(len(t.discrete_actions), len(t.continuous_actions)) for t in transitions}
    if len(head_counts) > 1:
        raise ValueError("Transitions differ in their number of action heads: %s."
                         % sorted(head_counts))

    actions = torch.tensor([list(t.discrete_actions) + list(t.continuous_actions)
                            for t in transitions],
                           dtype=torch.float,
                           device=device)
    return PolicyBatch(states, actions)

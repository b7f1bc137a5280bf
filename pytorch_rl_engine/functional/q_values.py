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
"""Value computations of DQN and its categorical variant.

All functions operate on multiple discrete action heads that share one action count.
Scalar values have shape ``[B, heads, actions]``,
categorical values have shape ``[B, heads, actions, atoms]``.

See Also
--------
* `"Human-level control through deep reinforcement learning" <https://www.nature.com/articles/nature14236>`__
  by Mnih et al.
* `"Deep Reinforcement Learning with Double Q-learning" on arXiv <https://arxiv.org/abs/1509.06461>`__
  by van Hasselt, Guez and Silver.
"""

import torch
import torch.nn.functional as F
from torch import nn

from .categorical import expected_values


def _check_actions(actions: torch.Tensor, num_heads: int):
    if actions.dim() != 2 or actions.shape[1] != num_heads:
        raise ValueError("Expected actions of shape [B, %d], got %s."
                         % (num_heads, tuple(actions.shape)))


def _view_output(output: torch.Tensor, shape: tuple) -> torch.Tensor:
    if output.numel() != torch.Size(shape).numel():
        raise ValueError("Network output of shape %s does not fit expected shape %s."
                         % (tuple(output.shape), shape))
    return output.view(shape)


def q_values(states: torch.Tensor,
             net: nn.Module,
             num_heads: int,
             num_actions: int) -> torch.Tensor:
    """Forward :py:attr:`states` and return values of shape ``[B, heads, actions]``.
    """
    return _view_output(net(states), (states.shape[0], num_heads, num_actions))


def gather_action_values(values: torch.Tensor,
                         actions: torch.Tensor) -> torch.Tensor:
    """Select the values of taken :py:attr:`actions` (``[B, heads]``).
    """
    _check_actions(actions, values.shape[1])
    return values.gather(2, actions.unsqueeze(2)).squeeze(2)


@torch.no_grad()
def next_state_values(next_states: torch.Tensor,
                      target_net: nn.Module,
                      policy_net: nn.Module,
                      num_heads: int,
                      num_actions: int,
                      double: bool = False) -> torch.Tensor:
    """Return the values of the best actions in :py:attr:`next_states`, shape ``[M, heads]``.

    If :py:attr:`double` is set, actions are selected with :py:attr:`policy_net`
    and evaluated with :py:attr:`target_net`.
    """
    if next_states.shape[0] == 0:
        return torch.zeros((0, num_heads), device=next_states.device)

    target_values = q_values(next_states, target_net, num_heads, num_actions)
    if not double:
        return target_values.max(2).values

    best_actions = q_values(next_states, policy_net, num_heads, num_actions).argmax(2)
    return gather_action_values(target_values, best_actions)


def expected_state_action_values(next_values: torch.Tensor,
                                 rewards: torch.Tensor,
                                 discounts: torch.Tensor,
                                 non_final_mask: torch.Tensor) -> torch.Tensor:
    """Return regression targets ``rewards + discounts * next_values``, shape ``[B, heads]``.

    Terminal transitions contribute a next value of 0.
    """
    masked_values = torch.zeros((rewards.shape[0], next_values.shape[1]),
                                device=rewards.device)
    masked_values[non_final_mask] = next_values
    return rewards.unsqueeze(1) + discounts.unsqueeze(1) * masked_values


def huber_loss(values: torch.Tensor,
               targets: torch.Tensor) -> torch.Tensor:
    return F.smooth_l1_loss(values, targets)


def absolute_td_errors(values: torch.Tensor,
                       targets: torch.Tensor) -> torch.Tensor:
    """Return one absolute error per transition, averaged over action heads.
    """
    return (values - targets).abs().mean(1).detach()


def categorical_q_values(states: torch.Tensor,
                         net: nn.Module,
                         num_heads: int,
                         num_actions: int,
                         num_atoms: int) -> torch.Tensor:
    """Forward :py:attr:`states` and return distributions of shape ``[B, heads, actions, atoms]``.
    """
    return _view_output(net(states), (states.shape[0], num_heads, num_actions, num_atoms))


def gather_action_distributions(distributions: torch.Tensor,
                                actions: torch.Tensor) -> torch.Tensor:
    """Select the distributions of taken :py:attr:`actions`, shape ``[B, heads, atoms]``.
    """
    batch_size, num_heads, _, num_atoms = distributions.shape
    _check_actions(actions, num_heads)
    index = actions.view(batch_size, num_heads, 1, 1).expand(-1, -1, 1, num_atoms)
    return distributions.gather(2, index).squeeze(2)


@torch.no_grad()
def next_state_distributions(next_states: torch.Tensor,
                             target_net: nn.Module,
                             policy_net: nn.Module,
                             num_heads: int,
                             num_actions: int,
                             num_atoms: int,
                             value_support: torch.Tensor,
                             double: bool = False) -> torch.Tensor:
    """Return distributions of the best actions in :py:attr:`next_states`, shape ``[M, heads, atoms]``.

    Actions are compared by the expected value of their distributions.
    If :py:attr:`double` is set, actions are selected with :py:attr:`policy_net`
    and evaluated with :py:attr:`target_net`.
    """
    if next_states.shape[0] == 0:
        return torch.zeros((0, num_heads, num_atoms), device=next_states.device)

    target_distributions = categorical_q_values(next_states, target_net,
                                                num_heads, num_actions, num_atoms)
    if double:
        selector = categorical_q_values(next_states, policy_net,
                                        num_heads, num_actions, num_atoms)
    else:
        selector = target_distributions

    best_actions = expected_values(selector, value_support).argmax(2)
    return gather_action_distributions(target_distributions, best_actions)


def soft_update(target: nn.Module,
                policy: nn.Module,
                tau: float):
    """Blend parameters of :py:attr:`target` towards :py:attr:`policy` inplace.

    Each parameter is updated as ``target = (1 - tau) * target + tau * policy``.
    """
    assert 0. <= tau <= 1.

    with torch.no_grad():
        for target_param, policy_param in zip(target.parameters(), policy.parameters()):
            target_param.mul_(1. - tau).add_(policy_param, alpha=tau)

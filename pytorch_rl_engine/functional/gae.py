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
"""Functions to compute discounted returns and generalized advantage estimates.

See Also
--------
`"High-Dimensional Continuous Control Using Generalized Advantage Estimation"
on arXiv <https://arxiv.org/abs/1506.02438>`__ by Schulman, Moritz, Levine, Jordan and Abbeel.

All functions work on a single episode, ordered from its first to its last step.
"""

import collections

import torch

GAEReturns = collections.namedtuple(
    "GAEReturns",
    [
        "returns",
        "advantages",
    ],
)


@torch.no_grad()
def discounted_returns(rewards: torch.Tensor,
                       gamma: float,
                       bootstrap_value: float = 0.) -> torch.Tensor:
    """Return ``G_t = r_t + gamma * G_{t+1}`` for every step of an episode.

    Parameters
    ----------
    rewards: :py:class:`torch.Tensor`
        Rewards of shape ``[T]``.
    gamma: `float`
        Reward discount factor, must be a positive not larger than 1.
    bootstrap_value: `float`
        Value of the state following the last step. 0 for terminated episodes.
    """
    assert 0 < gamma <= 1.

    returns = torch.zeros_like(rewards)
    running = bootstrap_value
    for t in reversed(range(rewards.shape[0])):
        running = rewards[t] + gamma * running
        returns[t] = running
    return returns


@torch.no_grad()
def generalized_advantages(rewards: torch.Tensor,
                           values: torch.Tensor,
                           gamma: float,
                           lam: float,
                           bootstrap_value: float = 0.) -> GAEReturns:
    """Compute discounted returns and generalized advantage estimates of an episode.

    Walks the episode backward, accumulating TD residuals:
        * ``delta_t = r_t + gamma * V(s_{t+1}) - V(s_t)``
        * ``A_t = delta_t + gamma * lam * A_{t+1}``

    Returns a :py:class:`GAEReturns`.

    Parameters
    ----------
    rewards: :py:class:`torch.Tensor`
        Rewards of shape ``[T]``.
    values: :py:class:`torch.Tensor`
        Value estimates of shape ``[T]``.
    gamma: `float`
        Reward discount factor, must be a positive not larger than 1.
    lam: `float`
        Exponential weight of TD residuals, within ``[0, 1]``.
    bootstrap_value: `float`
        Value of the state following the last step. 0 for terminated episodes.
    """
    assert 0 < gamma <= 1.
    assert 0 <= lam <= 1.
    assert rewards.shape == values.shape

    advantages = torch.zeros_like(rewards)
    next_value = bootstrap_value
    running_advantage = 0.
    for t in reversed(range(rewards.shape[0])):
        delta = rewards[t] + gamma * next_value - values[t]
        running_advantage = delta + gamma * lam * running_advantage
        advantages[t] = running_advantage
        next_value = values[t]

    return GAEReturns(discounted_returns(rewards, gamma, bootstrap_value), advantages)


def normalize_advantages(advantages: torch.Tensor,
                         eps: float = 1e-10) -> torch.Tensor:
    """Shift and scale :py:attr:`advantages` to zero mean and unit variance.
    """
    return (advantages - advantages.mean()) / (advantages.std(unbiased=False) + eps)

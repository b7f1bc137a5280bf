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
"""Functions used to select actions during exploration.
"""
import math
from typing import Sequence

import torch
import torch.nn.functional as F


def epsilon_threshold(eps_start: float,
                      eps_end: float,
                      eps_decay: float,
                      episode_count: int) -> float:
    """Return the exploration rate after :py:attr:`episode_count` episodes.

    The rate decays exponentially from :py:attr:`eps_start` towards :py:attr:`eps_end`.
    """
    return eps_end + (eps_start - eps_end) * math.exp(-1. * episode_count / eps_decay)


def valid_action_mask(action_sizes: Sequence[int],
                      num_actions: int,
                      device: torch.device = None) -> torch.Tensor:
    """Return a boolean mask of shape ``[heads, num_actions]``, `True` for actions a head owns.
    """
    assert max(action_sizes) <= num_actions
    return torch.arange(num_actions, device=device) < torch.tensor(action_sizes,
                                                                   device=device).unsqueeze(-1)


def sanitize_probabilities(probs: torch.Tensor,
                           valid_actions: torch.Tensor = None) -> torch.Tensor:
    """Replace non-finite and negative entries of :py:attr:`probs` with 0.

    Rows over the last dimension that sum to 0 afterwards are replaced by a uniform distribution,
    so that sampling never fails. If :py:attr:`valid_actions` is given, entries outside of it
    are set to 0 and the uniform fallback only covers valid actions.
    """
    probs = torch.where(torch.isfinite(probs), probs, torch.zeros_like(probs)).clamp(min=0.)
    if valid_actions is None:
        uniform = torch.full_like(probs, 1. / probs.shape[-1])
    else:
        valid_actions = valid_actions.expand_as(probs)
        probs = probs.masked_fill(~valid_actions, 0.)
        uniform = valid_actions.to(probs.dtype)
        uniform = uniform / uniform.sum(-1, keepdim=True)
    return torch.where(probs.sum(-1, keepdim=True) > 0, probs, uniform)


def boltzmann_probabilities(values: torch.Tensor,
                            temperature: float = 1.) -> torch.Tensor:
    """Return softmax probabilities of :py:attr:`values` over the last dimension.
    """
    assert temperature > 0

    shifted = values - values.max(-1, keepdim=True).values
    probs = F.softmax(shifted / temperature, dim=-1).clamp(min=1e-10)
    return sanitize_probabilities(probs)


def sample_discrete(probs: torch.Tensor,
                    is_training: bool = True,
                    valid_actions: torch.Tensor = None) -> torch.Tensor:
    """Select one action per head from :py:attr:`probs` of shape ``[B, heads, actions]``.

    Samples while training, takes the most probable action otherwise.
    :py:attr:`valid_actions` of shape ``[heads, actions]`` restricts heads that own
    less than ``actions`` actions, see :py:func:`valid_action_mask`.
    """
    probs = sanitize_probabilities(probs, valid_actions)
    if not is_training:
        return probs.argmax(-1)

    batch_size, num_heads, num_actions = probs.shape
    flat = probs.reshape(-1, num_actions)
    return torch.multinomial(flat, 1).view(batch_size, num_heads)


def epsilon_greedy(greedy_actions: torch.Tensor,
                   num_actions: int,
                   epsilon: float) -> torch.Tensor:
    """Replace actions of ``[B, heads]`` :py:attr:`greedy_actions` by random ones with rate :py:attr:`epsilon`.

    The decision is made per state, all heads of a state explore together.
    """
    explore = torch.rand(greedy_actions.shape[0], device=greedy_actions.device) < epsilon
    random_actions = torch.randint(0, num_actions, greedy_actions.shape,
                                   device=greedy_actions.device)
    return torch.where(explore.unsqueeze(1), random_actions, greedy_actions)

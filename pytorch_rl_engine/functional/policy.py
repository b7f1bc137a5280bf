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
"""Log-probabilities and entropies of actions under an actor's output.

An actor returns a tensor of shape ``[B, n_discrete + 2 * n_continuous, head_size]``:
    * Rows ``0 .. n_discrete - 1`` hold action probabilities of each discrete head.
    * Column 0 of rows ``n_discrete .. n_discrete + n_continuous - 1`` holds
      the mean of each continuous head.
    * Column 0 of the last ``n_continuous`` rows holds the log standard deviation
      of each continuous head.
"""
import math
from typing import Tuple

import torch

_LOG_EPS = 1e-10
_HALF_LOG_2PI = 0.5 * math.log(2 * math.pi)


def _check_shapes(output: torch.Tensor,
                  actions: torch.Tensor,
                  n_discrete: int,
                  n_continuous: int):
    if output.dim() != 3 or output.shape[1] != n_discrete + 2 * n_continuous:
        raise ValueError("Expected actor output of shape [B, %d, head_size], got %s."
                         % (n_discrete + 2 * n_continuous, tuple(output.shape)))
    if actions.shape != (output.shape[0], n_discrete + n_continuous):
        raise ValueError("Expected actions of shape [%d, %d], got %s."
                         % (output.shape[0], n_discrete + n_continuous, tuple(actions.shape)))


def _discrete_log_probs(probs: torch.Tensor, actions: torch.Tensor) -> torch.Tensor:
    taken = probs.gather(2, actions.long().unsqueeze(-1)).squeeze(-1)
    return torch.log(taken + _LOG_EPS)


def _gaussian_log_probs(mean: torch.Tensor,
                        log_std: torch.Tensor,
                        values: torch.Tensor) -> torch.Tensor:
    variance = torch.exp(2 * log_std)
    return -((values - mean) ** 2) / (2 * variance) - log_std - _HALF_LOG_2PI


def log_probs(output: torch.Tensor,
              actions: torch.Tensor,
              n_discrete: int,
              n_continuous: int) -> torch.Tensor:
    """Return log-probabilities of :py:attr:`actions`, shape ``[B, n_discrete + n_continuous]``.

    Parameters
    ----------
    output: :py:class:`torch.Tensor`
        Actor output of shape ``[B, n_discrete + 2 * n_continuous, head_size]``.
    actions: :py:class:`torch.Tensor`
        Discrete actions followed by continuous actions, shape ``[B, n_discrete + n_continuous]``.
    n_discrete: `int`
        Number of discrete action heads.
    n_continuous: `int`
        Number of continuous action heads.
    """
    return log_probs_and_entropy(output, actions, n_discrete, n_continuous)[0]


def log_probs_and_entropy(output: torch.Tensor,
                          actions: torch.Tensor,
                          n_discrete: int,
                          n_continuous: int) -> Tuple[torch.Tensor, torch.Tensor]:
    """Return log-probabilities of :py:attr:`actions` and the entropy of each sample.

    The entropy is averaged over all action heads and has shape ``[B]``.
    See :py:func:`log_probs` for parameters.
    """
    _check_shapes(output, actions, n_discrete, n_continuous)

    log_prob_parts = []
    entropy_parts = []

    if n_discrete > 0:
        probs = output[:, :n_discrete]
        log_prob_parts.append(_discrete_log_probs(probs, actions[:, :n_discrete]))
        entropy_parts.append(-(probs * torch.log(probs + _LOG_EPS)).sum(-1))

    if n_continuous > 0:
        mean = output[:, n_discrete:n_discrete + n_continuous, 0]
        log_std = output[:, n_discrete + n_continuous:, 0]
        log_prob_parts.append(_gaussian_log_probs(mean, log_std, actions[:, n_discrete:]))
        entropy_parts.append(log_std + 0.5 + _HALF_LOG_2PI)

    entropy = torch.cat(entropy_parts, dim=1).mean(1)
    return torch.cat(log_prob_parts, dim=1), entropy

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
"""Collection of loss functions used by proximal policy optimization.

See Also
--------
`"Proximal Policy Optimization Algorithms" on arXiv <https://arxiv.org/abs/1707.06347>`__
by Schulman, Wolski, Dhariwal, Radford and Klimov.

All losses accept an optional boolean ``mask``.
If given, every input is reduced to its masked entries before any arithmetic,
so that values at unmasked positions can not influence results or gradients.
"""

from typing import Optional

import torch


def masked_select_batch(tensor: torch.Tensor,
                        mask: torch.Tensor) -> torch.Tensor:
    """Select rows of :py:attr:`tensor` flagged by the 1-D :py:attr:`mask`.

    Trailing dimensions are kept, the result has shape ``[mask.sum(), *tensor.shape[1:]]``.
    """
    if mask.dim() != 1 or mask.shape[0] != tensor.shape[0]:
        raise ValueError("Mask of shape %s does not fit tensor of shape %s."
                         % (tuple(mask.shape), tuple(tensor.shape)))
    return tensor[mask]


def _apply_mask(mask: Optional[torch.Tensor], *tensors: torch.Tensor):
    if mask is None:
        return tensors
    return tuple(masked_select_batch(t, mask) for t in tensors)


def clipped_surrogate_loss(log_probs: torch.Tensor,
                           old_log_probs: torch.Tensor,
                           advantages: torch.Tensor,
                           entropy: torch.Tensor,
                           clip_epsilon: float = 0.2,
                           entropy_coefficient: float = 0.1,
                           mask: torch.Tensor = None) -> torch.Tensor:
    """Return the clipped surrogate actor loss with entropy regularization.

    ``-mean(min(ratio * A, clip(ratio, 1 - eps, 1 + eps) * A)) - entropy_coefficient * mean(entropy)``

    Parameters
    ----------
    log_probs: :py:class:`torch.Tensor`
        Log-probabilities of taken actions under the current policy, shape ``[B, heads]``.
    old_log_probs: :py:class:`torch.Tensor`
        Log-probabilities of taken actions before the update, shape ``[B, heads]``.
    advantages: :py:class:`torch.Tensor`
        Advantages of shape ``[B]``.
    entropy: :py:class:`torch.Tensor`
        Policy entropy of shape ``[B]``.
    clip_epsilon: `float`
        Ratios are clipped to ``[1 - clip_epsilon, 1 + clip_epsilon]``.
    entropy_coefficient: `float`
        Multiplier of the entropy bonus.
    mask: :py:class:`torch.Tensor`
        Optional boolean mask of shape ``[B]``.
    """
    log_probs, old_log_probs, advantages, entropy = _apply_mask(
        mask, log_probs, old_log_probs, advantages, entropy)

    ratio = torch.exp(log_probs - old_log_probs.detach())
    advantages = advantages.detach().unsqueeze(1)

    surrogate = ratio * advantages
    clipped_surrogate = torch.clamp(ratio, 1. - clip_epsilon, 1. + clip_epsilon) * advantages

    return -torch.min(surrogate, clipped_surrogate).mean() - entropy_coefficient * entropy.mean()


def clipped_value_loss(values: torch.Tensor,
                       old_values: torch.Tensor,
                       returns: torch.Tensor,
                       clip_range: float = 0.2,
                       value_coefficient: float = 0.5,
                       mask: torch.Tensor = None) -> torch.Tensor:
    """Return the clipped critic loss.

    The value is clipped to within :py:attr:`clip_range` of :py:attr:`old_values`,
    the larger of both squared errors is used.

    Parameters
    ----------
    values: :py:class:`torch.Tensor`
        Value estimates of the critic being updated, shape ``[B]``.
    old_values: :py:class:`torch.Tensor`
        Value estimates before the update, shape ``[B]``.
    returns: :py:class:`torch.Tensor`
        Discounted returns, shape ``[B]``.
    clip_range: `float`
        Maximum distance of clipped values from :py:attr:`old_values`.
    value_coefficient: `float`
        Multiplier of the loss.
    mask: :py:class:`torch.Tensor`
        Optional boolean mask of shape ``[B]``.
    """
    values, old_values, returns = _apply_mask(mask, values, old_values, returns)
    old_values = old_values.detach()
    returns = returns.detach()

    clipped_values = old_values + torch.clamp(values - old_values, -clip_range, clip_range)
    value_losses = (values - returns) ** 2
    clipped_value_losses = (clipped_values - returns) ** 2

    return value_coefficient * torch.max(value_losses, clipped_value_losses).mean()


def approximate_kl(log_probs: torch.Tensor,
                   old_log_probs: torch.Tensor,
                   mask: torch.Tensor = None) -> torch.Tensor:
    """Return ``mean(old_log_probs - log_probs)``, an estimate of the policy change.
    """
    log_probs, old_log_probs = _apply_mask(mask, log_probs, old_log_probs)
    return (old_log_probs - log_probs).mean().detach()

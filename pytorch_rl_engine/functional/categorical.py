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
"""Functions operating on categorical value distributions.

See Also
--------
`"A Distributional Perspective on Reinforcement Learning" on arXiv <https://arxiv.org/abs/1707.06887>`__
by Bellemare, Dabney and Munos.
"""

import torch
import torch.nn.functional as F


def support(v_min: float,
            v_max: float,
            num_atoms: int,
            device: torch.device = None) -> torch.Tensor:
    """Return ``num_atoms`` evenly spaced values spanning ``[v_min, v_max]``.
    """
    assert num_atoms > 1
    assert v_min < v_max
    return torch.linspace(v_min, v_max, num_atoms, device=device)


def expected_values(distributions: torch.Tensor,
                    value_support: torch.Tensor) -> torch.Tensor:
    """Reduce distributions over the last dimension to their expected value.
    """
    return (distributions * value_support).sum(-1)


def project_distribution(next_distributions: torch.Tensor,
                         rewards: torch.Tensor,
                         discounts: torch.Tensor,
                         value_support: torch.Tensor) -> torch.Tensor:
    """Project shifted and scaled distributions back onto :py:attr:`value_support`.

    For each atom ``z_j``, ``b_j = (clamp(reward + discount * z_j, v_min, v_max) - v_min) / delta_z``
    is computed. The probability of ``z_j`` is split between the neighboring atoms
    ``floor(b_j)`` and ``ceil(b_j)`` by linear interpolation.
    If ``b_j`` hits an atom exactly, the whole probability is assigned to that atom.

    Parameters
    ----------
    next_distributions: :py:class:`torch.Tensor`
        Distributions of shape ``[B, heads, atoms]``.
    rewards: :py:class:`torch.Tensor`
        Rewards of shape ``[B]``.
    discounts: :py:class:`torch.Tensor`
        Discount factors of shape ``[B]``.
    value_support: :py:class:`torch.Tensor`
        The support of shape ``[atoms]``.
    """
    num_atoms = value_support.numel()
    v_min = value_support[0].item()
    v_max = value_support[-1].item()
    delta_z = (v_max - v_min) / (num_atoms - 1)

    shifted = rewards.view(-1, 1, 1) + discounts.view(-1, 1, 1) * value_support.view(1, 1, -1)
    shifted = shifted.clamp(v_min, v_max)

    b = ((shifted - v_min) / delta_z).clamp(0, num_atoms - 1)
    lower = b.floor()
    upper = b.ceil()

    lower_weight = (upper - b) + (upper == lower).to(b.dtype)
    upper_weight = b - lower

    projected = torch.zeros_like(next_distributions)
    projected.scatter_add_(-1,
                           lower.expand_as(next_distributions).long(),
                           next_distributions * lower_weight)
    projected.scatter_add_(-1,
                           upper.expand_as(next_distributions).long(),
                           next_distributions * upper_weight)
    return projected


def terminal_distribution(rewards: torch.Tensor,
                          value_support: torch.Tensor,
                          num_heads: int) -> torch.Tensor:
    """Return distributions placing all mass on the atom nearest to the clamped reward.

    The result has shape ``[B, num_heads, atoms]``.
    """
    num_atoms = value_support.numel()
    v_min = value_support[0].item()
    v_max = value_support[-1].item()
    delta_z = (v_max - v_min) / (num_atoms - 1)

    index = ((rewards.clamp(v_min, v_max) - v_min) / delta_z).round().long()
    index = index.clamp(0, num_atoms - 1)

    distribution = F.one_hot(index, num_atoms).to(value_support.dtype)
    return distribution.unsqueeze(1).expand(-1, num_heads, -1).clone()


def categorical_targets(next_distributions: torch.Tensor,
                        rewards: torch.Tensor,
                        discounts: torch.Tensor,
                        non_final_mask: torch.Tensor,
                        value_support: torch.Tensor,
                        num_heads: int) -> torch.Tensor:
    """Build target distributions of shape ``[B, heads, atoms]``.

    Non terminal transitions use :py:func:`project_distribution` of their next state distribution,
    terminal transitions use :py:func:`terminal_distribution`.

    Parameters
    ----------
    next_distributions: :py:class:`torch.Tensor`
        Distributions of the chosen next actions for non terminal transitions only,
        shape ``[M, heads, atoms]``.
    rewards: :py:class:`torch.Tensor`
        Rewards of shape ``[B]``.
    discounts: :py:class:`torch.Tensor`
        Discount factors of shape ``[B]``.
    non_final_mask: :py:class:`torch.Tensor`
        Boolean mask of shape ``[B]``, `True` for all M non terminal transitions.
    value_support: :py:class:`torch.Tensor`
        The support of shape ``[atoms]``.
    num_heads: `int`
        Number of action heads.
    """
    targets = terminal_distribution(rewards, value_support, num_heads)
    if next_distributions.shape[0] > 0:
        targets[non_final_mask] = project_distribution(next_distributions,
                                                       rewards[non_final_mask],
                                                       discounts[non_final_mask],
                                                       value_support)
    return targets


def categorical_loss(distributions: torch.Tensor,
                     targets: torch.Tensor,
                     min_probability: float = 1e-8) -> torch.Tensor:
    """Return the KL divergence of :py:attr:`distributions` from :py:attr:`targets`.

    Averaged over batch and atoms, summed over action heads.
    """
    log_distributions = distributions.clamp(min=min_probability).log()
    divergence = F.kl_div(log_distributions, targets, reduction='none')
    return divergence.mean(dim=(0, 2)).sum()


def categorical_td_errors(distributions: torch.Tensor,
                          targets: torch.Tensor) -> torch.Tensor:
    """Return one absolute error per transition, used as priority.
    """
    return (distributions - targets).abs().sum(-1).mean(1).detach()

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
"""Padding of variable length episodes for recurrent policies.
"""
import collections
from typing import List

import torch

from ..data_structures.transition import MemoryTransition

PaddedEpisodes = collections.namedtuple(
    "PaddedEpisodes",
    [
        "episodes",
        "mask",
        "lengths",
    ],
)


def pad_episodes(episodes: List[List[MemoryTransition]],
                 device: torch.device = None) -> PaddedEpisodes:
    """Return a padded view of :py:attr:`episodes` with equal lengths.

    Every episode shorter than the longest one is extended by repeating its final state
    with zero reward. Stored transitions are neither modified nor relinked,
    padding steps are new objects that only exist within the returned view.

    Returns a :py:class:`PaddedEpisodes` with:
        * episodes: `list` of padded episodes, all of the same length ``T``.
        * mask: boolean tensor of shape ``[E * T]``, `True` for real steps,
          laid out episode by episode.
        * lengths: `list` of original episode lengths.
    """
    assert len(episodes) > 0
    assert all(len(e) > 0 for e in episodes)

    lengths = [len(e) for e in episodes]
    longest = max(lengths)

    padded = []
    for episode in episodes:
        last = episode[-1]
        padding = [MemoryTransition(last.state,
                                    last.discrete_actions,
                                    last.continuous_actions,
                                    0.,
                                    next_state=last.state)
                   for _ in range(longest - len(episode))]
        padded.append(list(episode) + padding)

    mask = torch.tensor([[t < length for t in range(longest)] for length in lengths],
                        dtype=torch.bool,
                        device=device).view(-1)

    return PaddedEpisodes(padded, mask, lengths)


def zero_padded_states(states: torch.Tensor, mask: torch.Tensor) -> torch.Tensor:
    """Return a copy of ``[E, T, ...]`` :py:attr:`states` with every padded step set to 0.

    :py:attr:`mask` is the flat step mask of :py:func:`pad_episodes`.
    """
    step_mask = mask.view(*states.shape[:2], *[1] * (states.dim() - 2))
    return states.masked_fill(~step_mask, 0.)

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

"""Replay memories that store :py:class:`~.transition.MemoryTransition` objects.

Exposed classes:
    * :py:class:`ReplayMemory`, uniform sampling with FIFO eviction.
    * :py:class:`PrioritizedReplayMemory`, proportional prioritized sampling.
    * :py:class:`EpisodicReplayMemory`, storage of whole episodes, intended for on-policy learning.
"""
import os
import random
from collections import deque
from typing import Deque, Iterable, List, Optional, Union

import torch

from .sum_tree import SumTree
from .transition import MemoryTransition, episode_chains, to_memory_transitions

Transitions = Union[MemoryTransition, Iterable[MemoryTransition]]


def _as_list(transitions: Transitions) -> List[MemoryTransition]:
    if isinstance(transitions, MemoryTransition):
        return [transitions]
    return list(transitions)


class BaseMemory():
    """Functionality shared by all replay memories.

    Subclasses implement :py:meth:`push()`, :py:meth:`sample()`,
    :py:meth:`sample_entire_memory()`, :py:meth:`clear()` and :py:meth:`__len__()`.
    """

    def push(self, transitions: Transitions):
        raise NotImplementedError

    def sample(self, batch_size: int) -> List[MemoryTransition]:
        raise NotImplementedError

    def sample_entire_memory(self) -> List[MemoryTransition]:
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError

    @property
    def episode_count(self) -> int:
        """The number of stored terminal transitions.
        """
        return sum(1 for t in self.sample_entire_memory() if t.is_terminal)

    def _check_batch_size(self, batch_size: int):
        if batch_size > len(self):
            raise ValueError("Can not sample %d transitions from a memory holding %d."
                             % (batch_size, len(self)))

    def save(self, path: str):
        """Save all stored transitions as portable transitions to :py:attr:`path`.

        The state following the last transition of a truncated chain is saved separately,
        as it can not be restored from linkage.
        """
        transitions = self.sample_entire_memory()
        dangling_next_states = {t.id: t.next_state for t in transitions
                                if t.next_transition is None and t.next_state is not None}

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        torch.save({'transitions': [t.to_portable() for t in transitions],
                    'dangling_next_states': dangling_next_states},
                   path)

    def load(self, path: str):
        """Replace the content of this memory with the transitions saved at :py:attr:`path`.

        Raises
        ------
        FileNotFoundError
            If no file exists at :py:attr:`path`.
        """
        snapshot = torch.load(path, weights_only=False)

        transitions = to_memory_transitions(snapshot['transitions'])
        for transition in transitions:
            if transition.id in snapshot['dangling_next_states']:
                transition.next_state = snapshot['dangling_next_states'][transition.id]

        self.clear()
        self.push(transitions)


class ReplayMemory(BaseMemory):
    """Replay memory with uniform sampling.

    Exceeding :py:attr:`capacity` evicts the oldest transitions first.

    Parameters
    ----------
    capacity: `int`
        The maximum number of stored transitions.
    seed: `int`
        Seed of the random source used for sampling.
    """

    def __init__(self,
                 capacity: int,
                 seed: Optional[int] = None):
        assert capacity > 0

        self.capacity = capacity
        self._memory: Deque[MemoryTransition] = deque(maxlen=capacity)
        self._random = random.Random(seed)

    def push(self, transitions: Transitions):
        self._memory.extend(_as_list(transitions))

    def sample(self, batch_size: int) -> List[MemoryTransition]:
        """Draw :py:attr:`batch_size` distinct transitions uniformly at random.
        """
        self._check_batch_size(batch_size)
        return self._random.sample(self._memory, batch_size)

    def sample_entire_memory(self) -> List[MemoryTransition]:
        return list(self._memory)

    def clear(self):
        self._memory.clear()

    def __len__(self) -> int:
        return len(self._memory)


class PrioritizedReplayMemory(BaseMemory):
    """Replay memory with proportional prioritized sampling.

    Transitions are stored in a circular buffer, their priorities in a :py:class:`~.SumTree`.
    Each transition is drawn with probability proportional to ``priority ** alpha``.
    New transitions receive the highest priority seen so far.

    See Also
    --------
    `"Prioritized Experience Replay" on arXiv <https://arxiv.org/abs/1511.05952>`__
    by Schaul, Quan, Antonoglou and Silver.

    Parameters
    ----------
    capacity: `int`
        The maximum number of stored transitions.
    alpha: `float`
        Exponent applied to priorities. 0 yields uniform sampling.
    seed: `int`
        Seed of the random source used for sampling.
    """

    def __init__(self,
                 capacity: int,
                 alpha: float = 0.6,
                 seed: Optional[int] = None):
        assert capacity > 0
        assert alpha >= 0

        self.capacity = capacity
        self.alpha = alpha
        self._memory: List[MemoryTransition] = []
        self._tree = SumTree(capacity)
        self._random = random.Random(seed)

        self._write_index = 0
        self._max_priority = 1.
        self.sampled_indices: List[int] = []

    def push(self, transitions: Transitions):
        for transition in _as_list(transitions):
            if len(self._memory) < self.capacity:
                self._memory.append(transition)
            else:
                self._memory[self._write_index] = transition

            self._tree.update(self._write_index, self._max_priority ** self.alpha)
            self._write_index = (self._write_index + 1) % self.capacity

    def sample(self, batch_size: int) -> List[MemoryTransition]:
        """Draw :py:attr:`batch_size` transitions proportionally to their priority.

        The total priority is split into :py:attr:`batch_size` equal segments,
        one value is drawn uniformly from each segment.
        Drawn indices are kept in :py:attr:`sampled_indices`.
        """
        self._check_batch_size(batch_size)

        segment = self._tree.total() / batch_size
        indices = []
        for i in range(batch_size):
            value = self._random.uniform(segment * i, segment * (i + 1))
            index, _ = self._tree.retrieve(value)
            # float rounding may descend into an unused leaf
            indices.append(min(index, len(self._memory) - 1))

        self.sampled_indices = indices
        return [self._memory[i] for i in indices]

    def update_priority(self, index: int, priority: float):
        """Overwrite the priority of the transition stored at :py:attr:`index`.
        """
        if not 0 <= index < len(self._memory):
            raise IndexError("Can not update priority of index %d, memory holds %d transitions."
                             % (index, len(self._memory)))

        self._max_priority = max(self._max_priority, priority)
        self._tree.update(index, priority ** self.alpha)

    def update_priorities(self, indices: Iterable[int], priorities: Iterable[float]):
        for index, priority in zip(indices, priorities):
            self.update_priority(index, priority)

    def priority(self, index: int) -> float:
        """Return the raw priority of the transition at :py:attr:`index`.
        """
        weighted = self._tree.priority(index)
        if self.alpha == 0:
            return weighted
        return weighted ** (1. / self.alpha)

    def sample_entire_memory(self) -> List[MemoryTransition]:
        if len(self._memory) < self.capacity:
            return list(self._memory)
        return self._memory[self._write_index:] + self._memory[:self._write_index]

    def clear(self):
        self._memory = []
        self._tree.clear()
        self._write_index = 0
        self._max_priority = 1.
        self.sampled_indices = []

    def __len__(self) -> int:
        return len(self._memory)


class EpisodicReplayMemory(BaseMemory):
    """Replay memory that stores whole episodes.

    Pushed transitions are grouped into their episode chains.
    Exceeding :py:attr:`capacity` evicts the oldest episodes as a whole,
    the most recent episode is always kept.

    Parameters
    ----------
    capacity: `int`
        The maximum number of stored transitions.
    seed: `int`
        Seed of the random source used for sampling.
    """

    def __init__(self,
                 capacity: int,
                 seed: Optional[int] = None):
        assert capacity > 0

        self.capacity = capacity
        self._episodes: Deque[List[MemoryTransition]] = deque()
        self._length = 0
        self._random = random.Random(seed)

    def push(self, transitions: Transitions):
        for chain in episode_chains(_as_list(transitions)):
            head = chain[0]
            # continue a stored, unfinished episode
            if (self._episodes
                    and head.previous_transition is not None
                    and head.previous_transition is self._episodes[-1][-1]):
                self._episodes[-1].extend(chain)
            else:
                self._episodes.append(list(chain))
            self._length += len(chain)

        while self._length > self.capacity and len(self._episodes) > 1:
            self._length -= len(self._episodes.popleft())

    def sample(self, batch_size: int) -> List[MemoryTransition]:
        self._check_batch_size(batch_size)
        return self._random.sample(self.sample_entire_memory(), batch_size)

    def sample_episodes(self) -> List[List[MemoryTransition]]:
        """Return all stored episodes, oldest first.
        """
        return [list(episode) for episode in self._episodes]

    def sample_entire_memory(self) -> List[MemoryTransition]:
        return [t for episode in self._episodes for t in episode]

    def clear(self):
        self._episodes.clear()
        self._length = 0

    def __len__(self) -> int:
        return self._length

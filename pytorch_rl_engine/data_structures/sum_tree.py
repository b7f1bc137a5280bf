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

"""Binary sum tree used for proportional prioritized sampling.
"""
from typing import Tuple

import numpy as np


class SumTree():
    """Binary tree whose inner nodes store the sum of their children.

    Leaves are stored in the last :py:attr:`capacity` entries of a flat array.
    Updating a leaf and retrieving a leaf for a cumulative value both take O(log n).

    Parameters
    ----------
    capacity: `int`
        The number of leaves.
    """

    def __init__(self, capacity: int):
        assert capacity > 0

        self.capacity = capacity
        self.tree = np.zeros(2 * capacity - 1, dtype=np.float64)

    def update(self, index: int, priority: float):
        """Set the priority of leaf :py:attr:`index` and propagate the change to the root.
        """
        if not 0 <= index < self.capacity:
            raise IndexError("Leaf index %d out of range for capacity %d."
                             % (index, self.capacity))

        node = index + self.capacity - 1
        change = priority - self.tree[node]
        self.tree[node] = priority

        while node > 0:
            node = (node - 1) // 2
            self.tree[node] += change

    def retrieve(self, value: float) -> Tuple[int, float]:
        """Descend from the root to the leaf covering the cumulative :py:attr:`value`.

        Returns the leaf index and its priority.
        """
        node = 0
        while node < self.capacity - 1:
            left = 2 * node + 1
            if value < self.tree[left]:
                node = left
            else:
                value -= self.tree[left]
                node = left + 1

        return node - self.capacity + 1, float(self.tree[node])

    def priority(self, index: int) -> float:
        return float(self.tree[index + self.capacity - 1])

    def total(self) -> float:
        return float(self.tree[0])

    def max_priority(self) -> float:
        return float(np.max(self.tree[self.capacity - 1:]))

    def clear(self):
        self.tree.fill(0.)

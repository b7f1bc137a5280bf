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
#
# pylint: disable=empty-docstring
"""
"""
import uuid
from typing import Any, List, Optional, Sequence

from .transition import PortableTransition


class Episode():
    """Accumulates the steps of a single environment instance into portable transitions.

    Transitions are buffered until the episode terminates.
    Only then they are moved to :py:attr:`completed_transitions`,
    so that consumers only see complete chains.
    """

    def __init__(self):
        # STORAGE
        self._current_id: Optional[str] = None
        self._pending: List[PortableTransition] = []
        self.completed_transitions: List[PortableTransition] = []
        self.completed_returns: List[float] = []

        # COUNTERS
        self.cumulative_reward = 0.
        self.steps = 0

    def add_transition(self,
                       state: Any,
                       done: bool,
                       discrete_actions: Sequence[int],
                       reward: float,
                       continuous_actions: Sequence[float] = ()):
        """Record one environment step.

        Parameters
        ----------
        state:
            The state the actions have been selected for.
        done: `bool`
            Set True, if this step ended the episode.
        discrete_actions: `list` of `int`
            Actions selected for all discrete action heads.
        reward: `float`
            Reward received for this step.
        continuous_actions: `list` of `float`
            Values selected for all continuous action heads.
        """
        if self._current_id is None:
            self._current_id = str(uuid.uuid4())
            self.cumulative_reward = 0.
            self.steps = 0

        next_id = None if done else str(uuid.uuid4())

        self._pending.append(PortableTransition(self._current_id,
                                                state,
                                                tuple(discrete_actions),
                                                tuple(continuous_actions),
                                                float(reward),
                                                next_id))
        self.cumulative_reward += reward
        self.steps += 1
        self._current_id = next_id

        if done:
            self.completed_transitions.extend(self._pending)
            self.completed_returns.append(self.cumulative_reward)
            self._pending = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def drain(self) -> List[PortableTransition]:
        """Return all completed transitions and reset counters and storage.
        """
        completed = self.completed_transitions
        self.completed_transitions = []
        self.completed_returns = []
        if self._current_id is None:
            self.cumulative_reward = 0.
            self.steps = 0
        return completed

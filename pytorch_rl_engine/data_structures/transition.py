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

"""Transition data structures.

Three forms of a single environment step exist:
    * :py:class:`Transition`, an immutable step record.
    * :py:class:`MemoryTransition`, the form stored within replay memories.
      Consecutive steps of one episode are linked into a chain.
    * :py:class:`PortableTransition`, the form that crosses process boundaries.
      Linkage is expressed by ids instead of references.
"""
import uuid
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence


class TransitionGraphError(ValueError):
    """Raised if a collection of :py:class:`PortableTransition` does not form valid chains.
    """


class Transition(NamedTuple):
    """:py:class:`NamedTuple` to store a single step of an environment.

    A :py:attr:`next_state` of `None` marks the end of an episode.
    """
    state: Any
    discrete_actions: Sequence[int]
    continuous_actions: Sequence[float]
    reward: float
    next_state: Any


class PortableTransition(NamedTuple):
    """:py:class:`NamedTuple` to transport a single step between processes.

    :py:attr:`next_transition_id` references the id of the following step of the same episode,
    or is `None` if this step ended its episode.
    """
    id: str
    state: Any
    discrete_actions: Sequence[int]
    continuous_actions: Sequence[float]
    reward: float
    next_transition_id: Optional[str]


class MemoryTransition():
    """A single environment step as stored by replay memories.

    Parameters
    ----------
    state:
        The observed state, a flat vector or a 2-D grid.
    discrete_actions: `list` of `int`
        One action per discrete action head.
    continuous_actions: `list` of `float`
        One value per continuous action head.
    reward: `float`
        The reward received for this step.
    next_state:
        The following state, `None` if this step is terminal.
    transition_id: `str`
        A unique id. A new one is generated, if not given.
    """
    __slots__ = ('id', 'state', 'discrete_actions', 'continuous_actions', 'reward',
                 'next_state', 'next_transition', 'previous_transition')

    def __init__(self,
                 state: Any,
                 discrete_actions: Sequence[int],
                 continuous_actions: Sequence[float],
                 reward: float,
                 next_state: Any = None,
                 transition_id: str = None):
        self.id = transition_id if transition_id is not None else str(uuid.uuid4())
        self.state = state
        self.discrete_actions = list(discrete_actions)
        self.continuous_actions = list(continuous_actions)
        self.reward = float(reward)
        self.next_state = next_state

        # LINKS
        self.next_transition: Optional['MemoryTransition'] = None
        self.previous_transition: Optional['MemoryTransition'] = None

    @property
    def is_terminal(self) -> bool:
        return self.next_state is None

    def to_transition(self) -> Transition:
        return Transition(self.state,
                          tuple(self.discrete_actions),
                          tuple(self.continuous_actions),
                          self.reward,
                          self.next_state)

    def to_portable(self) -> PortableTransition:
        next_id = self.next_transition.id if self.next_transition is not None else None
        return PortableTransition(self.id,
                                  self.state,
                                  tuple(self.discrete_actions),
                                  tuple(self.continuous_actions),
                                  self.reward,
                                  next_id)

    def __repr__(self):
        return "MemoryTransition(id=%s, reward=%f, terminal=%s)" % (self.id,
                                                                     self.reward,
                                                                     self.is_terminal)


def to_memory_transitions(portables: Iterable[PortableTransition]) -> List[MemoryTransition]:
    """Reconstruct linked :py:class:`MemoryTransition` chains from portable transitions.

    Reconstruction runs in two passes:
        #. All transitions are indexed by their id.
        #. Every transition with a :py:attr:`next_transition_id` is linked to the referenced
           transition, its :py:attr:`next_state` is set to the state of that neighbor.

    The returned list holds all chains in order of their first appearance, each chain head first.

    Raises
    ------
    TransitionGraphError
        If ids are duplicated, a :py:attr:`next_transition_id` references an unknown transition,
        a transition has two predecessors or transitions form a cycle.
    """
    portables = list(portables)

    # first pass: index by id
    index: Dict[str, MemoryTransition] = {}
    for portable in portables:
        if portable.id in index:
            raise TransitionGraphError("Duplicate transition id %s." % portable.id)
        index[portable.id] = MemoryTransition(portable.state,
                                              portable.discrete_actions,
                                              portable.continuous_actions,
                                              portable.reward,
                                              transition_id=portable.id)

    # second pass: link neighbors
    for portable in portables:
        if portable.next_transition_id is None:
            continue

        current = index[portable.id]
        try:
            neighbor = index[portable.next_transition_id]
        except KeyError:
            raise TransitionGraphError("Transition %s references unknown next transition %s."
                                       % (portable.id, portable.next_transition_id)) from None

        if neighbor.previous_transition is not None:
            raise TransitionGraphError("Transition %s has two predecessors: %s and %s."
                                       % (neighbor.id, neighbor.previous_transition.id,
                                          current.id))

        current.next_transition = neighbor
        current.next_state = neighbor.state
        neighbor.previous_transition = current

    # emit chains head first
    transitions = []
    for portable in portables:
        head = index[portable.id]
        if head.previous_transition is None:
            transitions.extend(walk_chain(head))

    if len(transitions) != len(index):
        raise TransitionGraphError("%d transitions are not reachable from any chain head, "
                                   "links form a cycle." % (len(index) - len(transitions)))

    return transitions


def to_portable_transitions(transitions: Iterable[MemoryTransition]) -> List[PortableTransition]:
    """Serialize :py:class:`MemoryTransition` objects into their portable form.
    """
    return [t.to_portable() for t in transitions]


def walk_chain(head: MemoryTransition) -> List[MemoryTransition]:
    """Return all transitions of the chain starting at :py:attr:`head`.
    """
    chain = []
    current = head
    while current is not None:
        chain.append(current)
        current = current.next_transition
    return chain


def episode_chains(transitions: Iterable[MemoryTransition]) -> List[List[MemoryTransition]]:
    """Split a flat list of transitions into episodes, keeping their order.

    A new episode starts with every transition that does not continue the previous one.
    """
    episodes: List[List[MemoryTransition]] = []
    previous = None
    for transition in transitions:
        if previous is None or previous.next_transition is not transition:
            episodes.append([])
        episodes[-1].append(transition)
        previous = transition
    return episodes

"""This module includes the transition model, replay memories and batching of transitions.

Exposed classes:
    * :py:class:`~transition.Transition`
    * :py:class:`~transition.MemoryTransition`
    * :py:class:`~transition.PortableTransition`
    * :py:class:`~episode.Episode`
    * :py:class:`~memory.ReplayMemory`
    * :py:class:`~memory.PrioritizedReplayMemory`
    * :py:class:`~memory.EpisodicReplayMemory`
    * :py:class:`~sum_tree.SumTree`
"""
from .batch import (PolicyBatch, QBatch, state_to_tensor, states_to_tensor,
                    to_policy_batch, to_q_batch)
from .episode import Episode
from .memory import (BaseMemory, EpisodicReplayMemory, PrioritizedReplayMemory,
                     ReplayMemory)
from .sum_tree import SumTree
from .transition import (MemoryTransition, PortableTransition, Transition,
                         TransitionGraphError, episode_chains,
                         to_memory_transitions, to_portable_transitions,
                         walk_chain)

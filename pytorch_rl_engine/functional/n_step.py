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
"""Accumulation of n-step returns along transition chains.
"""
import collections
from typing import Any, List

import numpy as np
import torch


NStepReturns = collections.namedtuple(
    "NStepReturns",
    [
        "returns",
        "bootstrap_states",
        "discounts",
    ],
)


def n_step_returns(transitions: List[Any],
                   n_steps: int,
                   gamma: float) -> NStepReturns:
    """Compute discounted n-step returns for a batch of sampled transitions.

    Starting at each transition, up to :py:attr:`n_steps` rewards are collected
    by walking along :py:attr:`~.MemoryTransition.next_transition`.
    The walk stops early at the end of a chain.
    Collected rewards form a ``[B, n_steps]`` matrix that is reduced with
    a single product with the discount vector ``[1, gamma, ..., gamma^(n-1)]``.

    Returns a :py:class:`NStepReturns` with:
        * returns: ``[B]`` tensor of accumulated discounted rewards.
        * bootstrap_states: the state following the last walked step,
          `None` if this step is terminal.
        * discounts: ``[B]`` tensor of ``gamma^k``, k being the number of walked steps.

    Parameters
    ----------
    transitions: `list` of :py:class:`~.MemoryTransition`
        The sampled transitions.
    n_steps: `int`
        The maximum number of rewards to accumulate.
    gamma: `float`
        Reward discount factor.
    """
    assert n_steps > 0
    assert 0 < gamma <= 1.

    batch_size = len(transitions)
    rewards = np.zeros((batch_size, n_steps), dtype=np.float64)
    steps = np.zeros(batch_size, dtype=np.float64)
    bootstrap_states = []

    for i, transition in enumerate(transitions):
        current = transition
        for k in range(n_steps):
            rewards[i, k] = current.reward
            steps[i] = k + 1
            if k == n_steps - 1 or current.next_transition is None:
                break
            current = current.next_transition
        bootstrap_states.append(current.next_state)

    discount_vector = np.power(gamma, np.arange(n_steps, dtype=np.float64))
    returns = rewards @ discount_vector

    return NStepReturns(torch.from_numpy(returns).float(),
                        bootstrap_states,
                        torch.from_numpy(np.power(gamma, steps)).float())

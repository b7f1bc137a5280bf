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
"""Selection of the value computations used by a :py:class:`~.DQNOptimizer`.
"""
from functools import partial
from typing import Callable, NamedTuple

import torch

from ..functional import categorical, q_values


class QStrategy(NamedTuple):
    """:py:class:`NamedTuple` of the functions used by one optimization step.

    Functions are bound to their configuration when the strategy is built,
    signatures are:
        * ``compute_values(states, net)``
        * ``extract_action_values(values, actions)``
        * ``compute_next_values(next_states, target_net, policy_net)``
        * ``compute_targets(next_values, rewards, discounts, non_final_mask)``
        * ``compute_loss(action_values, targets)``
        * ``compute_td_errors(action_values, targets)``
    """
    compute_values: Callable
    extract_action_values: Callable
    compute_next_values: Callable
    compute_targets: Callable
    compute_loss: Callable
    compute_td_errors: Callable


def build_q_strategy(num_heads: int,
                     num_actions: int,
                     double: bool = False,
                     value_support: torch.Tensor = None) -> QStrategy:
    """Return the :py:class:`QStrategy` for the given configuration.

    Parameters
    ----------
    num_heads: `int`
        Number of discrete action heads.
    num_actions: `int`
        Number of actions of each head.
    double: `bool`
        Set True, to select next actions with the policy network.
    value_support: :py:class:`torch.Tensor`
        Support of categorical value distributions. Scalar values are used, if `None`.
    """
    if value_support is None:
        return QStrategy(
            compute_values=partial(q_values.q_values,
                                   num_heads=num_heads,
                                   num_actions=num_actions),
            extract_action_values=q_values.gather_action_values,
            compute_next_values=partial(q_values.next_state_values,
                                        num_heads=num_heads,
                                        num_actions=num_actions,
                                        double=double),
            compute_targets=q_values.expected_state_action_values,
            compute_loss=q_values.huber_loss,
            compute_td_errors=q_values.absolute_td_errors,
        )

    num_atoms = value_support.numel()
    return QStrategy(
        compute_values=partial(q_values.categorical_q_values,
                               num_heads=num_heads,
                               num_actions=num_actions,
                               num_atoms=num_atoms),
        extract_action_values=q_values.gather_action_distributions,
        compute_next_values=partial(q_values.next_state_distributions,
                                    num_heads=num_heads,
                                    num_actions=num_actions,
                                    num_atoms=num_atoms,
                                    value_support=value_support,
                                    double=double),
        compute_targets=partial(categorical.categorical_targets,
                                value_support=value_support,
                                num_heads=num_heads),
        compute_loss=categorical.categorical_loss,
        compute_td_errors=categorical.categorical_td_errors,
    )

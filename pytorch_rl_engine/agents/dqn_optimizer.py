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
from typing import Any, Dict, Optional

import torch
from torch import nn

from ..data_structures import BaseMemory, PrioritizedReplayMemory, to_q_batch
from ..functional.q_values import soft_update
from .q_strategy import QStrategy


class DQNOptimizer():
    """Performs single gradient steps of DQN and its variants.

    One call of :py:meth:`optimize()`:
        #. Samples a batch from the given memory.
        #. Computes values of taken actions and their regression targets,
           using the functions bound in :py:attr:`strategy`.
        #. Updates :py:attr:`policy_net`.
        #. Every :py:attr:`soft_update_interval` calls, blends :py:attr:`target_net`
           towards :py:attr:`policy_net`.
        #. Refreshes priorities, if the memory is a :py:class:`~.PrioritizedReplayMemory`.

    Parameters
    ----------
    policy_net: :py:class:`torch.nn.Module`
        The network being trained.
    target_net: :py:class:`torch.nn.Module`
        The network used to evaluate next states.
    optimizer: :py:class:`torch.optim.Optimizer`
        A torch optimizer that links to :py:attr:`policy_net`.
    strategy: :py:class:`~.QStrategy`
        Value computations, as returned by :py:func:`~.build_q_strategy()`.
    scheduler: :py:class:`torch.optim.lr_scheduler._LRScheduler`
        Optional learning rate schedule of :py:attr:`optimizer`, stepped once per update.
    batch_size: `int`
        Number of transitions sampled per update.
    gamma: `float`
        Reward discount factor.
    tau: `float`
        Blend factor of soft target updates.
    soft_update_interval: `int`
        Number of updates between soft target updates.
    n_step_returns: `int`
        Number of rewards accumulated per target. 1 uses one step targets.
    clip_grad_value: `float`
        If bigger 0, clips gradients to this absolute value.
    priority_epsilon: `float`
        Added to absolute TD errors to form new priorities.
    device: :py:class:`torch.device`
        The device batches are moved to.
    """

    def __init__(self,
                 policy_net: nn.Module,
                 target_net: nn.Module,
                 optimizer: torch.optim.Optimizer,
                 strategy: QStrategy,
                 scheduler: Any = None,
                 batch_size: int = 64,
                 gamma: float = 0.99,
                 tau: float = 0.5,
                 soft_update_interval: int = 1,
                 n_step_returns: int = 1,
                 clip_grad_value: float = 100.,
                 priority_epsilon: float = 0.01,
                 device: torch.device = None):
        assert batch_size > 0
        assert 0 < gamma <= 1.
        assert soft_update_interval > 0
        assert n_step_returns > 0

        # ATTRIBUTES
        self.policy_net = policy_net
        self.target_net = target_net
        self.optimizer = optimizer
        self.scheduler = scheduler
        self.strategy = strategy
        self.device = device

        self._batch_size = batch_size
        self._gamma = gamma
        self._tau = tau
        self._soft_update_interval = soft_update_interval
        self._n_step_returns = n_step_returns
        self._clip_grad_value = clip_grad_value
        self._priority_epsilon = priority_epsilon

        # COUNTERS
        self.update_counter = 0
        self.training_steps = 0

    def optimize(self, memory: BaseMemory) -> Optional[Dict[str, Any]]:
        """Run one update using a batch sampled from :py:attr:`memory`.

        Returns a metrics `dict`, or `None` if :py:attr:`memory` holds less
        transitions than one batch. In that case nothing is changed.
        """
        if len(memory) < self._batch_size:
            return None

        transitions = memory.sample(self._batch_size)
        batch = to_q_batch(transitions,
                           device=self.device,
                           gamma=self._gamma,
                           n_steps=self._n_step_returns)

        values = self.strategy.compute_values(batch.states, self.policy_net)
        action_values = self.strategy.extract_action_values(values, batch.actions)

        next_values = self.strategy.compute_next_values(batch.non_final_next_states,
                                                        self.target_net,
                                                        self.policy_net)
        targets = self.strategy.compute_targets(next_values,
                                                batch.rewards,
                                                batch.discounts,
                                                batch.non_final_mask)

        loss = self.strategy.compute_loss(action_values, targets)
        self._update_model(loss)

        self.update_counter += 1
        self.training_steps += len(transitions)

        if self.update_counter % self._soft_update_interval == 0:
            soft_update(self.target_net, self.policy_net, self._tau)

        if isinstance(memory, PrioritizedReplayMemory):
            td_errors = self.strategy.compute_td_errors(action_values, targets)
            memory.update_priorities(memory.sampled_indices,
                                     (td_errors + self._priority_epsilon).cpu().tolist())

        return {"loss": loss.detach().cpu().item(),
                "learning_rate": self.optimizer.param_groups[0]['lr'],
                "update_counter": self.update_counter,
                "training_steps": self.training_steps,
                }

    def _update_model(self, loss: torch.Tensor):
        """Perform a gradient step and step the learning rate schedule.
        """
        self.optimizer.zero_grad()
        loss.backward()
        if self._clip_grad_value > 0:
            nn.utils.clip_grad_value_(self.policy_net.parameters(), self._clip_grad_value)
        self.optimizer.step()
        if self.scheduler is not None:
            self.scheduler.step()

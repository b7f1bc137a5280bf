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
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import torch
from torch.optim import Adam
from torch.optim.lr_scheduler import CyclicLR

from ..data_structures import EpisodicReplayMemory, states_to_tensor
from ..functional import exploration
from ..nets import PPOActorNet, PPOCriticNet
from ..tools import Recorder
from .base_agent import BaseAgent
from .options import PPOAgentOptions
from .ppo_optimizer import PPOOptimizer


class PPOAgent(BaseAgent):
    """Agent that learns a policy with proximal policy optimization.

    Supports any combination of discrete and continuous action heads.
    Continuous actions are sampled from a Gaussian and clamped to their bounds.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state, a flat vector or a 2-D grid.
    discrete_action_sizes: `list` of `int`
        Number of actions of each discrete action head.
    continuous_action_bounds: `list` of `tuple`
        ``(low, high)`` of each continuous action head.
    options: :py:class:`~.PPOAgentOptions`
        Hyperparameters.
    actor: :py:class:`torch.nn.Module`
        Optional network replacing the default :py:class:`~.PPOActorNet`.
    critic: :py:class:`torch.nn.Module`
        Optional network replacing the default :py:class:`~.PPOCriticNet`.
    recorder: :py:class:`~.Recorder`
        Optional recorder for episode and training metrics.
    """

    def __init__(self,
                 state_shape: tuple,
                 discrete_action_sizes: Sequence[int] = (),
                 continuous_action_bounds: Sequence[Tuple[float, float]] = (),
                 options: PPOAgentOptions = PPOAgentOptions(),
                 actor: torch.nn.Module = None,
                 critic: torch.nn.Module = None,
                 recorder: Optional[Recorder] = None):
        super().__init__(save_path=options.save_path,
                         verbose=options.verbose,
                         recorder=recorder)

        if len(discrete_action_sizes) + len(continuous_action_bounds) == 0:
            raise ValueError("At least one action head is required.")
        for low, high in continuous_action_bounds:
            if low > high:
                raise ValueError("Invalid continuous action bounds (%s, %s)." % (low, high))

        # ATTRIBUTES
        self.options = options
        self.discrete_action_sizes = list(discrete_action_sizes)
        self.n_discrete = len(discrete_action_sizes)
        self.n_continuous = len(continuous_action_bounds)

        if options.seed is not None:
            torch.manual_seed(options.seed)

        # NETWORKS
        if actor is None:
            actor = PPOActorNet(state_shape,
                                discrete_action_sizes,
                                self.n_continuous,
                                width=options.width,
                                depth=options.depth,
                                use_rnn=options.use_rnn)
        if critic is None:
            critic = PPOCriticNet(state_shape,
                                  width=options.width,
                                  depth=options.depth,
                                  use_rnn=options.use_rnn)
        self.actor = actor.to(self.training_device)
        self.critic = critic.to(self.training_device)

        self.action_low = torch.tensor([b[0] for b in continuous_action_bounds],
                                       dtype=torch.float,
                                       device=self.training_device)
        self.action_high = torch.tensor([b[1] for b in continuous_action_bounds],
                                        dtype=torch.float,
                                        device=self.training_device)

        # OPTIMIZATION
        self.actor_optimizer = Adam(self.actor.parameters(), lr=options.lr, amsgrad=True)
        self.critic_optimizer = Adam(self.critic.parameters(), lr=options.lr, amsgrad=True)
        self.actor_scheduler = self._cyclic_lr(self.actor_optimizer)
        self.critic_scheduler = self._cyclic_lr(self.critic_optimizer)

        self.memory = EpisodicReplayMemory(options.memory_size, seed=options.seed)
        self.optimizer = PPOOptimizer(self.actor,
                                      self.critic,
                                      self.actor_optimizer,
                                      self.critic_optimizer,
                                      self.n_discrete,
                                      self.n_continuous,
                                      actor_scheduler=self.actor_scheduler,
                                      critic_scheduler=self.critic_scheduler,
                                      batch_size=options.batch_size,
                                      gamma=options.gamma,
                                      gae_lambda=options.gae_lambda,
                                      clip_epsilon=options.clip_epsilon,
                                      value_clip_range=options.value_clip_range,
                                      value_loss_coefficient=options.value_loss_coefficient,
                                      ppo_epoch_count=options.ppo_epoch_count,
                                      clip_grad_norm=options.clip_grad_norm,
                                      entropy_coefficient=options.entropy_coefficient,
                                      use_rnn=options.use_rnn,
                                      device=self.training_device)

    def _cyclic_lr(self, optimizer: torch.optim.Optimizer) -> CyclicLR:
        return CyclicLR(optimizer,
                        base_lr=self.options.lr * 0.5,
                        max_lr=self.options.lr * 2,
                        step_size_up=self.options.lr_step_size_up,
                        step_size_down=self.options.lr_step_size_down,
                        cycle_momentum=False)

    def initial_state(self, batch_size: int) -> tuple:
        """Return the initial core state of the actor, an empty tuple for feed forward actors.
        """
        if not hasattr(self.actor, 'initial_state'):
            return tuple()
        return tuple(s.to(self.training_device) for s in self.actor.initial_state(batch_size))

    def select_actions(self,
                       states: Sequence[Any],
                       is_training: bool = True,
                       core_state: tuple = ()) -> Tuple[np.ndarray, np.ndarray, tuple]:
        """Select actions for a batch of :py:attr:`states`.

        While training, discrete actions are sampled and continuous actions are drawn
        from their Gaussian. Otherwise, the most probable discrete action and
        the mean of each continuous action are selected.

        Returns
        -------
        `tuple`
            Discrete actions ``[B, n_discrete]``, continuous actions ``[B, n_continuous]``
            and the core state following :py:attr:`states`.
        """
        states_tensor = states_to_tensor(states, self.training_device)

        with torch.no_grad():
            output, core_state = self.actor(states_tensor, core_state)

            if self.n_discrete > 0:
                valid_actions = exploration.valid_action_mask(self.discrete_action_sizes,
                                                              output.shape[-1],
                                                              output.device)
                discrete_actions = exploration.sample_discrete(output[:, :self.n_discrete],
                                                               is_training,
                                                               valid_actions)
            else:
                discrete_actions = torch.zeros((output.shape[0], 0), dtype=torch.int64)

            continuous = output[:, self.n_discrete:, 0]
            mean = continuous[:, :self.n_continuous]
            if is_training:
                std = continuous[:, self.n_continuous:].exp()
                continuous_actions = mean + std * torch.randn_like(mean)
            else:
                continuous_actions = mean
            continuous_actions = torch.max(torch.min(continuous_actions, self.action_high),
                                           self.action_low)

        return (discrete_actions.cpu().numpy(),
                continuous_actions.cpu().numpy(),
                core_state)

    def _checkpoint_objects(self) -> Dict[str, Any]:
        return {'actor': self.actor,
                'critic': self.critic,
                'actor_optimizer': self.actor_optimizer,
                'critic_optimizer': self.critic_optimizer,
                'actor_scheduler': self.actor_scheduler,
                'critic_scheduler': self.critic_scheduler}

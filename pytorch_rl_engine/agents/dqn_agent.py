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
import copy
from typing import Any, Dict, Optional, Sequence

import numpy as np
import torch
from torch.optim import Adam
from torch.optim.lr_scheduler import CyclicLR

from ..data_structures import (PrioritizedReplayMemory, ReplayMemory,
                               states_to_tensor)
from ..functional import categorical, exploration
from ..nets import QNet
from ..tools import Recorder
from .base_agent import BaseAgent
from .dqn_optimizer import DQNOptimizer
from .options import DQNAgentOptions
from .q_strategy import build_q_strategy


class DQNAgent(BaseAgent):
    """Agent that learns action values with DQN and its variants.

    The variant is fixed by :py:attr:`options` on initialization:
        * ``double``: Double DQN targets.
        * ``dueling``: dueling network architecture.
        * ``noisy``: noisy output layers, exploring without epsilon.
        * ``categorical``: categorical value distributions (C51).
        * ``prioritized``: prioritized replay memory.
        * ``boltzmann``: Boltzmann exploration instead of epsilon greedy.
        * ``n_step_returns``: n-step targets, if larger 1.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state, a flat vector or a 2-D grid.
    action_sizes: `list` of `int`
        Number of actions of each discrete action head. All heads must have the same size.
    options: :py:class:`~.DQNAgentOptions`
        Hyperparameters.
    policy_net: :py:class:`torch.nn.Module`
        Optional network replacing the default :py:class:`~.QNet`.
        The target network is created as a copy of it.
    recorder: :py:class:`~.Recorder`
        Optional recorder for episode and training metrics.
    """

    def __init__(self,
                 state_shape: tuple,
                 action_sizes: Sequence[int],
                 options: DQNAgentOptions = DQNAgentOptions(),
                 policy_net: torch.nn.Module = None,
                 recorder: Optional[Recorder] = None):
        super().__init__(save_path=options.save_path,
                         verbose=options.verbose,
                         recorder=recorder)

        if len(action_sizes) == 0 or len(set(action_sizes)) != 1:
            raise ValueError("All discrete action heads must have the same number of actions, "
                             "got %s." % list(action_sizes))

        # ATTRIBUTES
        self.options = options
        self.num_heads = len(action_sizes)
        self.num_actions = action_sizes[0]

        if options.seed is not None:
            torch.manual_seed(options.seed)

        # NETWORKS
        num_atoms = options.num_atoms if options.categorical else 1
        if policy_net is None:
            policy_net = QNet(state_shape,
                              self.num_heads,
                              self.num_actions,
                              width=options.width,
                              depth=options.depth,
                              num_atoms=num_atoms,
                              dueling=options.dueling,
                              noisy=options.noisy,
                              noisy_sigma=options.noisy_sigma)
        self.policy_net = policy_net.to(self.training_device)
        self.target_net = copy.deepcopy(self.policy_net)
        self.target_net.eval()

        self.support = None
        if options.categorical:
            self.support = categorical.support(options.v_min, options.v_max,
                                               options.num_atoms, self.training_device)

        # OPTIMIZATION
        self.torch_optimizer = Adam(self.policy_net.parameters(), lr=options.lr, amsgrad=True)
        self.scheduler = CyclicLR(self.torch_optimizer,
                                  base_lr=options.lr * 0.5,
                                  max_lr=options.lr * 2,
                                  step_size_up=options.lr_step_size_up,
                                  step_size_down=options.lr_step_size_down,
                                  cycle_momentum=False)

        if options.prioritized:
            self.memory = PrioritizedReplayMemory(options.memory_size,
                                                  alpha=options.priority_alpha,
                                                  seed=options.seed)
        else:
            self.memory = ReplayMemory(options.memory_size, seed=options.seed)

        self.optimizer = DQNOptimizer(self.policy_net,
                                      self.target_net,
                                      self.torch_optimizer,
                                      build_q_strategy(self.num_heads,
                                                       self.num_actions,
                                                       double=options.double,
                                                       value_support=self.support),
                                      scheduler=self.scheduler,
                                      batch_size=options.batch_size,
                                      gamma=options.gamma,
                                      tau=options.tau,
                                      soft_update_interval=options.soft_update_interval,
                                      n_step_returns=options.n_step_returns,
                                      clip_grad_value=options.clip_grad_value,
                                      priority_epsilon=options.priority_epsilon,
                                      device=self.training_device)

    @property
    def epsilon(self) -> float:
        """The current exploration rate of epsilon greedy selection.
        """
        return exploration.epsilon_threshold(self.options.eps_start,
                                             self.options.eps_end,
                                             self.options.eps_decay,
                                             self.episode_count)

    def select_actions(self,
                       states: Sequence[Any],
                       is_training: bool = True) -> np.ndarray:
        """Return one action per discrete head for each of :py:attr:`states`, shape ``[B, heads]``.

        While training, exploration follows the configured strategy.
        Otherwise, the action with the highest (expected) value is selected.
        The forward pass holds :py:attr:`lock_memory`, as it switches the mode of the policy network.
        """
        states_tensor = states_to_tensor(states, self.training_device)

        with torch.no_grad():
            with self.lock_memory:
                self.policy_net.train(is_training)
                if is_training and self.options.noisy:
                    self.policy_net.reset_noise()
                values = self._action_values(states_tensor)
                self.policy_net.train()

            if is_training and self.options.boltzmann:
                probs = exploration.boltzmann_probabilities(values,
                                                            self.options.boltzmann_temperature)
                actions = exploration.sample_discrete(probs)
            elif is_training and not self.options.noisy:
                actions = exploration.epsilon_greedy(values.argmax(-1),
                                                     self.num_actions,
                                                     self.epsilon)
            else:
                actions = values.argmax(-1)

        return actions.cpu().numpy()

    def _action_values(self, states: torch.Tensor) -> torch.Tensor:
        """Return scalar values ``[B, heads, actions]``, expected values for categorical networks.
        """
        if self.support is None:
            return self.optimizer.strategy.compute_values(states, self.policy_net)

        distributions = self.optimizer.strategy.compute_values(states, self.policy_net)
        return categorical.expected_values(distributions, self.support)

    def _checkpoint_objects(self) -> Dict[str, Any]:
        return {'policy_net': self.policy_net,
                'target_net': self.target_net,
                'optimizer': self.torch_optimizer,
                'scheduler': self.scheduler}

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
from typing import Any, Dict, List, Optional, Tuple

import torch
from torch import nn

from ..data_structures import (BaseMemory, MemoryTransition, episode_chains,
                               states_to_tensor, to_policy_batch)
from ..functional import gae, loss, policy
from ..functional.padding import pad_episodes, zero_padded_states


class PPOOptimizer():
    """Performs proximal policy optimization on all buffered episodes.

    One call of :py:meth:`optimize()`:
        #. Takes every transition of the given memory, grouped into episodes.
        #. Snapshots log-probabilities of taken actions and state values before updating.
        #. Computes discounted returns and normalized generalized advantages per episode.
        #. Runs :py:attr:`ppo_epoch_count` epochs of clipped actor and critic updates.
        #. Steps both learning rate schedules and clears the memory.

    Recurrent networks receive episodes padded to equal length,
    losses are reduced over real steps only.

    Parameters
    ----------
    actor: :py:class:`torch.nn.Module`
        Policy network, see :py:class:`~.PPOActorNet` for its contract.
    critic: :py:class:`torch.nn.Module`
        Value network, see :py:class:`~.PPOCriticNet` for its contract.
    actor_optimizer: :py:class:`torch.optim.Optimizer`
        A torch optimizer that links to :py:attr:`actor`.
    critic_optimizer: :py:class:`torch.optim.Optimizer`
        A torch optimizer that links to :py:attr:`critic`.
    n_discrete: `int`
        Number of discrete action heads.
    n_continuous: `int`
        Number of continuous action heads.
    actor_scheduler: :py:class:`torch.optim.lr_scheduler._LRScheduler`
        Optional learning rate schedule of :py:attr:`actor_optimizer`.
    critic_scheduler: :py:class:`torch.optim.lr_scheduler._LRScheduler`
        Optional learning rate schedule of :py:attr:`critic_optimizer`.
    batch_size: `int`
        Number of complete episodes needed to run an update.
    gamma: `float`
        Reward discount factor.
    gae_lambda: `float`
        Exponential weight of generalized advantage estimation.
    clip_epsilon: `float`
        Clip range of probability ratios.
    value_clip_range: `float`
        Clip range of value estimates around their old values.
    value_loss_coefficient: `float`
        Multiplier of the critic loss.
    ppo_epoch_count: `int`
        Number of epochs run on each batch.
    clip_grad_norm: `float`
        If bigger 0, clips the gradient norm of both networks to this value.
    entropy_coefficient: `float`
        Multiplier of the entropy bonus.
    use_rnn: `bool`
        Set True, if actor and critic are recurrent.
    device: :py:class:`torch.device`
        The device batches are moved to.
    """

    def __init__(self,
                 actor: nn.Module,
                 critic: nn.Module,
                 actor_optimizer: torch.optim.Optimizer,
                 critic_optimizer: torch.optim.Optimizer,
                 n_discrete: int,
                 n_continuous: int = 0,
                 actor_scheduler: Any = None,
                 critic_scheduler: Any = None,
                 batch_size: int = 16,
                 gamma: float = 0.99,
                 gae_lambda: float = 0.95,
                 clip_epsilon: float = 0.2,
                 value_clip_range: float = 0.2,
                 value_loss_coefficient: float = 0.5,
                 ppo_epoch_count: int = 2,
                 clip_grad_norm: float = 0.5,
                 entropy_coefficient: float = 0.1,
                 use_rnn: bool = False,
                 device: torch.device = None):
        assert batch_size > 0
        assert 0 < gamma <= 1.
        assert 0 <= gae_lambda <= 1.
        assert ppo_epoch_count > 0

        # ATTRIBUTES
        self.actor = actor
        self.critic = critic
        self.actor_optimizer = actor_optimizer
        self.critic_optimizer = critic_optimizer
        self.actor_scheduler = actor_scheduler
        self.critic_scheduler = critic_scheduler
        self.device = device

        self._n_discrete = n_discrete
        self._n_continuous = n_continuous
        self._batch_size = batch_size
        self._gamma = gamma
        self._gae_lambda = gae_lambda
        self._clip_epsilon = clip_epsilon
        self._value_clip_range = value_clip_range
        self._value_loss_coefficient = value_loss_coefficient
        self._ppo_epoch_count = ppo_epoch_count
        self._clip_grad_norm = clip_grad_norm
        self._entropy_coefficient = entropy_coefficient
        self._use_rnn = use_rnn

        # COUNTERS
        self.update_counter = 0
        self.training_steps = 0

    def optimize(self, memory: BaseMemory) -> Optional[Dict[str, Any]]:
        """Run all update epochs on the entire content of :py:attr:`memory`, then clear it.

        Returns a metrics `dict`, or `None` if :py:attr:`memory` holds less complete episodes
        than :py:attr:`batch_size`. In that case nothing is changed.
        """
        if memory.episode_count < self._batch_size:
            return None

        episodes = episode_chains(memory.sample_entire_memory())

        if self._use_rnn:
            metrics = self._optimize_recurrent(episodes)
        else:
            metrics = self._optimize_flat(episodes)

        for scheduler in (self.actor_scheduler, self.critic_scheduler):
            if scheduler is not None:
                scheduler.step()

        memory.clear()

        self.update_counter += 1
        self.training_steps += sum(len(e) for e in episodes)

        metrics.update({"actor_learning_rate": self.actor_optimizer.param_groups[0]['lr'],
                        "critic_learning_rate": self.critic_optimizer.param_groups[0]['lr'],
                        "update_counter": self.update_counter,
                        "training_steps": self.training_steps})
        return metrics

    def _optimize_flat(self, episodes: List[List[MemoryTransition]]) -> Dict[str, Any]:
        transitions = [t for episode in episodes for t in episode]
        batch = to_policy_batch(transitions, self.device)

        with torch.no_grad():
            output, _ = self.actor(batch.states)
            old_log_probs = policy.log_probs(output, batch.actions,
                                             self._n_discrete, self._n_continuous)
            old_values = self.critic(batch.states)[0].view(-1)

        value_slices = []
        start = 0
        for episode in episodes:
            value_slices.append(old_values[start:start + len(episode)])
            start += len(episode)
        returns, advantages = self._returns_and_advantages(episodes, value_slices)

        return self._run_epochs(batch.states, batch.actions, old_log_probs,
                                old_values, returns, advantages)

    def _optimize_recurrent(self, episodes: List[List[MemoryTransition]]) -> Dict[str, Any]:
        padded = pad_episodes(episodes, self.device)
        num_episodes = len(episodes)
        sequence_length = len(padded.episodes[0])

        transitions = [t for episode in padded.episodes for t in episode]
        batch = to_policy_batch(transitions, self.device)
        states = batch.states.view(num_episodes, sequence_length, *batch.states.shape[1:])
        states = zero_padded_states(states, padded.mask)

        with torch.no_grad():
            output, _ = self.actor(states)
            old_log_probs = policy.log_probs(output, batch.actions,
                                             self._n_discrete, self._n_continuous)
            old_values = self.critic(states)[0].view(num_episodes, sequence_length)

        value_slices = [old_values[i, :length] for i, length in enumerate(padded.lengths)]
        real_returns, real_advantages = self._returns_and_advantages(episodes, value_slices)

        # scatter real steps back into the padded layout
        returns = torch.zeros(padded.mask.shape[0], device=real_returns.device)
        advantages = torch.zeros(padded.mask.shape[0], device=real_advantages.device)
        returns[padded.mask] = real_returns
        advantages[padded.mask] = real_advantages

        return self._run_epochs(states, batch.actions, old_log_probs,
                                old_values.view(-1), returns, advantages,
                                mask=padded.mask)

    def _run_epochs(self,
                    states: torch.Tensor,
                    actions: torch.Tensor,
                    old_log_probs: torch.Tensor,
                    old_values: torch.Tensor,
                    returns: torch.Tensor,
                    advantages: torch.Tensor,
                    mask: torch.Tensor = None) -> Dict[str, Any]:
        """Run :py:attr:`ppo_epoch_count` actor and critic updates on the same batch.
        """
        for _ in range(self._ppo_epoch_count):
            output, _ = self.actor(states)
            log_probs, entropy = policy.log_probs_and_entropy(output, actions,
                                                              self._n_discrete,
                                                              self._n_continuous)
            actor_loss = loss.clipped_surrogate_loss(log_probs,
                                                     old_log_probs,
                                                     advantages,
                                                     entropy,
                                                     clip_epsilon=self._clip_epsilon,
                                                     entropy_coefficient=self._entropy_coefficient,
                                                     mask=mask)
            self._step(self.actor_optimizer, self.actor, actor_loss)

            values = self.critic(states)[0].view(-1)
            critic_loss = loss.clipped_value_loss(values,
                                                  old_values,
                                                  returns,
                                                  clip_range=self._value_clip_range,
                                                  value_coefficient=self._value_loss_coefficient,
                                                  mask=mask)
            self._step(self.critic_optimizer, self.critic, critic_loss)

        if mask is not None:
            entropy = loss.masked_select_batch(entropy, mask)

        return {"actor_loss": actor_loss.detach().cpu().item(),
                "critic_loss": critic_loss.detach().cpu().item(),
                "entropy": entropy.detach().mean().cpu().item(),
                "approx_kl": loss.approximate_kl(log_probs, old_log_probs, mask).cpu().item(),
                }

    def _returns_and_advantages(self,
                                episodes: List[List[MemoryTransition]],
                                value_slices: List[torch.Tensor]
                                ) -> Tuple[torch.Tensor, torch.Tensor]:
        """Compute returns and normalized advantages of all real steps, episode by episode.
        """
        bootstrap_values = self._bootstrap_values(episodes)

        returns = []
        advantages = []
        for episode, values, bootstrap_value in zip(episodes, value_slices, bootstrap_values):
            rewards = torch.tensor([t.reward for t in episode],
                                   dtype=torch.float,
                                   device=values.device)
            episode_returns = gae.generalized_advantages(rewards,
                                                         values,
                                                         self._gamma,
                                                         self._gae_lambda,
                                                         bootstrap_value)
            returns.append(episode_returns.returns)
            advantages.append(episode_returns.advantages)

        return torch.cat(returns), gae.normalize_advantages(torch.cat(advantages))

    @torch.no_grad()
    def _bootstrap_values(self, episodes: List[List[MemoryTransition]]) -> List[float]:
        """Return the value following the last step of each episode.

        0 for terminated episodes, the critic's estimate of the next state for truncated ones.
        """
        bootstrap_values = [0.] * len(episodes)
        truncated = [i for i, e in enumerate(episodes) if e[-1].next_state is not None]
        if not truncated:
            return bootstrap_values

        next_states = states_to_tensor([episodes[i][-1].next_state for i in truncated],
                                       self.device)
        values = self.critic(next_states)[0].view(-1).cpu().tolist()
        for i, value in zip(truncated, values):
            bootstrap_values[i] = value
        return bootstrap_values

    def _step(self,
              optimizer: torch.optim.Optimizer,
              net: nn.Module,
              total_loss: torch.Tensor):
        optimizer.zero_grad()
        total_loss.backward()
        if self._clip_grad_norm > 0:
            nn.utils.clip_grad_norm_(net.parameters(), self._clip_grad_norm)
        optimizer.step()

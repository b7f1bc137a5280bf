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
"""Actor and critic networks used by PPO agents.

Both networks optionally include an LSTM core.
Recurrent networks process inputs of shape ``[B, T, *state_shape]``,
inputs without time dimension are treated as ``T = 1``.
Outputs always merge batch and time into their first dimension.
"""
from typing import Sequence, Tuple

import torch
from torch import nn
from torch.nn import Module
from torch.nn import functional as F

from .encoder import Encoder


class _RecurrentBody(Module):
    """Encoder with an optional LSTM core.
    """

    def __init__(self,
                 state_shape: tuple,
                 width: int,
                 depth: int,
                 use_rnn: bool):
        super(_RecurrentBody, self).__init__()
        self.state_shape = tuple(state_shape)
        self.use_rnn = use_rnn
        self.encoder = Encoder(state_shape, width, depth)
        if use_rnn:
            self.core = nn.LSTM(width, width, num_layers=1, batch_first=True)

    def initial_state(self, batch_size: int) -> tuple:
        """Return zero :py:obj:`torch.Tensor` with shape of LSTM block.

        Returns an empty tuple, if LSTM has not been activated during initialization.
        """
        if not self.use_rnn:
            return tuple()
        return tuple(
            torch.zeros(self.core.num_layers, batch_size, self.core.hidden_size)
            for _ in range(2)
        )

    def forward(self, x: torch.Tensor, core_state: tuple = ()) -> Tuple[torch.Tensor, tuple]:
        if not self.use_rnn:
            return self.encoder(x), tuple()

        if x.dim() == len(self.state_shape) + 1:
            x = x.unsqueeze(1)
        B, T = x.shape[:2]  # pylint: disable=invalid-name

        features = self.encoder(x.reshape(B * T, *self.state_shape))
        core_output, core_state = self.core(features.view(B, T, -1),
                                            core_state if core_state else None)
        return core_output.reshape(B * T, -1), tuple(core_state)


class PPOActorNet(Module):
    """Actor returning action distributions for discrete and continuous action heads.

    The output has shape ``[B, n_discrete + 2 * n_continuous, head_size]``,
    as expected by :py:mod:`~pytorch_rl_engine.functional.policy`.
    Discrete heads with fewer actions than ``head_size`` are padded with zero probabilities.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state.
    discrete_action_sizes: `list` of `int`
        Number of actions of each discrete head.
    n_continuous: `int`
        Number of continuous action heads.
    width: `int`
        Number of units of hidden layers.
    depth: `int`
        Number of hidden layers.
    use_rnn: `bool`
        Set True, if an LSTM shall be included with this neural network.
    """

    def __init__(self,
                 state_shape: tuple,
                 discrete_action_sizes: Sequence[int] = (),
                 n_continuous: int = 0,
                 width: int = 1024,
                 depth: int = 2,
                 use_rnn: bool = False):
        super(PPOActorNet, self).__init__()
        assert len(discrete_action_sizes) + n_continuous > 0

        # ATTRIBUTES
        self.discrete_action_sizes = list(discrete_action_sizes)
        self.n_discrete = len(self.discrete_action_sizes)
        self.n_continuous = n_continuous
        self.head_size = max(self.discrete_action_sizes + [1])
        self.use_rnn = use_rnn

        self.body = _RecurrentBody(state_shape, width, depth, use_rnn)
        self.discrete_heads = nn.ModuleList([nn.Linear(width, size)
                                             for size in self.discrete_action_sizes])
        if n_continuous > 0:
            self.mean = nn.Linear(width, n_continuous)
            self.log_std = nn.Linear(width, n_continuous)

    def initial_state(self, batch_size: int) -> tuple:
        return self.body.initial_state(batch_size)

    def forward(self, x: torch.Tensor, core_state: tuple = ()) -> Tuple[torch.Tensor, tuple]:
        features, core_state = self.body(x, core_state)

        rows = []
        for head in self.discrete_heads:
            probs = F.softmax(head(features), dim=-1)
            rows.append(F.pad(probs, (0, self.head_size - probs.shape[-1])))

        if self.n_continuous > 0:
            mean = self.mean(features)
            log_std = torch.clamp(self.log_std(features), -20., 2.)
            for column in torch.cat([mean, log_std], dim=-1).unbind(-1):
                rows.append(F.pad(column.unsqueeze(-1), (0, self.head_size - 1)))

        return torch.stack(rows, dim=1), core_state


class PPOCriticNet(Module):
    """Critic returning state values of shape ``[B, 1]``.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state.
    width: `int`
        Number of units of hidden layers.
    depth: `int`
        Number of hidden layers.
    use_rnn: `bool`
        Set True, if an LSTM shall be included with this neural network.
    """

    def __init__(self,
                 state_shape: tuple,
                 width: int = 1024,
                 depth: int = 2,
                 use_rnn: bool = False):
        super(PPOCriticNet, self).__init__()
        self.use_rnn = use_rnn
        self.body = _RecurrentBody(state_shape, width, depth, use_rnn)
        self.value = nn.Linear(width, 1)

    def initial_state(self, batch_size: int) -> tuple:
        return self.body.initial_state(batch_size)

    def forward(self, x: torch.Tensor, core_state: tuple = ()) -> Tuple[torch.Tensor, tuple]:
        features, core_state = self.body(x, core_state)
        return self.value(features), core_state

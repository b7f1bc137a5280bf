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
"""Value network used by DQN agents.
"""
import torch
from torch import nn
from torch.nn import Module
from torch.nn import functional as F

from .encoder import Encoder
from .noisy_linear import NoisyLinear


class QNet(Module):
    """Neural network returning action values for multiple discrete action heads.

    Depending on configuration, this network is:
        * Plain: returns values of shape ``[B, heads, actions]``.
        * Categorical: returns value distributions of shape ``[B, heads, actions, atoms]``,
          normalized with a softmax over atoms.
        * Dueling: splits each head into a shared state value and per head advantages.
        * Noisy: uses :py:class:`~.NoisyLinear` output layers.

    See Also
    --------
    `"Dueling Network Architectures for Deep Reinforcement Learning" on arXiv
    <https://arxiv.org/abs/1511.06581>`__ by Wang et al.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state.
    num_heads: `int`
        Number of discrete action heads.
    num_actions: `int`
        Number of actions of each head.
    width: `int`
        Number of units of hidden layers.
    depth: `int`
        Number of hidden layers.
    num_atoms: `int`
        Number of support atoms. 1 disables the categorical output.
    dueling: `bool`
        Set True, to use a dueling architecture.
    noisy: `bool`
        Set True, to use noisy output layers.
    noisy_sigma: `float`
        Standard deviation of the noise of noisy layers.
    """

    def __init__(self,
                 state_shape: tuple,
                 num_heads: int,
                 num_actions: int,
                 width: int = 1024,
                 depth: int = 2,
                 num_atoms: int = 1,
                 dueling: bool = False,
                 noisy: bool = False,
                 noisy_sigma: float = 0.00015):
        super(QNet, self).__init__()
        # ATTRIBUTES
        self.num_heads = num_heads
        self.num_actions = num_actions
        self.num_atoms = num_atoms
        self.dueling = dueling

        def output_layer(out_features: int) -> Module:
            if noisy:
                return NoisyLinear(width, out_features, sigma=noisy_sigma)
            return nn.Linear(width, out_features)

        self.encoder = Encoder(state_shape, width, depth)
        self.heads = nn.ModuleList([output_layer(num_actions * num_atoms)
                                    for _ in range(num_heads)])
        if dueling:
            self.value = output_layer(num_atoms)

    def reset_noise(self):
        """Redraw the noise of all :py:class:`~.NoisyLinear` layers.
        """
        for module in self.modules():
            if isinstance(module, NoisyLinear):
                module.reset_noise()

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        features = self.encoder(x)
        batch_size = features.shape[0]

        outputs = []
        for head in self.heads:
            out = head(features).view(batch_size, self.num_actions, self.num_atoms)
            if self.dueling:
                value = self.value(features).view(batch_size, 1, self.num_atoms)
                out = value + out - out.mean(1, keepdim=True)
            if self.num_atoms > 1:
                out = F.softmax(out, dim=-1)
            outputs.append(out)

        output = torch.stack(outputs, dim=1)
        if self.num_atoms == 1:
            output = output.squeeze(-1)
        return output

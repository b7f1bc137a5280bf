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
"""Linear layer with additive parameter noise.

See Also
--------
`"Noisy Networks for Exploration" on arXiv <https://arxiv.org/abs/1706.10295>`__
by Fortunato et al.
"""
import torch
from torch import nn
from torch.nn import Module
from torch.nn import functional as F


class NoisyLinear(Module):
    """Linear layer that perturbs its weights with gaussian noise while in training mode.

    One noise value is drawn per output unit and shared by all weights of that unit.
    Noise is redrawn only by :py:meth:`reset_noise()`.

    Parameters
    ----------
    in_features: `int`
        Size of each input sample.
    out_features: `int`
        Size of each output sample.
    sigma: `float`
        Standard deviation of the noise.
    """

    def __init__(self,
                 in_features: int,
                 out_features: int,
                 sigma: float = 0.00015):
        super(NoisyLinear, self).__init__()
        self.sigma = sigma
        self.linear = nn.Linear(in_features, out_features)

        self.register_buffer('epsilon_weight', torch.zeros(out_features, 1))
        self.register_buffer('epsilon_bias', torch.zeros(out_features))
        self.reset_noise()

    def reset_noise(self):
        self.epsilon_weight.normal_(0, self.sigma)
        self.epsilon_bias.normal_(0, self.sigma)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if not self.training:
            return self.linear(x)

        weight = self.linear.weight + self.epsilon_weight.expand_as(self.linear.weight)
        bias = self.linear.bias + self.epsilon_bias
        return F.linear(x, weight, bias)

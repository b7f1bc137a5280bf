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
"""Feature extraction shared by all networks.
"""
import torch
from torch import nn
from torch.nn import Module
from torch.nn import functional as F


class Encoder(Module):
    """Encodes flat vector states or 2-D grid states into features of size :py:attr:`width`.

    Grid states pass a single 3x3 convolution before the fully connected layers.

    Parameters
    ----------
    state_shape: `tuple`
        Shape of a single state, either ``(features,)`` or ``(height, width)``.
    width: `int`
        Number of units of each fully connected layer.
    depth: `int`
        Number of fully connected layers.
    conv_channels: `int`
        Number of channels of the convolution applied to grid states.
    """

    def __init__(self,
                 state_shape: tuple,
                 width: int = 1024,
                 depth: int = 2,
                 conv_channels: int = 32):
        super(Encoder, self).__init__()
        if len(state_shape) not in (1, 2):
            raise ValueError("A state must be a flat vector or a 2-D grid, got shape %s."
                             % (tuple(state_shape),))
        assert depth > 0

        # ATTRIBUTES
        self.state_shape = tuple(state_shape)
        self.width = width

        if len(self.state_shape) == 2:
            height, grid_width = self.state_shape
            if height < 3 or grid_width < 3:
                raise ValueError("Grid states need at least 3x3 cells, got shape %s."
                                 % (self.state_shape,))
            self.conv = nn.Conv2d(1, conv_channels, kernel_size=3)
            in_features = conv_channels * (height - 2) * (grid_width - 2)
        else:
            self.conv = None
            in_features = self.state_shape[0]

        layers = []
        for _ in range(depth):
            layers.append(nn.Linear(in_features, width))
            in_features = width
        self.fc = nn.ModuleList(layers)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Forward states of shape ``[B, *state_shape]``, returns ``[B, width]``.
        """
        if self.conv is not None:
            x = F.relu(self.conv(x.unsqueeze(1)))
            x = torch.flatten(x, 1)
        for layer in self.fc:
            x = F.relu(layer(x))
        return x

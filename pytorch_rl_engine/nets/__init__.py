"""Collection of neural networks intended for reinforcement learning.

The optimizers only rely on the forward contracts of these networks,
any module honoring the same contracts can be used instead.

Exposed Networks:
    * :py:class:`~q_net.QNet`
    * :py:class:`~ppo_net.PPOActorNet`
    * :py:class:`~ppo_net.PPOCriticNet`
    * :py:class:`~noisy_linear.NoisyLinear`
"""

from .encoder import Encoder
from .noisy_linear import NoisyLinear
from .ppo_net import PPOActorNet, PPOCriticNet
from .q_net import QNet

"""The :py:mod:`agents` module holds agents and the optimizers they train with.

Exposed classes:
    * :py:class:`~dqn_agent.DQNAgent` (Child of :py:class:`~base_agent.BaseAgent`)
    * :py:class:`~ppo_agent.PPOAgent` (Child of :py:class:`~base_agent.BaseAgent`)
    * :py:class:`~dqn_optimizer.DQNOptimizer`
    * :py:class:`~ppo_optimizer.PPOOptimizer`

Parent classes:
    * :py:class:`~base_agent.BaseAgent`
"""

from .base_agent import BaseAgent
from .dqn_agent import DQNAgent
from .dqn_optimizer import DQNOptimizer
from .options import DQNAgentOptions, PPOAgentOptions
from .ppo_agent import PPOAgent
from .ppo_optimizer import PPOOptimizer
from .q_strategy import QStrategy, build_q_strategy

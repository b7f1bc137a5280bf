"""This package provides the core of a deep reinforcement learning library.

It implements replay memories, batching and the optimization steps of
value based (DQN and its variants) and policy based (PPO) agents.
Environments are not part of this package, agents consume transitions produced elsewhere.

Good points of customization would be the neural networks (:py:mod:`~pytorch_rl_engine.nets`)
or loss computation (:py:mod:`~pytorch_rl_engine.functional`).

See Also
--------
* `"Human-level control through deep reinforcement learning"
  <https://www.nature.com/articles/nature14236>`__ by Mnih et al.
* `"Rainbow: Combining Improvements in Deep Reinforcement Learning"
  on arXiv <https://arxiv.org/abs/1710.02298>`__ by Hessel et al.
* `"Proximal Policy Optimization Algorithms"
  on arXiv <https://arxiv.org/abs/1707.06347>`__ by Schulman et al.

Warnings
--------
Missing features:
    * Environment wrappers and rollout workers
    * Distributed training
    * Tensorboard functionality
"""

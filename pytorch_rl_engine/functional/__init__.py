"""The functional module implements the calculations needed for value based and policy based learning.

Exposed modules:
    * :py:mod:`n_step`, n-step return accumulation.
    * :py:mod:`q_values`, DQN values, targets and losses.
    * :py:mod:`categorical`, categorical value distributions.
    * :py:mod:`gae`, discounted returns and generalized advantages.
    * :py:mod:`policy`, log-probabilities and entropy of actor outputs.
    * :py:mod:`loss`, clipped PPO losses.
    * :py:mod:`padding`, padding of episodes for recurrent policies.
    * :py:mod:`exploration`, action selection helpers.
"""

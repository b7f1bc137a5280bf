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

"""Hyperparameters of all agents.

Options are immutable, use :py:meth:`_replace()` to derive modified copies.
"""

from typing import NamedTuple, Optional


class DQNAgentOptions(NamedTuple):
    """:py:class:`NamedTuple` holding all hyperparameters of a :py:class:`~.DQNAgent`.
    """
    batch_size: int = 64
    memory_size: int = 10000
    gamma: float = 0.99
    eps_start: float = 1.
    eps_end: float = 0.005
    eps_decay: float = 80.
    tau: float = 0.5
    lr: float = 1e-3
    width: int = 1024
    depth: int = 2
    num_atoms: int = 51
    v_min: float = 1.
    v_max: float = 400.
    priority_epsilon: float = 0.01
    priority_alpha: float = 0.6
    soft_update_interval: int = 1
    n_step_returns: int = 1
    clip_grad_value: float = 100.
    double: bool = False
    dueling: bool = False
    noisy: bool = False
    categorical: bool = False
    prioritized: bool = False
    boltzmann: bool = False
    boltzmann_temperature: float = 1.
    noisy_sigma: float = 0.00015
    lr_step_size_up: int = 500
    lr_step_size_down: int = 2000
    seed: Optional[int] = None
    save_path: str = '.'
    verbose: bool = False


class PPOAgentOptions(NamedTuple):
    """:py:class:`NamedTuple` holding all hyperparameters of a :py:class:`~.PPOAgent`.

    :py:attr:`batch_size` counts complete episodes, not transitions.
    """
    batch_size: int = 16
    memory_size: int = 10000
    gamma: float = 0.99
    gae_lambda: float = 0.95
    lr: float = 1e-5
    width: int = 1024
    depth: int = 2
    clip_epsilon: float = 0.2
    value_clip_range: float = 0.2
    value_loss_coefficient: float = 0.5
    ppo_epoch_count: int = 2
    clip_grad_norm: float = 0.5
    entropy_coefficient: float = 0.1
    use_rnn: bool = False
    lr_step_size_up: int = 10
    lr_step_size_down: int = 10
    seed: Optional[int] = None
    save_path: str = '.'
    verbose: bool = False

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

"""Main python script

Trains an agent on a small corridor task:
the agent starts on the left end of a corridor and is rewarded for reaching the right end.
"""

import argparse
import os

import numpy as np

from pytorch_rl_engine.agents import (DQNAgent, DQNAgentOptions, PPOAgent,
                                      PPOAgentOptions)
from pytorch_rl_engine.data_structures import Episode
from pytorch_rl_engine.tools import Recorder

EXPERIMENT_NAME = 'corridor'
SAVE_PATH = os.path.join('.', 'experiments', EXPERIMENT_NAME)

CORRIDOR_LENGTH = 8
MAX_EPISODE_STEPS = 50
NUM_ENVS = 4
TOTAL_EPISODES = 400

ACTION_LEFT = 0
ACTION_RIGHT = 1


class Corridor():
    """Corridor of :py:attr:`length` cells, states are one-hot positions.
    """

    def __init__(self, length: int = CORRIDOR_LENGTH):
        self.length = length
        self.position = 0
        self.steps = 0

    def reset(self) -> np.ndarray:
        self.position = 0
        self.steps = 0
        return self._state()

    def step(self, action: int):
        self.steps += 1
        if action == ACTION_RIGHT:
            self.position = min(self.position + 1, self.length - 1)
        else:
            self.position = max(self.position - 1, 0)

        done = self.position == self.length - 1 or self.steps >= MAX_EPISODE_STEPS
        reward = 1. if self.position == self.length - 1 else -0.01
        return self._state(), reward, done

    def _state(self) -> np.ndarray:
        state = np.zeros(self.length, dtype=np.float32)
        state[self.position] = 1.
        return state


def build_agent(algorithm: str, recorder: Recorder):
    if algorithm == 'dqn':
        options = DQNAgentOptions(batch_size=32,
                                  width=64,
                                  depth=2,
                                  v_min=-1.,
                                  v_max=1.,
                                  double=True,
                                  dueling=True,
                                  prioritized=True,
                                  n_step_returns=3,
                                  save_path=SAVE_PATH,
                                  verbose=True)
        return DQNAgent((CORRIDOR_LENGTH,), [2], options, recorder=recorder)

    options = PPOAgentOptions(batch_size=NUM_ENVS,
                              width=64,
                              depth=2,
                              lr=1e-3,
                              save_path=SAVE_PATH,
                              verbose=True)
    return PPOAgent((CORRIDOR_LENGTH,), [2], options=options, recorder=recorder)


def select_discrete_actions(agent, states):
    if isinstance(agent, PPOAgent):
        return agent.select_actions(states)[0]
    return agent.select_actions(states)


def main(algorithm: str):
    recorder = Recorder(SAVE_PATH, verbose=True)
    agent = build_agent(algorithm, recorder)

    envs = [Corridor() for _ in range(NUM_ENVS)]
    episodes = [Episode() for _ in range(NUM_ENVS)]
    states = [env.reset() for env in envs]

    while recorder.episodes_seen < TOTAL_EPISODES:
        actions = select_discrete_actions(agent, states)

        for i, env in enumerate(envs):
            next_state, reward, done = env.step(int(actions[i][0]))
            episodes[i].add_transition(states[i], done, actions[i].tolist(), reward)
            states[i] = env.reset() if done else next_state

            if done:
                agent.add_transitions(episodes[i].drain())

        agent.optimize_model()

    recorder.write_buffers()
    agent.save()
    print("Trained for %d episodes, mean return %f, best return %f."
          % (recorder.episodes_seen, recorder.mean_return, recorder.best_return))


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--algorithm', choices=['dqn', 'ppo'], default='dqn')
    main(parser.parse_args().algorithm)

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

# pylint: disable=empty-docstring
"""
"""
from typing import Any, Dict, Iterable

from ..data_structures.transition import MemoryTransition, episode_chains
from .logger import Logger


class Recorder():
    """Keeps running statistics of training and logs them with a :py:class:`~.Logger`.

    Two sources are logged:
        * ``'episodes'``: return and length of each completed episode.
        * ``'training'``: metrics returned by optimizers.

    Parameters
    ----------
    save_path: `str`
        The root directory for saving logs.
    csv_chunksize: `int`
        The chunksize of buffered writing of csv files.
    verbose: `bool`
        Set True, if new best returns shall be printed.
    """

    def __init__(self,
                 save_path: str = '.',
                 csv_chunksize: int = 10,
                 verbose: bool = False):
        # ATTRIBUTES
        self.save_path = save_path
        self.verbose = verbose
        self._logger = Logger(['episodes', 'training'],
                              save_path,
                              csv_chunksize=csv_chunksize,
                              verbose=verbose)

        # COUNTERS
        self.episodes_seen = 0
        self.updates_seen = 0

        # STORAGE
        self.mean_return = 0.
        self.best_return = None

    def log(self, key: str, in_data: Dict[str, Any]):
        """Wrapps :py:meth:`Logger.log()`.
        """
        self._logger.log(key, in_data)

    def log_episode(self,
                    episode_return: float,
                    episode_length: int):
        """Log a completed episode and update running statistics.
        """
        self.episodes_seen += 1
        self.mean_return = self.mean_return + \
            (episode_return - self.mean_return) / self.episodes_seen

        if self.best_return is None or episode_return > self.best_return:
            self.best_return = episode_return
            if self.verbose:
                print("New best return %f after %d episodes."
                      % (episode_return, self.episodes_seen))

        self._logger.log('episodes', {'episode_id': self.episodes_seen,
                                      'return': episode_return,
                                      'length': episode_length,
                                      'mean_return': self.mean_return})

    def log_transitions(self, transitions: Iterable[MemoryTransition]):
        """Extract and log all episodes of :py:attr:`transitions` that end terminally.
        """
        for chain in episode_chains(transitions):
            if chain[0].previous_transition is None and chain[-1].is_terminal:
                self.log_episode(sum(t.reward for t in chain), len(chain))

    def log_training(self, metrics: Dict[str, Any]):
        """Log a metrics `dict` returned by an optimizer.
        """
        self.updates_seen += 1
        self._logger.log('training', metrics)

    def write_buffers(self):
        self._logger.write_buffers()

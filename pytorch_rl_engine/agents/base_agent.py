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
#
# pylint: disable=empty-docstring
"""
"""
import os
import threading
import warnings
from typing import Any, Dict, Iterable, Optional

import torch

from ..data_structures import (BaseMemory, PortableTransition,
                               to_memory_transitions)
from ..tools import Recorder


class BaseAgent():
    """Functionality shared by all agents.

    Holds a replay memory and an optimizer, and serializes access to both:
    :py:meth:`add_transitions()` and :py:meth:`optimize_model()` never run concurrently.
    Action selection does not touch the memory. Agents whose selection changes the state
    of a network shared with optimization, like :py:class:`~.DQNAgent`, take the same lock.

    Subclasses set :py:attr:`memory` and :py:attr:`optimizer` and
    implement :py:meth:`_checkpoint_objects()`.

    Parameters
    ----------
    save_path: `str`
        The root directory for saving data.
    verbose: `bool`
        Set True, if status messages shall be printed.
    recorder: :py:class:`~.Recorder`
        Optional recorder for episode and training metrics.
    """
    checkpoint_filename = 'checkpoint.pt'
    memory_filename = 'replay_memory.pt'

    def __init__(self,
                 save_path: str = '.',
                 verbose: bool = False,
                 recorder: Optional[Recorder] = None):
        # ATTRIBUTES
        self._save_path = save_path
        self._model_path = os.path.join(save_path, 'model')
        self._verbose = verbose
        self.recorder = recorder

        self.memory: BaseMemory = None
        self.optimizer = None

        # COUNTERS
        self.episode_count = 0

        # TORCH
        self.training_device = torch.device(
            "cuda:0" if torch.cuda.is_available() else "cpu")

        # THREADS
        self.lock_memory = threading.Lock()

    def add_transitions(self, transitions: Iterable[PortableTransition]):
        """Reconstruct :py:attr:`transitions` and push them into the memory.

        Raises
        ------
        TransitionGraphError
            If :py:attr:`transitions` do not form valid chains.
        """
        memory_transitions = to_memory_transitions(transitions)

        with self.lock_memory:
            self.memory.push(memory_transitions)

        self.episode_count += sum(1 for t in memory_transitions if t.is_terminal)
        if self.recorder is not None:
            self.recorder.log_transitions(memory_transitions)

    def optimize_model(self) -> Optional[Dict[str, Any]]:
        """Run one optimization call, see the optimizer for details.

        Returns its metrics, or `None` if not enough data is buffered.
        """
        with self.lock_memory:
            metrics = self.optimizer.optimize(self.memory)

        if metrics is not None and self.recorder is not None:
            self.recorder.log_training(metrics)
        return metrics

    def _checkpoint_objects(self) -> Dict[str, Any]:
        """Return all objects with a ``state_dict()`` that shall be checkpointed.
        """
        raise NotImplementedError

    def save(self,
             path: str = None,
             save_memory: bool = True):
        """Save network, optimizer and scheduler states, and optionally the replay memory.

        Parameters
        ----------
        path: `str`
            A valid path to a directory. Defaults to ``<save_path>/model``.
        save_memory: `bool`
            Set True, if the replay memory shall be saved as well.
        """
        path = path if path is not None else self._model_path
        os.makedirs(path, exist_ok=True)

        with warnings.catch_warnings():
            # warning thrown on scheduler.state_dict(): optimizers state should be saved as well.
            # disable this warning because we do save the optimizers state
            warnings.simplefilter("ignore", category=UserWarning)
            save_dict = {name + '_state_dict': obj.state_dict()
                         for name, obj in self._checkpoint_objects().items()}
        save_dict['episode_count'] = self.episode_count

        torch.save(save_dict, os.path.join(path, self.checkpoint_filename))

        if save_memory:
            with self.lock_memory:
                self.memory.save(os.path.join(path, self.memory_filename))

        if self._verbose:
            print('Saved checkpoint at %s.' % path)

    def load(self, path: str = None):
        """Load a checkpoint written by :py:meth:`save()`.

        A missing replay memory snapshot is not fatal, the memory is left empty instead.

        Parameters
        ----------
        path: `str`
            A valid path to a directory. Defaults to ``<save_path>/model``.

        Raises
        ------
        FileNotFoundError
            If no checkpoint exists at :py:attr:`path`.
        """
        path = path if path is not None else self._model_path
        checkpoint_path = os.path.join(path, self.checkpoint_filename)
        if not os.path.isfile(checkpoint_path):
            raise FileNotFoundError('No checkpoint found at %s!' % checkpoint_path)

        checkpoint = torch.load(checkpoint_path,
                                map_location=self.training_device,
                                weights_only=False)

        with warnings.catch_warnings():
            # warning thrown on scheduler.load_state_dict(): optimizers state should be loaded as well.
            # disable this warning because we do load the optimizers state
            warnings.simplefilter("ignore", category=UserWarning)
            for name, obj in self._checkpoint_objects().items():
                obj.load_state_dict(checkpoint[name + '_state_dict'])
        self.episode_count = checkpoint['episode_count']

        memory_path = os.path.join(path, self.memory_filename)
        with self.lock_memory:
            if os.path.isfile(memory_path):
                self.memory.load(memory_path)
            else:
                self.memory.clear()
                if self._verbose:
                    print('No replay memory found at %s, starting with an empty memory.'
                          % memory_path)

        if self._verbose:
            print('Loaded checkpoint from %s.' % path)

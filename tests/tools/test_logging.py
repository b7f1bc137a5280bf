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
"""Tests for csv logging and recording of training statistics."""

import csv

import numpy as np
import pytest
import torch

from pytorch_rl_engine.data_structures import Episode, to_memory_transitions
from pytorch_rl_engine.tools import Logger, Recorder


def _read(path):
    with open(path, newline='') as f:
        return list(csv.DictReader(f))


def test_logger_writes_in_chunks(tmp_path):
    logger = Logger(['training'], str(tmp_path), csv_chunksize=2)
    path = logger.filepath('training')

    logger.log('training', {'loss': torch.tensor([0.5]), 'step': np.int64(1)})
    assert not (tmp_path / 'csv' / 'training.csv').exists()

    logger.log('training', {'loss': 0.25, 'step': 2})
    rows = _read(path)

    assert [float(r['loss']) for r in rows] == [0.5, 0.25]
    assert [int(r['step']) for r in rows] == [1, 2]


def test_logger_flushes_and_appends(tmp_path):
    logger = Logger(['training'], str(tmp_path), csv_chunksize=10)
    logger.log('training', {'loss': 1.})
    logger.write_buffers()

    appending = Logger(['training'], str(tmp_path), csv_chunksize=10)
    appending.log('training', {'loss': 2., 'extra': 3})
    appending.write_buffers()

    rows = _read(logger.filepath('training'))
    assert [float(r['loss']) for r in rows] == [1., 2.]
    assert list(rows[0].keys()) == ['loss']


def test_logger_rejects_unknown_source(tmp_path):
    logger = Logger(['training'], str(tmp_path))

    with pytest.raises(KeyError):
        logger.log('episodes', {'return': 1.})


def test_recorder_tracks_episodes(tmp_path):
    episode = Episode()
    for reward in (1., 2., 3.):
        episode.add_transition((0.,), reward == 3., [0], reward)
    episode.add_transition((0.,), True, [0], 10.)
    recorder = Recorder(str(tmp_path), csv_chunksize=1)

    recorder.log_transitions(to_memory_transitions(episode.drain()))

    assert recorder.episodes_seen == 2
    assert recorder.best_return == 10.
    assert recorder.mean_return == pytest.approx(8.)

    rows = _read(str(tmp_path / 'csv' / 'episodes.csv'))
    assert [float(r['return']) for r in rows] == [6., 10.]
    assert [int(r['length']) for r in rows] == [3, 1]


def test_recorder_skips_incomplete_chains(tmp_path):
    episode = Episode()
    for step in range(3):
        episode.add_transition((0.,), step == 2, [0], 1.)
    transitions = to_memory_transitions(episode.drain())
    recorder = Recorder(str(tmp_path))

    recorder.log_transitions(transitions[1:])

    assert recorder.episodes_seen == 0


def test_recorder_logs_training(tmp_path):
    recorder = Recorder(str(tmp_path))
    recorder.log_training({'loss': 0.1, 'update_counter': 1})
    recorder.write_buffers()

    rows = _read(str(tmp_path / 'csv' / 'training.csv'))
    assert recorder.updates_seen == 1
    assert float(rows[0]['loss']) == 0.1

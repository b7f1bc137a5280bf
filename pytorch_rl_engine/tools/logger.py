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
import csv
import os
from collections import deque
from typing import Any, Deque, Dict, List, Union

import numpy as np
import torch

CsvRowtype = Dict[str, Union[int, float, str]]


class Logger():
    """Object that manages the buffered writing of metric logs into csv files.

    Each registered source is written to ``<directory>/csv/<source>.csv``.
    Rows are buffered and written in chunks of :py:attr:`csv_chunksize`.
    The header of a file is taken from the first row written to it,
    or from the file itself if it already exists.

    Parameters
    ----------
    sources: `list` of `str`
        A list of sources, that shall be registered. A csv file will be created for each source.
    directory: `str`
        The logs root directory.
    csv_chunksize: `int`
        The chunksize of buffered writing of csv files.
    verbose: `bool`
        Set True, if the location of log files shall be printed.
    """

    def __init__(self,
                 sources: List[str],
                 directory: str,
                 csv_chunksize: int = 10,
                 verbose: bool = False):
        assert csv_chunksize > 0

        # ATTRIBUTES
        self._sources = list(sources)
        self._csv_chunksize = csv_chunksize
        self._directory = os.path.join(directory, 'csv')
        os.makedirs(self._directory, exist_ok=True)

        # STORAGE
        self._buffers: Dict[str, Deque[CsvRowtype]] = {s: deque() for s in self._sources}
        self._csv_headers: Dict[str, List[str]] = {}

        if verbose:
            print("csv logs will be saved at %s" % self._directory)

    def filepath(self, source: str) -> str:
        return os.path.join(self._directory, source + '.csv')

    def log(self,
            source: str,
            log_data: Dict[str, Any]):
        """Buffer :py:attr:`log_data` for :py:attr:`source`, write a chunk if the buffer is full.

        Parameters
        ----------
        source: `str`
            The registered :py:attr:`source` this :py:attr:`log_data` shall be written to.
        log_data: `dict`
            The data that shall be logged. Tensors and numpy scalars are converted to numbers.
        """
        if source not in self._buffers:
            raise KeyError("Unknown log source '%s', registered are %s."
                           % (source, self._sources))

        buffer = self._buffers[source]
        buffer.append(self._prep_data(log_data))

        if len(buffer) >= self._csv_chunksize:
            self._write_buffer(source)

    @staticmethod
    def _prep_data(log_data: Dict[str, Any]) -> CsvRowtype:
        """Return a copy of :py:attr:`log_data` with all values converted to plain numbers.
        """
        row = {}
        for key, value in log_data.items():
            if isinstance(value, torch.Tensor):
                value = value.detach().cpu().numpy().flatten()[0].item()
            elif isinstance(value, np.generic):
                value = value.item()
            row[key] = value
        return row

    def write_buffers(self):
        """Write and clear all buffers.
        """
        for source in self._sources:
            self._write_buffer(source)

    def _write_buffer(self, source: str):
        buffer = self._buffers[source]
        rows = [buffer.popleft() for _ in range(len(buffer))]
        if rows:
            self._write_csv_rows(self.filepath(source), rows)

    def _get_header(self,
                    filename: str,
                    csv_columns: List[str]) -> List[str]:
        """Return a valid csv header, creating the file if it does not exist yet.
        """
        # pylint: disable=invalid-name
        if not os.path.isfile(filename):
            with open(filename, 'w', newline='') as f:
                csv.DictWriter(f, fieldnames=csv_columns).writeheader()
            return list(csv_columns)

        with open(filename, newline='') as f:
            return next(csv.reader(f))

    def _write_csv_rows(self,
                        filename: str,
                        rows: List[CsvRowtype]):
        if filename not in self._csv_headers:
            self._csv_headers[filename] = self._get_header(filename, list(rows[0].keys()))

        with open(filename, 'a', newline='') as csvfile:
            writer = csv.DictWriter(csvfile,
                                    fieldnames=self._csv_headers[filename],
                                    extrasaction='ignore')
            writer.writerows(rows)

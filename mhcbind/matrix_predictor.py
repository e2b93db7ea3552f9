# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from collections import namedtuple
import logging
import os
import threading

from .bind_record import AffinityRecord
from .methods import AffinityMethod
from .predictor import BindPredictor
from .stabilized_matrix import MATRIX_SUBDIRECTORIES, load_matrix, matrix_path

logger = logging.getLogger(__name__)

MatrixKey = namedtuple("MatrixKey", ["method", "allele", "length"])


class MatrixCache(object):
    """
    Loaded stabilized matrices keyed by (method, allele, length).

    Two threads asking for the same missing key may both read the file;
    the first matrix stored is the one every caller gets. Matrices are
    immutable, so nothing is locked while scoring.
    """

    def __init__(self, data_dir, loader=load_matrix):
        self.data_dir = data_dir
        self.loader = loader
        self._matrices = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._matrices.get(key)

    def get_or_load(self, key):
        matrix = self.get(key)
        if matrix is not None:
            return matrix
        if self.data_dir is None:
            raise RuntimeError(
                "No data directory configured for %s matrices" % (key.method.name,))
        matrix = self.loader(matrix_path(self.data_dir, key.method, key.allele, key.length))
        if matrix.length != key.length:
            raise ValueError(
                "Matrix for %s/%s declares length %d, expected %d" % (
                    key.method.name, key.allele, matrix.length, key.length))
        with self._lock:
            return self._matrices.setdefault(key, matrix)

    def clear(self):
        with self._lock:
            self._matrices.clear()

    def __len__(self):
        with self._lock:
            return len(self._matrices)


class MatrixPredictor(BindPredictor):
    """
    Affinity predictor backed by stabilized matrices, one per allele and
    peptide length, loaded the first time a peptide of that length is
    scored.
    """

    def __init__(self, method=AffinityMethod.SMM, data_dir=None, matrix_cache=None):
        if method not in MATRIX_SUBDIRECTORIES:
            raise ValueError("Not a matrix prediction method: %s" % (method,))
        self.method = method
        if matrix_cache is None:
            matrix_cache = MatrixCache(data_dir)
        self.matrix_cache = matrix_cache

    @property
    def data_dir(self):
        return self.matrix_cache.data_dir

    def is_installed(self):
        data_dir = self.data_dir
        return data_dir is not None and os.path.isdir(
            os.path.join(data_dir, MATRIX_SUBDIRECTORIES[self.method]))

    def matrix(self, allele, length):
        return self.matrix_cache.get_or_load(MatrixKey(self.method, allele, length))

    def _predict_batch(self, allele, peptides):
        return [
            AffinityRecord(peptide, self.matrix(allele, len(peptide)).score(peptide))
            for peptide in peptides
        ]

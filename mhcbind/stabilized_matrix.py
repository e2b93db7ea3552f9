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

"""
Stabilized matrix method (SMM) for predicting peptide-MHC binding
affinity. A matrix holds a log10 contribution for every (position, residue)
pair plus an intercept, and the predicted IC50 is

    10 ** (intercept + sum of contributions at each position)

Matrix files are tab-delimited: a header line whose second field is the
peptide length, one row per amino acid (one-letter code followed by one
value per position), then a line whose second field is the intercept.
"""

import logging
import os

import numpy as np

from .methods import AffinityMethod
from .peptide import AMINO_ACIDS, AMINO_ACID_INDEX, Peptide

logger = logging.getLogger(__name__)

MATRIX_SUBDIRECTORIES = {
    AffinityMethod.SMM: "smm",
    AffinityMethod.SMM_PMBEC: "smm_pmbec",
}


class MatrixFormatError(ValueError):
    pass


class StabilizedMatrix(object):
    """
    Parameters
    ----------
    elements : array-like of shape (length, 20)
        Log10 contributions, columns ordered as AMINO_ACIDS.

    intercept : float
    """

    def __init__(self, elements, intercept):
        elements = np.array(elements, dtype=np.float64)
        if elements.ndim != 2 or elements.shape[1] != len(AMINO_ACIDS):
            raise ValueError(
                "Expected matrix elements of shape (length, %d), got %s" % (
                    len(AMINO_ACIDS), elements.shape))
        elements.setflags(write=False)
        self._elements = elements
        self._intercept = float(intercept)

    @property
    def length(self):
        return self._elements.shape[0]

    @property
    def intercept(self):
        return self._intercept

    @property
    def elements(self):
        return self._elements

    def element(self, residue, position):
        return float(self._elements[position, _residue_index(residue)])

    def log_score(self, peptide):
        peptide = Peptide(peptide)
        if len(peptide) != self.length:
            raise ValueError(
                "Peptide %s has length %d but the matrix scores %d-mers" % (
                    peptide, len(peptide), self.length))
        log_sum = self._intercept
        for position, residue in enumerate(peptide):
            log_sum += float(self._elements[position, AMINO_ACID_INDEX[residue]])
        return log_sum

    def score(self, peptide):
        """
        Predicted IC50 (nM) of the given peptide, whose length must equal
        the length of this matrix.
        """
        return 10.0 ** self.log_score(peptide)

    def __eq__(self, other):
        return (
            isinstance(other, StabilizedMatrix) and
            self._intercept == other._intercept and
            np.array_equal(self._elements, other._elements))

    def __hash__(self):
        return hash((self._intercept, self._elements.tobytes()))

    def __repr__(self):
        return "StabilizedMatrix(length=%d, intercept=%f)" % (self.length, self._intercept)


def _residue_index(residue):
    try:
        return AMINO_ACID_INDEX[residue]
    except KeyError:
        raise ValueError("Unknown residue: %s" % (residue,))


def _split(line, expected_fields, line_number, source):
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) != expected_fields:
        raise MatrixFormatError(
            "%s, line %d: expected %d tab-delimited fields, found %d" % (
                source, line_number, expected_fields, len(fields)))
    return fields


def _parse_float(text, line_number, source):
    try:
        return float(text)
    except ValueError:
        raise MatrixFormatError(
            "%s, line %d: invalid number '%s'" % (source, line_number, text))


def parse_matrix(lines, source="<matrix>"):
    """
    Parse the lines of a stabilized matrix file.

    Raises MatrixFormatError for a wrong number of fields or rows, an
    unknown or repeated residue, or an unparseable number.
    """
    lines = [line for line in lines if line.strip()]
    if len(lines) < 2:
        raise MatrixFormatError("%s: missing header or intercept" % source)

    header = _split(lines[0], 2, 1, source)
    try:
        length = int(header[1])
    except ValueError:
        raise MatrixFormatError("%s, line 1: invalid peptide length '%s'" % (source, header[1]))
    if length < 1:
        raise MatrixFormatError("%s, line 1: invalid peptide length %d" % (source, length))

    expected_lines = len(AMINO_ACIDS) + 2
    if len(lines) != expected_lines:
        raise MatrixFormatError(
            "%s: expected %d lines (header, %d residues, intercept), found %d" % (
                source, expected_lines, len(AMINO_ACIDS), len(lines)))

    elements = np.zeros((length, len(AMINO_ACIDS)), dtype=np.float64)
    seen = set()
    for line_number, line in enumerate(lines[1:-1], start=2):
        fields = _split(line, length + 1, line_number, source)
        residue = fields[0].strip()
        if residue not in AMINO_ACID_INDEX:
            raise MatrixFormatError(
                "%s, line %d: unknown residue code '%s'" % (source, line_number, residue))
        if residue in seen:
            raise MatrixFormatError(
                "%s, line %d: repeated residue code '%s'" % (source, line_number, residue))
        seen.add(residue)
        column = AMINO_ACID_INDEX[residue]
        for position in range(length):
            elements[position, column] = _parse_float(
                fields[position + 1], line_number, source)

    trailer = _split(lines[-1], 2, len(lines), source)
    intercept = _parse_float(trailer[1], len(lines), source)
    return StabilizedMatrix(elements, intercept)


def load_matrix(path):
    logger.info("Loading stabilized matrix from %s", path)
    with open(path) as f:
        return parse_matrix(f.readlines(), source=path)


def matrix_path(data_dir, method, allele, length):
    """
    Location of the matrix file for a method, allele and peptide length,
    e.g. <data_dir>/smm/HLA-A-01:01-9.txt
    """
    if method not in MATRIX_SUBDIRECTORIES:
        raise ValueError("Unsupported matrix prediction method: %s" % (method,))
    base_name = "%s-%d.txt" % (str(allele).replace("*", "-"), length)
    return os.path.join(data_dir, MATRIX_SUBDIRECTORIES[method], base_name)

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

import os

import numpy as np
import pytest

from mhcbind.methods import AffinityMethod
from mhcbind.peptide import AMINO_ACIDS
from mhcbind.stabilized_matrix import (
    MatrixFormatError,
    StabilizedMatrix,
    load_matrix,
    matrix_path,
    parse_matrix,
)

from .common import eq_, ok_, almost_eq_, write_matrix_file
from .conftest import requires_smm_data, smm_data_dir


def matrix_lines(length=3, intercept=1.5, residues=AMINO_ACIDS, fields_per_row=None):
    lines = ["length\t%d" % length]
    for i, aa in enumerate(residues):
        n = length if fields_per_row is None else fields_per_row
        lines.append("\t".join([aa] + ["%0.3f" % (0.01 * i)] * n))
    lines.append("intercept\t%s" % intercept)
    return lines


def test_parse_matrix():
    matrix = parse_matrix(matrix_lines(length=3, intercept=1.5))
    eq_(matrix.length, 3)
    eq_(matrix.intercept, 1.5)
    eq_(matrix.element("A", 0), 0.0)
    almost_eq_(matrix.element("Y", 2), 0.19)


def test_parse_matrix_ignores_blank_lines():
    lines = matrix_lines(length=2)
    lines.insert(5, "")
    lines.append("   ")
    eq_(parse_matrix(lines).length, 2)


def test_score_is_power_of_ten_of_log_sum():
    elements = np.zeros((3, len(AMINO_ACIDS)))
    elements[0, AMINO_ACIDS.index("A")] = 0.25
    elements[2, AMINO_ACIDS.index("W")] = -0.5
    matrix = StabilizedMatrix(elements, intercept=2.0)
    almost_eq_(matrix.log_score("AKW"), 1.75)
    almost_eq_(matrix.score("AKW"), 10.0 ** 1.75)
    almost_eq_(matrix.score("KKK"), 100.0)


def test_score_wrong_length():
    matrix = parse_matrix(matrix_lines(length=3))
    with pytest.raises(ValueError):
        matrix.score("AAAA")


def test_elements_are_read_only():
    matrix = parse_matrix(matrix_lines(length=3))
    with pytest.raises(ValueError):
        matrix.elements[0, 0] = 1.0


def test_matrix_equality():
    eq_(parse_matrix(matrix_lines(length=3)), parse_matrix(matrix_lines(length=3)))
    ok_(parse_matrix(matrix_lines(length=3)) != parse_matrix(matrix_lines(length=3, intercept=2.0)))


def test_too_few_residue_rows():
    with pytest.raises(MatrixFormatError):
        parse_matrix(matrix_lines(residues=AMINO_ACIDS[:-1]))


def test_wrong_number_of_fields():
    with pytest.raises(MatrixFormatError):
        parse_matrix(matrix_lines(length=3, fields_per_row=4))


def test_unknown_residue():
    with pytest.raises(MatrixFormatError):
        parse_matrix(matrix_lines(residues=AMINO_ACIDS[:-1] + "X"))


def test_repeated_residue():
    with pytest.raises(MatrixFormatError):
        parse_matrix(matrix_lines(residues=AMINO_ACIDS[:-1] + "A"))


def test_invalid_number():
    lines = matrix_lines(length=2)
    lines[3] = "D\t0.1\tabc"
    with pytest.raises(MatrixFormatError):
        parse_matrix(lines)


def test_invalid_header():
    lines = matrix_lines(length=2)
    lines[0] = "length\tnine"
    with pytest.raises(MatrixFormatError):
        parse_matrix(lines)


def test_matrix_path():
    eq_(
        matrix_path("/data", AffinityMethod.SMM, "HLA-A*01:01", 9),
        os.path.join("/data", "smm", "HLA-A-01:01-9.txt"))
    eq_(
        matrix_path("/data", AffinityMethod.SMM_PMBEC, "HLA-B*07:02", 10),
        os.path.join("/data", "smm_pmbec", "HLA-B-07:02-10.txt"))
    with pytest.raises(ValueError):
        matrix_path("/data", AffinityMethod.NET_MHC_PAN, "HLA-A*01:01", 9)


def test_load_matrix(tmp_path):
    path = write_matrix_file(
        str(tmp_path / "HLA-A-01:01-9.txt"),
        length=9,
        intercept=5.07755,
        elements={("A", 0): 0.169, ("T", 1): -1.007, ("D", 2): -0.985, ("Y", 3): 0.033})
    matrix = load_matrix(path)
    eq_(matrix.length, 9)
    almost_eq_(matrix.intercept, 5.07755)
    almost_eq_(matrix.element("A", 0), 0.169)
    almost_eq_(matrix.element("T", 1), -1.007)
    almost_eq_(matrix.element("D", 2), -0.985)
    almost_eq_(matrix.element("Y", 3), 0.033)


@requires_smm_data
def test_hla_a0101_smm_matrix():
    path = matrix_path(smm_data_dir(), AffinityMethod.SMM, "HLA-A*01:01", 9)
    matrix = load_matrix(path)
    almost_eq_(matrix.intercept, 5.07755)
    almost_eq_(matrix.element("A", 0), 0.169)
    almost_eq_(matrix.element("T", 1), -1.007)
    almost_eq_(matrix.element("D", 2), -0.985)
    almost_eq_(matrix.element("Y", 3), 0.033)
    almost_eq_(matrix.score("YWDRNTQIY"), 167.70654039, tol=1e-8)
    almost_eq_(matrix.score("QTSYQYLII"), 1873.0527138, tol=1e-5)
    almost_eq_(matrix.score("TSAFNKKTF"), 11656.012379, tol=1e-4)

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

from mhcbind.bind_record import AffinityRecord
from mhcbind.methods import AffinityMethod
from mhcbind.peptide import AMINO_ACID_INDEX, AMINO_ACIDS
from mhcbind.predictor import BindPredictor


def ok_(a, s=None):
    if s is None:
        assert a
    else:
        assert a, s

def eq_(a, b, s=None):
    if s is None:
        assert a == b
    else:
        assert a == b, s

def neq_(a, b, s=None):
    if s is None:
        assert a != b
    else:
        assert a != b, s

def almost_eq_(a, b, tol=1e-6, s=None):
    if s is None:
        assert abs(a - b) < tol
    else:
        assert abs(a - b) < tol, s


def fake_strength(peptide):
    """Deterministic positive strength derived from a peptide sequence"""
    return 10.0 + sum(AMINO_ACID_INDEX[aa] * (i + 1) for (i, aa) in enumerate(peptide))


class CountingPredictor(BindPredictor):
    """
    Deterministic predictor which records every batch it is asked for.
    """

    def __init__(self, method=AffinityMethod.NET_MHC_PAN, record_class=AffinityRecord,
                 installed=True, percentile=1.0):
        self.method = method
        self.record_class = record_class
        self.installed = installed
        self.percentile = percentile
        self.calls = []

    def is_installed(self):
        return self.installed

    @property
    def num_calls(self):
        return len(self.calls)

    @property
    def predicted_peptides(self):
        return [p for batch in self.calls for p in batch]

    def _predict_batch(self, allele, peptides):
        self.calls.append(list(peptides))
        return [
            self.record_class(p, fake_strength(p), self.percentile)
            for p in peptides
        ]


def write_matrix_file(path, length, intercept, elements=None, residues=AMINO_ACIDS):
    """
    Write a stabilized matrix file. `elements` maps (residue, position)
    to a value; every other element is zero.
    """
    elements = elements or {}
    lines = ["length\t%d" % length]
    for aa in residues:
        values = [repr(float(elements.get((aa, i), 0.0))) for i in range(length)]
        lines.append("\t".join([aa] + values))
    lines.append("intercept\t%r" % float(intercept))
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")
    return path

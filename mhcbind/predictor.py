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

from .peptide import Allele, as_peptides


class BatchSizeError(RuntimeError):
    """
    A predictor returned a different number of records than it was asked
    for, or returned them out of order.
    """
    pass


def check_batch(method, allele, peptides, records):
    """
    Verify that a batch of records matches the requested peptides one to
    one, in order. Raises BatchSizeError otherwise.
    """
    if len(records) != len(peptides):
        raise BatchSizeError(
            "%s prediction for allele %s returned %d records for %d peptides" % (
                getattr(method, "name", method), allele, len(records), len(peptides)))
    for peptide, record in zip(peptides, records):
        if record.peptide != peptide:
            raise BatchSizeError(
                "%s prediction for allele %s returned a record for %s where %s was expected" % (
                    getattr(method, "name", method), allele, record.peptide, peptide))
    return records


class BindPredictor(object):
    """
    Base class for engines which predict binding affinity or stability of
    peptide-MHC complexes.

    Subclasses set `method` and implement `is_installed` and
    `_predict_batch`; every batch they return is validated against the
    request before it reaches a caller.
    """

    method = None

    def is_installed(self):
        """
        Whether the underlying engine is usable, determined without making
        any predictions.
        """
        raise NotImplementedError(
            "%s must implement is_installed" % self.__class__.__name__)

    def _predict_batch(self, allele, peptides):
        raise NotImplementedError(
            "%s must implement _predict_batch" % self.__class__.__name__)

    def predict_batch(self, allele, peptides):
        """
        Parameters
        ----------
        allele : Allele or str

        peptides : sequence of Peptide or str

        Returns a list with one record per input peptide, in input order.
        Duplicate peptides yield duplicate records.
        """
        allele = Allele(allele)
        peptides = as_peptides(peptides)
        if len(peptides) == 0:
            return []
        records = list(self._predict_batch(allele, peptides))
        return check_batch(self.method, allele, peptides, records)

    def predict_one(self, allele, peptide):
        return self.predict_batch(allele, [peptide])[0]

    def predict_map(self, allele, peptides):
        """
        Dictionary from peptide to record for the given peptides.
        """
        return {r.peptide: r for r in self.predict_batch(allele, peptides)}

    def __repr__(self):
        return "%s(method=%s)" % (
            self.__class__.__name__, getattr(self.method, "name", self.method))

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

import logging

from sqlalchemy.exc import SQLAlchemyError

from .peptide import Allele, as_peptides

logger = logging.getLogger(__name__)


class BindStore(object):
    """
    Compute-on-demand persistent store of binding records for a single
    (method, allele) partition.

    Parameters
    ----------
    table : BindTable
        Persistent storage owned by this store.

    predictor : BindPredictor
        Computes records for peptides which have not been persisted yet.

    allele : Allele or str
    """

    def __init__(self, table, predictor, allele):
        self.table = table
        self.predictor = predictor
        self.allele = Allele(allele)

    @property
    def method(self):
        return self.predictor.method

    def _persist(self, records):
        try:
            self.table.upsert_many(records)
        except (SQLAlchemyError, OSError) as e:
            # the computed records are still valid for this request
            logger.warning(
                "Failed to persist %d %s records for allele %s: %s",
                len(records), self.method.name, self.allele, e)

    def get(self, peptides):
        """
        Records for the given peptides in request order: persisted records
        where available, the rest computed in one predictor batch and then
        persisted.
        """
        peptides = as_peptides(peptides)
        if not peptides:
            return []
        found = self.table.fetch(peptides)
        missing = [p for p in dict.fromkeys(peptides) if p not in found]
        logger.debug(
            "%s/%s: %d of %d unique peptides persisted, %d to compute",
            self.method.name, self.allele, len(found), len(found) + len(missing), len(missing))
        if missing:
            computed = self.predictor.predict_batch(self.allele, missing)
            self._persist(computed)
            found.update((r.peptide, r) for r in computed)
        return [found[p] for p in peptides]

    def get_one(self, peptide):
        return self.get([peptide])[0]

    def load_all(self):
        return self.table.load_all()

    def close(self):
        self.table.close()

    def __repr__(self):
        return "BindStore(method=%s, allele=%s)" % (self.method.name, self.allele)

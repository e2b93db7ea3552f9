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
import threading

from .peptide import as_peptides

logger = logging.getLogger(__name__)


class BindCache(object):
    """
    In-memory map of resolved binding records in front of a BindStore.
    Once a peptide has been resolved it is served from memory for the
    lifetime of the cache.

    Parameters
    ----------
    store : BindStore

    registry : BindRegistry, optional
        Registry which created this cache; clear() removes the cache from
        it so that the next lookup builds a fresh cache and store.
    """

    def __init__(self, store, registry=None):
        self.store = store
        self.registry = registry
        self._records = {}
        self._lock = threading.Lock()

    @property
    def method(self):
        return self.store.method

    @property
    def allele(self):
        return self.store.allele

    @property
    def predictor(self):
        return self.store.predictor

    def get(self, peptides):
        """
        Records for the given peptides, in request order.
        """
        peptides = as_peptides(peptides)
        with self._lock:
            missing = [p for p in dict.fromkeys(peptides) if p not in self._records]
        if missing:
            logger.debug(
                "%s/%s: %d of %d requested peptides not in memory",
                self.method.name, self.allele, len(missing), len(peptides))
            # two threads may resolve the same peptide here; the store and
            # predictor are deterministic so both merge equal records
            resolved = self.store.get(missing)
            with self._lock:
                for record in resolved:
                    self._records[record.peptide] = record
        with self._lock:
            return [self._records[p] for p in peptides]

    def get_one(self, peptide):
        return self.get([peptide])[0]

    def contains(self, peptide):
        with self._lock:
            return peptide in self._records

    def __contains__(self, peptide):
        return self.contains(peptide)

    def __len__(self):
        with self._lock:
            return len(self._records)

    def warm(self):
        """
        Load every persisted record of this partition into memory.
        """
        persisted = self.store.load_all()
        with self._lock:
            for peptide, record in persisted.items():
                self._records.setdefault(peptide, record)
        logger.info(
            "Loaded %d persisted %s records for allele %s",
            len(persisted), self.method.name, self.allele)
        return len(persisted)

    def clear(self):
        """
        Drop the in-memory records and detach this cache (and its store)
        from the registry. Persisted records are kept.
        """
        with self._lock:
            self._records.clear()
        if self.registry is not None:
            self.registry.remove(self.method, self.allele, self)

    def __repr__(self):
        return "BindCache(method=%s, allele=%s, size=%d)" % (
            self.method.name, self.allele, len(self))

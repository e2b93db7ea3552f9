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

from typing import Optional

import msgspec

from .bind_record import affinity_of


class BindThreshold(msgspec.Struct, frozen=True):
    """
    Binding cutoff in terms of absolute affinity (IC50 nM), percentile
    rank, or both. A record passing either cutoff is bound.
    """
    affinity : Optional[float] = None
    percentile : Optional[float] = None

    def __post_init__(self):
        if self.affinity is None and self.percentile is None:
            raise ValueError("At least one binding threshold must be set")

    @classmethod
    def for_affinity(cls, affinity):
        return cls(affinity=float(affinity))

    @classmethod
    def for_percentile(cls, percentile):
        return cls(percentile=float(percentile))

    @classmethod
    def from_config(cls, config):
        return cls(
            affinity=config.affinity_threshold,
            percentile=config.percentile_threshold)

    @property
    def is_affinity_set(self):
        return self.affinity is not None

    @property
    def is_percentile_set(self):
        return self.percentile is not None

    def and_affinity(self, affinity):
        if self.is_affinity_set:
            raise ValueError("Affinity threshold is already set")
        return BindThreshold(affinity=float(affinity), percentile=self.percentile)

    def and_percentile(self, percentile):
        if self.is_percentile_set:
            raise ValueError("Percentile threshold is already set")
        return BindThreshold(affinity=self.affinity, percentile=float(percentile))

    def is_bound(self, record):
        if self.is_affinity_set and affinity_of(record) <= self.affinity:
            return True
        if (self.is_percentile_set and
                record.is_percentile_set and
                record.percentile <= self.percentile):
            return True
        return False

    def count_binders(self, records):
        return sum(1 for record in records if self.is_bound(record))

    def get_binders(self, records):
        """
        Set of peptides whose records pass this threshold.
        """
        return {record.peptide for record in records if self.is_bound(record)}

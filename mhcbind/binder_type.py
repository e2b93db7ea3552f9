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

from enum import Enum
import math

from .bind_record import affinity_of


class BinderType(Enum):
    """
    Categories of peptide-MHC binding, each with an affinity (IC50 nM)
    cutoff and a percentile rank cutoff.
    """
    STRONG = (50.0, 0.5)
    WEAK = (500.0, 2.0)
    UNBOUND = (math.inf, math.inf)

    @property
    def affinity_threshold(self):
        return self.value[0]

    @property
    def percentile_threshold(self):
        return self.value[1]

    @classmethod
    def classify(cls, affinity, percentile=float("nan")):
        # percentile rank takes precedence over absolute affinity
        if percentile is not None and not math.isnan(percentile):
            if percentile <= cls.STRONG.percentile_threshold:
                return cls.STRONG
            if percentile <= cls.WEAK.percentile_threshold:
                return cls.WEAK
        if affinity is not None and not math.isnan(affinity):
            if affinity <= cls.STRONG.affinity_threshold:
                return cls.STRONG
            if affinity <= cls.WEAK.affinity_threshold:
                return cls.WEAK
        return cls.UNBOUND

    @classmethod
    def from_record(cls, record):
        return cls.classify(affinity_of(record), record.percentile)

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
Closed enumerations of the prediction methods which back a cache
partition. Each method knows which kind of record it produces and how that
record is persisted.
"""

from enum import Enum

from .bind_record import AffinityRecord, StabilityRecord


class AffinityMethod(Enum):
    NET_MHC = "netMHC"
    NET_MHC_PAN = "netMHCpan"
    # stabilized matrix method
    SMM = "smm"
    # stabilized matrix method with a PMBEC covariance prior
    SMM_PMBEC = "smm_pmbec"

    @property
    def record_class(self):
        return AffinityRecord

    @property
    def table_name(self):
        return "affinity"

    @property
    def strength_column(self):
        return "affinity"


class StabilityMethod(Enum):
    NET_MHC_STAB_PAN = "netMHCstabpan"
    # netMHCpan affinity converted to half-life by a regression model
    NET_MHC_PAN_AFFINITY_PROXY = "affinity_proxy"

    @property
    def record_class(self):
        return StabilityRecord

    @property
    def table_name(self):
        return "stability"

    @property
    def strength_column(self):
        return "half_life"


ALL_METHODS = list(AffinityMethod) + list(StabilityMethod)


def method_from_name(name):
    """
    Resolve a method from its enum name or value, case-insensitively,
    e.g. 'NET_MHC_PAN', 'net_mhc_pan' or 'netMHCpan'.
    """
    if isinstance(name, (AffinityMethod, StabilityMethod)):
        return name
    key = str(name).strip().lower()
    for method in ALL_METHODS:
        if key == method.name.lower() or key == method.value.lower():
            return method
    raise ValueError("Unknown prediction method: %s" % (name,))

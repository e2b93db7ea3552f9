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

import math

from mhcbind.bind_record import AffinityRecord, BindRecord, StabilityRecord
from mhcbind.binder_type import BinderType

from .common import eq_


def test_thresholds():
    eq_(BinderType.STRONG.affinity_threshold, 50.0)
    eq_(BinderType.STRONG.percentile_threshold, 0.5)
    eq_(BinderType.WEAK.affinity_threshold, 500.0)
    eq_(BinderType.WEAK.percentile_threshold, 2.0)
    eq_(BinderType.UNBOUND.affinity_threshold, math.inf)


def test_classify_by_affinity():
    eq_(BinderType.classify(10.0), BinderType.STRONG)
    eq_(BinderType.classify(50.0), BinderType.STRONG)
    eq_(BinderType.classify(200.0), BinderType.WEAK)
    eq_(BinderType.classify(5000.0), BinderType.UNBOUND)


def test_percentile_takes_precedence():
    eq_(BinderType.classify(10000.0, 0.4), BinderType.STRONG)
    eq_(BinderType.classify(10000.0, 1.5), BinderType.WEAK)


def test_unbound_percentile_falls_back_to_affinity():
    eq_(BinderType.classify(10.0, 50.0), BinderType.STRONG)


def test_from_record():
    eq_(BinderType.from_record(AffinityRecord("SIINFEKL", 300.0)), BinderType.WEAK)
    eq_(BinderType.from_record(StabilityRecord("SIINFEKL", 3.0, 0.2)), BinderType.STRONG)
    eq_(BinderType.from_record(StabilityRecord("SIINFEKL", 3.0)), BinderType.UNBOUND)


def test_plain_record_classified_by_strength():
    eq_(BinderType.from_record(BindRecord("SIINFEKL", 30.0)), BinderType.STRONG)

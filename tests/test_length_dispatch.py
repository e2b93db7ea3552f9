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

import pytest

from mhcbind.bind_record import AffinityRecord
from mhcbind.length_dispatch import (
    LengthBucketedPredictor,
    UnsupportedLengthError,
    bucket_by_length,
)
from mhcbind.methods import AffinityMethod, StabilityMethod
from mhcbind.predictor import BatchSizeError, BindPredictor

from .common import eq_, ok_, CountingPredictor


class DroppingPredictor(BindPredictor):
    """Returns one record fewer than requested whenever it can"""

    method = AffinityMethod.NET_MHC_PAN

    def is_installed(self):
        return True

    def predict_batch(self, allele, peptides):
        return [AffinityRecord(p, 100.0) for p in peptides][:-1]


def test_bucket_by_length():
    buckets = bucket_by_length(["AAAAAAAAA", "CCCCCCCC", "DDDDDDDDD"])
    eq_(list(buckets.keys()), [8, 9])
    eq_(buckets[9], ["AAAAAAAAA", "DDDDDDDDD"])


def test_results_in_input_order():
    inner = CountingPredictor(method=StabilityMethod.NET_MHC_STAB_PAN)
    predictor = LengthBucketedPredictor(inner, supported_lengths=[8, 9])
    peptides = ["AAAAAAAAA", "CCCCCCCC", "DDDDDDDDD"]
    records = predictor.predict_batch("HLA-A*02:01", peptides)
    eq_([r.peptide for r in records], peptides)
    # one invocation per length, each in input order
    eq_(inner.calls, [["CCCCCCCC"], ["AAAAAAAAA", "DDDDDDDDD"]])
    eq_(predictor.method, StabilityMethod.NET_MHC_STAB_PAN)


def test_duplicates_keep_positions():
    inner = CountingPredictor()
    predictor = LengthBucketedPredictor(inner, supported_lengths=[8, 9])
    peptides = ["AAAAAAAAA", "CCCCCCCC", "AAAAAAAAA"]
    records = predictor.predict_batch("HLA-A*02:01", peptides)
    eq_([r.peptide for r in records], peptides)


def test_unsupported_length_fails_before_dispatch():
    inner = CountingPredictor()
    predictor = LengthBucketedPredictor(inner, supported_lengths=[8, 9])
    with pytest.raises(UnsupportedLengthError):
        predictor.predict_batch("HLA-A*02:01", ["AAAAAAAAA", "AAAAAAAAAAAA"])
    eq_(inner.num_calls, 0)


def test_empty_request():
    inner = CountingPredictor()
    predictor = LengthBucketedPredictor(inner)
    eq_(predictor.predict_batch("HLA-A*02:01", []), [])
    eq_(inner.num_calls, 0)


def test_size_mismatch_detected():
    predictor = LengthBucketedPredictor(DroppingPredictor(), supported_lengths=[8, 9])
    with pytest.raises(BatchSizeError):
        predictor.predict_batch("HLA-A*02:01", ["AAAAAAAAA", "CCCCCCCC"])


def test_max_batch_size_slices_buckets():
    inner = CountingPredictor()
    predictor = LengthBucketedPredictor(inner, supported_lengths=[9], max_batch_size=2)
    peptides = ["AAAAAAAAA", "CCCCCCCCC", "DDDDDDDDD", "EEEEEEEEE", "FFFFFFFFF"]
    records = predictor.predict_batch("HLA-A*02:01", peptides)
    eq_([r.peptide for r in records], peptides)
    eq_([len(batch) for batch in inner.calls], [2, 2, 1])


def test_invalid_max_batch_size():
    with pytest.raises(ValueError):
        LengthBucketedPredictor(CountingPredictor(), max_batch_size=0)


def test_is_installed_delegates():
    ok_(LengthBucketedPredictor(CountingPredictor(installed=True)).is_installed())
    ok_(not LengthBucketedPredictor(CountingPredictor(installed=False)).is_installed())

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
Some predictors accept only peptides of a single length per invocation.
LengthBucketedPredictor splits a mixed-length request into one sub-batch
per length and puts the results back together in the caller's order.
"""

from collections import OrderedDict, deque
import logging

from .predictor import BindPredictor, BatchSizeError

logger = logging.getLogger(__name__)

DEFAULT_PEPTIDE_LENGTHS = (8, 9, 10, 11)


class UnsupportedLengthError(ValueError):
    pass


def bucket_by_length(peptides):
    """
    Group peptides by length, keeping their relative order within each
    group. Returns an OrderedDict from length to list of peptides, with
    lengths in ascending order.
    """
    buckets = {}
    for peptide in peptides:
        buckets.setdefault(len(peptide), []).append(peptide)
    return OrderedDict(sorted(buckets.items()))


class LengthBucketedPredictor(BindPredictor):
    """
    Parameters
    ----------
    predictor : BindPredictor
        Predictor which requires every peptide of one invocation to have
        the same length.

    supported_lengths : iterable of int

    max_batch_size : int, optional
        Largest number of peptides passed to one invocation of the wrapped
        predictor; longer buckets are split into consecutive slices.
    """

    def __init__(
            self,
            predictor,
            supported_lengths=DEFAULT_PEPTIDE_LENGTHS,
            max_batch_size=None):
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError("Invalid maximum batch size: %s" % (max_batch_size,))
        self.predictor = predictor
        self.supported_lengths = frozenset(supported_lengths)
        self.max_batch_size = max_batch_size

    @property
    def method(self):
        return self.predictor.method

    def is_installed(self):
        return self.predictor.is_installed()

    def check_lengths(self, allele, peptides):
        for peptide in peptides:
            if len(peptide) not in self.supported_lengths:
                raise UnsupportedLengthError(
                    "%s cannot predict peptide %s of length %d for allele %s "
                    "(supported lengths: %s)" % (
                        self.method.name if self.method else self.predictor,
                        peptide,
                        len(peptide),
                        allele,
                        ", ".join(str(n) for n in sorted(self.supported_lengths))))

    def _slices(self, bucket):
        if self.max_batch_size is None:
            yield bucket
            return
        for start in range(0, len(bucket), self.max_batch_size):
            yield bucket[start:start + self.max_batch_size]

    def _predict_bucket(self, allele, bucket):
        records = []
        for batch in self._slices(bucket):
            records.extend(self.predictor.predict_batch(allele, batch))
        return records

    def _predict_batch(self, allele, peptides):
        # reject the whole request before any sub-batch is dispatched
        self.check_lengths(allele, peptides)

        queues = {}
        for length, bucket in bucket_by_length(peptides).items():
            logger.debug(
                "Predicting %d peptides of length %d for allele %s",
                len(bucket), length, allele)
            records = self._predict_bucket(allele, bucket)
            if len(records) != len(bucket):
                raise BatchSizeError(
                    "Predictor returned %d records for %d peptides of length %d (allele %s)" % (
                        len(records), len(bucket), length, allele))
            queues[length] = deque(records)

        results = []
        for peptide in peptides:
            queue = queues.get(len(peptide))
            if not queue:
                raise BatchSizeError(
                    "No record left for peptide %s (allele %s)" % (peptide, allele))
            results.append(queue.popleft())

        for length, queue in queues.items():
            if queue:
                raise BatchSizeError(
                    "%d records of length %d were not consumed (allele %s)" % (
                        len(queue), length, allele))
        if len(results) != len(peptides):
            raise BatchSizeError(
                "Reassembled %d records for %d peptides (allele %s)" % (
                    len(results), len(peptides), allele))
        return results

    def __repr__(self):
        return "LengthBucketedPredictor(%r, supported_lengths=%s)" % (
            self.predictor, sorted(self.supported_lengths))

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

from collections import namedtuple
import math

import numpy as np
import pandas as pd

from .peptide import Peptide

BindRecordBase = namedtuple("BindRecord", [
    "peptide",
    "strength",
    "percentile",
])


def _is_missing(value):
    return value is None or (isinstance(value, float) and math.isnan(value))


class BindRecord(BindRecordBase):
    """
    Predicted or measured binding strength of one peptide to one MHC
    allele, with an optional percentile rank (NaN when unknown).

    Parameters
    ----------
    peptide : Peptide or str

    strength : float
        Positive binding strength: IC50 in nM for affinity records,
        half-life in hours for stability records.

    percentile : float, optional
        Rank of the strength relative to other peptides of the same length
        bound to the same allele, in [0, 100].
    """

    __slots__ = ()

    def __new__(cls, peptide, strength, percentile=float("nan")):
        peptide = Peptide(peptide)
        strength = float(strength)
        if not (math.isfinite(strength) and strength > 0.0):
            raise ValueError(
                "Invalid binding strength %r for peptide %s" % (strength, peptide))
        if _is_missing(percentile):
            percentile = float("nan")
        else:
            percentile = float(percentile)
            if not (0.0 <= percentile <= 100.0):
                raise ValueError(
                    "Invalid percentile rank %r for peptide %s" % (percentile, peptide))
        return BindRecordBase.__new__(cls, peptide, strength, percentile)

    @property
    def is_percentile_set(self):
        return not math.isnan(self.percentile)

    @property
    def affinity(self):
        return float("nan")

    @property
    def half_life(self):
        return float("nan")

    @property
    def is_affinity_set(self):
        return not math.isnan(self.affinity)

    @property
    def is_half_life_set(self):
        return not math.isnan(self.half_life)

    def __eq__(self, other):
        # NaN percentiles compare equal so that records read back from
        # persistence equal the records that were written
        if not isinstance(other, BindRecord):
            return NotImplemented
        return (
            type(self) is type(other) and
            self.peptide == other.peptide and
            self.strength == other.strength and
            (self.percentile == other.percentile or
                (not self.is_percentile_set and not other.is_percentile_set)))

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((type(self).__name__, self.peptide, self.strength))

    def __repr__(self):
        return "%s(%s, %.2f, %.2f)" % (
            self.__class__.__name__, self.peptide, self.strength, self.percentile)


class AffinityRecord(BindRecord):
    """Binding affinity expressed as an IC50 concentration (nM)."""

    __slots__ = ()

    @property
    def affinity(self):
        return self.strength


class StabilityRecord(BindRecord):
    """Half-life (hours) of the peptide-MHC complex."""

    __slots__ = ()

    @property
    def half_life(self):
        return self.strength


def records_to_dataframe(records, allele=None, method=None):
    """
    Tabulate binding records, one row per record in input order.
    """
    df = pd.DataFrame({
        "peptide": [str(r.peptide) for r in records],
        "length": np.array([len(r.peptide) for r in records], dtype=int),
        "strength": np.array([r.strength for r in records], dtype=float),
        "percentile": np.array([r.percentile for r in records], dtype=float),
    })
    if allele is not None:
        df.insert(0, "allele", str(allele))
    if method is not None:
        df.insert(0, "method", getattr(method, "name", str(method)))
    return df


def affinity_of(record):
    """
    Affinity (IC50 nM) of a record for threshold and binder type checks.
    Only stability records have no affinity; a plain BindRecord is read
    as an affinity measurement.
    """
    if isinstance(record, StabilityRecord):
        return float("nan")
    return record.strength

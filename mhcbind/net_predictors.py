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
Adapters for the DTU command-line predictors (netMHC, netMHCpan and
netMHCstabpan), run through mhctools. mhctools writes the input files,
invokes the program and parses its output; these classes convert its
BindingPrediction objects into binding records in request order.
"""

import logging
import os
import shutil

from mhctools import NetMHC, NetMHCpan, NetMHCstabpan

from .bind_record import AffinityRecord, StabilityRecord
from .methods import AffinityMethod, StabilityMethod
from .predictor import BatchSizeError, BindPredictor

logger = logging.getLogger(__name__)


class CommandLinePredictor(BindPredictor):
    """
    Parameters
    ----------
    executable : str, optional
        Path or name of the program. Defaults to the environment variable
        named by `executable_env`, then to `default_program`.
    """

    mhctools_class = None
    default_program = None
    executable_env = None
    record_class = None

    def __init__(self, executable=None):
        if not executable and self.executable_env:
            executable = os.environ.get(self.executable_env)
        self.executable = executable or self.default_program

    def resolve_executable(self):
        return shutil.which(self.executable)

    def is_installed(self):
        return self.resolve_executable() is not None

    def mhctools_predictor(self, allele, peptides):
        """
        mhctools predictor for one allele and the peptide lengths of a
        batch. Constructing it may run the program (e.g. to detect the
        netMHCpan version), so it is only built when predicting.
        """
        return self.mhctools_class(
            alleles=[str(allele)],
            program_name=self.executable,
            default_peptide_lengths=sorted({len(p) for p in peptides}))

    def strength(self, binding_prediction):
        return binding_prediction.affinity

    def to_record(self, binding_prediction):
        return self.record_class(
            binding_prediction.peptide,
            self.strength(binding_prediction),
            binding_prediction.percentile_rank)

    def _predict_batch(self, allele, peptides):
        unique_peptides = list(dict.fromkeys(peptides))
        logger.info(
            "Running %s on %d peptides for allele %s",
            self.method.name, len(unique_peptides), allele)
        predictor = self.mhctools_predictor(allele, unique_peptides)
        binding_predictions = predictor.predict_peptides(
            [str(p) for p in unique_peptides])

        records = {}
        for binding_prediction in binding_predictions:
            record = self.to_record(binding_prediction)
            records[record.peptide] = record

        missing = [p for p in unique_peptides if p not in records]
        if missing or len(records) != len(unique_peptides):
            raise BatchSizeError(
                "%s returned %d predictions for %d peptides (allele %s), missing: %s" % (
                    self.method.name,
                    len(records),
                    len(unique_peptides),
                    allele,
                    ", ".join(missing) or "none"))
        return [records[p] for p in peptides]

    def __repr__(self):
        return "%s(executable=%r)" % (self.__class__.__name__, self.executable)


class NetMHCPredictor(CommandLinePredictor):
    method = AffinityMethod.NET_MHC
    mhctools_class = staticmethod(NetMHC)
    default_program = "netMHC"
    executable_env = "NET_MHC_EXE"
    record_class = AffinityRecord


class NetMHCpanPredictor(CommandLinePredictor):
    method = AffinityMethod.NET_MHC_PAN
    mhctools_class = staticmethod(NetMHCpan)
    default_program = "netMHCpan"
    executable_env = "NET_MHC_PAN_EXE"
    record_class = AffinityRecord


class NetMHCstabpanPredictor(CommandLinePredictor):
    """
    netMHCstabpan requires every peptide of one invocation to have the
    same length; wrap it in a LengthBucketedPredictor for mixed requests.
    mhctools reports the predicted half-life (hours) in the affinity field
    of its predictions.
    """
    method = StabilityMethod.NET_MHC_STAB_PAN
    mhctools_class = NetMHCstabpan
    default_program = "netMHCstabpan"
    executable_env = "NET_MHC_STAB_PAN_EXE"
    record_class = StabilityRecord
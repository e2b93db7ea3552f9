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

__version__ = "0.1.0"

from .bind_cache import BindCache
from .bind_record import AffinityRecord, BindRecord, StabilityRecord, records_to_dataframe
from .bind_store import BindStore
from .binder_type import BinderType
from .config import BindConfig, load_config
from .length_dispatch import LengthBucketedPredictor, UnsupportedLengthError
from .matrix_predictor import MatrixPredictor
from .methods import AffinityMethod, StabilityMethod, method_from_name
from .peptide import Allele, Peptide
from .predictor import BatchSizeError, BindPredictor
from .registry import BindRegistry, get_registry, set_registry
from .stabilized_matrix import MatrixFormatError, StabilizedMatrix
from .threshold import BindThreshold

__all__ = [
    "AffinityMethod",
    "AffinityRecord",
    "Allele",
    "BatchSizeError",
    "BindCache",
    "BindConfig",
    "BindPredictor",
    "BindRecord",
    "BindRegistry",
    "BindStore",
    "BindThreshold",
    "BinderType",
    "LengthBucketedPredictor",
    "MatrixFormatError",
    "MatrixPredictor",
    "Peptide",
    "StabilityMethod",
    "StabilityRecord",
    "StabilizedMatrix",
    "UnsupportedLengthError",
    "get_registry",
    "load_config",
    "method_from_name",
    "records_to_dataframe",
    "set_registry",
]

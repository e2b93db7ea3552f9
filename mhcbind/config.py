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
import os
from typing import Dict, Optional

from datacache import get_data_dir
import msgspec

from .methods import method_from_name

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "MHCBIND_CONFIG"
CACHE_DIR_ENV = "MHCBIND_CACHE_DIR"
HOME_DIR_ENV = "MHCBIND_HOME"

DEFAULT_AFFINITY_METHOD = "NET_MHC_PAN"
DEFAULT_STABILITY_METHOD = "NET_MHC_STAB_PAN"
DEFAULT_AFFINITY_THRESHOLD = 500.0
DEFAULT_PERCENTILE_THRESHOLD = 2.0
DEFAULT_MAX_BATCH_SIZE = 100000
DEFAULT_PROXY_SAMPLE_SIZE = 1000


class BindConfig(msgspec.Struct):
    """Locations and defaults used by binding predictors and caches"""
    cache_dir : Optional[str] = None
    data_dir : Optional[str] = None

    affinity_method : str = DEFAULT_AFFINITY_METHOD
    stability_method : str = DEFAULT_STABILITY_METHOD

    affinity_threshold : Optional[float] = DEFAULT_AFFINITY_THRESHOLD
    percentile_threshold : Optional[float] = DEFAULT_PERCENTILE_THRESHOLD

    # method name -> path of the command-line executable
    executables : Dict[str, str] = msgspec.field(default_factory=dict)

    proxy_model_path : Optional[str] = None

    # peptides, one per line, sampled to fit missing affinity proxy models
    proxy_peptide_file : Optional[str] = None
    proxy_sample_size : int = DEFAULT_PROXY_SAMPLE_SIZE

    max_batch_size : int = DEFAULT_MAX_BATCH_SIZE

    warm_cache : bool = False

    def default_affinity_method(self):
        return method_from_name(self.affinity_method)

    def default_stability_method(self):
        return method_from_name(self.stability_method)


def load_config(path=None) -> BindConfig:
    """
    Read a BindConfig from a YAML file. Settings may be at the top level
    or nested under a 'bind_config' key.

    Parameters
    ----------
    path : str, optional
        Defaults to the file named by $MHCBIND_CONFIG; without either,
        the default configuration is returned.
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV)
    if not path:
        return BindConfig()
    logger.info("Loading configuration from %s", path)
    with open(path) as f:
        content = f.read()
    config_kwargs = {}
    if content.strip():
        yaml_config = msgspec.yaml.decode(content)
        if yaml_config and "bind_config" in yaml_config:
            yaml_config = yaml_config["bind_config"]
        if yaml_config:
            config_kwargs.update(yaml_config)
    return msgspec.convert(config_kwargs, BindConfig)


def resolve_cache_dir(config=None) -> str:
    """
    Directory holding the persistent binding record databases: the
    configured value, else $MHCBIND_CACHE_DIR, else the per-user cache
    directory. Created when missing.
    """
    cache_dir = config.cache_dir if config is not None else None
    if not cache_dir:
        cache_dir = get_data_dir(subdir="mhcbind", envkey=CACHE_DIR_ENV)
    if not os.path.exists(cache_dir):
        os.makedirs(cache_dir)
    return cache_dir


def resolve_data_dir(config=None) -> Optional[str]:
    """
    Directory containing the stabilized matrix parameter files: the
    configured value, else $MHCBIND_HOME/data, else None.
    """
    if config is not None and config.data_dir:
        return config.data_dir
    home_dir = os.environ.get(HOME_DIR_ENV)
    if home_dir:
        return os.path.join(home_dir, "data")
    return None

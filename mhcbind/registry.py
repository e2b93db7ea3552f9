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
BindRegistry owns one BindCache and one BindStore per (method, allele)
partition, together with the table of predictors which back them.
Applications normally share one registry; tests build their own.
"""

import logging
import threading

from .affinity_proxy import (
    AffinityProxyBuilder,
    AffinityProxyPredictor,
    ProxyModelTable,
    load_peptide_file,
    proxy_table_path,
    sample_peptides,
)
from .bind_cache import BindCache
from .bind_store import BindStore
from .bind_table import BindTable, table_path
from .config import BindConfig, load_config, resolve_cache_dir, resolve_data_dir
from .length_dispatch import DEFAULT_PEPTIDE_LENGTHS, LengthBucketedPredictor
from .matrix_predictor import MatrixPredictor
from .methods import ALL_METHODS, AffinityMethod, StabilityMethod, method_from_name
from .net_predictors import NetMHCPredictor, NetMHCpanPredictor, NetMHCstabpanPredictor
from .peptide import Allele

logger = logging.getLogger(__name__)


def affinity_proxy_predictor(config, registry):
    """
    Affinity proxy predictor with the models listed in
    `config.proxy_model_path`. When `config.proxy_peptide_file` is set,
    missing models are fit from a sample of its peptides and persisted
    under the registry cache directory.
    """
    builder = None
    model_table = None
    if config.proxy_peptide_file:
        builder = AffinityProxyBuilder(
            sample_peptides(
                load_peptide_file(config.proxy_peptide_file),
                sample_size=config.proxy_sample_size),
            affinity_source=registry.get,
            stability_source=registry.get)
        model_table = ProxyModelTable(proxy_table_path(registry.cache_dir))
    return AffinityProxyPredictor.from_csv(
        config.proxy_model_path,
        affinity_source=registry.get,
        builder=builder,
        model_table=model_table)


def default_predictor_table(config, registry):
    """
    Map every prediction method to the predictor which implements it.
    The affinity proxy reads its affinities through `registry`, so they
    are cached like any other records.
    """
    executables = config.executables
    data_dir = resolve_data_dir(config)
    return {
        AffinityMethod.NET_MHC: NetMHCPredictor(
            executables.get(AffinityMethod.NET_MHC.name)),
        AffinityMethod.NET_MHC_PAN: NetMHCpanPredictor(
            executables.get(AffinityMethod.NET_MHC_PAN.name)),
        AffinityMethod.SMM: MatrixPredictor(AffinityMethod.SMM, data_dir=data_dir),
        AffinityMethod.SMM_PMBEC: MatrixPredictor(AffinityMethod.SMM_PMBEC, data_dir=data_dir),
        StabilityMethod.NET_MHC_STAB_PAN: LengthBucketedPredictor(
            NetMHCstabpanPredictor(executables.get(StabilityMethod.NET_MHC_STAB_PAN.name)),
            supported_lengths=DEFAULT_PEPTIDE_LENGTHS,
            max_batch_size=config.max_batch_size),
        StabilityMethod.NET_MHC_PAN_AFFINITY_PROXY: affinity_proxy_predictor(config, registry),
    }


class BindRegistry(object):
    """
    Parameters
    ----------
    config : BindConfig, optional

    predictors : dict, optional
        Method -> BindPredictor. Defaults to default_predictor_table().

    cache_dir : str, optional
        Overrides the cache directory resolved from the configuration.
    """

    def __init__(self, config=None, predictors=None, cache_dir=None):
        self.config = config if config is not None else BindConfig()
        self._cache_dir = cache_dir
        self._lock = threading.RLock()
        self._stores = {}
        self._caches = {}
        if predictors is None:
            predictors = default_predictor_table(self.config, self)
        self.predictors = dict(predictors)

    @property
    def cache_dir(self):
        with self._lock:
            if self._cache_dir is None:
                self._cache_dir = resolve_cache_dir(self.config)
            return self._cache_dir

    def predictor(self, method):
        method = method_from_name(method)
        if method not in self.predictors:
            raise ValueError("No predictor registered for method %s" % method.name)
        return self.predictors[method]

    def is_installed(self, method):
        return self.predictor(method).is_installed()

    def store(self, method, allele):
        """
        The BindStore for a method and allele, created on first use.
        """
        method = method_from_name(method)
        key = (method, Allele(allele))
        with self._lock:
            store = self._stores.get(key)
            if store is None:
                predictor = self.predictor(method)
                table = BindTable(table_path(self.cache_dir, method, key[1]), method)
                store = BindStore(table, predictor, key[1])
                self._stores[key] = store
                logger.info("Opened %s store for allele %s at %s", method.name, key[1], table.path)
            return store

    def cache(self, method, allele):
        """
        The BindCache for a method and allele, created on first use.
        """
        method = method_from_name(method)
        key = (method, Allele(allele))
        with self._lock:
            cache = self._caches.get(key)
            if cache is not None:
                return cache
            cache = BindCache(self.store(method, key[1]), registry=self)
            self._caches[key] = cache
        # warmed without holding the registry lock
        if self.config.warm_cache:
            cache.warm()
        return cache

    def get(self, method, allele, peptides):
        return self.cache(method, allele).get(peptides)

    def get_one(self, method, allele, peptide):
        return self.cache(method, allele).get_one(peptide)

    def remove(self, method, allele, cache=None):
        """
        Forget the cache and store of one partition and release the
        store's database handle. When `cache` is given, nothing is removed
        unless it is still the registered cache.
        """
        key = (method_from_name(method), Allele(allele))
        with self._lock:
            registered = self._caches.get(key)
            if cache is not None and registered is not None and registered is not cache:
                return
            self._caches.pop(key, None)
            store = self._stores.pop(key, None)
        if store is not None:
            store.close()

    def clear(self, method, allele):
        key = (method_from_name(method), Allele(allele))
        with self._lock:
            cache = self._caches.get(key)
        if cache is not None:
            cache.clear()
        else:
            self.remove(key[0], key[1])

    def clear_allele(self, allele):
        """
        Clear the caches of every method for one allele, e.g. once that
        allele has been processed.
        """
        for method in ALL_METHODS:
            self.clear(method, allele)

    def close(self):
        with self._lock:
            keys = set(self._caches) | set(self._stores)
        for method, allele in keys:
            self.clear(method, allele)
        for predictor in self.predictors.values():
            if isinstance(predictor, AffinityProxyPredictor):
                predictor.close()

    def partitions(self):
        with self._lock:
            return sorted(
                (method.name, str(allele)) for (method, allele) in self._caches)


_default_registry = None
_default_registry_lock = threading.Lock()


def get_registry():
    """
    Process-wide registry, configured from $MHCBIND_CONFIG on first use.
    """
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = BindRegistry(load_config())
        return _default_registry


def set_registry(registry):
    """
    Replace the process-wide registry, returning the previous one.
    """
    global _default_registry
    with _default_registry_lock:
        previous = _default_registry
        _default_registry = registry
        return previous

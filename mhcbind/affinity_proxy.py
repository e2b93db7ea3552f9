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
Stability predicted from binding affinity by a per-allele log-log
regression:

    log(half_life) = intercept + coefficient * log(affinity)

Models come from a CSV file, from a persistent model table, or are fit on
demand from a sample of peptides whose affinity and stability are
resolved through the binding caches.
"""

from collections import namedtuple
import logging
import os
import threading

import numpy as np
import pandas as pd
from sqlalchemy import Column, Float, MetaData, String, Table, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .bind_record import StabilityRecord
from .bind_table import sqlite_engine
from .methods import AffinityMethod, StabilityMethod, method_from_name
from .peptide import Allele, Peptide
from .predictor import BindPredictor

logger = logging.getLogger(__name__)

PROXY_MODEL_COLUMNS = ["allele", "method", "intercept", "coefficient"]

PROXY_TABLE_NAME = "proxy_param"
PROXY_KEY_DELIMITER = "|"

# seed of the peptide sample used to fit models
RANDOM_SEED = 20200131

# affinities and half-lives at or below this are left out of the fit
MIN_FIT_VALUE = 1.0e-8

AffinityProxyModelBase = namedtuple("AffinityProxyModel", [
    "allele",
    "affinity_method",
    "intercept",
    "coefficient",
])


class AffinityProxyModel(AffinityProxyModelBase):
    __slots__ = ()

    def __new__(cls, allele, affinity_method, intercept, coefficient):
        coefficient = float(coefficient)
        # stronger binders (lower IC50) must form longer-lived complexes
        if not coefficient < 0.0:
            raise ValueError(
                "Affinity proxy coefficient must be negative, got %s for allele %s" % (
                    coefficient, allele))
        return AffinityProxyModelBase.__new__(
            cls,
            Allele(allele),
            method_from_name(affinity_method),
            float(intercept),
            coefficient)

    @property
    def key(self):
        return (self.allele, self.affinity_method)

    def half_life(self, affinity):
        return float(np.exp(self.intercept + self.coefficient * np.log(affinity)))

    def stability_record(self, affinity_record):
        return StabilityRecord(
            affinity_record.peptide,
            self.half_life(affinity_record.affinity))


def load_proxy_models(path):
    """
    Read regression parameters from a CSV file with columns allele,
    method, intercept and coefficient. Returns a dict keyed by
    (allele, affinity method).
    """
    logger.info("Loading affinity proxy models from %s", path)
    df = pd.read_csv(path)
    missing = [c for c in PROXY_MODEL_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(
            "Affinity proxy model file %s is missing columns: %s" % (path, ", ".join(missing)))
    models = {}
    for row in df.itertuples(index=False):
        model = AffinityProxyModel(
            allele=row.allele,
            affinity_method=row.method,
            intercept=row.intercept,
            coefficient=row.coefficient)
        models[model.key] = model
    return models


def proxy_table_path(cache_dir):
    proxy_dir = os.path.join(cache_dir, "proxy")
    if not os.path.exists(proxy_dir):
        os.makedirs(proxy_dir, exist_ok=True)
    return os.path.join(proxy_dir, PROXY_TABLE_NAME + ".db")


def _format_key(allele, affinity_method):
    return "%s%s%s" % (allele, PROXY_KEY_DELIMITER, affinity_method.name)


class ProxyModelTable(object):
    """
    Persistent affinity proxy models, one row per (allele, affinity
    method), stored in SQLite like the binding record tables.
    """

    def __init__(self, path):
        self.path = path
        self.engine = sqlite_engine(path)
        metadata = MetaData()
        self.table = Table(
            PROXY_TABLE_NAME,
            metadata,
            Column("allele_method", String, primary_key=True),
            Column("intercept", Float, nullable=False),
            Column("coefficient", Float, nullable=False))
        metadata.create_all(self.engine)

    def _row_to_model(self, row):
        allele, method_name = row[0].rsplit(PROXY_KEY_DELIMITER, 1)
        return AffinityProxyModel(allele, method_name, row[1], row[2])

    def fetch(self, allele, affinity_method):
        query = select(self.table).where(
            self.table.c.allele_method == _format_key(allele, affinity_method))
        with self.engine.connect() as conn:
            row = conn.execute(query).first()
        if row is None:
            return None
        return self._row_to_model(row)

    def load_all(self):
        with self.engine.connect() as conn:
            rows = conn.execute(select(self.table)).fetchall()
        models = [self._row_to_model(row) for row in rows]
        return {model.key: model for model in models}

    def upsert(self, model):
        stmt = sqlite_insert(self.table).values(
            allele_method=_format_key(model.allele, model.affinity_method),
            intercept=model.intercept,
            coefficient=model.coefficient)
        stmt = stmt.on_conflict_do_update(
            index_elements=["allele_method"],
            set_={
                "intercept": stmt.excluded.intercept,
                "coefficient": stmt.excluded.coefficient,
            })
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def close(self):
        self.engine.dispose()


def load_peptide_file(path):
    """
    Peptides listed one per line; blank lines and lines starting with '#'
    are skipped.
    """
    peptides = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                peptides.append(Peptide.parse(line))
    return peptides


def sample_peptides(peptides, sample_size=None, seed=RANDOM_SEED):
    """
    Unique peptides, shuffled with a fixed seed and truncated to
    `sample_size` when there are more than that.
    """
    peptides = list(dict.fromkeys(Peptide(p) for p in peptides))
    if sample_size is None or sample_size >= len(peptides):
        return peptides
    order = np.random.RandomState(seed).permutation(len(peptides))
    return [peptides[i] for i in order[:sample_size]]


class AffinityProxyBuilder(object):
    """
    Fits affinity proxy models by regressing log half-life on log
    affinity over a fixed peptide sample.

    Parameters
    ----------
    peptides : list of Peptide or str
        Peptide sample, e.g. from sample_peptides().

    affinity_source, stability_source : callable
        Called as source(method, allele, peptides) and returning records
        in request order; normally the get method of a BindRegistry.

    affinity_method : AffinityMethod

    stability_method : StabilityMethod
        Measured stability the model is fit against.
    """

    def __init__(
            self,
            peptides,
            affinity_source,
            stability_source,
            affinity_method=AffinityMethod.NET_MHC_PAN,
            stability_method=StabilityMethod.NET_MHC_STAB_PAN):
        self.peptides = [Peptide(p) for p in peptides]
        self.affinity_source = affinity_source
        self.stability_source = stability_source
        self.affinity_method = affinity_method
        self.stability_method = stability_method

    def build(self, allele):
        allele = Allele(allele)
        logger.info(
            "Fitting %s affinity proxy model for allele %s from %d peptides",
            self.affinity_method.name, allele, len(self.peptides))
        affinity_records = self.affinity_source(self.affinity_method, allele, self.peptides)
        stability_records = self.stability_source(self.stability_method, allele, self.peptides)
        affinities = np.array([r.affinity for r in affinity_records], dtype=float)
        half_lives = np.array([r.half_life for r in stability_records], dtype=float)
        mask = (affinities > MIN_FIT_VALUE) & (half_lives > MIN_FIT_VALUE)
        if mask.sum() < 2:
            raise ValueError(
                "Too few usable peptides (%d) to fit an affinity proxy model for allele %s" % (
                    mask.sum(), allele))
        coefficient, intercept = np.polyfit(
            np.log(affinities[mask]), np.log(half_lives[mask]), 1)
        return AffinityProxyModel(allele, self.affinity_method, intercept, coefficient)


class AffinityProxyPredictor(BindPredictor):
    """
    Parameters
    ----------
    models : dict
        (allele, affinity method) -> AffinityProxyModel

    affinity_source : callable
        Called as affinity_source(method, allele, peptides) and returning
        affinity records in request order; normally the get method of a
        BindRegistry, so that affinities are cached too.

    affinity_method : AffinityMethod

    builder : AffinityProxyBuilder, optional
        Fits models for alleles which have none.

    model_table : ProxyModelTable, optional
        Persists fitted models.
    """

    method = StabilityMethod.NET_MHC_PAN_AFFINITY_PROXY

    def __init__(
            self,
            models,
            affinity_source,
            affinity_method=AffinityMethod.NET_MHC_PAN,
            builder=None,
            model_table=None):
        self.models = dict(models)
        self.affinity_source = affinity_source
        self.affinity_method = affinity_method
        self.builder = builder
        self.model_table = model_table
        self._lock = threading.Lock()

    @classmethod
    def from_csv(
            cls,
            path,
            affinity_source,
            affinity_method=AffinityMethod.NET_MHC_PAN,
            builder=None,
            model_table=None):
        if path is None:
            models = {}
        elif not os.path.exists(path):
            logger.warning("Affinity proxy model file not found at %s", path)
            models = {}
        else:
            models = load_proxy_models(path)
        return cls(
            models,
            affinity_source,
            affinity_method,
            builder=builder,
            model_table=model_table)

    def is_installed(self):
        return len(self.models) > 0 or self.builder is not None

    def model(self, allele):
        """
        Model for an allele: loaded, else persisted, else fit by the
        builder and persisted. Raises KeyError when none can be found.
        """
        allele = Allele(allele)
        key = (allele, self.affinity_method)
        with self._lock:
            model = self.models.get(key)
            if model is None and self.model_table is not None:
                model = self.model_table.fetch(allele, self.affinity_method)
            if model is None and self.builder is not None:
                model = self.builder.build(allele)
                if self.model_table is not None:
                    self.model_table.upsert(model)
            if model is None:
                raise KeyError(
                    "No affinity proxy model for allele %s and method %s" % (
                        allele, self.affinity_method.name))
            self.models[key] = model
            return model

    def _predict_batch(self, allele, peptides):
        model = self.model(allele)
        affinity_records = self.affinity_source(self.affinity_method, allele, peptides)
        return [model.stability_record(r) for r in affinity_records]

    def close(self):
        if self.model_table is not None:
            self.model_table.close()

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
Persistent storage of binding records: one SQLite database per
(method, allele) partition, holding one table keyed by peptide sequence.
"""

import logging
import os

from sqlalchemy import Column, Float, MetaData, String, Table, create_engine, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

PEPTIDE_COLUMN = "peptide"
PERCENTILE_COLUMN = "percentile"

# stay below SQLite's limit on bound parameters per statement
SELECT_CHUNK_SIZE = 500


def table_path(cache_dir, method, allele) -> str:
    """
    Database file for a method and allele, e.g.
    <cache_dir>/NET_MHC_PAN/HLA-A%2A02%3A01.db
    """
    db_dir = os.path.join(cache_dir, method.name)
    if not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
    return os.path.join(db_dir, allele.file_key() + ".db")


def sqlite_engine(path):
    """
    Engine for a SQLite database file. The path is passed to the URL
    verbatim, so %XX escapes in file names are not decoded.
    """
    return create_engine(URL.create("sqlite", database=path))


class BindTable(object):
    """
    Parameters
    ----------
    path : str
        SQLite database file, created if missing.

    method : AffinityMethod or StabilityMethod
        Determines the table name, strength column and record class.
    """

    def __init__(self, path, method):
        self.path = path
        self.method = method
        self.record_class = method.record_class
        self.strength_column = method.strength_column
        self.engine = sqlite_engine(path)
        metadata = MetaData()
        self.table = Table(
            method.table_name,
            metadata,
            Column(PEPTIDE_COLUMN, String, primary_key=True),
            Column(self.strength_column, Float, nullable=False),
            Column(PERCENTILE_COLUMN, Float, nullable=True))
        metadata.create_all(self.engine)

    def _row_to_record(self, row):
        return self.record_class(
            row[0],
            row[1],
            row[2])

    def _columns(self):
        return [
            self.table.c[PEPTIDE_COLUMN],
            self.table.c[self.strength_column],
            self.table.c[PERCENTILE_COLUMN],
        ]

    def load_all(self):
        """
        Every persisted record, as a dict from peptide to record.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(select(*self._columns())).fetchall()
        records = [self._row_to_record(row) for row in rows]
        return {r.peptide: r for r in records}

    def fetch(self, peptides):
        """
        Persisted records for whichever of the given peptides are present,
        as a dict from peptide to record.
        """
        peptides = list(dict.fromkeys(str(p) for p in peptides))
        records = {}
        if not peptides:
            return records
        peptide_column = self.table.c[PEPTIDE_COLUMN]
        with self.engine.connect() as conn:
            for start in range(0, len(peptides), SELECT_CHUNK_SIZE):
                chunk = peptides[start:start + SELECT_CHUNK_SIZE]
                query = select(*self._columns()).where(peptide_column.in_(chunk))
                for row in conn.execute(query):
                    record = self._row_to_record(row)
                    records[record.peptide] = record
        return records

    def upsert_many(self, records):
        """
        Insert records in a single transaction, replacing any existing row
        for the same peptide.
        """
        if not records:
            return
        params = [
            {
                PEPTIDE_COLUMN: str(r.peptide),
                self.strength_column: r.strength,
                PERCENTILE_COLUMN: r.percentile if r.is_percentile_set else None,
            }
            for r in records
        ]
        stmt = sqlite_insert(self.table)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PEPTIDE_COLUMN],
            set_={
                self.strength_column: stmt.excluded[self.strength_column],
                PERCENTILE_COLUMN: stmt.excluded[PERCENTILE_COLUMN],
            })
        with self.engine.begin() as conn:
            conn.execute(stmt, params)

    def count(self):
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(self.table)).scalar()

    def close(self):
        self.engine.dispose()

    def __repr__(self):
        return "BindTable(path=%r, method=%s)" % (self.path, self.method.name)

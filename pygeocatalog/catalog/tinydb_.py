# =================================================================
#
# Authors: pygeocatalog development team
#
# Copyright (c) 2024 pygeocatalog development team
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation
# files (the "Software"), to deal in the Software without
# restriction, including without limitation the rights to use,
# copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the
# Software is furnished to do so, subject to the following
# conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES
# OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT
# HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY,
# WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING
# FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
# OTHER DEALINGS IN THE SOFTWARE.
#
# =================================================================

from contextlib import contextmanager
import logging
import threading
from typing import Optional, Type

from filelock import FileLock
import tinydb
from tinydb.storages import MemoryStorage

from pygeocatalog.catalog.base import BaseCatalog, CatalogObject
from pygeocatalog.error import NotFoundError
from pygeocatalog.models.catalog import (
    CatalogModel, DataStoreInfo, FeatureTypeInfo, LayerInfo, NamespaceInfo,
    WorkspaceInfo
)

LOGGER = logging.getLogger(__name__)

TABLES = {
    WorkspaceInfo: 'workspaces',
    NamespaceInfo: 'namespaces',
    DataStoreInfo: 'datastores',
    FeatureTypeInfo: 'featuretypes',
    LayerInfo: 'layers'
}

DEFAULTS_TABLE = 'defaults'


class TinyDBCatalog(BaseCatalog):
    """TinyDB Catalog"""

    def __init__(self, catalog_def: dict):
        """
        Initialize object

        :param catalog_def: catalog definition, `connection` is the path
                            to the TinyDB file or `:memory:`

        :returns: `pygeocatalog.catalog.tinydb_.TinyDBCatalog`
        """

        super().__init__(catalog_def)

        self._lock = threading.RLock()
        self._memory_db = None

        if self.connection in (None, ':memory:'):
            LOGGER.debug('Using in-memory storage')
            self._memory_db = tinydb.TinyDB(storage=MemoryStorage)

    @contextmanager
    def _db(self):
        with self._lock:
            if self._memory_db is not None:
                yield self._memory_db
            else:
                with FileLock(f'{self.connection}.lock'):
                    with tinydb.TinyDB(self.connection) as db:
                        yield db

    @staticmethod
    def _table_name(obj_or_model) -> str:
        model = obj_or_model if isinstance(obj_or_model, type) \
            else type(obj_or_model)
        try:
            return TABLES[model]
        except KeyError:
            raise TypeError(f'Unsupported catalog object {model.__name__}')

    def find(self, model: Type[CatalogModel], **criteria) -> list:
        with self._db() as db:
            table = db.table(self._table_name(model))
            if criteria:
                docs = table.search(tinydb.Query().fragment(criteria))
            else:
                docs = table.all()

        return [model.model_validate(doc) for doc in docs]

    def add(self, obj: CatalogObject) -> None:
        doc = obj.model_dump(mode='json')
        with self._db() as db:
            table = db.table(self._table_name(obj))
            if table.contains(tinydb.where('id') == obj.id):
                raise ValueError(f'{obj.id} is already in the catalog')
            LOGGER.debug(f'Adding {obj.id}')
            table.insert(doc)

    def save(self, obj: CatalogObject) -> None:
        doc = obj.model_dump(mode='json')
        with self._db() as db:
            table = db.table(self._table_name(obj))
            LOGGER.debug(f'Saving {obj.id}')
            if not table.update(doc, tinydb.where('id') == obj.id):
                raise NotFoundError(f'{obj.id} is not in the catalog')

    def remove(self, obj: CatalogObject) -> None:
        with self._db() as db:
            table = db.table(self._table_name(obj))
            LOGGER.debug(f'Removing {obj.id}')
            table.remove(tinydb.where('id') == obj.id)

    def get_default(self, kind: str, workspace: str = None) -> Optional[str]:
        with self._db() as db:
            doc = db.table(DEFAULTS_TABLE).get(
                tinydb.Query().fragment({'kind': kind,
                                         'workspace': workspace}))

        return doc['name'] if doc else None

    def set_default(self, kind: str, name: str,
                    workspace: str = None) -> None:
        doc = {'kind': kind, 'workspace': workspace, 'name': name}
        with self._db() as db:
            db.table(DEFAULTS_TABLE).upsert(
                doc, tinydb.Query().fragment({'kind': kind,
                                              'workspace': workspace}))

    def __repr__(self):
        return f'<TinyDBCatalog> {self.connection}'

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

"""Cache of live datastore connections and feature sources"""

import logging
import threading
from typing import List, Union

from pygeocatalog.datastore.base import (
    BaseDataAccess, DataAccessError, FeatureSource, FeatureTypeSchema
)
from pygeocatalog.error import NotFoundError
from pygeocatalog.models.catalog import (
    AttributeTypeInfo, DataStoreInfo, FeatureTypeInfo
)
from pygeocatalog.plugin import InvalidPluginError, load_plugin

LOGGER = logging.getLogger(__name__)


class ResourcePool:
    """
    Thread safe cache of datastore drivers (keyed by store id) and
    feature sources (keyed by feature type id)
    """

    def __init__(self, catalog):
        """
        Initialize object

        :param catalog: owning `pygeocatalog.catalog.base.BaseCatalog`

        :returns: pygeocatalog.catalog.pool.ResourcePool
        """

        self.catalog = catalog
        self._lock = threading.RLock()
        self._data_access = {}
        self._feature_sources = {}

    def get_data_access(self, store: DataStoreInfo) -> BaseDataAccess:
        """
        Get (and cache) the driver of a datastore

        :param store: `DataStoreInfo`

        :returns: `BaseDataAccess` instance
        """

        with self._lock:
            if store.id not in self._data_access:
                LOGGER.debug(f'Connecting to datastore {store.key}')
                store_def = dict(store.connection_parameters,
                                 name=store.type)
                try:
                    self._data_access[store.id] = load_plugin(
                        'datastore', store_def)
                except (InvalidPluginError, RuntimeError) as err:
                    LOGGER.error(err)
                    raise DataAccessError(
                        f'Could not load datastore {store.key}')

            return self._data_access[store.id]

    def get_store(self, featuretype: FeatureTypeInfo) -> DataStoreInfo:
        """
        Resolve the datastore referenced by a feature type

        :param featuretype: `FeatureTypeInfo`

        :returns: `DataStoreInfo`
        """

        ref = featuretype.store
        store = None
        if ref is not None:
            store = self.catalog.get_datastore_by_name(
                ref.workspace or featuretype.namespace, ref.name)

        if store is None:
            raise NotFoundError(
                f'No datastore for feature type {featuretype.name}')

        return store

    def get_feature_source(self, featuretype: FeatureTypeInfo
                           ) -> FeatureSource:
        """
        Get (and cache) the feature source of a feature type

        :param featuretype: `FeatureTypeInfo`

        :returns: `FeatureSource`
        """

        with self._lock:
            if featuretype.id not in self._feature_sources:
                data_access = self.get_data_access(
                    self.get_store(featuretype))
                self._feature_sources[featuretype.id] = \
                    data_access.get_feature_source(
                        featuretype.native_name or featuretype.name)

            return self._feature_sources[featuretype.id]

    def get_schema(self, featuretype: FeatureTypeInfo) -> FeatureTypeSchema:
        return self.get_feature_source(featuretype).schema

    def get_attributes(self, featuretype: FeatureTypeInfo
                       ) -> List[AttributeTypeInfo]:
        """
        Compute the attributes of a feature type from its live schema

        :param featuretype: `FeatureTypeInfo`

        :returns: list of `AttributeTypeInfo`
        """

        return [
            AttributeTypeInfo(name=a.name, binding=a.binding,
                              nillable=a.nillable, length=a.length)
            for a in self.get_schema(featuretype).attributes
        ]

    def clear(self, obj: Union[DataStoreInfo, FeatureTypeInfo]) -> None:
        """
        Invalidate cached resources

        Clearing a datastore disposes its driver and drops the feature
        sources obtained from it.

        :param obj: `DataStoreInfo` or `FeatureTypeInfo`

        :returns: `None`
        """

        with self._lock:
            if isinstance(obj, FeatureTypeInfo):
                LOGGER.debug(f'Clearing feature source of {obj.name}')
                self._feature_sources.pop(obj.id, None)
            elif isinstance(obj, DataStoreInfo):
                LOGGER.debug(f'Clearing datastore {obj.key}')
                data_access = self._data_access.pop(obj.id, None)
                if data_access is not None:
                    self._feature_sources = {
                        key: source
                        for key, source in self._feature_sources.items()
                        if source.data_access is not data_access
                    }
                    data_access.dispose()
            else:
                raise TypeError(f'Cannot clear {type(obj).__name__}')

    def dispose(self) -> None:
        """Release every cached driver"""

        with self._lock:
            for data_access in self._data_access.values():
                data_access.dispose()
            self._data_access.clear()
            self._feature_sources.clear()

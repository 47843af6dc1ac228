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

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Tuple

from pygeocatalog.error import GenericError, NotFoundError
from pygeocatalog.models.catalog import GEOMETRY_BINDINGS

LOGGER = logging.getLogger(__name__)


@dataclass
class AttributeDescriptor:
    """Column definition of a native schema"""

    name: str
    binding: str
    nillable: bool = True
    length: Optional[int] = None

    @property
    def is_geometry(self) -> bool:
        return self.binding in GEOMETRY_BINDINGS


@dataclass
class FeatureTypeSchema:
    """Native schema of a type held by a datastore"""

    name: str
    attributes: List[AttributeDescriptor] = field(default_factory=list)
    crs: Optional[str] = None

    @property
    def geometry_descriptor(self) -> Optional[AttributeDescriptor]:
        """first geometry attribute, or `None` for non spatial types"""

        return next((a for a in self.attributes if a.is_geometry), None)


class FeatureSource:
    """Live handle on a single type of a datastore"""

    def __init__(self, data_access: 'BaseDataAccess', type_name: str):
        self.data_access = data_access
        self.type_name = type_name
        self._schema = None

    @property
    def schema(self) -> FeatureTypeSchema:
        if self._schema is None:
            self._schema = self.data_access.get_schema(self.type_name)
        return self._schema

    def get_bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """
        Compute the bounds of all geometries of the type

        :returns: tuple of minx, miny, maxx, maxy in the native CRS,
                  or `None` when the type holds no geometries
        """

        return self.data_access.get_bounds(self.type_name)

    def get_count(self) -> int:
        return self.data_access.get_count(self.type_name)

    def __repr__(self):
        return f'<FeatureSource> {self.type_name}'


class BaseDataAccess:
    """generic datastore driver ABC"""

    #: attribute names the driver manages itself in created types
    reserved_attribute_names = ()

    def __init__(self, store_def: dict):
        """
        Initialize object

        :param store_def: datastore definition, i.e. the store type as
                          `name` plus its connection parameters

        :returns: pygeocatalog.datastore.base.BaseDataAccess
        """

        try:
            self.name = store_def['name']
            self.data = store_def['data']
        except KeyError:
            raise RuntimeError('name/data are required')

        self.options = store_def.get('options') or {}

    @property
    def supports_schema_creation(self) -> bool:
        """whether `create_schema` provisions new tables"""

        return type(self).create_schema is not BaseDataAccess.create_schema

    def get_type_names(self) -> List[str]:
        """
        List the names of the types exposed by the store

        :returns: list of native type names
        """

        raise NotImplementedError()

    def get_schema(self, type_name: str) -> FeatureTypeSchema:
        """
        Introspect the native schema of a type

        :param type_name: native type name

        :returns: `FeatureTypeSchema`
        """

        raise NotImplementedError()

    def create_schema(self, schema: FeatureTypeSchema) -> None:
        """
        Create a new type in the store

        :param schema: `FeatureTypeSchema` to create

        :returns: `None`
        """

        raise NotImplementedError()

    def get_bounds(self, type_name: str):
        raise NotImplementedError()

    def get_count(self, type_name: str) -> int:
        raise NotImplementedError()

    def get_feature_source(self, type_name: str) -> FeatureSource:
        """
        Get a live handle on a type

        :param type_name: native type name

        :returns: `FeatureSource`
        """

        return FeatureSource(self, self.resolve_type_name(type_name))

    def resolve_type_name(self, type_name: str) -> str:
        """
        Match a requested type name against the names of the store

        :param type_name: requested type name

        :returns: native type name as exposed by the store
        """

        if type_name not in self.get_type_names():
            raise DataAccessTypeNotFoundError(
                f'No such type {type_name} in {self.name} store')

        return type_name

    def dispose(self) -> None:
        """Release connections held by the driver"""

        LOGGER.debug(f'Disposing {self!r}')

    def __repr__(self):
        return f'<BaseDataAccess> {self.name}'


class DataAccessError(GenericError):
    """datastore generic error"""
    default_msg = 'data access error (check logs)'


class DataAccessConnectionError(DataAccessError):
    """datastore connection error"""
    default_msg = 'connection error (check logs)'


class DataAccessTypeNotFoundError(DataAccessError, NotFoundError):
    """type not found in datastore"""
    default_msg = 'type not found'

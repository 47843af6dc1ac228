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

"""Pydantic models of the catalog records"""

from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import (BaseModel, ConfigDict, Field, field_validator,
                      model_validator)

#: metadata key flagging a feature type defined by a SQL query
VIRTUAL_TABLE_KEY = 'JDBC_VIRTUAL_TABLE'

GEOMETRY_BINDINGS = (
    'geometry', 'point', 'linestring', 'polygon',
    'multipoint', 'multilinestring', 'multipolygon'
)

BINDINGS = (
    'string', 'integer', 'float', 'boolean', 'date', 'datetime'
) + GEOMETRY_BINDINGS

#: Java class names accepted as binding aliases
BINDING_ALIASES = {
    'java.lang.String': 'string',
    'java.lang.Integer': 'integer',
    'java.lang.Long': 'integer',
    'java.lang.Short': 'integer',
    'java.math.BigInteger': 'integer',
    'java.lang.Float': 'float',
    'java.lang.Double': 'float',
    'java.math.BigDecimal': 'float',
    'java.lang.Boolean': 'boolean',
    'java.sql.Date': 'date',
    'java.util.Date': 'datetime',
    'java.sql.Timestamp': 'datetime',
    'org.locationtech.jts.geom.Geometry': 'geometry',
    'org.locationtech.jts.geom.Point': 'point',
    'org.locationtech.jts.geom.LineString': 'linestring',
    'org.locationtech.jts.geom.Polygon': 'polygon',
    'org.locationtech.jts.geom.MultiPoint': 'multipoint',
    'org.locationtech.jts.geom.MultiLineString': 'multilinestring',
    'org.locationtech.jts.geom.MultiPolygon': 'multipolygon'
}


def normalize_binding(binding: str) -> str:
    """
    Map a binding name or alias onto the canonical binding vocabulary

    :param binding: binding name (e.g. `string`, `java.lang.String`)

    :returns: canonical binding name
    """

    if binding in BINDING_ALIASES:
        return BINDING_ALIASES[binding]

    normalized = binding.strip().lower()
    if normalized == 'int':
        normalized = 'integer'
    elif normalized in ('double', 'real', 'number'):
        normalized = 'float'
    elif normalized in ('str', 'text'):
        normalized = 'string'

    if normalized not in BINDINGS:
        raise ValueError(f'Unsupported attribute binding: {binding}')

    return normalized


def _new_id(prefix: str):
    return lambda: f'{prefix}-{uuid.uuid4()}'


def _unwrap(value: Any, key: str) -> Any:
    """Unwrap list values wrapped in a single-key object (`{key: [...]}`)"""

    if isinstance(value, dict) and key in value:
        value = value[key]
        if isinstance(value, dict):
            value = [value]
    elif value == '':
        value = []
    return value


class ProjectionPolicy(str, Enum):
    FORCE_DECLARED = 'FORCE_DECLARED'
    REPROJECT_TO_DECLARED = 'REPROJECT_TO_DECLARED'
    NONE = 'NONE'


class CatalogModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WorkspaceInfo(CatalogModel):
    id: str = Field(default_factory=_new_id('WorkspaceInfo'))
    name: str
    isolated: bool = False


class NamespaceInfo(CatalogModel):
    id: str = Field(default_factory=_new_id('NamespaceInfo'))
    prefix: str
    uri: str
    isolated: bool = False


class DataStoreInfo(CatalogModel):
    id: str = Field(default_factory=_new_id('DataStoreInfo'))
    name: str
    workspace: str
    type: str
    description: Optional[str] = None
    enabled: bool = True
    connection_parameters: Dict[str, Any] = Field(
        default_factory=dict, alias='connectionParameters')

    @property
    def key(self) -> str:
        return f'{self.workspace}:{self.name}'


class StoreReference(CatalogModel):
    """Reference to a datastore, optionally qualified by its workspace"""

    workspace: Optional[str] = None
    name: str

    @model_validator(mode='before')
    @classmethod
    def _from_qualified_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            data = {'name': data}
        if isinstance(data, dict) and 'workspace' not in data:
            name = data.get('name') or ''
            if ':' in name:
                workspace, name = name.split(':', 1)
                data = dict(data, workspace=workspace, name=name)
        return data

    @classmethod
    def of(cls, store: DataStoreInfo) -> 'StoreReference':
        return cls(workspace=store.workspace, name=store.name)

    def __str__(self) -> str:
        if self.workspace:
            return f'{self.workspace}:{self.name}'
        return self.name


class AttributeTypeInfo(CatalogModel):
    name: str
    binding: str = 'string'
    nillable: bool = True
    length: Optional[int] = None

    @field_validator('binding', mode='before')
    @classmethod
    def _normalize_binding(cls, value: Any) -> Any:
        if isinstance(value, str):
            return normalize_binding(value)
        return value


class BoundingBox(CatalogModel):
    minx: float
    miny: float
    maxx: float
    maxy: float
    crs: Optional[str] = None

    def to_list(self) -> List[float]:
        return [self.minx, self.miny, self.maxx, self.maxy]


class FeatureTypeInfo(CatalogModel):
    id: str = Field(default_factory=_new_id('FeatureTypeInfo'))
    name: Optional[str] = None
    native_name: Optional[str] = Field(None, alias='nativeName')
    namespace: Optional[str] = None
    store: Optional[StoreReference] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    native_crs: Optional[str] = Field(None, alias='nativeCRS')
    srs: Optional[str] = None
    projection_policy: Optional[ProjectionPolicy] = Field(
        None, alias='projectionPolicy')
    native_bounding_box: Optional[BoundingBox] = Field(
        None, alias='nativeBoundingBox')
    lat_lon_bounding_box: Optional[BoundingBox] = Field(
        None, alias='latLonBoundingBox')
    attributes: List[AttributeTypeInfo] = Field(default_factory=list)
    enabled: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)
    max_features: int = Field(0, alias='maxFeatures')
    num_decimals: int = Field(0, alias='numDecimals')

    @field_validator('namespace', mode='before')
    @classmethod
    def _namespace_prefix(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get('prefix') or value.get('name')
        return value

    @field_validator('attributes', mode='before')
    @classmethod
    def _unwrap_attributes(cls, value: Any) -> Any:
        return _unwrap(value, 'attribute')

    @field_validator('keywords', mode='before')
    @classmethod
    def _unwrap_keywords(cls, value: Any) -> Any:
        return _unwrap(value, 'string')

    @field_validator('metadata', mode='before')
    @classmethod
    def _unwrap_metadata(cls, value: Any) -> Any:
        entries = _unwrap(value, 'entry')
        if not isinstance(entries, list):
            return value

        metadata = {}
        for entry in entries:
            if not (isinstance(entry, dict) and
                    isinstance(entry.get('@key'), str)):
                raise ValueError('Metadata entries must hold an @key')
            metadata[entry['@key']] = entry.get('$')
        return metadata

    @property
    def is_virtual(self) -> bool:
        return VIRTUAL_TABLE_KEY in (self.metadata or {})

    @property
    def qualified_name(self) -> str:
        return f'{self.namespace}:{self.name}'


class LayerInfo(CatalogModel):
    id: str = Field(default_factory=_new_id('LayerInfo'))
    name: str
    resource: str
    type: str = 'VECTOR'
    default_style: Optional[str] = Field(None, alias='defaultStyle')
    enabled: bool = True

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

import datetime
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from shapely.errors import ShapelyError
from shapely.geometry import shape

from pygeocatalog.datastore.base import (
    AttributeDescriptor, BaseDataAccess, DataAccessConnectionError,
    DataAccessError, FeatureTypeSchema
)

LOGGER = logging.getLogger(__name__)

GEOJSON_SUFFIXES = ('.geojson', '.json')

GEOMETRY_TYPE_BINDINGS = {
    'Point': 'point',
    'LineString': 'linestring',
    'Polygon': 'polygon',
    'MultiPoint': 'multipoint',
    'MultiLineString': 'multilinestring',
    'MultiPolygon': 'multipolygon'
}


class GeoJSONDataAccess(BaseDataAccess):
    """
    Read-only datastore over a directory of GeoJSON files,
    each file being exposed as a type named after the file stem
    """

    def __init__(self, store_def: dict):
        """
        Initialize object

        :param store_def: datastore definition, `data` is the directory

        :returns: pygeocatalog.datastore.geojson.GeoJSONDataAccess
        """

        super().__init__(store_def)
        self.directory = Path(self.data)
        self.crs = self.options.get('crs', 'EPSG:4326')
        self.geometry_name = self.options.get('geometry_name', 'geometry')

    def get_type_names(self) -> List[str]:
        if not self.directory.is_dir():
            msg = f'GeoJSON directory not found: {self.directory}'
            LOGGER.error(msg)
            raise DataAccessConnectionError(msg)

        return sorted(p.stem for p in self.directory.iterdir()
                      if p.suffix.lower() in GEOJSON_SUFFIXES)

    def get_schema(self, type_name: str) -> FeatureTypeSchema:
        features = self._load(type_name)

        schema = FeatureTypeSchema(name=type_name, crs=self.crs)
        bindings = {}
        nillable = set()
        geometry_types = set()
        occurrences = {}

        for feature in features:
            geometry = feature.get('geometry')
            if geometry:
                geometry_types.add(geometry['type'])

            properties = feature.get('properties') or {}
            for key, value in properties.items():
                occurrences[key] = occurrences.get(key, 0) + 1
                if value is None:
                    nillable.add(key)
                    bindings.setdefault(key, None)
                    continue
                binding = self._value_to_binding(value)
                if bindings.get(key) in (None, binding):
                    bindings[key] = binding
                elif {bindings[key], binding} == {'integer', 'float'}:
                    bindings[key] = 'float'
                else:
                    bindings[key] = 'string'

        # properties missing from some features are nillable
        nillable.update(key for key, count in occurrences.items()
                        if count < len(features))

        if geometry_types:
            if len(geometry_types) == 1:
                binding = GEOMETRY_TYPE_BINDINGS.get(
                    geometry_types.pop(), 'geometry')
            else:
                binding = 'geometry'
            schema.attributes.append(AttributeDescriptor(
                name=self.geometry_name, binding=binding))

        for key, binding in bindings.items():
            schema.attributes.append(AttributeDescriptor(
                name=key, binding=binding or 'string',
                nillable=key in nillable))

        return schema

    def get_bounds(self, type_name: str
                   ) -> Optional[Tuple[float, float, float, float]]:
        bounds = None
        for feature in self._load(type_name):
            if not feature.get('geometry'):
                continue
            try:
                minx, miny, maxx, maxy = shape(feature['geometry']).bounds
            except (ShapelyError, KeyError, TypeError) as err:
                LOGGER.error(err)
                raise DataAccessError(f'Invalid geometry in {type_name}')
            if bounds is None:
                bounds = [minx, miny, maxx, maxy]
            else:
                bounds = [min(bounds[0], minx), min(bounds[1], miny),
                          max(bounds[2], maxx), max(bounds[3], maxy)]

        return tuple(bounds) if bounds else None

    def get_count(self, type_name: str) -> int:
        return len(self._load(type_name))

    def _load(self, type_name: str) -> list:
        """
        Read the features of a type

        :param type_name: type (file stem) name

        :returns: list of GeoJSON features
        """

        self.resolve_type_name(type_name)

        path = next(self.directory / f'{type_name}{suffix}'
                    for suffix in GEOJSON_SUFFIXES
                    if (self.directory / f'{type_name}{suffix}').exists())

        try:
            with path.open(encoding='utf-8') as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not read {path.name}')

        if data.get('type') == 'Feature':
            return [data]

        return data.get('features', [])

    @staticmethod
    def _value_to_binding(value) -> str:
        if isinstance(value, bool):
            return 'boolean'
        elif isinstance(value, int):
            return 'integer'
        elif isinstance(value, float):
            return 'float'
        elif isinstance(value, str):
            try:
                datetime.date.fromisoformat(value)
                return 'date'
            except ValueError:
                pass
        return 'string'

    def __repr__(self):
        return f'<GeoJSONDataAccess> {self.directory}'

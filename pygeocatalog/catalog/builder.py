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

"""Inference of feature type and layer metadata from live datastores"""

import logging
from typing import Iterable, Optional

from pyproj.exceptions import CRSError

from pygeocatalog.crs import WGS84, get_crs, get_srs_code, transform_bbox
from pygeocatalog.datastore.base import (
    AttributeDescriptor, FeatureSource, FeatureTypeSchema
)
from pygeocatalog.error import BadRequestError
from pygeocatalog.models.catalog import (
    AttributeTypeInfo, BoundingBox, DataStoreInfo, FeatureTypeInfo,
    LayerInfo, ProjectionPolicy, StoreReference
)

LOGGER = logging.getLogger(__name__)

#: fields which may be recomputed on update
CALCULATED_FIELDS = ('nativebbox', 'latlonbbox')

STYLE_BY_BINDING = {
    'point': 'point',
    'multipoint': 'point',
    'linestring': 'line',
    'multilinestring': 'line',
    'polygon': 'polygon',
    'multipolygon': 'polygon'
}


class CatalogBuilder:
    """Builds and completes catalog objects"""

    def __init__(self, catalog, store: DataStoreInfo = None):
        """
        Initialize object

        :param catalog: catalog object
        :param store: `DataStoreInfo` new feature types belong to

        :returns: `pygeocatalog.catalog.builder.CatalogBuilder`
        """

        self.catalog = catalog
        self.store = store

    def build_schema(self, featuretype: FeatureTypeInfo,
                     reserved: Iterable[str] = ()) -> FeatureTypeSchema:
        """
        Derive the native schema to create for a new feature type

        :param featuretype: `FeatureTypeInfo` as supplied by the client
        :param reserved: attribute names managed by the datastore itself

        :raises `BadRequestError`: if name or attributes are missing,
                                   attribute names clash or the CRS is
                                   unknown
        :returns: `FeatureTypeSchema`
        """

        name = featuretype.native_name or featuretype.name
        if not name:
            raise BadRequestError(
                'Trying to create new feature type inside the store, '
                'but no name was specified')
        if not featuretype.attributes:
            raise BadRequestError(
                'Trying to create new feature type inside the store, '
                'but no attributes were specified')

        reserved = {r.lower() for r in reserved}
        seen = set()
        for attribute in featuretype.attributes:
            key = attribute.name.lower()
            if key in reserved:
                raise BadRequestError(
                    f'Attribute name {attribute.name} is reserved')
            if key in seen:
                raise BadRequestError(
                    f'Duplicate attribute name {attribute.name}')
            seen.add(key)

        crs = featuretype.native_crs or featuretype.srs
        if crs:
            try:
                get_crs(crs)
            except CRSError as err:
                LOGGER.debug(err)
                raise BadRequestError(f'Unknown CRS: {crs}')

        return FeatureTypeSchema(
            name=name,
            crs=crs,
            attributes=[
                AttributeDescriptor(
                    name=attribute.name,
                    binding=attribute.binding,
                    nillable=attribute.nillable,
                    length=attribute.length if attribute.length and
                    attribute.length > 0 else None)
                for attribute in featuretype.attributes
            ])

    def init_feature_type(self, featuretype: FeatureTypeInfo) -> None:
        """
        Fill in the identity of a new feature type (names, title,
        store and namespace references)

        :param featuretype: `FeatureTypeInfo` to complete in place

        :returns: `None`
        """

        if not featuretype.native_name:
            featuretype.native_name = featuretype.name
        if not featuretype.name:
            featuretype.name = featuretype.native_name
        if featuretype.title is None:
            featuretype.title = featuretype.name

        if self.store is not None:
            if featuretype.store is None:
                featuretype.store = StoreReference.of(self.store)
            if featuretype.namespace is None:
                featuretype.namespace = self.store.workspace

    def setup_metadata(self, featuretype: FeatureTypeInfo,
                       source: FeatureSource) -> None:
        """
        Complete a feature type from its live feature source: native CRS,
        declared SRS, projection policy, attributes and bounding boxes.
        Values already set are kept.

        :param featuretype: `FeatureTypeInfo` to complete in place
        :param source: `FeatureSource` of the feature type

        :returns: `None`
        """

        schema = source.schema

        if not featuretype.native_crs and schema.crs:
            featuretype.native_crs = schema.crs
        if not featuretype.srs and featuretype.native_crs:
            featuretype.srs = get_srs_code(featuretype.native_crs)

        if featuretype.projection_policy is None:
            featuretype.projection_policy = self._default_policy(featuretype)

        if not featuretype.attributes:
            featuretype.attributes = [
                AttributeTypeInfo(name=a.name, binding=a.binding,
                                  nillable=a.nillable, length=a.length)
                for a in schema.attributes
            ]

        if featuretype.native_bounding_box is None:
            featuretype.native_bounding_box = self.get_native_bounds(
                featuretype, source)
        if featuretype.lat_lon_bounding_box is None:
            featuretype.lat_lon_bounding_box = self.get_lat_lon_bounds(
                featuretype.native_bounding_box)

    @staticmethod
    def _default_policy(featuretype: FeatureTypeInfo) -> ProjectionPolicy:
        if featuretype.srs and not featuretype.native_crs:
            return ProjectionPolicy.FORCE_DECLARED
        if (featuretype.srs and featuretype.native_crs and
                get_srs_code(featuretype.native_crs) != featuretype.srs):
            return ProjectionPolicy.REPROJECT_TO_DECLARED
        return ProjectionPolicy.NONE

    @staticmethod
    def get_effective_crs(featuretype: FeatureTypeInfo) -> Optional[str]:
        """CRS in which the native coordinates are interpreted"""

        if featuretype.projection_policy == ProjectionPolicy.FORCE_DECLARED:
            return featuretype.srs or featuretype.native_crs
        return featuretype.native_crs or featuretype.srs

    def get_native_bounds(self, featuretype: FeatureTypeInfo,
                          source: FeatureSource) -> Optional[BoundingBox]:
        """
        Compute the native bounding box of a feature type

        :param featuretype: `FeatureTypeInfo`
        :param source: `FeatureSource` of the feature type

        :returns: `BoundingBox` or `None` if the type holds no geometries
        """

        bounds = source.get_bounds()
        if bounds is None:
            LOGGER.debug(f'No bounds for {featuretype.name}')
            return None

        minx, miny, maxx, maxy = bounds
        return BoundingBox(minx=minx, miny=miny, maxx=maxx, maxy=maxy,
                           crs=self.get_effective_crs(featuretype))

    @staticmethod
    def get_lat_lon_bounds(native_bbox: Optional[BoundingBox]
                           ) -> Optional[BoundingBox]:
        """
        Reproject a native bounding box to WGS84

        :param native_bbox: `BoundingBox` (coordinates without a CRS are
                            assumed to be WGS84)

        :returns: `BoundingBox` in WGS84, or `None`
        """

        if native_bbox is None:
            return None

        coords = native_bbox.to_list()
        if native_bbox.crs and get_srs_code(native_bbox.crs) != WGS84:
            coords = transform_bbox(coords, native_bbox.crs, WGS84)

        minx, miny, maxx, maxy = coords
        return BoundingBox(minx=minx, miny=miny, maxx=maxx, maxy=maxy,
                           crs=WGS84)

    def calculate_optional_fields(self, update: FeatureTypeInfo,
                                  original: FeatureTypeInfo,
                                  recalculate: Optional[str] = None) -> dict:
        """
        Recompute the derived fields of a feature type being updated

        Without an explicit `recalculate` list the native bounding box is
        recomputed when the SRS or projection policy changed and no new
        native box was supplied, and the lat/lon box when the native
        interpretation or native box changed and no new lat/lon box was
        supplied.

        :param update: `FeatureTypeInfo` parsed from the client payload
        :param original: `FeatureTypeInfo` as stored in the catalog
        :param recalculate: comma separated `nativebbox`, `latlonbbox`

        :returns: `dict` of recomputed field values
        """

        supplied = update.model_fields_set

        if recalculate is None:
            changed_srs = 'srs' in supplied and update.srs != original.srs
            changed_policy = ('projection_policy' in supplied and
                              update.projection_policy !=
                              original.projection_policy)
            supplied_native = 'native_bounding_box' in supplied
            changed_native = (supplied_native and update.native_bounding_box
                              != original.native_bounding_box)
            supplied_latlon = 'lat_lon_bounding_box' in supplied

            changed_interpretation = changed_srs or changed_policy
            fields = []
            if changed_interpretation and not supplied_native:
                fields.append('nativebbox')
            if ((changed_interpretation or changed_native) and
                    not supplied_latlon):
                fields.append('latlonbbox')
        else:
            fields = [f.strip().lower() for f in recalculate.split(',')
                      if f.strip()]

        unknown = set(fields) - set(CALCULATED_FIELDS)
        if unknown:
            raise BadRequestError(
                f"Cannot recalculate {', '.join(sorted(unknown))}")

        if not fields:
            return {}

        LOGGER.debug(f'Recalculating {fields} for {original.name}')
        preview = self.update_feature_type(original, update)
        calculated = {}

        try:
            native_bbox = preview.native_bounding_box
            if 'nativebbox' in fields:
                pool = self.catalog.resource_pool
                source = pool.get_data_access(
                    pool.get_store(preview)).get_feature_source(
                        preview.native_name or preview.name)
                native_bbox = self.get_native_bounds(preview, source)
                calculated['native_bounding_box'] = native_bbox
            if 'latlonbbox' in fields:
                calculated['lat_lon_bounding_box'] = \
                    self.get_lat_lon_bounds(native_bbox)
        except CRSError as err:
            LOGGER.error(err)
            raise BadRequestError(f'Invalid CRS for {original.name}')

        return calculated

    @staticmethod
    def update_feature_type(original: FeatureTypeInfo,
                            update: FeatureTypeInfo,
                            overrides: dict = None) -> FeatureTypeInfo:
        """
        Merge the fields specified by a client into a stored feature type

        :param original: `FeatureTypeInfo` as stored in the catalog
        :param update: `FeatureTypeInfo` parsed from the client payload
        :param overrides: `dict` of recomputed field values

        :returns: merged `FeatureTypeInfo` (the identifier is preserved)
        """

        changes = {field: getattr(update, field)
                   for field in update.model_fields_set if field != 'id'}
        changes.update(overrides or {})

        return original.model_copy(update=changes, deep=True)

    def build_layer(self, featuretype: FeatureTypeInfo) -> LayerInfo:
        """
        Build the layer publishing a feature type

        :param featuretype: `FeatureTypeInfo`

        :returns: `LayerInfo`
        """

        return LayerInfo(name=featuretype.name, resource=featuretype.id,
                         default_style=self.get_default_style(
                             featuretype.attributes))

    @staticmethod
    def get_default_style(attributes: Iterable[AttributeTypeInfo]) -> str:
        geometry = next((a for a in attributes
                         if a.binding in STYLE_BY_BINDING or
                         a.binding == 'geometry'), None)
        if geometry is None:
            return 'generic'
        return STYLE_BY_BINDING.get(geometry.binding, 'generic')

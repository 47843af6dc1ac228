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

"""CRS helpers (identifier parsing, bounding box reprojection)"""

import logging
from typing import List, Optional, Union

import pyproj
from pyproj.exceptions import CRSError

LOGGER = logging.getLogger(__name__)

#: Geographic CRS used for lat/lon bounding boxes
WGS84 = 'EPSG:4326'


def get_crs(crs: Union[str, int, pyproj.CRS]) -> pyproj.CRS:
    """
    Get a `pyproj.CRS` instance from a CRS definition.

    Accepts SRS codes (`EPSG:4326`), OGC URIs and URNs
    (`http://www.opengis.net/def/crs/EPSG/0/4326`,
    `urn:ogc:def:crs:EPSG::4326`), WKT or bare EPSG codes.

    :param crs: CRS definition
    :raises `CRSError`: Error raised if no CRS could be identified

    :returns: `pyproj.CRS` instance
    """

    if isinstance(crs, pyproj.CRS):
        return crs

    if isinstance(crs, int):
        return pyproj.CRS.from_epsg(crs)

    value = str(crs).strip()
    if value.startswith(('http://www.opengis.net/def/crs', 'urn:ogc:def:crs')):
        url = value.replace(
            'urn:ogc:def:crs', 'http://www.opengis.net/def/crs'
        ).replace(':', '/')
        try:
            authority, code = url.rsplit('/', maxsplit=3)[1::2]
            return pyproj.CRS.from_authority(authority, code)
        except (ValueError, CRSError):
            msg = f'CRS could not be identified from URI {value!r}'
            LOGGER.error(msg)
            raise CRSError(msg)

    try:
        return pyproj.CRS.from_user_input(value)
    except CRSError:
        msg = f'CRS could not be identified from {value!r}'
        LOGGER.error(msg)
        raise


def get_srs_code(crs: Union[str, int, pyproj.CRS]) -> Optional[str]:
    """
    Derive an `AUTHORITY:CODE` identifier from a CRS definition

    :param crs: CRS definition

    :returns: `str` SRS code, or `None` if the CRS has no authority code
    """

    crs_ = get_crs(crs)
    authority = crs_.to_authority()
    if authority is None:
        LOGGER.debug('Unable to extract authority code from CRS')
        return None

    return ':'.join(authority)


def get_srid(crs: Union[str, int, pyproj.CRS]) -> Optional[int]:
    """
    Helper function to attempt to extract an EPSG SRID from a CRS

    :param crs: CRS definition

    :returns: int of EPSG SRID, if found
    """

    return get_crs(crs).to_epsg()


def transform_bbox(bbox: List[float], from_crs: str,
                   to_crs: str = WGS84) -> List[float]:
    """
    Transform a bounding box from a source to a target CRS.
    Axis order is always longitude/easting first.

    :param bbox: list of minx, miny, maxx, maxy in `from_crs`
    :param from_crs: CRS to transform from
    :param to_crs: CRS to transform to

    :returns: list of 4 coordinates
    """

    transformer = pyproj.Transformer.from_crs(
        get_crs(from_crs), get_crs(to_crs), always_xy=True)

    return list(transformer.transform_bounds(*bbox))

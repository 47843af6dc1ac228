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

from http import HTTPStatus


class GenericError(Exception):
    """Exception class where error codes and messages
    can be defined in custom error subclasses, so catalog
    and datastore plugins can raise appropriate errors.
    """

    ogc_exception_code = 'NoApplicableCode'
    http_status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_msg = 'Unknown error'

    def __init__(self, msg=None, *args, user_msg=None) -> None:
        # if only a user_msg is provided, use it as msg
        if user_msg and not msg:
            msg = user_msg
        super().__init__(msg, *args)
        self.user_msg = user_msg

    @property
    def message(self):
        return self.user_msg if self.user_msg else self.default_msg


class UserFacingError(GenericError):
    """Error whose message is always safe to return to the client"""

    def __init__(self, msg=None, *args, user_msg=None) -> None:
        if msg and not user_msg:
            user_msg = msg
        super().__init__(msg, *args, user_msg=user_msg)


class NotFoundError(UserFacingError):
    """unknown workspace, datastore or feature type"""
    ogc_exception_code = 'NotFound'
    http_status_code = HTTPStatus.NOT_FOUND
    default_msg = 'resource not found'


class ForbiddenError(UserFacingError):
    """client supplied references that conflict with the request path"""
    ogc_exception_code = 'Forbidden'
    http_status_code = HTTPStatus.FORBIDDEN
    default_msg = 'forbidden'


class BadRequestError(UserFacingError):
    """required information missing from the request"""
    ogc_exception_code = 'InvalidParameterValue'
    http_status_code = HTTPStatus.BAD_REQUEST
    default_msg = 'bad request'


class ValidationFailure(UserFacingError):
    """catalog invariant violation, with itemized reasons"""
    ogc_exception_code = 'ValidationError'
    http_status_code = HTTPStatus.BAD_REQUEST
    default_msg = 'validation failed'

    def __init__(self, errors: list, *args) -> None:
        self.errors = list(errors)
        msg = 'Validation failed: ' + '; '.join(self.errors)
        super().__init__(msg, *args)

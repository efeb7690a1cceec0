"""
Domain errors raised by services and translated to HTTP responses by the routers
"""


class CreativeHubError(Exception):
    """Base class for service-level failures"""


class ValidationError(CreativeHubError, ValueError):
    """Bad input: incomplete taxonomy chain, unknown status, missing fields"""


class NotFoundError(CreativeHubError, LookupError):
    """Referenced document does not exist"""


class UpstreamFetchError(CreativeHubError):
    """Spreadsheet or role directory could not be read"""


class UpstreamStorageError(CreativeHubError):
    """Google Drive folder, upload, stream or delete failure"""

class InvalidRequestError(ValueError):
    """A render request that must be rejected before any allocation."""


class RenderTooLargeError(InvalidRequestError):
    """The requested raster would not fit in an addressable buffer."""


class ResampleError(ValueError):
    pass


class ConfigError(ValueError):
    pass

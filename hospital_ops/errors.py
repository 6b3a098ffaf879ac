class HospitalOpsError(Exception):
    """Base class for pipeline and report failures."""


class SchemaError(HospitalOpsError):
    """A required table or column is absent."""


class DataTypeError(HospitalOpsError):
    """A value cannot be read as the type its column requires."""


class StageOrderError(HospitalOpsError):
    """A stage was run before one of its prerequisites."""


class ConfigError(HospitalOpsError, ValueError):
    """An environment setting holds a value that can't be used."""

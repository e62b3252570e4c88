"""Package version and the config schema version read by ``config.migrate_config``."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

__version__ = "0.2.0"

#: v2 moved crawler settings under a ``crawler`` section.
CONFIG_SCHEMA_VERSION = 2

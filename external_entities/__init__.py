"""Map records of remote data sources to entity field values and back."""

__version__ = "0.3.0"

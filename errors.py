"""
Error Types
Exceptions raised by the loader and the chart renderer
"""


class SolarChartsError(Exception):
    """Base class for everything this project raises on purpose."""


class DataSourceError(SolarChartsError):
    """The dataset could not be fetched or parsed."""


class SchemaError(SolarChartsError):
    """A required column is missing (or unusable) after cleaning."""


class RenderError(SolarChartsError):
    """A ChartSpec cannot be rendered from the table it was given."""

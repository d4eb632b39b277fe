from geojsonkit.converters.coordinate import CoordinateConverter
from geojsonkit.converters.feature import FeatureConverter
from geojsonkit.converters.feature_collection import FeatureCollectionConverter
from geojsonkit.converters.geometry import EnvelopeConverter, GeometryConverter
from geojsonkit.converters.geometry_array import GeometryArrayConverter

__all__ = [
    "CoordinateConverter",
    "EnvelopeConverter",
    "FeatureCollectionConverter",
    "FeatureConverter",
    "GeometryArrayConverter",
    "GeometryConverter",
]

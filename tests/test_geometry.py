from unittest import TestCase

import numpy as np
import shapely

from geojsonkit.errors import InvalidConfiguration, MalformedGeometry, UnknownGeometryKind
from geojsonkit.geometry import (
    WGS84_FACTORY,
    Envelope,
    GeometryFactory,
    GeometryKind,
    PrecisionModel,
    get_xyzm,
)


class TestGeometryKind(TestCase):
    def test_parse(self) -> None:
        self.assertEqual(GeometryKind.parse("Point"), GeometryKind.Point)
        self.assertEqual(
            GeometryKind.parse("multipolygon"), GeometryKind.MultiPolygon
        )
        for name in ["Bogus", "Feature", None]:
            with self.assertRaises(UnknownGeometryKind):
                GeometryKind.parse(name)  # type: ignore[arg-type]

    def test_of(self) -> None:
        self.assertEqual(GeometryKind.of(shapely.Point(0, 0)), GeometryKind.Point)
        ring = shapely.LinearRing([(0, 0), (1, 0), (1, 1)])
        self.assertEqual(GeometryKind.of(ring), GeometryKind.LineString)
        self.assertEqual(
            GeometryKind.of(shapely.GeometryCollection()),
            GeometryKind.GeometryCollection,
        )
        with self.assertRaises(TypeError):
            GeometryKind.of([0, 0])  # type: ignore[arg-type]


class TestPrecisionModel(TestCase):
    def test_fixed(self) -> None:
        model = PrecisionModel.from_decimals(2)
        self.assertEqual(model.make_precise(1.23456789), 1.23)
        np.testing.assert_array_equal(
            model.make_precise(np.array([1.23456789, np.nan])), [1.23, np.nan]
        )

    def test_floating(self) -> None:
        self.assertEqual(PrecisionModel().make_precise(1.23456789), 1.23456789)
        self.assertEqual(
            PrecisionModel("floating_single").make_precise(0.1),
            float(np.float32(0.1)),
        )

    def test_invalid(self) -> None:
        with self.assertRaises(InvalidConfiguration):
            PrecisionModel("double")  # type: ignore[arg-type]
        with self.assertRaises(InvalidConfiguration):
            PrecisionModel.fixed(0)


class TestGeometryFactory(TestCase):
    def test_srid(self) -> None:
        point = WGS84_FACTORY.create_point([1, 2])
        self.assertEqual(shapely.get_srid(point), 4326)
        self.assertEqual(shapely.get_srid(GeometryFactory().create_point([1, 2])), 0)
        with self.assertRaises(InvalidConfiguration):
            GeometryFactory(srid=-1)

    def test_create_point(self) -> None:
        self.assertTrue(WGS84_FACTORY.create_point(None).is_empty)
        point = WGS84_FACTORY.create_point([1, 2, 3])
        self.assertTrue(shapely.has_z(point))
        np.testing.assert_array_equal(get_xyzm(point), [[1, 2, 3, np.nan]])

    def test_create_linear_ring(self) -> None:
        ring = WGS84_FACTORY.create_linear_ring([(0, 0), (1, 0), (1, 1), (0, 0)])
        self.assertTrue(ring.is_closed)
        self.assertEqual(len(ring.coords), 4)
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_linear_ring([(0, 0), (1, 0), (1, 1)])

    def test_unclosed_ring(self) -> None:
        shell = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_polygon([(0, 0), (1, 0), (1, 1)])
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_polygon(shell, [[(1, 1), (2, 1), (2, 2)]])
        # 只有 z 不同也不算闭合
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_polygon([(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 0, 1)])

    def test_create_polygon(self) -> None:
        shell = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        hole = [(1, 1), (2, 1), (2, 2), (1, 1)]
        polygon = WGS84_FACTORY.create_polygon(shell, [hole])
        self.assertEqual(len(polygon.interiors), 1)
        self.assertTrue(WGS84_FACTORY.create_polygon([]).is_empty)
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_polygon([(0, 0), (1, 1)])

    def test_create_multi_point(self) -> None:
        points = [shapely.Point(0, 0), shapely.Point(1, 1)]
        self.assertEqual(len(WGS84_FACTORY.create_multi_point(points).geoms), 2)
        coords = np.array([[0, 0], [1, 1], [2, 2]], dtype=float)
        self.assertEqual(len(WGS84_FACTORY.create_multi_point(coords).geoms), 3)

    def test_malformed(self) -> None:
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_line_string([(0, 0)])
        with self.assertRaises(MalformedGeometry):
            WGS84_FACTORY.create_point([[0, 0], [1, 1]])


class TestEnvelope(TestCase):
    def test_from_geometry(self) -> None:
        line = shapely.LineString([(0, 5), (3, 1)])
        self.assertEqual(Envelope.from_geometry(line), Envelope(0, 1, 3, 5))
        line_z = shapely.LineString([(0, 5, 2), (3, 1, -1)])
        self.assertEqual(Envelope.from_geometry(line_z), Envelope(0, 1, 3, 5, -1, 2))
        self.assertIsNone(Envelope.from_geometry(shapely.Point()))
        self.assertIsNone(Envelope.from_geometry(None))

    def test_bounds(self) -> None:
        envelope = Envelope.from_bounds([0, 1, 2, 3, 4, 5])
        self.assertEqual(envelope, Envelope(0, 1, 3, 4, 2, 5))
        self.assertEqual(envelope.to_bounds(), [0, 1, 2, 3, 4, 5])
        self.assertEqual(envelope.to_bounds(include_z=False), [0, 1, 3, 4])
        with self.assertRaises(MalformedGeometry):
            Envelope.from_bounds([0, 1, 2])

    def test_union(self) -> None:
        envelopes = [Envelope(0, 0, 1, 1), None, Envelope(-1, 2, 0, 3)]
        self.assertEqual(Envelope.union(envelopes), Envelope(-1, 0, 1, 3))
        self.assertIsNone(Envelope.union([None, None]))

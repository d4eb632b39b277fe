import json
from unittest import TestCase

import shapely
from loguru import logger

from geojsonkit import Envelope, Feature, GeoJsonSerializer
from geojsonkit.errors import MalformedGeometry, UnexpectedFeatureType, UnexpectedToken


class TestFeature(TestCase):
    def test_attributes(self) -> None:
        feature = Feature()
        self.assertIsNone(feature.attributes)
        self.assertIsNone(feature.id)
        feature.set_attribute("id", 7)
        self.assertEqual(feature.id, 7)
        with self.assertRaises(TypeError):
            Feature(geometry=[1, 2])  # type: ignore[arg-type]

    def test_envelope(self) -> None:
        feature = Feature(shapely.LineString([(0, 0), (2, 1)]))
        self.assertEqual(feature.envelope(), Envelope(0, 0, 2, 1))
        self.assertIsNone(feature.bbox)
        feature.bbox = Envelope(-1, -1, 1, 1)
        self.assertEqual(feature.envelope(), Envelope(-1, -1, 1, 1))


class TestFeatureConverter(TestCase):
    def setUp(self) -> None:
        self.serializer = GeoJsonSerializer()

    def test_null_handling(self) -> None:
        text = '{"type": "Feature", "geometry": null, "properties": null}'
        feature = self.serializer.read(text, "Feature")
        self.assertIsNone(feature.geometry)
        self.assertIsNone(feature.attributes)
        self.assertEqual(self.serializer.write(feature), '{"type":"Feature"}')

        serializer = GeoJsonSerializer(null_value_handling="include")
        self.assertEqual(
            serializer.write(feature),
            '{"type":"Feature","bbox":null,"geometry":null,"properties":null}',
        )

    def test_id(self) -> None:
        text = '{"type": "Feature", "id": "X", "geometry": null, "properties": null}'
        feature = self.serializer.read(text, "Feature")
        self.assertEqual(feature.id, "X")
        self.assertEqual(feature.attributes, {"id": "X"})
        self.assertEqual(self.serializer.write(feature), '{"type":"Feature","id":"X"}')

    def test_write(self) -> None:
        feature = Feature(shapely.Point(1, 2), {"id": 1, "name": "a"})
        self.assertEqual(
            self.serializer.write(feature),
            '{"type":"Feature","id":1,'
            '"geometry":{"type":"Point","coordinates":[1.0,2.0]},'
            '"properties":{"name":"a"}}',
        )

        serializer = GeoJsonSerializer(write_id_to_properties=True)
        properties = json.loads(serializer.write(feature))["properties"]
        self.assertEqual(properties, {"id": 1, "name": "a"})

    def test_bbox(self) -> None:
        feature = Feature(shapely.Point(1, 2))
        serializer = GeoJsonSerializer(null_value_handling="include")
        self.assertEqual(json.loads(serializer.write(feature))["bbox"], [1, 2, 1, 2])
        self.assertNotIn("bbox", json.loads(self.serializer.write(feature)))
        # 临时计算的 bbox 不会保存
        self.assertIsNone(feature.bbox)

        text = '{"type": "Feature", "bbox": [0, 1, 2, 3], "geometry": null}'
        feature = self.serializer.read(text, "Feature")
        self.assertEqual(feature.bbox, Envelope(0, 1, 2, 3))
        self.assertEqual(
            self.serializer.write(feature),
            '{"type":"Feature","bbox":[0.0,1.0,2.0,3.0]}',
        )

    def test_bbox_z(self) -> None:
        feature = Feature(shapely.LineString([(0, 1, 2), (3, 4, 5)]))
        serializer = GeoJsonSerializer(dimension=3, null_value_handling="include")
        self.assertEqual(
            json.loads(serializer.write(feature))["bbox"], [0, 1, 2, 3, 4, 5]
        )
        # 二维的序列化器只写出 4 个值
        serializer = GeoJsonSerializer(null_value_handling="include")
        self.assertEqual(json.loads(serializer.write(feature))["bbox"], [0, 1, 3, 4])

        text = '{"type": "Feature", "bbox": [0, 1, 2, 3, 4, 5], "geometry": null}'
        serializer = GeoJsonSerializer(dimension=3)
        feature = serializer.read(text, "Feature")
        self.assertEqual(feature.bbox, Envelope(0, 1, 3, 4, 2, 5))
        self.assertEqual(
            serializer.write(feature),
            '{"type":"Feature","bbox":[0.0,1.0,2.0,3.0,4.0,5.0]}',
        )

    def test_id_overwrite(self) -> None:
        messages: list[str] = []
        logger.enable("geojsonkit")
        handler_id = logger.add(messages.append, level="DEBUG")
        try:
            text = '{"type": "Feature", "id": "A", "properties": {"id": "B"}}'
            feature = self.serializer.read(text, "Feature")
            text = '{"type": "Feature", "properties": {"id": "B"}, "id": "A"}'
            other = self.serializer.read(text, "Feature")
        finally:
            logger.remove(handler_id)
            logger.disable("geojsonkit")

        # 后读到的 id 生效
        self.assertEqual(feature.id, "B")
        self.assertEqual(other.id, "A")
        self.assertEqual(self.serializer.write(feature), '{"type":"Feature","id":"B"}')
        self.assertEqual(sum("覆盖了已有的 id" in message for message in messages), 2)

    def test_member_order(self) -> None:
        desired = {"id": 3, "name": "a"}
        texts = [
            '{"type": "Feature", "id": 3, "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {"name": "a"}}',
            '{"properties": {"name": "a"}, "geometry": {"coordinates": [1, 2], "type": "Point"}, "id": 3, "type": "Feature"}',
        ]
        for text in texts:
            with self.subTest(text):
                feature = self.serializer.read(text, "Feature")
                self.assertEqual(feature.attributes, desired)
                self.assertTrue(feature.geometry.equals(shapely.Point(1, 2)))

    def test_unknown_member(self) -> None:
        text = (
            '{"type": "Feature", "geometry_name": "geom", '
            '"geometry": {"type": "Point", "coordinates": [1, 2]}, '
            '"properties": {"name": "a"}}'
        )
        feature = self.serializer.read(text, "Feature")
        self.assertEqual(feature.attributes, {"name": "a"})

    def test_properties_values(self) -> None:
        text = '{"type": "Feature", "properties": {"a": [1, {"b": null}], "c": true}}'
        feature = self.serializer.read(text, "Feature")
        self.assertEqual(feature.attributes, {"a": [1, {"b": None}], "c": True})
        self.assertEqual(
            self.serializer.write(feature),
            '{"type":"Feature","properties":{"a":[1,{"b":null}],"c":true}}',
        )

    def test_errors(self) -> None:
        serializer = GeoJsonSerializer(properties_null_as_missing=False)
        with self.assertRaises(UnexpectedToken):
            serializer.read('{"type": "Feature", "properties": null}', "Feature")

        cases = [
            ('{"type": "feature"}', UnexpectedFeatureType),
            ('{"type": "Point", "coordinates": [1, 2]}', UnexpectedFeatureType),
            ('{"type": "Feature", "properties": [1]}', UnexpectedToken),
            ('{"type": "Feature", "geometry": [1, 2]}', MalformedGeometry),
            ("[]", UnexpectedToken),
        ]
        for text, error in cases:
            with self.subTest(text):
                with self.assertRaises(error):
                    self.serializer.read(text, "Feature")

from dataclasses import FrozenInstanceError
from unittest import TestCase

from geojsonkit import GeoJsonSerializer, config
from geojsonkit.conf import Config, SerializerSettings, validate_option
from geojsonkit.errors import InvalidConfiguration


class TestConfig(TestCase):
    def test_defaults(self) -> None:
        desired = {
            "null_value_handling": "ignore",
            "write_id_to_properties": False,
            "compute_bbox_when_missing": False,
            "properties_null_as_missing": True,
        }
        self.assertEqual(Config().to_dict(), desired)

    def test_validate(self) -> None:
        conf = Config()
        with self.assertRaises(InvalidConfiguration):
            conf.null_value_handling = "always"  # type: ignore[assignment]
        with self.assertRaises(InvalidConfiguration):
            conf.validate("bbox_precision", 2)
        with self.assertRaises(InvalidConfiguration):
            Config(write_id_to_properties=1)  # type: ignore[arg-type]
        with self.assertRaises(InvalidConfiguration):
            validate_option("compute_bbox_when_missing", "yes")

    def test_update(self) -> None:
        conf = Config()
        conf.update(null_value_handling="include", write_id_to_properties=True)
        self.assertEqual(conf.null_value_handling, "include")
        self.assertTrue(conf.write_id_to_properties)

        # 校验失败时不做任何修改
        with self.assertRaises(InvalidConfiguration):
            conf.update(null_value_handling="ignore", compute_bbox_when_missing=0)  # type: ignore[arg-type]
        self.assertEqual(conf.null_value_handling, "include")

    def test_context(self) -> None:
        conf = Config()
        with conf.context(properties_null_as_missing=False):
            self.assertFalse(conf.properties_null_as_missing)
        self.assertTrue(conf.properties_null_as_missing)

    def test_serializer_snapshot(self) -> None:
        with config.context(null_value_handling="include"):
            serializer = GeoJsonSerializer()
        self.assertTrue(serializer.settings.include_null)
        self.assertFalse(GeoJsonSerializer().settings.include_null)


class TestSerializerSettings(TestCase):
    def test_from_config(self) -> None:
        settings = SerializerSettings.from_config(
            Config(write_id_to_properties=True), compute_bbox_when_missing=True
        )
        self.assertTrue(settings.write_id_to_properties)
        self.assertTrue(settings.compute_bbox_when_missing)
        self.assertEqual(settings.null_value_handling, "ignore")

        with self.assertRaises(InvalidConfiguration):
            SerializerSettings.from_config(bbox_precision=2)  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        settings = SerializerSettings()
        with self.assertRaises(FrozenInstanceError):
            settings.null_value_handling = "include"  # type: ignore[misc]

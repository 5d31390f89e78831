from __future__ import annotations

import unittest

from app.errors import ConfigurationError
from hmpi.base import IndexParameters


class TestIndexParameters(unittest.TestCase):
    def test_decodes_json_encoded_members(self) -> None:
        parameters = IndexParameters.from_raw(
            {
                "metals": '["lead", "zinc", "lead"]',
                "standards": '{"lead": 10, "zinc": "5"}',
                "backgrounds": "{}",
                "presenceLimits": '{"lead": 0.1}',
            }
        )

        self.assertEqual(parameters.metals, ("lead", "zinc"))
        self.assertEqual(parameters.standards, {"lead": 10.0, "zinc": 5.0})
        self.assertEqual(parameters.presence_limits, {"lead": 0.1})

    def test_accepts_decoded_values(self) -> None:
        parameters = IndexParameters.from_raw(
            {"metals": ["lead"], "standards": {}, "backgrounds": {}, "presence_limits": {}}
        )

        self.assertEqual(parameters.to_payload()["metals"], ["lead"])

    def test_missing_members_are_listed(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            IndexParameters.from_raw({"metals": '["lead"]', "standards": None})

        self.assertEqual(ctx.exception.context["missing"], ["standards", "backgrounds", "presenceLimits"])

    def test_invalid_json_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            IndexParameters.from_raw(
                {"metals": "[lead", "standards": "{}", "backgrounds": "{}", "presenceLimits": "{}"}
            )

    def test_empty_metal_list_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            IndexParameters.from_raw({"metals": "[]", "standards": "{}", "backgrounds": "{}", "presenceLimits": "{}"})

    def test_non_numeric_standard_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            IndexParameters.from_raw(
                {"metals": '["lead"]', "standards": '{"lead": "high"}', "backgrounds": "{}", "presenceLimits": "{}"}
            )

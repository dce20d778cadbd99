from __future__ import annotations

import importlib.util
import unittest
import warnings
from pathlib import Path

from receptbok.errors import InvalidResponseError, NoResponseError

ERRORS_PATH = Path(__file__).resolve().parents[1] / "receptbok" / "errors.py"


class GenerationErrorTestCase(unittest.TestCase):
    def test_model_failures_are_unprocessable(self):
        self.assertEqual(NoResponseError.status_code, 422)
        self.assertEqual(InvalidResponseError.status_code, 422)
        self.assertEqual(NoResponseError().to_payload()["code"], "no_response")

    def test_module_imports_without_deprecation_warnings(self):
        module_spec = importlib.util.spec_from_file_location("errors_fresh_copy", ERRORS_PATH)
        module = importlib.util.module_from_spec(module_spec)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            module_spec.loader.exec_module(module)
        self.assertEqual(
            [w for w in caught if issubclass(w.category, DeprecationWarning)],
            [],
        )


if __name__ == "__main__":
    unittest.main()

"""
Tests for the packaging metadata: pyproject readme and manifest version.
"""

from __future__ import annotations

import json
import tomllib
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[3]
COMPONENT = ROOT / "custom_components" / "gps_tracking"


class TestPackaging(unittest.TestCase):

    def setUp(self):
        with open(ROOT / "pyproject.toml", "rb") as handle:
            self.project = tomllib.load(handle)["project"]

    def test_readme_is_the_user_readme(self):
        readme = self.project["readme"]
        self.assertEqual(readme, "README.md")
        self.assertTrue((ROOT / readme).is_file())

    def test_manifest_version_matches_project(self):
        manifest = json.loads((COMPONENT / "manifest.json").read_text())
        self.assertEqual(manifest["version"], self.project["version"])

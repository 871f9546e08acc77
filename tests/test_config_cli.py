"""Tests for configuration loading and the command-line interface."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from sprite_partitioner.cli import cli, load_usage_manifest, read_symbol, setup_logging
from sprite_partitioner.config_loader import (
    get_classifier_config,
    get_output_config,
    get_sprite_config,
    load_config,
)
from sprite_partitioner.sprite import content_hash
from sprite_partitioner.tracker import OutputMappingTracker


class TestConfig(unittest.TestCase):
    def test_load_config_substitutes_env_vars(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                "sprite:\n  public_path: '${SPRITE_TEST_PUBLIC:static/}'\n  filename: '${SPRITE_TEST_NAME}'\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {"SPRITE_TEST_NAME": "icons-[index].svg"}):
                config = load_config(str(path))

        self.assertEqual(config["sprite"]["public_path"], "static/")
        self.assertEqual(config["sprite"]["filename"], "icons-[index].svg")

    def test_missing_config_raises(self):
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_defaults(self):
        sprite = get_sprite_config({})
        self.assertEqual(sprite["filename"], "sprite-[index]-[chunkcode].svg")
        self.assertTrue(sprite["partition"])
        self.assertEqual(sprite["max_workers"], 4)
        self.assertEqual(get_classifier_config({})["background_prefix"], "bg-")
        self.assertEqual(get_output_config({"output": {"dir": "out"}})["mapping_file"], "out/icons.json")

    def test_partition_flag_from_string(self):
        self.assertFalse(get_sprite_config({"sprite": {"partition": "false"}})["partition"])
        self.assertEqual(get_sprite_config({"sprite": {"max_workers": "0"}})["max_workers"], 4)

    def test_project_config_loads(self):
        config = load_config(str(Path(__file__).parent.parent / "config.yaml"))
        self.assertIn("sprite", config)
        self.assertIn("classifier", config)


class TestSvgReading(unittest.TestCase):
    def test_read_symbol_strips_wrapper(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "home.svg"
            path.write_text(
                '<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24"><path d="M0"/></svg>\n',
                encoding="utf-8",
            )
            content, viewbox = read_symbol(path)

        self.assertEqual(content, '<path d="M0"/>')
        self.assertEqual(viewbox, "0 0 24 24")

    def test_manifest_paths_relative_to_manifest(self):
        with tempfile.TemporaryDirectory() as tmp:
            manifest = Path(tmp) / "usage.yaml"
            manifest.write_text("outputs:\n  app:\n    - icons/x.svg\n", encoding="utf-8")
            usage = load_usage_manifest(str(manifest))

        self.assertEqual(usage, {"app": [str((Path(tmp) / "icons" / "x.svg").resolve())]})


class TestCliBuild(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        icons = self.root / "icons"
        icons.mkdir()
        for name in ("x", "y", "z"):
            (icons / f"{name}.svg").write_text(f"<svg viewBox='0 0 1 1'><{name}/></svg>", encoding="utf-8")
        (icons / "bg-hero.svg").write_text("<svg/>", encoding="utf-8")
        self.manifest = self.root / "usage.yaml"
        self.manifest.write_text(
            "outputs:\n"
            "  a: [icons/x.svg, icons/y.svg, icons/bg-hero.svg]\n"
            "  b: [icons/y.svg, icons/x.svg]\n"
            "  c: [icons/z.svg]\n",
            encoding="utf-8",
        )
        self.config = {
            "sprite": {"filename": "sprite-[index]-[chunkcode].svg"},
            "output": {"dir": str(self.root / "dist"), "mapping_file": str(self.root / "dist" / "icons.json")},
            "logging": {"file": str(self.root / "logs" / "sprites.log")},
        }

    def tearDown(self):
        self.tmp.cleanup()

    @patch("sprite_partitioner.plugin.get_default_tracker")
    @patch("sprite_partitioner.cli.setup_logging")
    def test_build_writes_sprites_and_mapping(self, _logging, mock_tracker):
        mock_tracker.return_value = OutputMappingTracker()
        with patch("sprite_partitioner.cli.load_config", return_value=self.config):
            result = self.runner.invoke(cli, ["build", str(self.manifest)])

        self.assertEqual(result.exit_code, 0, result.output)
        dist = self.root / "dist"
        first = f"sprite-0-{content_hash('0 0 1 1<x/>0 0 1 1<y/>')}.svg"
        second = f"sprite-1-{content_hash('0 0 1 1<z/>')}.svg"
        self.assertTrue((dist / first).exists())
        self.assertTrue((dist / second).exists())

        mapping = json.loads((dist / "icons.json").read_text(encoding="utf-8"))
        self.assertEqual(mapping, {"x": first, "y": first, "z": second})
        self.assertIn('<symbol id="x" viewBox="0 0 1 1"><x/></symbol>', (dist / first).read_text(encoding="utf-8"))

    @patch("sprite_partitioner.plugin.get_default_tracker")
    @patch("sprite_partitioner.cli.setup_logging")
    def test_build_dry_run_writes_nothing(self, _logging, mock_tracker):
        mock_tracker.return_value = OutputMappingTracker()
        with patch("sprite_partitioner.cli.load_config", return_value=self.config):
            result = self.runner.invoke(cli, ["build", str(self.manifest), "--dry-run", "--no-partition", "-f", "all.svg"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("all.svg", result.output)
        self.assertIn("single-entry: all.svg", result.output)
        self.assertFalse((self.root / "dist").exists())

    @patch("sprite_partitioner.cli.setup_logging")
    def test_classify(self, _logging):
        with patch("sprite_partitioner.cli.load_config", return_value=self.config):
            result = self.runner.invoke(cli, ["classify", "a/home.svg", "a/bg-hero.svg", "a/photo.png"])

        self.assertEqual(result.exit_code, 0, result.output)
        lines = result.output.strip().splitlines()
        self.assertIn("icon\ta/home.svg", lines)
        self.assertIn("skip\ta/bg-hero.svg", lines)
        self.assertIn("skip\ta/photo.png", lines)
        self.assertFalse((self.root / "dist").exists())

    @patch("sprite_partitioner.cli.setup_logging")
    def test_verbose_sets_debug_level(self, mock_logging):
        with patch("sprite_partitioner.cli.load_config", return_value=self.config):
            result = self.runner.invoke(cli, ["-v", "classify", "a/home.svg"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(mock_logging.call_args.args[0]["logging"]["level"], "DEBUG")

    @patch("sprite_partitioner.cli.setup_logging")
    def test_default_level_without_verbose(self, mock_logging):
        with patch("sprite_partitioner.cli.load_config", return_value={"logging": {"level": "WARNING"}}):
            result = self.runner.invoke(cli, ["classify", "a/home.svg"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(mock_logging.call_args.args[0]["logging"]["level"], "WARNING")


class TestLogging(unittest.TestCase):
    def tearDown(self):
        logger.remove()
        logger.add(sys.stderr)

    def test_debug_level_reaches_file_sink(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "sprites.log"
            setup_logging({"logging": {"level": "DEBUG", "file": str(log_file)}})
            logger.debug("debug marker")
            logger.remove()
            self.assertIn("debug marker", log_file.read_text(encoding="utf-8"))

    def test_info_level_drops_debug(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "sprites.log"
            setup_logging({"logging": {"level": "INFO", "file": str(log_file)}})
            logger.debug("debug marker")
            logger.info("info marker")
            logger.remove()
            rendered = log_file.read_text(encoding="utf-8")
        self.assertNotIn("debug marker", rendered)
        self.assertIn("info marker", rendered)


if __name__ == "__main__":
    unittest.main()

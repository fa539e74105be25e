"""
Integration tests for edb CLI behavior and configuration loading.

Tests:
  - .edb discovery: searching parent directories upward
  - config layering: profiles, defaults, environment overrides
  - edb init: creates a valid .edb YAML, refuses overwrite without --force
  - edb backups / rollback: reporting without touching the server
"""
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

import yaml

# ── Helpers ───────────────────────────────────────────────────────────────────

REPO_ROOT = Path(__file__).parent.parent


def _clean_env(tmp: Path) -> dict:
    env = {k: v for k, v in os.environ.items() if not k.startswith("EDB_")}
    env["XDG_CONFIG_HOME"] = str(tmp / "xdg")
    env["PYTHONPATH"] = str(REPO_ROOT)
    return env


def run_edb(*args, cwd, env):
    """Run the edb CLI and return (returncode, stdout, stderr)."""
    result = subprocess.run(
        [sys.executable, "-m", "edb", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        input="",
        env=env,
    )
    return result.returncode, result.stdout, result.stderr


# ── Tests: .edb discovery ─────────────────────────────────────────────────────

class TestFindEdbFile(unittest.TestCase):
    """Tests for find_edb_file() — upward search through parent directories."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_find_in_same_directory(self):
        from edb.config import find_edb_file
        (self.root / ".edb").write_text("profiles: []\n", encoding="utf-8")
        self.assertEqual(find_edb_file(self.root), self.root / ".edb")

    def test_find_in_parent_directory(self):
        from edb.config import find_edb_file
        (self.root / ".edb").write_text("profiles: []\n", encoding="utf-8")
        subdir = self.root / "a" / "b" / "c"
        subdir.mkdir(parents=True)
        self.assertEqual(find_edb_file(subdir), self.root / ".edb")

    def test_finds_nearest_edb_file(self):
        from edb.config import find_edb_file
        (self.root / ".edb").write_text("profiles: []\n", encoding="utf-8")
        sub_a = self.root / "a"
        sub_a.mkdir()
        (sub_a / ".edb").write_text("profiles: []\n", encoding="utf-8")
        deep = sub_a / "b" / "c"
        deep.mkdir(parents=True)
        self.assertEqual(find_edb_file(deep), sub_a / ".edb")


# ── Tests: config loading ─────────────────────────────────────────────────────

class TestSettings(unittest.TestCase):
    """Tests for get_profile, build_settings and load_settings."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()
        self._old_xdg = os.environ.get("XDG_CONFIG_HOME")
        os.environ["XDG_CONFIG_HOME"] = str(self.root / "xdg")

    def tearDown(self):
        if self._old_xdg is None:
            os.environ.pop("XDG_CONFIG_HOME", None)
        else:
            os.environ["XDG_CONFIG_HOME"] = self._old_xdg
        self.tmpdir.cleanup()

    def _write_edb(self, content):
        p = self.root / ".edb"
        p.write_text(content, encoding="utf-8")
        return p

    def test_defaults_match_the_classic_setup(self):
        from edb.config import build_settings
        s = build_settings({}, self.root)
        self.assertEqual(s.server_url, "http://localhost:8080/exist")
        from edb.core.rest_client import RestClient
        with RestClient.from_settings(s) as client:
            self.assertEqual(client.rest_base, "http://localhost:8080/exist/rest")
        self.assertEqual(s.collection, "/db/apps/sympa")
        self.assertEqual(s.app_name, "sympa")
        self.assertEqual(s.backup_keep, 10)
        self.assertEqual(s.local_dir, self.root / "sympa")

    def test_profile_values_and_relative_dirs(self):
        from edb.config import load_settings
        self._write_edb(
            "profiles:\n"
            "  - name: default\n"
            "    server: http://db.example.com:8080/exist\n"
            "    collection: /db/apps/blog/\n"
            "    local_dir: src/blog\n"
            "    backup_keep: 3\n"
        )
        s, path = load_settings("default", start=self.root, env={})
        self.assertEqual(path, self.root / ".edb")
        self.assertEqual(s.server_url, "http://db.example.com:8080/exist")
        self.assertEqual(s.collection, "/db/apps/blog")
        self.assertEqual(s.app_name, "blog")
        self.assertEqual(s.local_dir, self.root / "src" / "blog")
        self.assertEqual(s.backup_keep, 3)

    def test_environment_overrides_profile(self):
        from edb.config import load_settings
        self._write_edb(
            "defaults:\n"
            "  user: alice\n"
            "profiles:\n"
            "  - name: dev\n"
            "    collection: /db/apps/dev\n"
        )
        env = {"EDB_PASS": "s3cret", "EDB_XAR_NAME": "devapp", "EDB_BACKUP_KEEP": "0"}
        s, _ = load_settings("dev", start=self.root, env=env)
        self.assertEqual(s.user, "alice")
        self.assertEqual(s.password, "s3cret")
        self.assertEqual(s.app_name, "devapp")
        self.assertEqual(s.backup_keep, 0)
        self.assertNotIn("s3cret", repr(s))

    def test_get_profile_falls_back_to_first(self):
        from edb.config import get_profile
        data = {"profiles": [{"name": "only", "collection": "/db/apps/only"}]}
        self.assertEqual(get_profile(data, "nonexistent")["collection"], "/db/apps/only")

    def test_empty_password_key_falls_back_to_default(self):
        from edb.config import DEFAULT_PASSWORD, load_settings
        self._write_edb(
            "profiles:\n"
            "  - name: default\n"
            "    password:\n"
        )
        s, _ = load_settings("default", start=self.root, env={})
        self.assertEqual(s.password, DEFAULT_PASSWORD)
        self.assertNotEqual(s.password, "None")

    def test_bad_integer_is_a_config_error(self):
        from edb.config import build_settings
        from edb.errors import ConfigError
        with self.assertRaises(ConfigError):
            build_settings({"backup_keep": "many"}, self.root)
        with self.assertRaises(ConfigError):
            build_settings({"backup_keep": -1}, self.root)

    def test_invalid_yaml_is_a_config_error(self):
        from edb.config import load_edb_file
        from edb.errors import ConfigError
        p = self._write_edb("profiles: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_edb_file(p)


# ── Tests: CLI ────────────────────────────────────────────────────────────────

class TestCommands(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.cwd = Path(self.tmpdir.name).resolve()
        self.env = _clean_env(self.cwd)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_init_creates_valid_yaml(self):
        rc, out, err = run_edb("init", "--server", "http://myhost:8080/exist",
                               "--collection", "/db/apps/blog", "--keep", "5",
                               cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        data = yaml.safe_load((self.cwd / ".edb").read_text(encoding="utf-8"))
        profile = data["profiles"][0]
        self.assertEqual(profile["server"], "http://myhost:8080/exist")
        self.assertEqual(profile["collection"], "/db/apps/blog")
        self.assertEqual(profile["local_dir"], "./blog")
        self.assertEqual(profile["backup_keep"], 5)

    def test_init_refuses_overwrite(self):
        (self.cwd / ".edb").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_edb("init", "--collection", "/db/apps/x", cwd=self.cwd, env=self.env)
        self.assertNotEqual(rc, 0)
        self.assertIn("already exists", err)

    def test_init_force_overwrites(self):
        (self.cwd / ".edb").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_edb("init", "--collection", "/db/apps/new", "--force",
                               cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertIn("/db/apps/new", (self.cwd / ".edb").read_text(encoding="utf-8"))

    def test_init_dry_run_does_not_write(self):
        rc, out, err = run_edb("init", "--collection", "/db/apps/x", "--dry-run",
                               cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertFalse((self.cwd / ".edb").exists())
        self.assertIn("dry-run", out)

    def _backups(self, *ids):
        (self.cwd / ".edb").write_text(
            "profiles:\n  - name: default\n    collection: /db/apps/blog\n", encoding="utf-8")
        for sid in ids:
            (self.cwd / "backups" / "blog" / sid).mkdir(parents=True)

    def test_backups_lists_snapshot_ids(self):
        self._backups("20250101_000000", "20250102_000000")
        rc, out, err = run_edb("backups", cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertLess(out.index("20250101_000000"), out.index("20250102_000000"))

    def test_rollback_unknown_timestamp_fails_with_listing(self):
        self._backups("20250101_000000", "20250102_000000")
        rc, out, err = run_edb("rollback", "nonexistent", cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 1)
        self.assertIn("nonexistent", err)
        self.assertIn("20250101_000000", err)
        self.assertIn("20250102_000000", err)

    def test_import_without_local_dir_fails(self):
        self._backups()
        rc, out, err = run_edb("import", cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 1)
        self.assertIn("Local dir not found", err)

    def test_no_command_prints_help(self):
        rc, out, err = run_edb(cwd=self.cwd, env=self.env)
        self.assertEqual(rc, 1)
        self.assertIn("usage", out.lower())


if __name__ == "__main__":
    unittest.main()
